"""In-memory filesystem trees with overlays and metadata diffs."""

__version__ = "0.1.0"
