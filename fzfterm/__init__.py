"""Terminal primitives for interactive fuzzy-finder style programs."""

__version__ = "0.1.0"