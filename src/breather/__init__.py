"""breather: a guided meditation session timer."""

__version__ = "0.1.0"
