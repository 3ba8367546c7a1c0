"""Live cross-reference graph for a directory of markdown documents."""

__version__ = "0.1.0"
