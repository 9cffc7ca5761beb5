"""Brain: local vector index of code and documentation, kept in sync with its sources."""

__version__ = "0.1.0"
