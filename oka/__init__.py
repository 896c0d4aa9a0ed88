"""oka - command-line HTTP client with named environments."""

__version__ = "2.1.0"
