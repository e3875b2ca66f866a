"""WagerLoop social engagement backend and optimistic client."""

__version__ = "0.1.0"
