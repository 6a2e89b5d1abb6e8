"""SnipSync - bidirectional snippet/gist synchronization."""

__version__ = "0.1.0"
