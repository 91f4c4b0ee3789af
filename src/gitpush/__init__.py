"""gitpush: sync a local folder with a GitHub repository by content hash."""

__version__ = "0.3.0"
