"""Profile manager for AI assistant CLIs with encrypted remote sync."""

__version__ = "0.3.0"
