"""Shared-memory ring buffer publisher, region layout helpers and command-line publishers."""

__version__ = "0.1.0"
__all__ = ["atomics", "layout", "naming", "region", "logger", "publisher", "cli"]