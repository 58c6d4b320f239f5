"""
SQLite persistence for events and sync sources.
"""

from .store import EventStore

__all__ = ["EventStore"]
