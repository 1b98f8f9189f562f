"""Persistence layer: message store interface and SQLite implementation."""

from .base import MessageStore
from .sqlite import SQLiteConfig, SQLiteMessageStore

__all__ = ["MessageStore", "SQLiteConfig", "SQLiteMessageStore"]
