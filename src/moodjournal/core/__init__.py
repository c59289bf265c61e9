"""Core persistence helpers for Mood Journal AI."""

from moodjournal.core.storage import JsonFileStore, KeyValueStore, MemoryStore, StorageError

__all__ = ["JsonFileStore", "KeyValueStore", "MemoryStore", "StorageError"]
