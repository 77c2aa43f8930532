"""EmCipher storage module."""

from .counter_store import CounterStore, InMemoryCounterStore
from .file_counter_store import FileCounterStore

__all__ = [
    "CounterStore",
    "InMemoryCounterStore",
    "FileCounterStore",
]
