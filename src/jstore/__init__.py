"""Append-only, crash-tolerant JSON Lines store.

File format:
    one compact JSON value per line, "\\n" terminated, UTF-8, no header.

    {"key":"value"}\\n
    {"key":"value2"}\\n
    {"key":"val                  <- dangling: interrupted append, ignored by reads
                                    and quarantined behind a newline by the next write

Concurrent access: one JsonlStore per file, shared freely between threads.
Every file-touching step runs under the store's lock plus flock on the file.
"""

from jstore.config import JStoreConfig, StoreConfig, init_config, load_config
from jstore.errors import (
    CorruptEntryError,
    EmptyStoreError,
    EntryNotFoundError,
    EntryTooLargeError,
    FirstEntryCorruptError,
    JsonlError,
    NotJSONError,
    NotUTF8Error,
    StoreClosedError,
    StoreIOError,
)
from jstore.store import CheckReport, JsonlStore, open_store

__all__ = [
    "CheckReport",
    "CorruptEntryError",
    "EmptyStoreError",
    "EntryNotFoundError",
    "EntryTooLargeError",
    "FirstEntryCorruptError",
    "JStoreConfig",
    "JsonlError",
    "JsonlStore",
    "NotJSONError",
    "NotUTF8Error",
    "StoreClosedError",
    "StoreConfig",
    "StoreIOError",
    "init_config",
    "load_config",
    "open_store",
]
