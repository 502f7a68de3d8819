"""Exception types raised by the store.

Every error derives from JsonlError and from the built-in it most resembles,
so callers can catch either:

    JsonlError
        NotUTF8Error          (ValueError)   payload rejected, nothing written
        NotJSONError          (ValueError)   payload rejected, nothing written
        EntryTooLargeError    (ValueError)   entry over the size cap
        EntryNotFoundError    (IndexError)   ordinal out of range
            EmptyStoreError                  no entries yet
        CorruptEntryError     (ValueError)   stored line does not decode
            FirstEntryCorruptError           nothing valid to fall back to
        StoreClosedError      (ValueError)   store used after close()
        StoreIOError          (OSError)      stat/read/write/sync failure
"""

from __future__ import annotations


class JsonlError(Exception):
    """Base class for all store errors."""


class NotUTF8Error(JsonlError, ValueError):
    """Payload is not valid UTF-8."""


class NotJSONError(JsonlError, ValueError):
    """Payload (or one line of a batch) is not valid JSON."""


class EntryTooLargeError(JsonlError, ValueError):
    """Entry exceeds the configured size cap."""


class EntryNotFoundError(JsonlError, IndexError):
    """No line exists at the requested ordinal."""


class EmptyStoreError(EntryNotFoundError):
    """The store holds no entries yet."""


class CorruptEntryError(JsonlError, ValueError):
    """A stored line is not valid JSON (quarantined or truncated write)."""

    def __init__(self, msg: str, ordinal: int | None = None) -> None:
        super().__init__(msg)
        self.ordinal = ordinal


class FirstEntryCorruptError(CorruptEntryError):
    """Every entry down to the first one is corrupt."""


class StoreClosedError(JsonlError, ValueError):
    """Operation attempted on a closed store."""


class StoreIOError(JsonlError, OSError):
    """Underlying file-system call failed."""
