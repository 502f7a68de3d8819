"""JsonlStore: append-only, crash-tolerant JSON Lines file.

    with JsonlStore("state.jsonl") as store:
        store.add({"key": "value"})
        store.latest()          # -> {"key": "value"}
        store.at(1)             # -> {"key": "value"}
        len(store)              # -> 1

Write path: payload -> codec (no lock) -> lock -> repair dangling tail ->
O_APPEND write -> fsync -> count += newlines written.

A crash mid-append leaves unterminated bytes at the end of the file. Reads
ignore them, and the next write prefixes a newline so they become a
quarantined line of their own; they are never truncated or rewritten.
latest() and read() skip quarantined lines and return the newest valid
entry, so at most the in-flight entry is lost.
"""

from __future__ import annotations

import contextlib
import fcntl
import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jstore.codec import decode_entry, encode_entries, encode_value, is_valid_entry
from jstore.config import StoreConfig
from jstore.errors import (
    CorruptEntryError,
    EmptyStoreError,
    EntryNotFoundError,
    EntryTooLargeError,
    FirstEntryCorruptError,
    StoreClosedError,
    StoreIOError,
)
from jstore.scan import NEWLINE, count_newlines, iter_lines, iter_lines_reverse

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger("jstore.store")


@dataclass
class CheckReport:
    """Result of JsonlStore.check()."""

    lines: int = 0                                   # newline-terminated lines
    corrupt: list[int] = field(default_factory=list)  # ordinals that do not decode
    dangling: int = 0                                 # bytes after the last newline

    @property
    def ok(self) -> bool:
        return not self.corrupt and not self.dangling


class JsonlStore:
    """Mutex-protected JSON Lines file.

    Safe to share between threads. Opening the same path from two stores (or
    two processes) is not supported: each keeps its own entry count.
    """

    def __init__(self, path: Path | str, config: StoreConfig | None = None) -> None:
        self.path = Path(path)
        self.config = config or StoreConfig()
        self._lock = threading.RLock()
        self._fd: int | None = None
        self._count = 0
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fd = os.open(
                self.path, os.O_APPEND | os.O_CREAT | os.O_RDWR, self.config.file_mode,
            )
        except OSError as exc:
            msg = f"jstore: cannot open {self.path}: {exc}"
            raise StoreIOError(msg) from exc
        try:
            with self._lock, self._flocked(fcntl.LOCK_SH):
                self._count = count_newlines(self._read_at, self._size(), self.config.scan_chunk_size)
        except BaseException:
            self.close()
            raise
        logger.info("opened %s (%d entries)", self.path, self._count)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the file descriptor. Further operations raise StoreClosedError."""
        with self._lock:
            if self._fd is None:
                return
            fd, self._fd = self._fd, None
            try:
                os.close(fd)
            except OSError as exc:
                msg = f"jstore: close {self.path}: {exc}"
                raise StoreIOError(msg) from exc
        logger.info("closed %s", self.path)

    @property
    def closed(self) -> bool:
        return self._fd is None

    def __enter__(self) -> JsonlStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __len__(self) -> int:
        """Committed entry count (newline-terminated lines); no file access."""
        with self._lock:
            self._require_open()
            return self._count

    def __repr__(self) -> str:
        state = "closed" if self.closed else f"{self._count} entries"
        return f"<JsonlStore {str(self.path)!r} {state}>"

    # ------------------------------------------------------------------
    # Low-level file access (callers hold self._lock)
    # ------------------------------------------------------------------

    def _require_open(self) -> int:
        if self._fd is None:
            msg = f"I/O operation on closed store: {self.path}"
            raise StoreClosedError(msg)
        return self._fd

    @contextlib.contextmanager
    def _flocked(self, op: int) -> Iterator[None]:
        fd = self._require_open()
        try:
            fcntl.flock(fd, op)
        except OSError as exc:
            msg = f"jstore: flock {self.path}: {exc}"
            raise StoreIOError(msg) from exc
        try:
            yield
        finally:
            if self._fd is not None:
                fcntl.flock(fd, fcntl.LOCK_UN)

    def _size(self) -> int:
        try:
            return os.fstat(self._require_open()).st_size
        except OSError as exc:
            msg = f"jstore: stat {self.path}: {exc}"
            raise StoreIOError(msg) from exc

    def _read_at(self, offset: int, size: int) -> bytes:
        """pread exactly size bytes (fewer only at end of file)."""
        with self._lock:
            fd = self._require_open()
            parts: list[bytes] = []
            try:
                while size > 0:
                    data = os.pread(fd, size, offset)
                    if not data:
                        break
                    parts.append(data)
                    offset += len(data)
                    size -= len(data)
            except OSError as exc:
                msg = f"jstore: read {self.path} at offset {offset}: {exc}"
                raise StoreIOError(msg) from exc
            return b"".join(parts)

    def _append(self, data: bytes) -> None:
        fd = self._require_open()
        view = memoryview(data)
        try:
            while view:
                written = os.write(fd, view)
                view = view[written:]
            os.fsync(fd)
        except OSError as exc:
            msg = f"jstore: append {len(data)} bytes to {self.path}: {exc}"
            raise StoreIOError(msg) from exc

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def write(self, payload: bytes | bytearray | memoryview | str) -> int:
        """Append one JSON document, or a newline-separated batch of them.

        Returns the number of bytes appended. Raises NotUTF8Error,
        NotJSONError or EntryTooLargeError without touching the file.
        """
        data = encode_entries(payload, max_entry_size=self.config.max_entry_size)
        return self._commit(data)

    def add(self, value: Any) -> int:
        """Serialize value (dict, list, dataclass, object with to_dict()) and append it."""
        data = encode_value(value, max_entry_size=self.config.max_entry_size)
        return self._commit(data)

    def _commit(self, data: bytes) -> int:
        with self._lock, self._flocked(fcntl.LOCK_EX):
            size = self._size()
            if size > 0 and self._read_at(size - 1, 1) != NEWLINE:
                logger.warning(
                    "%s: unterminated write at offset %d, quarantining it behind a newline",
                    self.path, size,
                )
                data = NEWLINE + data
            self._append(data)
            self._count += data.count(NEWLINE)
            logger.debug("appended %d bytes to %s (%d entries)", len(data), self.path, self._count)
            return len(data)

    # ------------------------------------------------------------------
    # Recovery read: newest valid entry by backward scan
    # ------------------------------------------------------------------

    def read(self) -> bytes:
        """Return the newest valid entry (no trailing newline), or b"" if there is none."""
        with self._lock, self._flocked(fcntl.LOCK_SH):
            size = self._size()
            if size == 0:
                return b""
            lines = iter_lines_reverse(
                self._read_at, size, self.config.max_entry_size, self.config.scan_chunk_size,
            )
            for skipped, line in enumerate(lines):
                if line is not None and is_valid_entry(line):
                    if skipped:
                        logger.warning("%s: skipped %d corrupt trailing line(s)", self.path, skipped)
                    return line
            return b""

    def readinto(self, buffer: bytearray | memoryview) -> int:
        """Copy the newest valid entry into buffer; returns bytes copied (0 at end of data)."""
        line = self.read()
        view = memoryview(buffer).cast("B")
        n = min(len(view), len(line))
        view[:n] = line[:n]
        return n

    # ------------------------------------------------------------------
    # Indexed access
    # ------------------------------------------------------------------

    def at_bytes(self, ordinal: int) -> bytes:
        """Raw bytes of line ``ordinal`` (1-based), scanning from the start."""
        if ordinal < 1:
            msg = f"no entry at {ordinal}: ordinals start at 1"
            raise EntryNotFoundError(msg)
        with self._lock, self._flocked(fcntl.LOCK_SH):
            lines = iter_lines(
                self._read_at, self._size(), self.config.max_entry_size, self.config.scan_chunk_size,
            )
            for n, line in enumerate(lines, start=1):
                if n < ordinal:
                    continue
                if line is None:
                    msg = f"entry {ordinal} exceeds {self.config.max_entry_size} bytes"
                    raise EntryTooLargeError(msg)
                return line
        msg = f"no entry at {ordinal}: store has fewer lines"
        raise EntryNotFoundError(msg)

    def at(self, ordinal: int, decode: Callable[[Any], Any] | None = None) -> Any:
        """Decoded entry ``ordinal``. decode (e.g. Model.from_dict) is applied to the JSON value."""
        return decode_entry(self.at_bytes(ordinal), decode, ordinal=ordinal)

    def latest(self, decode: Callable[[Any], Any] | None = None) -> Any:
        """Newest valid entry, falling back past corrupt lines.

        Raises EmptyStoreError when there are no entries and
        FirstEntryCorruptError when none of them decodes.
        """
        with self._lock:
            ordinal = len(self)
            if ordinal < 1:
                msg = f"{self.path} has no entries yet"
                raise EmptyStoreError(msg)
            while True:
                try:
                    value = self.at(ordinal)
                except (CorruptEntryError, EntryTooLargeError) as exc:
                    if ordinal <= 1:
                        msg = f"{self.path}: no valid entry, first entry is corrupt"
                        raise FirstEntryCorruptError(msg, ordinal=1) from exc
                    logger.warning("%s: entry %d is corrupt, falling back to %d", self.path, ordinal, ordinal - 1)
                    ordinal -= 1
                    continue
                return decode(value) if decode is not None else value

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def iter_entries(self, decode: Callable[[Any], Any] | None = None) -> Iterator[tuple[int, Any]]:
        """Yield (ordinal, value) for each valid entry, oldest first.

        Iterates over the entries committed when iteration starts. The lock is
        taken per chunk read, so writers are not blocked for the whole pass.
        """
        with self._lock:
            size = self._size()
        lines = iter_lines(self._read_at, size, self.config.max_entry_size, self.config.scan_chunk_size)
        for n, line in enumerate(lines, start=1):
            if line is None or not is_valid_entry(line):
                continue
            yield n, decode_entry(line, decode, ordinal=n)

    def check(self) -> CheckReport:
        """Report corrupt lines and any dangling tail. Read-only."""
        report = CheckReport()
        with self._lock, self._flocked(fcntl.LOCK_SH):
            size = self._size()
            lines = iter_lines(self._read_at, size, self.config.max_entry_size, self.config.scan_chunk_size)
            consumed = 0
            for n, line in enumerate(lines, start=1):
                report.lines = n
                if line is None or not is_valid_entry(line):
                    report.corrupt.append(n)
            if size:
                consumed = self._last_newline_end(size)
            report.dangling = size - consumed
        return report

    def _last_newline_end(self, size: int) -> int:
        """Offset just past the last newline in the file (0 if none)."""
        pos = size
        step = self.config.scan_chunk_size
        while pos > 0:
            n = min(step, pos)
            pos -= n
            idx = self._read_at(pos, n).rfind(NEWLINE)
            if idx >= 0:
                return pos + idx + 1
        return 0


def open_store(path: Path | str, config: StoreConfig | None = None) -> JsonlStore:
    """Open (or create) the JSON Lines store at path."""
    return JsonlStore(path, config)
