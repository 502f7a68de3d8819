"""Line scanning over a file region, chunk by chunk.

All scanners take a ``read_at(offset, size) -> bytes`` callable and the size
of the region to scan, so they never depend on how the store reads or locks.
Only newline-terminated lines are yielded; trailing bytes without a newline
are a dangling partial write and are never part of a line.

Lines longer than ``limit`` are yielded as None so memory stays bounded by
``limit + chunk_size`` whatever the file size.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    ReadAt = Callable[[int, int], bytes]

NEWLINE = b"\n"
DEFAULT_CHUNK_SIZE = 64 * 1024


def count_newlines(read_at: ReadAt, size: int, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """Number of newline-terminated lines in the first ``size`` bytes."""
    count = 0
    offset = 0
    while offset < size:
        chunk = read_at(offset, min(chunk_size, size - offset))
        if not chunk:
            break
        count += chunk.count(NEWLINE)
        offset += len(chunk)
    return count


def iter_lines(
    read_at: ReadAt,
    size: int,
    limit: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[bytes | None]:
    """Yield complete lines first to last, without their newline."""
    parts: list[bytes] = []
    pending = 0
    oversized = False
    offset = 0
    while offset < size:
        chunk = read_at(offset, min(chunk_size, size - offset))
        if not chunk:
            break
        offset += len(chunk)
        start = 0
        while True:
            idx = chunk.find(NEWLINE, start)
            if idx < 0:
                break
            piece = chunk[start:idx]
            if oversized or pending + len(piece) > limit:
                yield None
            else:
                parts.append(piece)
                yield b"".join(parts)
            parts = []
            pending = 0
            oversized = False
            start = idx + 1
        rest = chunk[start:]
        if oversized:
            continue
        if pending + len(rest) > limit:
            parts = []
            pending = 0
            oversized = True
        elif rest:
            parts.append(rest)
            pending += len(rest)


def iter_lines_reverse(
    read_at: ReadAt,
    size: int,
    limit: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[bytes | None]:
    """Yield complete lines last to first, without their newline.

    Reads backward from ``size`` so the newest line costs one chunk read
    regardless of how long the file is.
    """
    pos = size
    tail = b""          # bytes of the current line found so far (its end)
    oversized = False
    terminated = False  # a newline has been seen, so ``tail`` is a real line
    while pos > 0:
        step = min(chunk_size, pos)
        pos -= step
        chunk = read_at(pos, step)
        end = len(chunk)
        while True:
            idx = chunk.rfind(NEWLINE, 0, end)
            if idx < 0:
                break
            if terminated:
                piece = chunk[idx + 1:end]
                if oversized or len(piece) + len(tail) > limit:
                    yield None
                else:
                    yield piece + tail
            terminated = True
            tail = b""
            oversized = False
            end = idx
        if not terminated or oversized:
            continue
        if end + len(tail) > limit:
            tail = b""
            oversized = True
        else:
            tail = chunk[:end] + tail
    if terminated:
        yield None if oversized else tail
