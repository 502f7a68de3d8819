"""Entry codec: validate and normalize payloads into log lines.

A payload becomes one or more compact JSON lines:

    b'{ "a": 1 }'            -> b'{"a":1}\\n'
    b'{"a": 1}\\n{"b": 2}'    -> b'{"a":1}\\n{"b":2}\\n'      (batch)
    b'{\\n  "a": [1,\\n 2]\\n}' -> b'{"a":[1,2]}\\n'           (one document)

Nothing here touches the file, so it runs outside the store lock.
"""

from __future__ import annotations

import dataclasses
import json
import re
from typing import TYPE_CHECKING, Any

from jstore.errors import CorruptEntryError, EntryTooLargeError, NotJSONError, NotUTF8Error

if TYPE_CHECKING:
    from collections.abc import Callable

DEFAULT_MAX_ENTRY_SIZE = 16 * 1024 * 1024

# A JSON string token, or a run of insignificant whitespace outside strings.
_TOKEN_RE = re.compile(r'("(?:[^"\\]|\\.)*")|[ \t\n\r]+')


def _reject_constant(name: str) -> Any:
    msg = f"{name} is not valid JSON"
    raise ValueError(msg)


def _parse(text: str) -> Any:
    """json.loads without the NaN/Infinity extensions."""
    return json.loads(text, parse_constant=_reject_constant)


def _is_json(text: str) -> bool:
    try:
        _parse(text)
    except (ValueError, RecursionError):
        return False
    return True


def compact(text: str) -> str:
    """Strip insignificant whitespace from already-validated JSON text.

    Key order, number spelling and string escapes are preserved as written.
    """
    return _TOKEN_RE.sub(lambda m: m.group(1) or "", text.strip())


def _to_text(payload: bytes | bytearray | memoryview | str) -> str:
    if isinstance(payload, str):
        try:
            payload.encode("utf-8")
        except UnicodeEncodeError as exc:
            msg = f"payload is not encodable as UTF-8: {exc.reason} at index {exc.start}"
            raise NotUTF8Error(msg) from exc
        return payload
    try:
        return bytes(payload).decode("utf-8")
    except UnicodeDecodeError as exc:
        msg = f"payload is not valid UTF-8: {exc.reason} at byte {exc.start}"
        raise NotUTF8Error(msg) from exc


def _split_entries(text: str) -> list[str]:
    """Return the JSON documents in text: the whole text, or one per line."""
    if not text.strip():
        msg = "payload is empty"
        raise NotJSONError(msg)
    if _is_json(text):
        return [text]
    chunks = [c for c in text.split("\n") if c.strip()]
    for i, chunk in enumerate(chunks, start=1):
        if not _is_json(chunk):
            msg = f"payload line {i} of {len(chunks)} is not valid JSON"
            raise NotJSONError(msg)
    return chunks


def encode_entries(
    payload: bytes | bytearray | memoryview | str,
    *,
    max_entry_size: int = DEFAULT_MAX_ENTRY_SIZE,
) -> bytes:
    """Validate payload and return it as newline-terminated compact JSON lines.

    Raises NotUTF8Error, NotJSONError or EntryTooLargeError. A batch is
    all-or-nothing: one bad line rejects the whole payload.
    """
    text = _to_text(payload)
    lines: list[bytes] = []
    for chunk in _split_entries(text):
        line = compact(chunk).encode("utf-8")
        if len(line) > max_entry_size:
            msg = f"entry is {len(line)} bytes, limit is {max_entry_size}"
            raise EntryTooLargeError(msg)
        lines.append(line)
    return b"\n".join(lines) + b"\n"


def to_jsonable(value: Any) -> Any:
    """Turn dataclasses and objects with to_dict() into plain JSON data."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return value


def encode_value(value: Any, *, max_entry_size: int = DEFAULT_MAX_ENTRY_SIZE) -> bytes:
    """Serialize a structured value to a single entry line."""
    try:
        text = json.dumps(to_jsonable(value), separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        msg = f"value is not JSON serializable: {exc}"
        raise NotJSONError(msg) from exc
    return encode_entries(text, max_entry_size=max_entry_size)


def decode_entry(line: bytes, decode: Callable[[Any], Any] | None = None, ordinal: int | None = None) -> Any:
    """Parse one stored line. Raises CorruptEntryError if it is not JSON."""
    try:
        value = _parse(line.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError) as exc:
        where = f"entry {ordinal}" if ordinal is not None else "entry"
        msg = f"{where} is corrupt: {exc}"
        raise CorruptEntryError(msg, ordinal=ordinal) from exc
    return decode(value) if decode is not None else value


def is_valid_entry(line: bytes) -> bool:
    try:
        _parse(line.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError):
        return False
    return True
