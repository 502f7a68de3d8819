from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from jstore import JsonlStore

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path


@pytest.fixture
def path(tmp_path: Path) -> Path:
    return tmp_path / "store.jsonl"


@pytest.fixture
def store(path: Path) -> Iterator[JsonlStore]:
    s = JsonlStore(path)
    yield s
    s.close()


@pytest.fixture
def crash_append() -> Callable[[Path, bytes], None]:
    """Write bytes behind the store's back, as an interrupted append would."""

    def _append(path: Path, data: bytes) -> None:
        with path.open("ab") as f:
            f.write(data)

    return _append
