"""JStoreConfig: optional project-local settings for jstore.

Looked up as jstore.toml in the given root, or upward from the cwd:

    [store]
    max_entry_size = 16777216   # bytes per entry (16 MiB)
    file_mode = 0o600           # permissions for newly created files
    scan_chunk_size = 65536     # read size for scans, never above max_entry_size

    [logging]
    level = "WARNING"

Every key is optional; a missing file yields the defaults.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jstore.codec import DEFAULT_MAX_ENTRY_SIZE
from jstore.scan import DEFAULT_CHUNK_SIZE

_CONFIG_FILENAME = "jstore.toml"
_DEFAULT_FILE_MODE = 0o600
_DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class StoreConfig:
    max_entry_size: int = DEFAULT_MAX_ENTRY_SIZE
    file_mode: int = _DEFAULT_FILE_MODE
    scan_chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self) -> None:
        if self.max_entry_size < 1:
            msg = f"store.max_entry_size must be positive, got {self.max_entry_size}"
            raise ValueError(msg)
        if self.scan_chunk_size < 1:
            msg = f"store.scan_chunk_size must be positive, got {self.scan_chunk_size}"
            raise ValueError(msg)
        if not 0 <= self.file_mode <= 0o777:
            msg = f"store.file_mode must be a permission mode, got {self.file_mode:#o}"
            raise ValueError(msg)
        # Keeps the scan window within the entry cap.
        self.scan_chunk_size = min(self.scan_chunk_size, self.max_entry_size)


@dataclass
class LoggingConfig:
    level: str = _DEFAULT_LOG_LEVEL

    def __post_init__(self) -> None:
        self.level = self.level.upper()
        if not isinstance(logging.getLevelName(self.level), int):
            msg = f"logging.level is not a logging level: {self.level!r}"
            raise ValueError(msg)


@dataclass
class JStoreConfig:
    """Resolved configuration (root is the directory holding jstore.toml)."""

    root: Path
    store: StoreConfig = field(default_factory=StoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def config_path(self) -> Path:
        return self.root / _CONFIG_FILENAME


def _int(section: dict[str, Any], key: str, default: int, prefix: str) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"{prefix}.{key} must be an integer, got {value!r}"
        raise ValueError(msg)
    return value


def load_config(root: Path | str | None = None) -> JStoreConfig:
    """Load jstore.toml from root (or search upward from cwd if root is None)."""
    root_path = _find_root(Path(root) if root else Path.cwd())
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    store_section = raw.get("store", {})
    log_section = raw.get("logging", {})

    return JStoreConfig(
        root=root_path,
        store=StoreConfig(
            max_entry_size=_int(store_section, "max_entry_size", DEFAULT_MAX_ENTRY_SIZE, "store"),
            file_mode=_int(store_section, "file_mode", _DEFAULT_FILE_MODE, "store"),
            scan_chunk_size=_int(store_section, "scan_chunk_size", DEFAULT_CHUNK_SIZE, "store"),
        ),
        logging=LoggingConfig(
            level=str(log_section.get("level", _DEFAULT_LOG_LEVEL)),
        ),
    )


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for jstore.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path) -> Path:
    """Write a default jstore.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"jstore.toml already exists at {config_path}"
        raise FileExistsError(msg)

    content = f"""\
[store]
# max_entry_size = {DEFAULT_MAX_ENTRY_SIZE}   # bytes per entry (16 MiB)
# file_mode = 0o600              # permissions for newly created store files
# scan_chunk_size = {DEFAULT_CHUNK_SIZE}        # read size for scans

[logging]
# level = "{_DEFAULT_LOG_LEVEL}"
"""
    config_path.write_text(content)
    return config_path
