from __future__ import annotations

import pytest

from jstore.codec import DEFAULT_MAX_ENTRY_SIZE
from jstore.config import StoreConfig, init_config, load_config


def test_defaults_without_file(tmp_path):
    cfg = load_config(tmp_path)
    assert cfg.root == tmp_path
    assert cfg.store.max_entry_size == DEFAULT_MAX_ENTRY_SIZE == 16 * 1024 * 1024
    assert cfg.store.file_mode == 0o600
    assert cfg.store.scan_chunk_size == 64 * 1024
    assert cfg.logging.level == "WARNING"


def test_reads_values(tmp_path):
    (tmp_path / "jstore.toml").write_text(
        "[store]\nmax_entry_size = 1024\nfile_mode = 0o640\nscan_chunk_size = 4096\n"
        '[logging]\nlevel = "debug"\n',
    )
    cfg = load_config(tmp_path)
    assert cfg.store.max_entry_size == 1024
    assert cfg.store.file_mode == 0o640
    assert cfg.store.scan_chunk_size == 1024  # clamped to the entry cap
    assert cfg.logging.level == "DEBUG"


def test_searches_upward(tmp_path, monkeypatch):
    (tmp_path / "jstore.toml").write_text("[store]\nmax_entry_size = 99\n")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)
    cfg = load_config()
    assert cfg.root == tmp_path
    assert cfg.config_path == tmp_path / "jstore.toml"
    assert cfg.store.max_entry_size == 99


@pytest.mark.parametrize(
    "body",
    [
        '[store]\nmax_entry_size = "big"\n',
        "[store]\nmax_entry_size = 0\n",
        "[store]\nscan_chunk_size = true\n",
        "[store]\nfile_mode = 0o7777\n",
        '[logging]\nlevel = "chatty"\n',
    ],
)
def test_invalid_values(tmp_path, body):
    (tmp_path / "jstore.toml").write_text(body)
    with pytest.raises(ValueError):
        load_config(tmp_path)


def test_store_config_validates():
    with pytest.raises(ValueError, match="scan_chunk_size"):
        StoreConfig(scan_chunk_size=0)


def test_init_config(tmp_path):
    path = init_config(tmp_path)
    assert path == tmp_path / "jstore.toml"
    assert load_config(tmp_path).store.max_entry_size == DEFAULT_MAX_ENTRY_SIZE
    with pytest.raises(FileExistsError):
        init_config(tmp_path)
