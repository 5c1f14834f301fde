import json
from pathlib import Path

import pytest

from starmark.config import get_config_path, load_config


def test_unreadable_config_file_falls_back_to_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("{not-json}")
    with pytest.warns(RuntimeWarning, match="unreadable config"):
        cfg = load_config(config_path)
    assert cfg.page_size == 5


def test_non_object_config_is_ignored(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("[1, 2]")
    assert load_config(config_path).ref_scheme == "index"


def test_get_config_path_uses_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    target = tmp_path / "custom.json"
    monkeypatch.setenv("STARMARK_CONFIG", str(target))
    assert get_config_path() == target


def test_load_config_defaults(tmp_path: Path) -> None:
    cfg = load_config(tmp_path / "missing.json")
    assert cfg.page_size == 5
    assert cfg.preview_chars == 100
    assert cfg.save_debounce_ms == 1000
    assert cfg.ref_scheme == "index"


def test_load_config_reads_file(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps({"page_size": 10, "save_debounce_ms": 0, "ref_scheme": "Stable", "extra": 1})
    )
    cfg = load_config(config_path)
    assert cfg.page_size == 10
    assert cfg.save_debounce_ms == 0
    assert cfg.ref_scheme == "stable"
    assert not hasattr(cfg, "extra")


def test_env_overrides_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"page_size": 10}))
    monkeypatch.setenv("STARMARK_PAGE_SIZE", "3")
    monkeypatch.setenv("STARMARK_REF_SCHEME", "stable")

    cfg = load_config(config_path)

    assert cfg.page_size == 3
    assert cfg.ref_scheme == "stable"


def test_invalid_values_fall_back_with_warning(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"page_size": 0, "ref_scheme": "uuid"}))
    monkeypatch.setenv("STARMARK_PREVIEW_CHARS", "lots")

    with pytest.warns(RuntimeWarning):
        cfg = load_config(config_path)

    assert cfg.page_size == 5
    assert cfg.ref_scheme == "index"
    assert cfg.preview_chars == 100
