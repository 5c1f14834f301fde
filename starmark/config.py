from __future__ import annotations

import json
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("~/.config/starmark/config.json").expanduser()

REF_SCHEMES = ("index", "stable")

CONFIG_ENV_OVERRIDES = {
    "page_size": "STARMARK_PAGE_SIZE",
    "preview_chars": "STARMARK_PREVIEW_CHARS",
    "save_debounce_ms": "STARMARK_SAVE_DEBOUNCE_MS",
    "ref_scheme": "STARMARK_REF_SCHEME",
}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("STARMARK_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


@dataclass
class StarmarkConfig:
    page_size: int = 5
    preview_chars: int = 100
    # Debounce window for metadata writes; <= 0 writes on every change.
    save_debounce_ms: int = 1000
    ref_scheme: str = "index"


def _parse_int(value: object, default: int, *, key: str, minimum: int | None = None) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    try:
        parsed = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    if minimum is not None and parsed < minimum:
        warnings.warn(f"{key} must be >= {minimum}, got {parsed}", RuntimeWarning, stacklevel=2)
        return default
    return parsed


def _coerce_ref_scheme(value: object, default: str) -> str:
    if value is None:
        return default
    if isinstance(value, str) and value.strip().lower() in REF_SCHEMES:
        return value.strip().lower()
    warnings.warn(
        f"Invalid ref_scheme: {value!r} (expected one of {', '.join(REF_SCHEMES)})",
        RuntimeWarning,
        stacklevel=2,
    )
    return default


def load_config(path: Path | None = None) -> StarmarkConfig:
    cfg = StarmarkConfig()
    config_path = get_config_path(path)
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
        except json.JSONDecodeError:
            warnings.warn(f"Ignoring unreadable config {config_path}", RuntimeWarning, stacklevel=2)
            data = {}
        if isinstance(data, dict):
            cfg = _apply_dict(cfg, data)
    cfg = _apply_env(cfg)
    return cfg


def _apply_dict(cfg: StarmarkConfig, data: dict[str, Any]) -> StarmarkConfig:
    for key, value in data.items():
        if not hasattr(cfg, key):
            continue
        if key in {"page_size", "preview_chars"}:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key, minimum=1))
            continue
        if key == "save_debounce_ms":
            setattr(cfg, key, _parse_int(value, cfg.save_debounce_ms, key=key))
            continue
        if key == "ref_scheme":
            cfg.ref_scheme = _coerce_ref_scheme(value, cfg.ref_scheme)
    return cfg


def _apply_env(cfg: StarmarkConfig) -> StarmarkConfig:
    cfg.page_size = _parse_int(
        os.getenv("STARMARK_PAGE_SIZE"), cfg.page_size, key="page_size", minimum=1
    )
    cfg.preview_chars = _parse_int(
        os.getenv("STARMARK_PREVIEW_CHARS"), cfg.preview_chars, key="preview_chars", minimum=1
    )
    cfg.save_debounce_ms = _parse_int(
        os.getenv("STARMARK_SAVE_DEBOUNCE_MS"), cfg.save_debounce_ms, key="save_debounce_ms"
    )
    cfg.ref_scheme = _coerce_ref_scheme(os.getenv("STARMARK_REF_SCHEME"), cfg.ref_scheme)
    return cfg
