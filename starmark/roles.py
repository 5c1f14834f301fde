from __future__ import annotations

from typing import Final

ALLOWED_ROLES: Final[tuple[str, ...]] = ("user", "character")


def normalize_role(role: str) -> str:
    return (role or "").strip().lower()


def validate_role(role: str) -> str:
    normalized = normalize_role(role)
    if normalized in ALLOWED_ROLES:
        return normalized

    if normalized in {"assistant", "char", "bot"}:
        raise ValueError(
            f"Invalid role '{normalized}'. Use 'character' for non-user messages. "
            f"Allowed roles: {', '.join(ALLOWED_ROLES)}"
        )

    raise ValueError(f"Invalid role '{normalized}'. Allowed roles: {', '.join(ALLOWED_ROLES)}")
