from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .resolver import parse_position


class HostEvent(str, Enum):
    CHAT_CHANGED = "chat_id_changed"
    MESSAGE_DELETED = "message_deleted"
    MESSAGE_RECEIVED = "message_received"
    MESSAGE_SENT = "message_sent"
    MESSAGE_UPDATED = "message_updated"
    MORE_MESSAGES_LOADED = "more_messages_loaded"


@dataclass(frozen=True, slots=True)
class DeletionTarget:
    position: int | None = None
    message_id: str | None = None


def parse_deletion(payload: Any) -> DeletionTarget | None:
    """Read a deletion payload: a position, or a mapping with ``index`` and/or ``id``."""

    if isinstance(payload, Mapping):
        position = parse_position(payload.get("index"))
        raw_id = payload.get("id")
        message_id = str(raw_id) if raw_id not in (None, "") else None
        if position is None and message_id is not None:
            position = parse_position(message_id)
        if position is None and message_id is None:
            return None
        return DeletionTarget(position=position, message_id=message_id)
    position = parse_position(payload)
    if position is None:
        return None
    return DeletionTarget(position=position, message_id=str(position))


def parse_insertion(payload: Any) -> tuple[int, int] | None:
    """Return ``(position, count)`` for a mid-log insertion, None for a plain append."""

    if not isinstance(payload, Mapping) or not payload.get("inserted"):
        return None
    position = parse_position(payload.get("index"))
    if position is None:
        return None
    count = parse_position(payload.get("count", 1))
    if not count:
        return None
    return position, count


def parse_prepended(payload: Any) -> int:
    if isinstance(payload, Mapping):
        payload = payload.get("prepended")
    return parse_position(payload) or 0
