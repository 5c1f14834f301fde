"""Host-side conversation types.

The host owns the message log and the metadata document; this package only
reads the log and mutates the ``favorites`` slot of the metadata.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Keys the host message dict maps onto typed fields. Everything else is kept
# in ``raw`` and written back untouched. ``mesid`` and ``id`` also stay in
# ``raw`` so their original JSON type survives a save.
_MESSAGE_KEYS = ("name", "mes", "is_user", "is_system")


def _is_positional(value: str | None) -> bool:
    return value is not None and value.isascii() and value.isdigit()


def _wire_id(value: str, original: Any) -> Any:
    if isinstance(original, int) and not isinstance(original, bool) and _is_positional(value):
        return int(value)
    return value


@dataclass
class HostMessage:
    name: str = ""
    text: str = ""
    is_user: bool = False
    is_system: bool = False
    # Identifier assigned to the message itself (survives reordering).
    stable_id: str | None = None
    # Secondary identifier some hosts attach as ``id``.
    alt_id: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HostMessage:
        stable_id = data.get("mesid")
        alt_id = data.get("id")
        return cls(
            name=str(data.get("name") or ""),
            text=str(data.get("mes") or ""),
            is_user=bool(data.get("is_user")),
            is_system=bool(data.get("is_system")),
            stable_id=str(stable_id) if stable_id not in (None, "") else None,
            alt_id=str(alt_id) if alt_id not in (None, "") else None,
            raw={k: v for k, v in data.items() if k not in _MESSAGE_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.raw)
        data["name"] = self.name
        data["is_user"] = self.is_user
        data["is_system"] = self.is_system
        data["mes"] = self.text
        if self.stable_id is not None:
            data["mesid"] = _wire_id(self.stable_id, self.raw.get("mesid"))
        if self.alt_id is not None:
            data["id"] = _wire_id(self.alt_id, self.raw.get("id"))
        return data


@dataclass
class ConversationContext:
    chat: list[HostMessage] = field(default_factory=list)
    # None means the host could not provide metadata for this conversation.
    chat_metadata: dict[str, Any] | None = field(default_factory=dict)
    chat_id: str | None = None
    name: str | None = None
    header: dict[str, Any] = field(default_factory=dict)


def role_for_message(message: HostMessage) -> str:
    return "user" if message.is_user else "character"


def metadata_available(ctx: ConversationContext | None) -> bool:
    return ctx is not None and isinstance(ctx.chat_metadata, dict)


def _renumber_from(ctx: ConversationContext, start: int) -> None:
    # Hosts that number ``mesid`` by position keep it equal to the list index.
    for index in range(max(start, 0), len(ctx.chat)):
        message = ctx.chat[index]
        if _is_positional(message.stable_id):
            message.stable_id = str(index)


def delete_message(ctx: ConversationContext, position: int) -> HostMessage:
    """Remove and return the message at ``position`` from the host log."""

    if position < 0 or position >= len(ctx.chat):
        raise IndexError(f"no message at position {position} (log has {len(ctx.chat)})")
    removed = ctx.chat.pop(position)
    _renumber_from(ctx, position)
    return removed


def insert_message(ctx: ConversationContext, position: int, message: HostMessage) -> int:
    """Insert ``message`` before ``position`` (clamped to the log) and return its position."""

    position = max(0, min(position, len(ctx.chat)))
    ctx.chat.insert(position, message)
    _renumber_from(ctx, position)
    return position
