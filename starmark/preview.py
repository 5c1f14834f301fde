from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .host import HostMessage
from .registry.types import FavoriteRecord
from .resolver import Resolved, resolve_message_ref

DELETED_PLACEHOLDER = "[message unavailable or deleted]"


@dataclass(frozen=True)
class FavoriteView:
    record: FavoriteRecord
    preview: str
    deleted: bool
    position: int | None = None


@dataclass(frozen=True)
class ContextWindow:
    target: HostMessage
    position: int
    previous: HostMessage | None = None
    following: HostMessage | None = None

    def messages(self) -> list[HostMessage]:
        return [m for m in (self.previous, self.target, self.following) if m is not None]


def preview_text(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def describe_favorite(
    record: FavoriteRecord, host_log: Sequence[HostMessage] | None, limit: int
) -> FavoriteView:
    resolution = resolve_message_ref(record["messageRef"], host_log)
    if isinstance(resolution, Resolved) and resolution.message.text:
        return FavoriteView(
            record=record,
            preview=preview_text(resolution.message.text, limit),
            deleted=False,
            position=resolution.index,
        )
    return FavoriteView(record=record, preview=DELETED_PLACEHOLDER, deleted=True)


def context_window(ref: str | int, host_log: Sequence[HostMessage] | None) -> ContextWindow | None:
    """The favorited message with its immediate neighbours, or None if it no longer resolves."""

    resolution = resolve_message_ref(ref, host_log)
    if not isinstance(resolution, Resolved):
        return None
    assert host_log is not None
    index = resolution.index
    return ContextWindow(
        target=resolution.message,
        position=index,
        previous=host_log[index - 1] if index > 0 else None,
        following=host_log[index + 1] if index + 1 < len(host_log) else None,
    )
