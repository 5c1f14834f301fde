from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from .host import HostMessage

_POSITION_RE = re.compile(r"[0-9]+")

Tier = Literal["stable", "index", "alt_id"]


@dataclass(frozen=True, slots=True)
class Resolved:
    message: HostMessage
    index: int
    tier: Tier


@dataclass(frozen=True, slots=True)
class Unresolved:
    ref: str


Resolution = Resolved | Unresolved


def normalize_ref(ref: str | int) -> str:
    return str(ref).strip()


def parse_position(ref: str | int | None) -> int | None:
    """Return ``ref`` as a list position, or None if it is not a plain non-negative int."""

    if ref is None or isinstance(ref, bool):
        return None
    if isinstance(ref, int):
        return ref if ref >= 0 else None
    text = str(ref).strip()
    if not _POSITION_RE.fullmatch(text):
        return None
    return int(text)


def resolve_message_ref(ref: str | int, host_log: Sequence[HostMessage] | None) -> Resolution:
    """Map a stored reference onto a live message.

    Lookup order is stable identifier, then list position, then the
    secondary ``id`` field. The first tier that matches wins.
    """

    key = normalize_ref(ref)
    if host_log is None or not key:
        return Unresolved(key)

    for index, message in enumerate(host_log):
        if message.stable_id is not None and message.stable_id == key:
            return Resolved(message, index, "stable")

    position = parse_position(key)
    if position is not None and position < len(host_log):
        return Resolved(host_log[position], position, "index")

    for index, message in enumerate(host_log):
        if message.alt_id is not None and message.alt_id == key:
            return Resolved(message, index, "alt_id")

    return Unresolved(key)


def is_resolvable(ref: str | int, host_log: Sequence[HostMessage] | None) -> bool:
    return isinstance(resolve_message_ref(ref, host_log), Resolved)
