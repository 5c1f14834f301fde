"""Positional reference maintenance.

When favorites point at list positions, every deletion or insertion in the
host log renumbers the messages after it. These helpers rewrite stored
``messageRef`` values so they keep naming the same message.
"""

from __future__ import annotations

from collections.abc import MutableSequence

from ..resolver import parse_position
from .types import FavoriteRecord, ReconcileResult


def shift_for_deletion(
    records: MutableSequence[FavoriteRecord], position: int
) -> ReconcileResult:
    """Apply the removal of the message at ``position`` to ``records`` in place.

    Records pointing at ``position`` are dropped; records after it move up by one.
    Non-positional references are left alone.
    """

    if position < 0:
        raise ValueError(f"position must be >= 0, got {position}")
    result = ReconcileResult()
    survivors: list[FavoriteRecord] = []
    for record in records:
        current = parse_position(record["messageRef"])
        if current is None or current < position:
            survivors.append(record)
            continue
        if current == position:
            result.removed.append(record["id"])
            continue
        record["messageRef"] = str(current - 1)
        result.shifted += 1
        survivors.append(record)
    if result.removed:
        records[:] = survivors
    return result


def shift_for_insertion(
    records: MutableSequence[FavoriteRecord], position: int, count: int = 1
) -> ReconcileResult:
    """Apply ``count`` messages inserted at ``position`` to ``records`` in place."""

    if position < 0:
        raise ValueError(f"position must be >= 0, got {position}")
    result = ReconcileResult()
    if count <= 0:
        return result
    for record in records:
        current = parse_position(record["messageRef"])
        if current is None or current < position:
            continue
        record["messageRef"] = str(current + count)
        result.shifted += 1
    return result
