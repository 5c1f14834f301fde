from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any
from uuid import uuid4

from ..host import ConversationContext, metadata_available
from ..resolver import Resolved, is_resolvable, normalize_ref, parse_position
from ..roles import validate_role
from . import reconcile
from .types import FavoriteRecord, PrunePlan, ReconcileResult

logger = logging.getLogger(__name__)

FAVORITES_KEY = "favorites"

PersistCallback = Callable[[ConversationContext], None]


def _coerce_record(raw: Any) -> FavoriteRecord | None:
    if not isinstance(raw, dict):
        return None
    ref = raw.get("messageRef")
    if ref is None:
        # Earlier plugin revisions stored the reference as ``messageId``.
        ref = raw.get("messageId")
    fav_id = raw.get("id")
    if fav_id in (None, "") or ref is None:
        return None
    return {
        "id": str(fav_id),
        "messageRef": normalize_ref(ref),
        "sender": str(raw.get("sender") or ""),
        "role": str(raw.get("role") or "character"),
        "note": str(raw.get("note") or ""),
    }


def ensure_favorites(metadata: dict[str, Any] | None) -> list[FavoriteRecord] | None:
    """Guarantee ``metadata['favorites']`` is a list of well-formed records.

    Returns the live list, or None when there is no metadata to work with.
    """

    if not isinstance(metadata, dict):
        logger.warning("favorites: conversation metadata unavailable")
        return None
    current = metadata.get(FAVORITES_KEY)
    if not isinstance(current, list):
        logger.info("favorites: initializing favorites list")
        metadata[FAVORITES_KEY] = []
        return metadata[FAVORITES_KEY]

    healed: list[FavoriteRecord] = []
    dirty = False
    for raw in current:
        record = _coerce_record(raw)
        if record is None:
            logger.warning("favorites: dropping malformed record %r", raw)
            dirty = True
            continue
        if record != raw:
            dirty = True
        healed.append(record)
    if dirty:
        current[:] = healed
    return current


class FavoritesRegistry:
    """Favorite records for one conversation at a time.

    The conversation context is passed into each call; the registry keeps no
    reference to it. ``persist`` is invoked once per effective mutation,
    after the in-memory list has been updated.
    """

    def __init__(
        self,
        persist: PersistCallback | None = None,
        *,
        ref_scheme: str = "index",
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._persist = persist
        self.ref_scheme = ref_scheme
        self._id_factory = id_factory or (lambda: str(uuid4()))

    def ensure_initialized(self, ctx: ConversationContext | None) -> list[FavoriteRecord] | None:
        if ctx is None:
            logger.warning("favorites: no active conversation")
            return None
        return ensure_favorites(ctx.chat_metadata)

    def _favorites(self, ctx: ConversationContext | None, op: str) -> list[FavoriteRecord] | None:
        if not metadata_available(ctx):
            logger.warning("favorites: %s skipped, conversation context unavailable", op)
            return None
        return self.ensure_initialized(ctx)

    def _save(self, ctx: ConversationContext) -> None:
        if self._persist is None:
            return
        try:
            self._persist(ctx)
        except Exception as exc:
            logger.exception("favorites: persistence call failed", exc_info=exc)

    def _canonical(self, message_ref: str | int) -> str:
        key = normalize_ref(message_ref)
        if self.ref_scheme == "index":
            position = parse_position(key)
            if position is not None:
                return str(position)
        return key

    def reference_for(self, resolution: Resolved) -> str:
        """The reference to store for a resolved message under this registry's scheme."""

        if self.ref_scheme == "stable":
            message = resolution.message
            ref = message.stable_id or message.alt_id
            if ref:
                return ref
            logger.warning(
                "favorites: message %d has no identifier, storing its position", resolution.index
            )
        return str(resolution.index)

    def _new_id(self, favorites: list[FavoriteRecord]) -> str:
        existing = {record["id"] for record in favorites}
        fav_id = self._id_factory()
        while fav_id in existing:
            fav_id = self._id_factory()
        return fav_id

    def records(self, ctx: ConversationContext | None) -> list[FavoriteRecord]:
        """Live, insertion-ordered favorites. Read views should go through projection."""

        favorites = self._favorites(ctx, "list")
        return favorites if favorites is not None else []

    def get(self, ctx: ConversationContext | None, fav_id: str) -> FavoriteRecord | None:
        for record in self.records(ctx):
            if record["id"] == fav_id:
                return record
        return None

    def find_by_message_ref(
        self, ctx: ConversationContext | None, message_ref: str | int
    ) -> FavoriteRecord | None:
        key = self._canonical(message_ref)
        for record in self.records(ctx):
            if record["messageRef"] == key:
                return record
        return None

    def is_favorited(self, ctx: ConversationContext | None, message_ref: str | int) -> bool:
        return self.find_by_message_ref(ctx, message_ref) is not None

    def favorited_refs(self, ctx: ConversationContext | None) -> set[str]:
        return {record["messageRef"] for record in self.records(ctx)}

    def add(
        self,
        ctx: ConversationContext | None,
        message_ref: str | int,
        sender: str,
        role: str,
    ) -> FavoriteRecord | None:
        favorites = self._favorites(ctx, "add")
        if favorites is None:
            return None
        assert ctx is not None
        key = self._canonical(message_ref)
        for existing in favorites:
            if existing["messageRef"] == key:
                logger.debug("favorites: %s already favorited as %s", key, existing["id"])
                return existing
        record: FavoriteRecord = {
            "id": self._new_id(favorites),
            "messageRef": key,
            "sender": sender,
            "role": validate_role(role),
            "note": "",
        }
        favorites.append(record)
        self._save(ctx)
        logger.info("favorites: added %s for message %s", record["id"], key)
        return record

    def remove_by_id(self, ctx: ConversationContext | None, fav_id: str) -> bool:
        favorites = self._favorites(ctx, "remove")
        if not favorites:
            return False
        assert ctx is not None
        for index, record in enumerate(favorites):
            if record["id"] == fav_id:
                del favorites[index]
                self._save(ctx)
                logger.info("favorites: removed %s", fav_id)
                return True
        logger.debug("favorites: remove found no favorite %s", fav_id)
        return False

    def remove_by_message_ref(
        self, ctx: ConversationContext | None, message_ref: str | int
    ) -> bool:
        record = self.find_by_message_ref(ctx, message_ref)
        if record is None:
            logger.debug("favorites: no favorite for message %s", message_ref)
            return False
        return self.remove_by_id(ctx, record["id"])

    def update_note(self, ctx: ConversationContext | None, fav_id: str, note: str) -> bool:
        favorites = self._favorites(ctx, "update note")
        if not favorites:
            return False
        assert ctx is not None
        for record in favorites:
            if record["id"] == fav_id:
                record["note"] = note
                self._save(ctx)
                return True
        logger.debug("favorites: update note found no favorite %s", fav_id)
        return False

    def on_message_deleted(
        self,
        ctx: ConversationContext | None,
        *,
        position: int | None = None,
        message_id: str | None = None,
    ) -> ReconcileResult:
        """Bring references in line with a message the host just removed."""

        favorites = self._favorites(ctx, "reconcile deletion")
        if not favorites:
            return ReconcileResult()
        assert ctx is not None
        if self.ref_scheme == "index":
            if position is None:
                logger.warning("favorites: deletion without a position under index refs")
                return ReconcileResult()
            result = reconcile.shift_for_deletion(favorites, position)
        else:
            ref = message_id if message_id is not None else position
            if ref is None:
                logger.warning("favorites: deletion without a message id")
                return ReconcileResult()
            key = normalize_ref(ref)
            result = ReconcileResult(
                removed=[record["id"] for record in favorites if record["messageRef"] == key]
            )
            if result.removed:
                favorites[:] = [record for record in favorites if record["messageRef"] != key]
        if result.changed:
            self._save(ctx)
            logger.info(
                "favorites: deletion reconciled, removed=%d shifted=%d",
                len(result.removed),
                result.shifted,
            )
        return result

    def on_messages_inserted(
        self, ctx: ConversationContext | None, position: int, count: int = 1
    ) -> ReconcileResult:
        if self.ref_scheme != "index":
            return ReconcileResult()
        favorites = self._favorites(ctx, "reconcile insertion")
        if not favorites:
            return ReconcileResult()
        assert ctx is not None
        result = reconcile.shift_for_insertion(favorites, position, count)
        if result.changed:
            self._save(ctx)
        return result

    def plan_prune(self, ctx: ConversationContext | None) -> PrunePlan:
        """Split favorites into those that still resolve and those that do not."""

        favorites = self._favorites(ctx, "prune")
        plan = PrunePlan(valid=[], invalid=[])
        if not favorites:
            return plan
        assert ctx is not None
        for record in favorites:
            if is_resolvable(record["messageRef"], ctx.chat):
                plan.valid.append(record)
            else:
                plan.invalid.append(record)
        return plan

    def prune_invalid(
        self,
        ctx: ConversationContext | None,
        *,
        confirm: Callable[[PrunePlan], bool],
    ) -> list[FavoriteRecord]:
        """Drop unresolvable favorites once ``confirm`` approves the plan.

        Returns the removed records; nothing changes when the plan is empty
        or confirmation is declined.
        """

        plan = self.plan_prune(ctx)
        if not plan.invalid:
            return []
        if not confirm(plan):
            logger.info("favorites: prune of %d favorites declined", len(plan.invalid))
            return []
        favorites = self._favorites(ctx, "prune")
        if favorites is None:
            return []
        assert ctx is not None
        invalid_ids = plan.invalid_ids
        removed = [record for record in favorites if record["id"] in invalid_ids]
        favorites[:] = [record for record in favorites if record["id"] not in invalid_ids]
        self._save(ctx)
        logger.info("favorites: pruned %d invalid favorites", len(removed))
        return removed
