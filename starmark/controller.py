from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .events import HostEvent, parse_deletion, parse_insertion, parse_prepended
from .host import ConversationContext, role_for_message
from .preview import FavoriteView, describe_favorite
from .registry import FavoriteRecord, FavoritesRegistry, ProjectedPage, PrunePlan, project
from .resolver import Resolved, normalize_ref, resolve_message_ref

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[ProjectedPage], None]


@dataclass
class ViewState:
    is_open: bool = False
    page: int = 1


class FavoritesController:
    """Routes user actions and host notifications to the registry for the active chat."""

    def __init__(
        self,
        registry: FavoritesRegistry,
        *,
        page_size: int = 5,
        preview_chars: int = 100,
        on_refresh: RefreshCallback | None = None,
    ) -> None:
        self.registry = registry
        self.page_size = page_size
        self.preview_chars = preview_chars
        self.on_refresh = on_refresh
        self.view = ViewState()
        self.ctx: ConversationContext | None = None

    def switch_conversation(self, ctx: ConversationContext | None) -> None:
        self.ctx = ctx
        self.view.page = 1
        self.registry.ensure_initialized(ctx)
        self._refresh()

    def toggle(self, message_ref: str | int) -> bool | None:
        """Favorite or unfavorite a message.

        Returns True when the message is now favorited, False when it was
        unfavorited, None when the message could not be found.
        """

        resolution, ref = self._stored_ref(message_ref)
        if self.registry.remove_by_message_ref(self.ctx, ref):
            self._refresh()
            return False
        if resolution is None:
            logger.warning("favorites: toggle on unknown message %s", message_ref)
            return None
        message = resolution.message
        record = self.registry.add(self.ctx, ref, message.name, role_for_message(message))
        if record is None:
            return None
        self._refresh()
        return True

    def unfavorite(self, message_ref: str | int) -> bool:
        _, ref = self._stored_ref(message_ref)
        removed = self.registry.remove_by_message_ref(self.ctx, ref)
        if removed:
            self._refresh()
        return removed

    def _stored_ref(self, message_ref: str | int) -> tuple[Resolved | None, str]:
        # A message that no longer resolves can still be matched by its stored reference.
        resolution = resolve_message_ref(message_ref, self.ctx.chat if self.ctx else None)
        if isinstance(resolution, Resolved):
            return resolution, self.registry.reference_for(resolution)
        return None, normalize_ref(message_ref)

    def remove(self, fav_id: str) -> bool:
        removed = self.registry.remove_by_id(self.ctx, fav_id)
        if removed:
            self._refresh()
        return removed

    def update_note(self, fav_id: str, note: str) -> bool:
        updated = self.registry.update_note(self.ctx, fav_id, note)
        if updated:
            self._refresh()
        return updated

    def prune(self, confirm: Callable[[PrunePlan], bool]) -> list[FavoriteRecord]:
        removed = self.registry.prune_invalid(self.ctx, confirm=confirm)
        if removed:
            self._refresh()
        return removed

    def handle(self, event: HostEvent | str, payload: Any = None) -> None:
        try:
            event = HostEvent(event)
        except ValueError:
            logger.debug("favorites: ignoring host event %r", event)
            return

        if event is HostEvent.CHAT_CHANGED:
            if isinstance(payload, ConversationContext) or payload is None:
                self.switch_conversation(payload)
            else:
                logger.warning("favorites: chat change without a conversation context")
            return

        if event is HostEvent.MESSAGE_DELETED:
            target = parse_deletion(payload)
            if target is None:
                logger.warning("favorites: unusable deletion payload %r", payload)
                return
            result = self.registry.on_message_deleted(
                self.ctx, position=target.position, message_id=target.message_id
            )
            if result.changed:
                self._refresh()
            return

        if event in (HostEvent.MESSAGE_RECEIVED, HostEvent.MESSAGE_SENT):
            insertion = parse_insertion(payload)
            if insertion is not None:
                position, count = insertion
                if self.registry.on_messages_inserted(self.ctx, position, count).changed:
                    self._refresh()
            return

        if event is HostEvent.MORE_MESSAGES_LOADED:
            prepended = parse_prepended(payload)
            if prepended:
                self.registry.on_messages_inserted(self.ctx, 0, prepended)
            self._refresh()
            return

        if event is HostEvent.MESSAGE_UPDATED:
            self._refresh()

    def open_view(self, page: int = 1) -> ProjectedPage:
        self.view.is_open = True
        self.view.page = page
        return self.current_page()

    def close_view(self) -> None:
        self.view.is_open = False

    def current_page(self) -> ProjectedPage:
        projected = project(self.registry.records(self.ctx), self.view.page, self.page_size)
        self.view.page = projected.page
        return projected

    def go_to_page(self, page: int) -> ProjectedPage:
        self.view.page = page
        projected = self.current_page()
        self._notify(projected)
        return projected

    def next_page(self) -> ProjectedPage:
        return self.go_to_page(self.view.page + 1)

    def previous_page(self) -> ProjectedPage:
        return self.go_to_page(self.view.page - 1)

    def describe_page(self, projected: ProjectedPage | None = None) -> list[FavoriteView]:
        projected = projected or self.current_page()
        host_log = self.ctx.chat if self.ctx else None
        return [describe_favorite(r, host_log, self.preview_chars) for r in projected.items]

    def _refresh(self) -> None:
        if not self.view.is_open:
            return
        self._notify(self.current_page())

    def _notify(self, projected: ProjectedPage) -> None:
        if self.on_refresh is None or not self.view.is_open:
            return
        try:
            self.on_refresh(projected)
        except Exception as exc:
            logger.exception("favorites: view refresh failed", exc_info=exc)
