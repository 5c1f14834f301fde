from __future__ import annotations

from dataclasses import dataclass

import typer
from rich import print

from starmark.chat_file import ChatFile, ChatFileError
from starmark.config import StarmarkConfig, load_config
from starmark.controller import FavoritesController
from starmark.host import ConversationContext
from starmark.persistence import MetadataSaver
from starmark.registry import FavoritesRegistry


@dataclass
class ChatSession:
    chat_file: ChatFile
    ctx: ConversationContext
    saver: MetadataSaver
    registry: FavoritesRegistry
    controller: FavoritesController
    config: StarmarkConfig

    def close(self) -> None:
        self.saver.close()


def open_session(chat_path: str, *, page_size: int | None = None) -> ChatSession:
    config = load_config()
    chat_file = ChatFile(chat_path)
    try:
        ctx = chat_file.load()
    except ChatFileError as exc:
        print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    saver = MetadataSaver(chat_file.save, debounce_ms=config.save_debounce_ms)
    registry = FavoritesRegistry(saver, ref_scheme=config.ref_scheme)
    controller = FavoritesController(
        registry,
        page_size=page_size or config.page_size,
        preview_chars=config.preview_chars,
    )
    controller.switch_conversation(ctx)
    return ChatSession(
        chat_file=chat_file,
        ctx=ctx,
        saver=saver,
        registry=registry,
        controller=controller,
        config=config,
    )
