from __future__ import annotations

import typer
from rich import print

from . import __version__
from .commands.common import ChatSession, open_session
from .commands.favorites_cmds import (
    add_cmd,
    delete_message_cmd,
    list_cmd,
    note_cmd,
    preview_cmd,
    prune_cmd,
    remove_cmd,
    toggle_cmd,
)

app = typer.Typer(help="starmark: favorite and annotate messages in chat logs")


def _open_session(chat_path: str, *, page_size: int | None = None) -> ChatSession:
    return open_session(chat_path, page_size=page_size)


@app.command("list")
def list_favorites(
    chat: str = typer.Argument(..., help="Path to the chat JSONL file"),
    page: int = typer.Option(1, help="Page to show (clamped to the last page)"),
    page_size: int = typer.Option(None, min=1, help="Favorites per page"),
) -> None:
    """List favorites, newest message first."""

    list_cmd(open_session=_open_session, chat_path=chat, page=page, page_size=page_size)


@app.command()
def add(
    chat: str = typer.Argument(..., help="Path to the chat JSONL file"),
    message_ref: str = typer.Argument(..., help="Message position or identifier"),
) -> None:
    """Favorite a message."""

    add_cmd(open_session=_open_session, chat_path=chat, message_ref=message_ref)


@app.command()
def toggle(
    chat: str = typer.Argument(..., help="Path to the chat JSONL file"),
    message_ref: str = typer.Argument(..., help="Message position or identifier"),
) -> None:
    """Favorite a message, or unfavorite it if already favorited."""

    toggle_cmd(open_session=_open_session, chat_path=chat, message_ref=message_ref)


@app.command()
def remove(
    chat: str = typer.Argument(..., help="Path to the chat JSONL file"),
    fav_id: str = typer.Argument(None, help="Favorite id"),
    message_ref: str = typer.Option(None, "--message-ref", help="Remove by message instead"),
) -> None:
    """Remove a favorite."""

    remove_cmd(
        open_session=_open_session, chat_path=chat, fav_id=fav_id, message_ref=message_ref
    )


@app.command()
def note(
    chat: str = typer.Argument(..., help="Path to the chat JSONL file"),
    fav_id: str = typer.Argument(..., help="Favorite id"),
    text: str = typer.Argument(..., help="Note text (empty string clears it)"),
) -> None:
    """Attach a note to a favorite."""

    note_cmd(open_session=_open_session, chat_path=chat, fav_id=fav_id, note=text)


@app.command()
def prune(
    chat: str = typer.Argument(..., help="Path to the chat JSONL file"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Remove favorites that point at messages no longer in the chat."""

    prune_cmd(open_session=_open_session, chat_path=chat, yes=yes)


@app.command()
def preview(
    chat: str = typer.Argument(..., help="Path to the chat JSONL file"),
    message_ref: str = typer.Argument(..., help="Message position or identifier"),
) -> None:
    """Show a message with the messages around it."""

    preview_cmd(open_session=_open_session, chat_path=chat, message_ref=message_ref)


@app.command("delete-message")
def delete_message(
    chat: str = typer.Argument(..., help="Path to the chat JSONL file"),
    position: int = typer.Argument(..., min=0, help="Position of the message to delete"),
) -> None:
    """Delete a message from the chat and reconcile favorites."""

    delete_message_cmd(open_session=_open_session, chat_path=chat, position=position)


@app.command()
def version() -> None:
    """Print version."""

    print(__version__)
