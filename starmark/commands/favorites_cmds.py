from __future__ import annotations

import typer
from rich import print
from rich.markup import escape

from starmark.events import HostEvent
from starmark.host import delete_message, role_for_message
from starmark.preview import context_window, preview_text
from starmark.registry import PrunePlan
from starmark.resolver import Resolved, resolve_message_ref


def list_cmd(*, open_session, chat_path: str, page: int, page_size: int | None) -> None:
    """Print one page of favorites, newest message first."""

    session = open_session(chat_path, page_size=page_size)
    try:
        controller = session.controller
        projected = controller.open_view(page)
        title = session.ctx.name or session.ctx.chat_id or chat_path
        print(f"[bold]{escape(title)}[/bold] - {projected.total_count} favorites")
        if projected.total_count == 0:
            print("[dim]No favorites yet. Use `starmark toggle` on a message.[/dim]")
            return
        for view in controller.describe_page(projected):
            record = view.record
            print(
                f"[cyan]{record['id']}[/cyan] #{escape(record['messageRef'])} "
                f"{escape(record['sender'])} ({record['role']})"
            )
            if record["note"]:
                print(f"  note: {escape(record['note'])}")
            style = "red" if view.deleted else "dim"
            print(f"  [{style}]{escape(view.preview)}[/{style}]")
        print(f"page {projected.page} / {projected.total_pages}")
    finally:
        session.close()


def add_cmd(*, open_session, chat_path: str, message_ref: str) -> None:
    """Favorite a message."""

    session = open_session(chat_path)
    try:
        resolution = resolve_message_ref(message_ref, session.ctx.chat)
        if not isinstance(resolution, Resolved):
            print(f"[red]Message {escape(message_ref)} not found[/red]")
            raise typer.Exit(code=1)
        message = resolution.message
        ref = session.registry.reference_for(resolution)
        record = session.registry.add(session.ctx, ref, message.name, role_for_message(message))
        if record is None:
            print("[red]Chat metadata unavailable[/red]")
            raise typer.Exit(code=1)
        print(f"Favorite {record['id']} -> message {escape(record['messageRef'])}")
    finally:
        session.close()


def toggle_cmd(*, open_session, chat_path: str, message_ref: str) -> None:
    """Favorite a message, or unfavorite it if it already is one."""

    session = open_session(chat_path)
    try:
        state = session.controller.toggle(message_ref)
        if state is None:
            print(f"[red]Message {escape(message_ref)} not found[/red]")
            raise typer.Exit(code=1)
        if state:
            print(f"Message {escape(message_ref)} favorited")
        else:
            print(f"Message {escape(message_ref)} unfavorited")
    finally:
        session.close()


def remove_cmd(
    *, open_session, chat_path: str, fav_id: str | None, message_ref: str | None
) -> None:
    """Remove a favorite by id or by the message it points at."""

    if not fav_id and message_ref is None:
        print("[red]Pass a favorite id or --message-ref[/red]")
        raise typer.Exit(code=1)
    session = open_session(chat_path)
    try:
        if fav_id:
            removed = session.controller.remove(fav_id)
            target = fav_id
        else:
            assert message_ref is not None
            removed = session.controller.unfavorite(message_ref)
            target = f"message {message_ref}"
        if not removed:
            print(f"[yellow]No favorite for {escape(target)}[/yellow]")
            raise typer.Exit(code=1)
        print(f"Removed favorite for {escape(target)}")
    finally:
        session.close()


def note_cmd(*, open_session, chat_path: str, fav_id: str, note: str) -> None:
    """Set the note on a favorite."""

    session = open_session(chat_path)
    try:
        if not session.controller.update_note(fav_id, note):
            print(f"[red]Favorite {escape(fav_id)} not found[/red]")
            raise typer.Exit(code=1)
        print(f"Updated note for {fav_id}")
    finally:
        session.close()


def prune_cmd(*, open_session, chat_path: str, yes: bool) -> None:
    """Remove favorites whose messages no longer exist."""

    session = open_session(chat_path)
    try:

        def _confirm(plan: PrunePlan) -> bool:
            for record in plan.invalid:
                print(
                    f"  [red]{record['id']}[/red] #{escape(record['messageRef'])} "
                    f"{escape(record['sender'])}"
                )
            if yes:
                return True
            return typer.confirm(f"Remove {len(plan.invalid)} invalid favorites?")

        if not session.registry.plan_prune(session.ctx).invalid:
            print("No invalid favorites found.")
            return
        removed = session.controller.prune(_confirm)
        if removed:
            print(f"Removed {len(removed)} invalid favorites")
        else:
            print("Nothing removed")
    finally:
        session.close()


def preview_cmd(*, open_session, chat_path: str, message_ref: str) -> None:
    """Show a favorited message with its neighbours."""

    session = open_session(chat_path)
    try:
        window = context_window(message_ref, session.ctx.chat)
        if window is None:
            print(f"[red]Message {escape(message_ref)} not found in this chat[/red]")
            raise typer.Exit(code=1)
        limit = session.config.preview_chars * 5
        for message in window.messages():
            marker = "*" if message is window.target else " "
            speaker = message.name or ("User" if message.is_user else "Character")
            text = escape(preview_text(message.text, limit))
            print(f"{marker} [bold]{escape(speaker)}[/bold]: {text}")
    finally:
        session.close()


def delete_message_cmd(*, open_session, chat_path: str, position: int) -> None:
    """Delete a message from the chat log and fix up favorites."""

    session = open_session(chat_path)
    try:
        try:
            message = delete_message(session.ctx, position)
        except IndexError as exc:
            print(f"[red]{exc}[/red]")
            raise typer.Exit(code=1) from exc
        message_id = message.stable_id or message.alt_id or str(position)
        favorites_before = len(session.registry.records(session.ctx))
        session.controller.handle(
            HostEvent.MESSAGE_DELETED, {"index": position, "id": message_id}
        )
        dropped = favorites_before - len(session.registry.records(session.ctx))
        session.saver.note_change(session.ctx)
        print(f"Deleted message {position}; {dropped} favorites dropped")
    finally:
        session.close()
