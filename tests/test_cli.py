import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from starmark import __version__
from starmark.chat_file import ChatFile
from starmark.cli import app
from starmark.resolver import resolve_message_ref

runner = CliRunner()


def _write_chat(
    path: Path, count: int = 5, metadata: dict | None = None, ids: list | None = None
) -> Path:
    lines = [{"user_name": "Alice", "character_name": "Seraphina", "chat_metadata": metadata or {}}]
    for i in range(count):
        message = {
            "name": "Alice" if i % 2 == 0 else "Seraphina",
            "is_user": i % 2 == 0,
            "is_system": False,
            "mes": f"line {i}",
        }
        if ids is not None:
            message["mesid"] = ids[i]
        lines.append(message)
    path.write_text("\n".join(json.dumps(line) for line in lines) + "\n")
    return path


def _favorites(path: Path) -> list[dict]:
    header = json.loads(path.read_text().splitlines()[0])
    return header["chat_metadata"].get("favorites", [])


def test_root_help_lists_commands() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for name in ("list", "add", "toggle", "remove", "note", "prune", "preview", "delete-message"):
        assert name in result.stdout


def test_version() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_add_and_list(tmp_path: Path) -> None:
    chat = _write_chat(tmp_path / "chat.jsonl")

    result = runner.invoke(app, ["add", str(chat), "3"])
    assert result.exit_code == 0, result.stdout

    favorites = _favorites(chat)
    assert len(favorites) == 1
    assert favorites[0]["messageRef"] == "3"
    assert favorites[0]["sender"] == "Seraphina"
    assert favorites[0]["role"] == "character"

    listing = runner.invoke(app, ["list", str(chat)])
    assert listing.exit_code == 0
    assert "1 favorites" in listing.stdout
    assert "line 3" in listing.stdout
    assert "page 1 / 1" in listing.stdout


def test_list_empty_chat(tmp_path: Path) -> None:
    chat = _write_chat(tmp_path / "chat.jsonl")
    result = runner.invoke(app, ["list", str(chat)])
    assert result.exit_code == 0
    assert "No favorites yet" in result.stdout


def test_add_unknown_message_fails(tmp_path: Path) -> None:
    chat = _write_chat(tmp_path / "chat.jsonl", count=2)
    result = runner.invoke(app, ["add", str(chat), "9"])
    assert result.exit_code == 1
    assert _favorites(chat) == []


def test_missing_chat_file_fails(tmp_path: Path) -> None:
    result = runner.invoke(app, ["list", str(tmp_path / "nope.jsonl")])
    assert result.exit_code == 1


def test_toggle_twice(tmp_path: Path) -> None:
    chat = _write_chat(tmp_path / "chat.jsonl")

    first = runner.invoke(app, ["toggle", str(chat), "0"])
    assert first.exit_code == 0
    assert "favorited" in first.stdout
    assert len(_favorites(chat)) == 1

    second = runner.invoke(app, ["toggle", str(chat), "0"])
    assert second.exit_code == 0
    assert "unfavorited" in second.stdout
    assert _favorites(chat) == []


def test_note_and_remove(tmp_path: Path) -> None:
    chat = _write_chat(tmp_path / "chat.jsonl")
    runner.invoke(app, ["add", str(chat), "1"])
    fav_id = _favorites(chat)[0]["id"]

    noted = runner.invoke(app, ["note", str(chat), fav_id, "best reply"])
    assert noted.exit_code == 0
    assert _favorites(chat)[0]["note"] == "best reply"

    missing = runner.invoke(app, ["note", str(chat), "nope", "x"])
    assert missing.exit_code == 1

    removed = runner.invoke(app, ["remove", str(chat), fav_id])
    assert removed.exit_code == 0
    assert _favorites(chat) == []

    again = runner.invoke(app, ["remove", str(chat), fav_id])
    assert again.exit_code == 1


def test_remove_by_message_ref(tmp_path: Path) -> None:
    chat = _write_chat(tmp_path / "chat.jsonl")
    runner.invoke(app, ["add", str(chat), "2"])

    result = runner.invoke(app, ["remove", str(chat), "--message-ref", "2"])

    assert result.exit_code == 0
    assert _favorites(chat) == []


def test_remove_requires_target(tmp_path: Path) -> None:
    chat = _write_chat(tmp_path / "chat.jsonl")
    result = runner.invoke(app, ["remove", str(chat)])
    assert result.exit_code == 1


def test_prune_with_confirmation(tmp_path: Path) -> None:
    stale = [
        {"id": "keep", "messageRef": "1", "sender": "Seraphina", "role": "character", "note": ""},
        {"id": "gone", "messageId": "7", "sender": "Seraphina", "role": "character", "note": ""},
    ]
    chat = _write_chat(tmp_path / "chat.jsonl", metadata={"favorites": stale})

    declined = runner.invoke(app, ["prune", str(chat)], input="n\n")
    assert declined.exit_code == 0
    assert "Nothing removed" in declined.stdout
    assert len(_favorites(chat)) == 2

    accepted = runner.invoke(app, ["prune", str(chat), "--yes"])
    assert accepted.exit_code == 0
    assert "Removed 1 invalid favorites" in accepted.stdout
    assert [f["id"] for f in _favorites(chat)] == ["keep"]

    clean = runner.invoke(app, ["prune", str(chat)])
    assert "No invalid favorites found" in clean.stdout


def test_preview_shows_neighbours(tmp_path: Path) -> None:
    chat = _write_chat(tmp_path / "chat.jsonl")
    result = runner.invoke(app, ["preview", str(chat), "2"])
    assert result.exit_code == 0
    assert "line 1" in result.stdout
    assert "line 2" in result.stdout
    assert "line 3" in result.stdout
    assert "line 4" not in result.stdout

    missing = runner.invoke(app, ["preview", str(chat), "12"])
    assert missing.exit_code == 1


def test_delete_message_reconciles_favorites(tmp_path: Path) -> None:
    chat = _write_chat(tmp_path / "chat.jsonl", count=6)
    for ref in ("1", "3", "5"):
        runner.invoke(app, ["add", str(chat), ref])

    result = runner.invoke(app, ["delete-message", str(chat), "3"])

    assert result.exit_code == 0, result.stdout
    assert "1 favorites dropped" in result.stdout
    lines = chat.read_text().splitlines()
    assert len(lines) == 1 + 5
    assert sorted(f["messageRef"] for f in _favorites(chat)) == ["1", "4"]
    assert json.loads(lines[4])["mes"] == "line 4"


def test_delete_message_out_of_range(tmp_path: Path) -> None:
    chat = _write_chat(tmp_path / "chat.jsonl", count=2)
    result = runner.invoke(app, ["delete-message", str(chat), "5"])
    assert result.exit_code == 1


def test_delete_message_keeps_positional_mesids_in_step(tmp_path: Path) -> None:
    chat = _write_chat(tmp_path / "chat.jsonl", ids=list(range(5)))
    runner.invoke(app, ["toggle", str(chat), "3"])

    result = runner.invoke(app, ["delete-message", str(chat), "1"])
    assert result.exit_code == 0, result.stdout

    ctx = ChatFile(chat).load()
    [favorite] = _favorites(chat)
    assert favorite["messageRef"] == "2"
    assert resolve_message_ref(favorite["messageRef"], ctx.chat).message.text == "line 3"
    mesids = [json.loads(line)["mesid"] for line in chat.read_text().splitlines()[1:]]
    assert mesids == [0, 1, 2, 3]


def test_add_under_stable_scheme_stores_identifier(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("STARMARK_REF_SCHEME", "stable")
    chat = _write_chat(tmp_path / "chat.jsonl", ids=[f"m{i}" for i in range(5)])

    assert runner.invoke(app, ["add", str(chat), "3"]).exit_code == 0
    assert runner.invoke(app, ["delete-message", str(chat), "1"]).exit_code == 0

    [favorite] = _favorites(chat)
    assert favorite["messageRef"] == "m3"
    removed = runner.invoke(app, ["remove", str(chat), "--message-ref", "m3"])
    assert removed.exit_code == 0
    assert _favorites(chat) == []
