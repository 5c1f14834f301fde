from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from .host import ConversationContext, HostMessage

logger = logging.getLogger(__name__)


class ChatFileError(Exception):
    pass


class ChatFile:
    """JSONL chat log: a header line carrying ``chat_metadata``, then one message per line."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()

    @property
    def chat_id(self) -> str:
        return self.path.stem

    def load(self) -> ConversationContext:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ChatFileError(f"cannot read chat file {self.path}: {exc}") from exc

        lines = [line for line in raw.splitlines() if line.strip()]
        header: dict[str, Any] = {}
        messages: list[HostMessage] = []
        for lineno, line in enumerate(lines, start=1):
            try:
                data = json.loads(line)
            except json.JSONDecodeError as exc:
                if lineno == 1:
                    logger.warning("chat header unreadable in %s, using empty metadata", self.path)
                    continue
                raise ChatFileError(f"{self.path}:{lineno}: invalid json") from exc
            if not isinstance(data, dict):
                raise ChatFileError(f"{self.path}:{lineno}: expected an object")
            if lineno == 1 and "mes" not in data:
                header = data
                continue
            messages.append(HostMessage.from_dict(data))

        metadata = header.get("chat_metadata")
        if not isinstance(metadata, dict):
            metadata = {}
            header["chat_metadata"] = metadata
        return ConversationContext(
            chat=messages,
            chat_metadata=metadata,
            chat_id=self.chat_id,
            name=header.get("character_name") or None,
            header=header,
        )

    def save(self, ctx: ConversationContext) -> None:
        header = dict(ctx.header)
        header["chat_metadata"] = ctx.chat_metadata if ctx.chat_metadata is not None else {}
        lines = [json.dumps(header, ensure_ascii=False)]
        lines.extend(json.dumps(message.to_dict(), ensure_ascii=False) for message in ctx.chat)
        payload = "\n".join(lines) + "\n"

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("saved chat %s (%d messages)", self.path, len(ctx.chat))
