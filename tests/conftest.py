from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from starmark.config import CONFIG_ENV_OVERRIDES
from starmark.host import ConversationContext, HostMessage


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("STARMARK_CONFIG", str(tmp_path / "starmark-config.json"))
    for env_var in CONFIG_ENV_OVERRIDES.values():
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def make_ctx() -> Callable[..., ConversationContext]:
    def _make(
        count: int = 5,
        *,
        metadata: dict[str, Any] | None = None,
        chat_id: str = "chat-1",
    ) -> ConversationContext:
        chat = [
            HostMessage(
                name="Alice" if i % 2 == 0 else "Seraphina",
                text=f"message number {i}",
                is_user=i % 2 == 0,
            )
            for i in range(count)
        ]
        return ConversationContext(
            chat=chat,
            chat_metadata={} if metadata is None else metadata,
            chat_id=chat_id,
            name="Seraphina",
        )

    return _make
