from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Callable

from .host import ConversationContext

logger = logging.getLogger(__name__)

WriteCallback = Callable[[ConversationContext], None]


class MetadataSaver:
    """Debounced writer for conversation metadata.

    ``note_change`` snapshots the context on the caller's thread and (re)arms
    a timer; the write runs once the context has been quiet for
    ``debounce_ms``. Callers never wait on the write.
    """

    def __init__(self, write: WriteCallback, *, debounce_ms: int = 1000) -> None:
        self._write = write
        self.debounce_ms = debounce_ms
        self._lock = threading.Lock()
        self._timers: dict[str, threading.Timer] = {}
        self._pending: dict[str, ConversationContext] = {}
        self._writing: set[str] = set()
        self._rerun: set[str] = set()
        self._idle = threading.Condition(self._lock)

    def __call__(self, ctx: ConversationContext) -> None:
        self.note_change(ctx)

    @staticmethod
    def _key(ctx: ConversationContext) -> str:
        return ctx.chat_id or ""

    def note_change(self, ctx: ConversationContext) -> None:
        key = self._key(ctx)
        snapshot = copy.deepcopy(ctx)
        if self.debounce_ms <= 0:
            with self._lock:
                self._pending[key] = snapshot
            self.flush_now(key)
            return
        with self._lock:
            self._pending[key] = snapshot
            existing = self._timers.pop(key, None)
            if existing:
                existing.cancel()
            timer = threading.Timer(self.debounce_ms / 1000.0, self.flush_now, args=(key,))
            timer.daemon = True
            self._timers[key] = timer
            timer.start()

    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def flush_now(self, key: str) -> bool:
        """Write the pending snapshot for ``key``.

        A call that lands while the same key is being written is handed to
        the running writer, which writes again once it finishes.
        """

        written = False
        while True:
            with self._lock:
                if key in self._writing:
                    self._rerun.add(key)
                    return written
                snapshot = self._pending.pop(key, None)
                timer = self._timers.pop(key, None)
                if snapshot is None:
                    return written
                self._writing.add(key)
            if timer:
                timer.cancel()
            try:
                self._write(snapshot)
                written = True
            except Exception as exc:
                logger.exception("metadata save failed for chat %r", key, exc_info=exc)
            finally:
                with self._lock:
                    self._writing.discard(key)
                    rerun = key in self._rerun
                    self._rerun.discard(key)
                    self._idle.notify_all()
            if not rerun:
                return written

    def flush(self) -> int:
        """Write every pending snapshot now. Returns how many were written."""

        with self._lock:
            keys = list(self._pending)
        return sum(1 for key in keys if self.flush_now(key))

    def close(self) -> None:
        """Write everything still pending, waiting out in-flight writes, then stop the timers."""

        while True:
            self.flush()
            with self._lock:
                while self._writing:
                    self._idle.wait()
                if not self._pending:
                    timers = list(self._timers.values())
                    self._timers.clear()
                    break
        for timer in timers:
            timer.cancel()
