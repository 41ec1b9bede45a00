"""Debounced autosave for one chapter being edited.

``AutosaveCoordinator`` is a small state machine::

    IDLE / PENDING_SAVE / ERROR --content_changed--> PENDING_SAVE (timer re-armed)
    PENDING_SAVE --timer fires--> SAVING --ok--> IDLE
                                         --failure / superseded--> ERROR

Only the latest content snapshot is sent when the timer fires, so a burst
of edits inside the quiescence window produces a single request. Content
equal to the last synced baseline is never sent. A failed save is not
retried; the next edit re-arms the timer as usual.

Each save carries a strictly increasing ``sequence`` so the server can
ignore a request that arrives after a newer one. A save the server reports
as stale did not persist anything: the content stays pending and the
coordinator reports ``SaveSuperseded`` until the next successful save.

Usage:
    async with await AutosaveCoordinator.open_chapter(client, chapter_id) as saver:
        saver.content_changed(editor_html)
        ...
        await saver.save_now()
"""
from __future__ import annotations

import asyncio
import logging
import time
from contextlib import suppress
from enum import Enum
from typing import Awaitable, Callable

from draftroom.client.api import ApiError, DraftroomClient

logger = logging.getLogger(__name__)

DEFAULT_DELAY_SECONDS = 5.0

SaveFunc = Callable[[str, int], Awaitable[dict]]


class SaveSuperseded(Exception):
    """The server already holds a newer autosave than the one just sent."""


class SaveState(str, Enum):
    IDLE = "idle"
    PENDING_SAVE = "pending_save"
    SAVING = "saving"
    ERROR = "error"


class AutosaveCoordinator:
    def __init__(self, chapter_id: str, save: SaveFunc, delay: float = DEFAULT_DELAY_SECONDS,
                 initial_content: str | None = None,
                 clock: Callable[[], int] = time.time_ns):
        self.chapter_id = chapter_id
        self.delay = delay
        self.state = SaveState.IDLE
        self.last_synced: str | None = initial_content
        self.last_saved_at: str | None = None
        self.word_count: int | None = None
        self.last_error: Exception | None = None

        self._save_func = save
        self._clock = clock
        self._latest: str | None = initial_content
        self._timer: asyncio.Task | None = None
        self._inflight: asyncio.Task | None = None
        self._lock = asyncio.Lock()
        self._last_sequence = 0
        self._closed = False

    @classmethod
    def for_chapter(cls, client: DraftroomClient, chapter_id: str,
                    delay: float = DEFAULT_DELAY_SECONDS,
                    initial_content: str | None = None) -> "AutosaveCoordinator":
        async def save(content: str, sequence: int) -> dict:
            return await client.autosave_chapter(chapter_id, content, sequence)

        return cls(chapter_id, save, delay=delay, initial_content=initial_content)

    @classmethod
    async def open_chapter(cls, client: DraftroomClient, chapter_id: str) -> "AutosaveCoordinator":
        """Load the chapter and debounce with the delay the server advertises."""
        chapter = await client.get_chapter(chapter_id)
        delay = chapter.get("autosave_delay_seconds") or DEFAULT_DELAY_SECONDS
        return cls.for_chapter(client, chapter_id, delay=delay, initial_content=chapter.get("content"))

    async def __aenter__(self) -> "AutosaveCoordinator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ── Events ─────────────────────────────────────────────────────────

    def content_changed(self, content: str) -> None:
        """Record an edit and restart the quiescence timer."""
        if self._closed:
            raise RuntimeError("Autosave coordinator is closed")
        self._latest = content
        self._cancel_timer()
        self._timer = asyncio.get_running_loop().create_task(self._fire_after_delay())
        if self.state != SaveState.SAVING:
            self.state = SaveState.PENDING_SAVE

    async def save_now(self, content: str | None = None) -> bool:
        """Save immediately, bypassing the timer. Returns True if the content was persisted."""
        self._cancel_timer()
        if content is not None:
            self._latest = content
        return await self._save(self._latest)

    async def close(self) -> None:
        """Cancel the pending timer. An in-flight request is left to finish."""
        self._closed = True
        timer = self._timer
        self._cancel_timer()
        if timer is not None:
            with suppress(asyncio.CancelledError):
                await timer

    @property
    def has_pending_changes(self) -> bool:
        return self._latest is not None and self._latest != self.last_synced

    @property
    def status_message(self) -> str:
        if self.state == SaveState.SAVING:
            return "Saving…"
        if isinstance(self.last_error, SaveSuperseded):
            return f"Not saved: {_describe(self.last_error)}."
        if self.last_error is not None:
            return f"Autosave failed: {_describe(self.last_error)}. Changes will be saved on your next edit."
        if self.state == SaveState.PENDING_SAVE or self.has_pending_changes:
            return "Unsaved changes"
        if self.last_saved_at:
            return "All changes saved"
        return ""

    # ── Internals ──────────────────────────────────────────────────────

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _fire_after_delay(self) -> None:
        await asyncio.sleep(self.delay)
        # From here on the task is an in-flight save and no longer cancellable by edits
        self._timer = None
        self._inflight = asyncio.current_task()
        try:
            await self._save(self._latest)
        finally:
            self._inflight = None

    def _next_sequence(self) -> int:
        self._last_sequence = max(self._last_sequence + 1, self._clock() // 1_000_000)
        return self._last_sequence

    def _settle(self) -> None:
        self.state = SaveState.PENDING_SAVE if self._timer is not None else SaveState.IDLE

    async def _save(self, content: str | None) -> bool:
        async with self._lock:
            if content is None or content == self.last_synced:
                logger.debug("Autosave skipped for chapter %s: nothing new", self.chapter_id[:8])
                if self.state != SaveState.ERROR:
                    self._settle()
                return False

            self.state = SaveState.SAVING
            try:
                result = await self._save_func(content, self._next_sequence())
                if result.get("stale"):
                    raise SaveSuperseded("A newer version of this chapter was saved elsewhere")
            except SaveSuperseded as exc:
                # Nothing was written; the content stays pending against the old baseline
                self._fail(exc)
                logger.info("Autosave for chapter %s superseded by a newer save", self.chapter_id[:8])
                return False
            except Exception as exc:  # transport and API failures alike
                self._fail(exc)
                logger.warning("Autosave failed for chapter %s: %s", self.chapter_id[:8], exc)
                return False

            self.last_error = None
            self.last_synced = content
            self.last_saved_at = result.get("saved_at")
            self.word_count = result.get("word_count")
            self._settle()
            return True

    def _fail(self, exc: Exception) -> None:
        self.last_error = exc
        self.state = SaveState.PENDING_SAVE if self._timer is not None else SaveState.ERROR


def _describe(exc: Exception) -> str:
    if isinstance(exc, ApiError):
        return exc.message
    return str(exc) or exc.__class__.__name__
