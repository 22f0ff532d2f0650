from __future__ import annotations

import asyncio
import time
from typing import Callable, Dict, List, Optional

from .config import Timings, seconds
from .models import Notification


CHANNELS = ("toast", "card", "error")


def _now_ms() -> int:
    return int(time.time() * 1000)


class NotificationScheduler:
    """Time-boxed ephemeral messages, one slot per channel.

    A new notification on a channel replaces the previous one and its timer.
    Card banners go through a ``fading`` state before removal.
    """

    def __init__(self, timings: Timings):
        self.timings = timings
        self.current: Dict[str, Notification] = {}
        self._timers: Dict[str, asyncio.Task] = {}
        self._listeners: List[Callable[[str, Optional[Notification]], None]] = []

    def subscribe(self, listener: Callable[[str, Optional[Notification]], None]) -> None:
        self._listeners.append(listener)

    def show(self, note: Notification) -> Notification:
        if note.channel not in CHANNELS:
            raise ValueError(f"unknown notification channel: {note.channel}")
        old = self._timers.pop(note.channel, None)
        if old is not None and not old.done():
            old.cancel()
        self.current[note.channel] = note
        self._emit(note.channel, note)
        self._timers[note.channel] = asyncio.get_running_loop().create_task(self._expire(note))
        return note

    def toast(self, kind: str, title: str, message: str, position: Optional[int] = None) -> Notification:
        return self.show(Notification("toast", kind, title, message, _now_ms(), self.timings.toast_ms,
                                      position=position))

    def card(self, deck: str, text: str) -> Notification:
        title = "Chance" if deck == "chance" else "Community Chest"
        return self.show(Notification("card", deck, title, text, _now_ms(), self.timings.card_ms))

    def error(self, message: str) -> Notification:
        return self.show(Notification("error", "error", "Error", message, _now_ms(), self.timings.error_ms))

    def get(self, channel: str) -> Optional[Notification]:
        return self.current.get(channel)

    def active(self) -> List[Notification]:
        return [self.current[c] for c in CHANNELS if c in self.current]

    async def wait_expired(self) -> None:
        pending = [t for t in self._timers.values() if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _expire(self, note: Notification) -> None:
        if note.channel == "card":
            fade_at = min(self.timings.card_fade_ms, note.ttl)
            await asyncio.sleep(seconds(fade_at))
            if self.current.get("card") is note:
                note.fading = True
                self._emit("card", note)
            await asyncio.sleep(seconds(note.ttl - fade_at))
        else:
            await asyncio.sleep(seconds(note.ttl))
        if self.current.get(note.channel) is note:
            del self.current[note.channel]
            self._timers.pop(note.channel, None)
            self._emit(note.channel, None)

    def _emit(self, channel: str, note: Optional[Notification]) -> None:
        for listener in list(self._listeners):
            listener(channel, note)
