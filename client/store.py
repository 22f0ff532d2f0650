from __future__ import annotations

from dataclasses import replace
from typing import Callable, List, Optional

from .models import Snapshot


Listener = Callable[[Snapshot, bool], None]


class GameStateStore:
    """Holds the latest reconciled snapshot.

    Two rules only:
    - a guarded merge whose ``currentPlayerIndex`` differs from the displayed
      one is stale (the turn already advanced locally) and is dropped;
    - a value-equal dice roll keeps the previously stored record, so the dice
      widget only sees a new record when the roll really changed.

    ``roll_version`` counts identity changes of the stored dice record.
    Listeners receive ``(snapshot, roll_changed)`` after every applied update.
    """

    def __init__(self) -> None:
        self.snapshot: Optional[Snapshot] = None
        self.roll_version = 0
        self.dropped = 0
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return _unsubscribe

    def merge(self, incoming: Snapshot, guard_turn: bool = False) -> Snapshot:
        prev = self.snapshot
        if prev is None:
            return self._store(incoming)
        if guard_turn and prev.current_player_index != incoming.current_player_index:
            self.dropped += 1
            print(
                f"[STORE] Dropped stale snapshot (turn {incoming.current_player_index}, displayed {prev.current_player_index})",
                flush=True,
            )
            return prev
        if (
            prev.last_dice_roll is not None
            and incoming.last_dice_roll is not None
            and prev.last_dice_roll == incoming.last_dice_roll
            and prev.last_dice_roll is not incoming.last_dice_roll
        ):
            incoming = replace(incoming, last_dice_roll=prev.last_dice_roll)
        return self._store(incoming)

    def replace(self, incoming: Snapshot) -> Snapshot:
        """Session bootstrap: store as-is, no anti-flicker rules."""
        return self._store(incoming)

    def clear(self) -> None:
        self.snapshot = None

    def _store(self, snap: Snapshot) -> Snapshot:
        prev_roll = self.snapshot.last_dice_roll if self.snapshot is not None else None
        roll_changed = snap.last_dice_roll is not None and snap.last_dice_roll is not prev_roll
        if roll_changed:
            self.roll_version += 1
        self.snapshot = snap
        for listener in list(self._listeners):
            listener(snap, roll_changed)
        return snap
