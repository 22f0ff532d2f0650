from __future__ import annotations

from collections import deque
from typing import Callable, Deque, Optional


# Cue names the client fires; tone synthesis lives behind the sink
CUES = frozenset({
    "dice_roll", "dice_result", "doubles", "move", "pass_go",
    "buy_property", "pay_rent", "collect_money", "pay_money",
    "jail", "jail_free", "build_house", "sell_house", "mortgage", "unmortgage",
    "card", "auction", "bid", "auction_win",
    "trade", "trade_accept", "trade_decline",
    "turn_start", "bankrupt", "win", "error", "click",
})


class SoundBoard:
    """Fire-and-forget audio cues.

    ``sink`` receives the cue name (e.g. a synthesizer or a browser bridge).
    A failing sink never propagates: audio must not break an animation.
    """

    def __init__(self, sink: Optional[Callable[[str], None]] = None, history_size: int = 100):
        self.sink = sink
        self.enabled = True
        self.history: Deque[str] = deque(maxlen=history_size)

    def play(self, cue: str) -> None:
        if cue not in CUES:
            raise ValueError(f"unknown sound cue: {cue}")
        if not self.enabled:
            return
        self.history.append(cue)
        if self.sink is None:
            return
        try:
            self.sink(cue)
        except Exception as e:
            print(f"[SOUND_ERROR] {cue}: {e}", flush=True)

    def played(self, cue: str) -> int:
        return sum(1 for c in self.history if c == cue)
