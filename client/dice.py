from __future__ import annotations

import asyncio
import random
from typing import Optional, Tuple

from .config import Timings, seconds
from .models import DiceRoll


class DiceAnimationController:
    """Dice widget state: flicker random faces, then settle on the real roll.

    Animates when the observed record's identity changed, or when ``force``
    is set for a record not yet animated. A record is animated at most once.
    """

    def __init__(self, timings: Timings, rng: Optional[random.Random] = None):
        self.timings = timings
        self.rng = rng or random.Random()
        self.visual: Tuple[int, int] = (1, 1)
        self.display_total = 0
        self.display_doubles = False
        self.rolling = False
        self.animations = 0
        self._last_observed: Optional[DiceRoll] = None
        self._last_animated: Optional[DiceRoll] = None
        self._latest: Optional[Tuple[DiceRoll, bool]] = None
        self._task: Optional[asyncio.Task] = None

    def observe(self, roll: Optional[DiceRoll], force: bool = False) -> bool:
        """Returns True when a flicker animation was started for ``roll``."""
        if roll is None:
            return False
        self._latest = (roll, force)
        is_new = roll is not self._last_observed
        should_animate = is_new or (force and roll is not self._last_animated)
        if self.rolling:
            # Re-examined when the current flicker settles
            return False
        if should_animate:
            self._last_observed = roll
            self._last_animated = roll
            self.rolling = True
            self.animations += 1
            self._task = asyncio.get_running_loop().create_task(self._flicker(roll))
            return True
        if (self.display_total, self.display_doubles) != (roll.total, roll.is_doubles):
            self._settle(roll)
        self._last_observed = roll
        return False

    async def wait_settled(self) -> None:
        while self._task is not None and not self._task.done():
            await self._task

    async def _flicker(self, roll: DiceRoll) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + seconds(self.timings.dice_roll_ms)
        try:
            while loop.time() < deadline:
                self.visual = (self.rng.randint(1, 6), self.rng.randint(1, 6))
                await asyncio.sleep(seconds(self.timings.dice_flicker_ms))
        finally:
            self._settle(roll)
            self.rolling = False
        latest = self._latest
        if latest is not None and latest[0] is not roll:
            self.observe(*latest)

    def _settle(self, roll: DiceRoll) -> None:
        self.visual = (roll.die1, roll.die2)
        self.display_total = roll.total
        self.display_doubles = roll.is_doubles
