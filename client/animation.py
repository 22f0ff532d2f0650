from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .config import BOARD_SIZE, JAIL_POSITION, ORIGIN_POSITION, Timings, seconds
from .models import AnimationTask, MoveOptions, Snapshot
from .notifications import NotificationScheduler
from .sounds import SoundBoard


Render = Callable[[str, Optional[int]], None]


@dataclass(frozen=True)
class MovePlan:
    player_id: str
    start_position: int
    steps: int
    direction: int


# ---------------------------
# Step animation
# ---------------------------

class StepAnimator:
    """Walks one piece a space per tick and reports each frame through ``render``."""

    def __init__(self, sounds: SoundBoard, notifications: NotificationScheduler, timings: Timings):
        self.sounds = sounds
        self.notifications = notifications
        self.timings = timings

    async def run(self, task: AnimationTask, render: Render) -> int:
        """Animate ``task``; returns how many times the piece passed the origin."""
        passes = 0
        render(task.player_id, task.start_position)
        for tick in range(1, task.step_count + 1):
            await asyncio.sleep(seconds(self.timings.step_ms))
            pos = (task.start_position + tick * task.direction + BOARD_SIZE) % BOARD_SIZE
            render(task.player_id, pos)
            if task.direction > 0 and pos == ORIGIN_POSITION:
                passes += 1
                self.sounds.play("collect_money")
                self.notifications.toast("money", "Passed GO!", "Collected £200")
            if task.options.play_step_sound:
                self.sounds.play("move")
        await asyncio.sleep(seconds(self.timings.step_settle_ms))
        # Back to authoritative rendering
        render(task.player_id, None)
        if task.options.play_landing_sound:
            self.sounds.play("dice_result")
        return passes


# ---------------------------
# Sequencing
# ---------------------------

class AnimationSequencer:
    """Owns the single in-flight AnimationTask and the visual position override.

    Callers serialize ``animate``; the reconciler is the only caller and runs
    every animation on one lane.
    """

    def __init__(self, animator: StepAnimator):
        self.animator = animator
        self.active: Optional[AnimationTask] = None
        self.started = 0
        self._listeners: List[Callable[[Optional[AnimationTask]], None]] = []

    def subscribe(self, listener: Callable[[Optional[AnimationTask]], None]) -> None:
        self._listeners.append(listener)

    @property
    def override(self) -> Optional[Dict[str, Any]]:
        """The animating player's local position, if a task is rendering one."""
        task = self.active
        if task is None or task.position is None:
            return None
        return {"id": task.player_id, "position": task.position}

    def rendered_position(self, player_id: str, authoritative: int) -> int:
        ov = self.override
        if ov and ov["id"] == player_id:
            return ov["position"]
        return authoritative

    async def animate(
        self,
        player_id: str,
        start_position: int,
        steps: int,
        direction: int,
        options: Optional[MoveOptions] = None,
    ) -> int:
        if steps <= 0:
            return 0
        task = AnimationTask(player_id, start_position % BOARD_SIZE, steps, 1 if direction >= 0 else -1,
                             options or MoveOptions())
        self.active = task
        self.started += 1
        print(f"[ANIMATE] {player_id} from {task.start_position} x{steps} dir={task.direction}", flush=True)
        try:
            return await self.animator.run(task, self._render)
        finally:
            self.active = None
            self._emit(None)

    def _render(self, player_id: str, position: Optional[int]) -> None:
        task = self.active
        if task is None or task.player_id != player_id:
            return
        task.position = position
        self._emit(task)

    def _emit(self, task: Optional[AnimationTask]) -> None:
        for listener in list(self._listeners):
            listener(task)

    # -- move parameters --

    @staticmethod
    def dice_move(player_id: str, end_position: int, total: int) -> MovePlan:
        start = (end_position - total + BOARD_SIZE) % BOARD_SIZE
        return MovePlan(player_id, start, total, 1)

    @staticmethod
    def forced_move(result: Dict[str, Any], displayed: Optional[Snapshot], incoming: Snapshot) -> Optional[MovePlan]:
        """Movement implied by a landing outcome beyond the dice move, or None.

        Compares the moving player's displayed position with the pushed one;
        an outcome already reflected on screen needs no animation.
        """
        moving = incoming.current_player()
        if moving is None or displayed is None:
            return None
        before = displayed.player(moving.id)
        if before is None:
            return None
        start = before.position
        end = moving.position
        if start == end:
            return None
        card = result.get("card") or {}
        card_action = card.get("action")

        if result.get("action") == "goToJail" or card_action == "jail":
            steps = (start - JAIL_POSITION + BOARD_SIZE) % BOARD_SIZE
            return MovePlan(moving.id, start, steps, -1) if steps > 0 else None
        if card_action == "moveBack":
            spaces = int(card.get("spaces") or 0)
            return MovePlan(moving.id, start, spaces, -1) if spaces > 0 else None
        if card_action in ("move", "nearestRailroad", "nearestUtility"):
            steps = (end - start + BOARD_SIZE) % BOARD_SIZE
            return MovePlan(moving.id, start, steps, 1) if steps > 0 else None
        return None
