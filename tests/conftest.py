from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from client.animation import AnimationSequencer, StepAnimator
from client.config import Timings
from client.dice import DiceAnimationController
from client.notifications import NotificationScheduler
from client.reconciler import EventReconciler
from client.session import SessionFile
from client.sounds import SoundBoard
from client.store import GameStateStore
from client.transport import GameClient


def player_dict(pid: str, position: int = 0, in_jail: bool = False, money: int = 1500, **extra: Any) -> Dict[str, Any]:
    data = {"id": pid, "name": pid.upper(), "money": money, "position": position, "inJail": in_jail,
            "properties": []}
    data.update(extra)
    return data


def roll_dict(die1: int, die2: int) -> Dict[str, Any]:
    return {"die1": die1, "die2": die2, "total": die1 + die2, "isDoubles": die1 == die2}


def game_dict(
    positions: List[int],
    current: int = 0,
    roll: Optional[Dict[str, Any]] = None,
    jailed: Optional[List[int]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    jailed = jailed or []
    data = {
        "id": "GAME1",
        "name": "Test game",
        "started": True,
        "players": [player_dict(f"p{i}", pos, in_jail=i in jailed) for i, pos in enumerate(positions)],
        "board": [{"index": i, "name": f"Space {i}", "type": "property"} for i in range(40)],
        "currentPlayerIndex": current,
        "lastDiceRoll": roll,
        "diceRolled": roll is not None,
    }
    data.update(extra)
    return data


class Rig:
    """The animation core wired the way GameClient wires it, without a socket."""

    def __init__(self, timings: Timings):
        self.timings = timings
        self.sounds = SoundBoard(history_size=1000)
        self.store = GameStateStore()
        self.notifications = NotificationScheduler(timings)
        self.animator = StepAnimator(self.sounds, self.notifications, timings)
        self.sequencer = AnimationSequencer(self.animator)
        self.reconciler = EventReconciler(self.store, self.sequencer, self.notifications, self.sounds, timings)
        self.dice = DiceAnimationController(timings)
        self.frames: List[Any] = []
        self.toasts: List[str] = []
        self.sequencer.subscribe(lambda task: self.frames.append(
            None if task is None else (task.player_id, task.position)))
        self.notifications.subscribe(lambda channel, note: self.toasts.append(note.title) if note else None)
        self.store.subscribe(lambda snap, changed: self.dice.observe(snap.last_dice_roll, force=changed))

    def position(self, pid: str) -> int:
        return self.store.snapshot.player(pid).position

    def rendered(self, pid: str) -> List[int]:
        return [f[1] for f in self.frames if f is not None and f[0] == pid and f[1] is not None]

    async def settle(self) -> None:
        await self.reconciler.wait_idle()
        await self.dice.wait_settled()


@pytest.fixture
def timings() -> Timings:
    return Timings.instant()


@pytest.fixture
def rig(timings) -> Rig:
    return Rig(timings)


class FakeSocket:
    """Stands in for socketio.AsyncClient: records emits, lets tests fire inbound events."""

    def __init__(self, sid: str = "p0"):
        self.sid = sid
        self.handlers: Dict[str, Any] = {}
        self.sent: List[Any] = []
        self.url: Optional[str] = None

    def on(self, event, handler=None):
        self.handlers[event] = handler

    async def emit(self, event, data=None):
        self.sent.append((event, data))

    async def connect(self, url, **kwargs):
        self.url = url
        await self.handlers["connect"]()

    async def disconnect(self):
        await self.handlers["disconnect"]()

    async def wait(self):
        return None

    async def fire(self, event, *args):
        await self.handlers[event](*args)


@pytest.fixture
def session(tmp_path):
    return SessionFile(str(tmp_path / "session.json"))


@pytest.fixture
def game_client(timings, session):
    return GameClient("http://test", player_name="Alice", timings=timings, session=session, sio=FakeSocket())
