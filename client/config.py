from __future__ import annotations

import os
from dataclasses import dataclass, fields


BOARD_SIZE = 40
JAIL_POSITION = 10
ORIGIN_POSITION = 0

SERVER_URL = os.environ.get("MONOPOLY_SERVER_URL", "http://localhost:3001")
SESSION_FILE = os.environ.get(
    "MONOPOLY_SESSION_FILE",
    os.path.join(os.path.expanduser("~"), ".monopoly_client_session.json"),
)
origins_env = os.environ.get("ALLOWED_ORIGINS", "*")
ALLOWED_ORIGINS = [o.strip() for o in origins_env.split(",") if o.strip()] or ["*"]
VIEW_HOST = os.environ.get("MONOPOLY_VIEW_HOST", "127.0.0.1")
VIEW_PORT = int(os.environ.get("MONOPOLY_VIEW_PORT", "8100"))


@dataclass(frozen=True)
class Timings:
    """Every client-side delay, in milliseconds."""
    step_ms: int = 200  # one board space per tick
    step_settle_ms: int = 150  # pause after the last tick before reverting to authoritative rendering
    pre_roll_ms: int = 500  # let the rolling sound finish
    doubles_sound_ms: int = 200
    post_roll_ms: int = 400  # let the result show before the piece moves
    drain_delay_ms: int = 100  # deferred landing result after an animation
    jail_settle_sound_ms: int = 500
    dice_flicker_ms: int = 80
    dice_roll_ms: int = 600
    toast_ms: int = 3000
    card_fade_ms: int = 3000
    card_ms: int = 3500
    error_ms: int = 3000

    def scaled(self, factor: float) -> "Timings":
        factor = max(0.0, float(factor))
        return Timings(**{f.name: int(getattr(self, f.name) * factor) for f in fields(self)})

    @classmethod
    def instant(cls) -> "Timings":
        return cls().scaled(0)

    @classmethod
    def from_env(cls) -> "Timings":
        try:
            scale = float(os.environ.get("MONOPOLY_ANIMATION_SCALE", "1.0"))
        except ValueError:
            scale = 1.0
        return cls().scaled(scale)


def seconds(ms: int) -> float:
    return max(0, ms) / 1000.0
