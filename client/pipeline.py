from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from .config import seconds


@dataclass
class Phase:
    name: str
    action: Optional[Callable[[], Any]]
    delay_ms: int = 0


class Pipeline:
    """A named sequence of phases run one after another.

    Each phase waits its delay, then runs its action; an action returning an
    awaitable is awaited before the next phase starts. Replaces nested
    delayed callbacks: every value a phase needs is bound when the pipeline
    is built, not read back from shared state later.
    """

    def __init__(self, name: str):
        self.name = name
        self.phases: List[Phase] = []
        self.completed: List[str] = []
        self.current: Optional[str] = None

    def then(self, name: str, action: Optional[Callable[[], Any]] = None, delay_ms: int = 0) -> "Pipeline":
        self.phases.append(Phase(name, action, delay_ms))
        return self

    async def run(self) -> None:
        for phase in self.phases:
            self.current = phase.name
            if phase.delay_ms > 0:
                await asyncio.sleep(seconds(phase.delay_ms))
            try:
                if phase.action is not None:
                    out = phase.action()
                    if inspect.isawaitable(out):
                        await out
            except Exception as e:
                print(f"[PIPELINE_ERROR] {self.name}.{phase.name}: {e}", flush=True)
                raise
            self.completed.append(phase.name)
        self.current = None
