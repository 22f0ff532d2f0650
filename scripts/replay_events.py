#!/usr/bin/env python3
"""
Replay a captured server event stream through a fresh reconciler.

Usage:
  python scripts/replay_events.py capture.jsonl --scale 0

Each line of the capture is a JSON object {"event", "data", "delay_ms"}; the
event is handed to the reconciler after waiting delay_ms (times --scale).
Prints every disposition, then the final positions, played sounds and any
notifications still showing. Useful to reproduce animation races offline.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any, Dict, List

from client.animation import AnimationSequencer, StepAnimator
from client.config import Timings, seconds
from client.dice import DiceAnimationController
from client.notifications import NotificationScheduler
from client.reconciler import EventReconciler
from client.sounds import SoundBoard
from client.store import GameStateStore


def load_capture(path: str) -> List[Dict[str, Any]]:
    entries: List[Dict[str, Any]] = []
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            try:
                entry = json.loads(line)
            except ValueError as e:
                print(f"[REPLAY_ERROR] {path}:{lineno}: {e}", flush=True)
                continue
            if not isinstance(entry, dict) or not entry.get("event"):
                print(f"[REPLAY_ERROR] {path}:{lineno}: missing event name", flush=True)
                continue
            entries.append(entry)
    return entries


async def replay(entries: List[Dict[str, Any]], scale: float) -> Dict[str, Any]:
    timings = Timings().scaled(scale)
    sounds = SoundBoard(history_size=1000)
    store = GameStateStore()
    notifications = NotificationScheduler(timings)
    sequencer = AnimationSequencer(StepAnimator(sounds, notifications, timings))
    reconciler = EventReconciler(store, sequencer, notifications, sounds, timings)
    dice = DiceAnimationController(timings)
    store.subscribe(lambda snap, changed: dice.observe(snap.last_dice_roll, force=changed))

    for entry in entries:
        delay = int(entry.get("delay_ms") or 0) * scale
        if delay > 0:
            await asyncio.sleep(seconds(int(delay)))
        disposition = reconciler.handle(entry["event"], entry.get("data") or {})
        print(f"[REPLAY] {entry['event']} -> {disposition}", flush=True)

    await reconciler.wait_idle()
    await dice.wait_settled()

    snap = store.snapshot
    return {
        "positions": {p.name or p.id: p.position for p in snap.players} if snap else {},
        "currentPlayerIndex": snap.current_player_index if snap else None,
        "sounds": list(sounds.history),
        "notifications": [n.to_dict() for n in notifications.active()],
        "overwritten": reconciler.overwritten,
        "droppedStale": store.dropped,
        "animations": sequencer.started,
    }


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("capture", help="JSON-lines file of captured events")
    ap.add_argument("--scale", type=float, default=0.0, help="Multiplier for delays (0 = instant)")
    args = ap.parse_args()

    entries = load_capture(args.capture)
    print(f"[REPLAY] Loaded {len(entries)} events from {args.capture}", flush=True)
    summary = asyncio.run(replay(entries, args.scale))
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
