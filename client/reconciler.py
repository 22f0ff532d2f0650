from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, Dict, List, Optional, Set

from .animation import AnimationSequencer, MovePlan
from .config import Timings, seconds
from .models import DiceRoll, MoveOptions, PendingLandingResult, Snapshot
from .notifications import NotificationScheduler
from .pipeline import Pipeline
from .sounds import SoundBoard
from .store import GameStateStore


# Non-positional events: merge now, then play a fixed cue (None = silent)
IMMEDIATE_SOUNDS: Dict[str, Optional[str]] = {
    "propertyBought": "buy_property",
    "houseBuilt": "build_house",
    "houseSold": "sell_house",
    "propertyMortgaged": "mortgage",
    "propertyUnmortgaged": "unmortgage",
    "tradeProposed": "trade",
    "tradeCompleted": "trade_accept",
    "tradeDeclined": "trade_decline",
    "jailFinePaid": "jail_free",
    "jailCardUsed": "jail_free",
    "turnEnded": "turn_start",
    "propertyDeclined": None,
    "playerBankrupt": "bankrupt",
    "gameOver": "win",
}

RECONCILED_EVENTS = tuple(IMMEDIATE_SOUNDS) + (
    "diceRolled", "landingResult", "auctionStarted", "auctionUpdate", "auctionEnded",
)


class EventReconciler:
    """Routes each inbound game event to immediate application, animation, or the deferred slot.

    Events are taken in arrival order. Dice moves and forced moves run as
    pipelines on a single serial lane, so at most one animation is ever in
    flight. A landing result that arrives while an animation runs waits in a
    one-slot buffer (a newer one overwrites it) and is drained when the
    animation finishes.
    """

    def __init__(
        self,
        store: GameStateStore,
        sequencer: AnimationSequencer,
        notifications: NotificationScheduler,
        sounds: SoundBoard,
        timings: Timings,
    ):
        self.store = store
        self.sequencer = sequencer
        self.notifications = notifications
        self.sounds = sounds
        self.timings = timings
        self.pending: Optional[PendingLandingResult] = None
        self.overwritten = 0
        self._holds = 0
        self._queued = 0
        self.roll_generation = 0
        self._roll_listeners: List[Callable[[int], None]] = []
        self._lane: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def animating(self) -> bool:
        """True while a dice or forced move holds landing results back."""
        return self._holds > 0

    def subscribe_rolls(self, listener: Callable[[int], None]) -> None:
        """Called with the new roll generation on every diceRolled, repeated values included."""
        self._roll_listeners.append(listener)

    # ---------------------------
    # Dispatch
    # ---------------------------

    def handle(self, event: str, data: Dict[str, Any]) -> str:
        """Process one inbound event; returns the disposition taken."""
        data = data or {}
        if event == "diceRolled":
            return self.on_dice_rolled(data.get("result") or {}, Snapshot.from_dict(data.get("game") or {}))
        if event == "landingResult":
            return self.on_landing_result(data.get("result") or {}, Snapshot.from_dict(data.get("game") or {}))
        if event in ("auctionStarted", "auctionUpdate"):
            return self._on_auction(event, data)
        if event == "auctionEnded":
            return self._on_auction_ended(data)
        if event in IMMEDIATE_SOUNDS:
            game = data.get("game")
            if game is not None:
                self.store.merge(Snapshot.from_dict(game))
            cue = IMMEDIATE_SOUNDS[event]
            if cue:
                self.sounds.play(cue)
            return "immediate"
        print(f"[RECONCILE] Ignored unknown event {event}", flush=True)
        return "ignored"

    async def wait_idle(self) -> None:
        """Wait until no pipeline or delayed effect is outstanding."""
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if self._lane is not None and not self._lane.done():
                pending.append(self._lane)
            if not pending:
                break
            await asyncio.gather(*pending)

    # ---------------------------
    # Dice rolls
    # ---------------------------

    def on_dice_rolled(self, result: Dict[str, Any], game: Snapshot) -> str:
        self.sounds.play("dice_roll")
        self.roll_generation += 1
        for listener in list(self._roll_listeners):
            listener(self.roll_generation)
        roll = DiceRoll.from_dict(result)
        moving = game.current_player()
        if roll is None or moving is None:
            self.store.merge(game)
            return "immediate"

        if moving.in_jail:
            # Failed to roll out of jail: show the dice, nothing moves
            print(f"[RECONCILE] {moving.name} still in jail, no movement", flush=True)
            self.store.merge(self._rolled(game, roll))
            self._later(self.timings.jail_settle_sound_ms, lambda: self.sounds.play("dice_result"))
            return "immediate"

        release = self._hold()
        plan = self.sequencer.dice_move(moving.id, moving.position, roll.total)
        end_position = moving.position

        def freeze() -> None:
            self.store.merge(self._rolled(game, roll).with_player_position(plan.player_id, plan.start_position))

        def settle_sound() -> None:
            self.sounds.play("dice_result")
            if roll.is_doubles:
                self._later(self.timings.doubles_sound_ms, lambda: self.sounds.play("doubles"))

        def commit() -> None:
            cur = self.store.snapshot
            if cur is not None:
                self.store.merge(cur.with_player_position(plan.player_id, end_position))

        pipeline = Pipeline("diceRolled")
        if self._lane_busy():
            pipeline.then("freeze", freeze)
        else:
            freeze()
        pipeline.then("pre_roll", settle_sound, delay_ms=self.timings.pre_roll_ms)
        pipeline.then("movement", lambda: self._move(plan, MoveOptions(play_step_sound=True)),
                      delay_ms=self.timings.post_roll_ms)
        pipeline.then("commit", commit)
        pipeline.then("release", release)
        generation = self.roll_generation
        pipeline.then("drain", lambda: self._drain(generation))
        self._enqueue(pipeline, release)
        return "animated"

    def _rolled(self, game: Snapshot, roll: DiceRoll) -> Snapshot:
        prev = self.store.snapshot
        # Keep a pending action that is already shown
        return game.with_roll(roll, prev.pending_action if prev is not None else None)

    # ---------------------------
    # Landing results
    # ---------------------------

    def on_landing_result(self, result: Dict[str, Any], game: Snapshot) -> str:
        if self.animating:
            if self.pending is not None:
                self.overwritten += 1
                print("[RECONCILE] Deferred landing result overwritten", flush=True)
            self.pending = PendingLandingResult(result, game, self.roll_generation)
            print("[RECONCILE] Queued landing result for after animation", flush=True)
            return "deferred"
        forced = self._start_landing(result, game)
        return "animated" if forced else "immediate"

    def _start_landing(self, result: Dict[str, Any], game: Snapshot) -> bool:
        plan = self.sequencer.forced_move(result, self.store.snapshot, game)
        if plan is None:
            self.apply_outcome(result, game)
            return False
        release = self._hold()
        self._freeze_forced(plan, game)
        self._enqueue(self._forced_pipeline(plan, result, game, release, self.roll_generation), release)
        return True

    async def _process_landing(self, result: Dict[str, Any], game: Snapshot, generation: int) -> None:
        # Drained from inside the lane: a forced move runs inline, not re-enqueued
        plan = self.sequencer.forced_move(result, self.store.snapshot, game)
        if plan is None:
            self.apply_outcome(result, game)
            return
        release = self._hold()
        try:
            self._freeze_forced(plan, game)
            await self._forced_pipeline(plan, result, game, release, generation).run()
        finally:
            release()

    def _freeze_forced(self, plan: MovePlan, game: Snapshot) -> None:
        base = game
        cur = self.store.snapshot
        if cur is not None and cur.current_player_index != game.current_player_index:
            # Turn already advanced locally: only pin the mover
            base = cur
        self.store.merge(base.with_player_position(plan.player_id, plan.start_position))

    def _forced_pipeline(
        self,
        plan: MovePlan,
        result: Dict[str, Any],
        game: Snapshot,
        release: Callable[[], None],
        generation: int,
    ) -> Pipeline:
        mover = game.player(plan.player_id)
        end_position = mover.position if mover is not None else plan.start_position

        def commit() -> None:
            cur = self.store.snapshot
            if cur is not None:
                self.store.merge(cur.with_player_position(plan.player_id, end_position))

        # Outcome (toast/sound/card) only after the piece arrives
        return (
            Pipeline("forcedMove")
            .then("movement", lambda: self._move(plan, MoveOptions(play_step_sound=False, play_landing_sound=True)))
            .then("commit", commit)
            .then("release", release)
            .then("outcome", lambda: self.apply_outcome(result, game))
            .then("drain", lambda: self._drain(generation))
        )

    def apply_outcome(self, result: Dict[str, Any], game: Snapshot) -> Snapshot:
        """Merge a landing result's snapshot (stale-guarded) and fire its toast/sound."""
        applied = self.store.merge(game, guard_turn=True)
        action = result.get("action")
        kind = result.get("type")
        card = result.get("card") or {}
        if action == "paidRent":
            self.sounds.play("pay_rent")
            self.notifications.toast("rent", "Rent Paid!", f"Paid £{result.get('rent')} rent",
                                     position=result.get("position"))
        elif action == "noRentJail":
            owner = result.get("ownerName") or "Owner"
            self.notifications.toast("info", "No Rent", f"{owner} is in jail - no rent due")
        elif action == "paidTax":
            self.sounds.play("pay_money")
            self.notifications.toast("tax", "Tax Paid!", f"Paid £{result.get('amount')}")
        elif action == "goToJail":
            self.sounds.play("jail")
            self.notifications.toast("jail", "Go to Jail!", "Do not pass GO, do not collect £200")
        elif action == "freeParking":
            self.sounds.play("collect_money")
            self.notifications.toast("money", "Free Parking!", f"Collected £{result.get('amount')}")
        elif kind == "chance":
            self.sounds.play("card")
            self.notifications.card("chance", card.get("text") or "Chance card drawn")
        elif kind == "community-chest":
            self.sounds.play("card")
            self.notifications.card("community-chest", card.get("text") or "Community Chest card drawn")
        return applied

    # ---------------------------
    # Auctions
    # ---------------------------

    def _on_auction(self, event: str, data: Dict[str, Any]) -> str:
        game = data.get("game")
        if game is not None:
            self.store.merge(Snapshot.from_dict(game))
        if event == "auctionStarted":
            self.sounds.play("auction")
        elif (data.get("auction") or {}).get("highestBidder"):
            self.sounds.play("bid")
        return "immediate"

    def _on_auction_ended(self, data: Dict[str, Any]) -> str:
        winner = data.get("winner")
        prop = (data.get("property") or {}).get("name") or "property"
        if winner:
            self.sounds.play("auction_win")
            self.notifications.toast("auction", "Auction Won", f"{winner.get('name')} won {prop} for £{data.get('amount')}")
        else:
            self.notifications.toast("auction", "Auction Ended", f"No one bought {prop}")
        return "notified"

    # ---------------------------
    # Lane plumbing
    # ---------------------------

    async def _move(self, plan: MovePlan, options: MoveOptions) -> None:
        await self.sequencer.animate(plan.player_id, plan.start_position, plan.steps, plan.direction, options)

    def _hold(self) -> Callable[[], None]:
        """Defer landing results until the returned release is called (idempotent)."""
        self._holds += 1
        released = False

        def release() -> None:
            nonlocal released
            if not released:
                released = True
                self._holds -= 1
        return release

    async def _drain(self, generation: int) -> None:
        queued = self.pending
        if queued is None:
            return
        if queued.generation > generation and self._queued > 1:
            # Belongs to a roll still waiting on the lane; drained after that walk
            return
        self.pending = None
        await asyncio.sleep(seconds(self.timings.drain_delay_ms))
        await self._process_landing(queued.result, queued.snapshot, queued.generation)

    def _lane_busy(self) -> bool:
        return self._lane is not None and not self._lane.done()

    def _enqueue(self, pipeline: Pipeline, release: Callable[[], None]) -> None:
        previous = self._lane if self._lane_busy() else None
        self._queued += 1

        async def _run() -> None:
            if previous is not None:
                try:
                    await previous
                except Exception:
                    # Reported by the pipeline that failed; this one still runs
                    pass
            try:
                await pipeline.run()
            finally:
                # A failed pipeline must not leave later landing results deferred
                release()
                self._queued -= 1

        self._lane = asyncio.get_running_loop().create_task(_run())

    def _later(self, delay_ms: int, fn: Callable[[], Any]) -> None:
        async def _fire() -> None:
            await asyncio.sleep(seconds(delay_ms))
            out = fn()
            if inspect.isawaitable(out):
                await out

        task = asyncio.get_running_loop().create_task(_fire())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
