from __future__ import annotations

import random
from typing import Any, Dict, List, Optional

import socketio

from . import config
from .animation import AnimationSequencer, StepAnimator
from .config import Timings
from .dice import DiceAnimationController
from .models import Player, Snapshot
from .notifications import NotificationScheduler
from .reconciler import RECONCILED_EVENTS, EventReconciler
from .session import SessionFile
from .sounds import SoundBoard
from .store import GameStateStore


# Events that (re)bootstrap the displayed game outside the animation core
SNAPSHOT_EVENTS = ("playerJoined", "playerLeft", "playerDisconnected", "playerReconnected")


class GameClient:
    """One player's connection to the game server.

    Owns the socket, the saved session and the lobby state, and forwards the
    game events to the EventReconciler. Outbound commands are fire-and-forget
    and return False when no game is joined.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        player_name: str = "",
        timings: Optional[Timings] = None,
        sounds: Optional[SoundBoard] = None,
        session: Optional[SessionFile] = None,
        sio: Any = None,
        rng: Optional[random.Random] = None,
    ):
        self.url = url or config.SERVER_URL
        self.session = session or SessionFile()
        self.player_name = (player_name or self.session.load().get("playerName") or "").strip()
        self.timings = timings or Timings.from_env()
        self.sounds = sounds or SoundBoard()
        self.sio = sio if sio is not None else socketio.AsyncClient(reconnection=True)

        self.store = GameStateStore()
        self.notifications = NotificationScheduler(self.timings)
        self.sequencer = AnimationSequencer(StepAnimator(self.sounds, self.notifications, self.timings))
        self.reconciler = EventReconciler(self.store, self.sequencer, self.notifications, self.sounds, self.timings)
        self.dice = DiceAnimationController(self.timings, rng)

        self.connected = False
        self.rejoining = False
        self.game_id: Optional[str] = None
        self.player_id: Optional[str] = None
        self.games: List[Dict[str, Any]] = []
        # Set by roll_dice until the server answers with a new roll
        self.roll_pending = False

        self.store.subscribe(self._on_snapshot)
        self.reconciler.subscribe_rolls(self._on_new_roll)
        self._register()

    # ---------------------------
    # Derived state
    # ---------------------------

    @property
    def snapshot(self) -> Optional[Snapshot]:
        return self.store.snapshot

    @property
    def my_player(self) -> Optional[Player]:
        snap = self.store.snapshot
        return snap.player(self.player_id) if snap is not None else None

    @property
    def is_my_turn(self) -> bool:
        snap = self.store.snapshot
        me = self.my_player
        if snap is None or me is None:
            return False
        return snap.current_player() is me

    @property
    def roll_locked(self) -> bool:
        return self.roll_pending or self.reconciler.animating

    # ---------------------------
    # Connection
    # ---------------------------

    async def connect(self) -> None:
        print(f"[SOCKET] Connecting to {self.url}", flush=True)
        await self.sio.connect(self.url, transports=["websocket", "polling"])

    async def run(self) -> None:
        await self.connect()
        await self.sio.wait()

    async def close(self) -> None:
        await self.sio.disconnect()

    def _register(self) -> None:
        self.sio.on("connect", self._on_connect)
        self.sio.on("disconnect", self._on_disconnect)
        self.sio.on("connect_error", self._on_connect_error)
        self.sio.on("error", self._on_error)
        self.sio.on("gamesUpdated", self._on_games_updated)
        self.sio.on("gameCreated", self._on_game_joined)
        self.sio.on("gameJoined", self._on_game_joined)
        self.sio.on("gameRejoined", self._on_game_rejoined)
        self.sio.on("rejoinFailed", self._on_rejoin_failed)
        self.sio.on("gameStarted", self._on_game_started)
        for event in SNAPSHOT_EVENTS:
            self.sio.on(event, self._on_roster_change)
        for event in RECONCILED_EVENTS:
            self.sio.on(event, self._forward(event))

    def _forward(self, event: str):
        async def handler(data=None):
            self.reconciler.handle(event, data or {})
        return handler

    async def _on_connect(self) -> None:
        self.connected = True
        print("[SOCKET] Connected to server", flush=True)
        saved = self.session.saved_game()
        if saved and not self.game_id:
            print(f"[SOCKET] Attempting to rejoin game {saved['gameId']}", flush=True)
            self.rejoining = True
            await self.sio.emit("rejoinGame", {
                "gameId": saved["gameId"],
                "playerId": saved["playerId"],
                "playerName": saved.get("playerName") or self.player_name,
            })

    async def _on_disconnect(self, *args) -> None:
        self.connected = False
        print("[SOCKET] Disconnected from server", flush=True)
        self.notifications.error("Disconnected from server")

    async def _on_connect_error(self, data=None) -> None:
        print(f"[SOCKET] Connection error: {data}", flush=True)
        self.notifications.error("Could not connect to server")

    async def _on_error(self, data=None) -> None:
        message = (data or {}).get("message") or "Unknown error"
        self.roll_pending = False
        self.notifications.error(message)

    async def _on_games_updated(self, games=None) -> None:
        self.games = list(games or [])

    async def _on_game_joined(self, data) -> None:
        self.game_id = data.get("gameId")
        player = data.get("player") or {}
        self.player_id = player.get("id")
        self.store.replace(Snapshot.from_dict(data.get("game") or {}))
        if self.game_id and self.player_id:
            self.session.save(self.game_id, self.player_id, player.get("name") or self.player_name)

    async def _on_game_rejoined(self, data) -> None:
        saved = self.session.saved_game()
        if saved:
            self.game_id = saved["gameId"]
            # The server re-keys the player by the new socket id
            self.player_id = getattr(self.sio, "sid", None) or saved["playerId"]
            self.store.replace(Snapshot.from_dict(data.get("game") or {}))
        self.rejoining = False

    async def _on_rejoin_failed(self, data=None) -> None:
        print("[SESSION] Rejoin failed, clearing saved session", flush=True)
        self.session.clear()
        self.rejoining = False

    async def _on_game_started(self, data) -> None:
        self.store.replace(Snapshot.from_dict(data.get("game") or {}))
        self.sounds.play("turn_start")

    async def _on_roster_change(self, data) -> None:
        self.store.replace(Snapshot.from_dict(data.get("game") or {}))

    def _on_snapshot(self, snap: Snapshot, roll_changed: bool) -> None:
        self.dice.observe(snap.last_dice_roll, force=roll_changed)
        if not self.is_my_turn:
            self.roll_pending = False

    def _on_new_roll(self, generation: int) -> None:
        # Every diceRolled answers the request, even one repeating the last values
        self.roll_pending = False

    # ---------------------------
    # Lobby commands
    # ---------------------------

    async def create_game(
        self,
        game_name: str,
        max_players: int = 4,
        is_private: bool = False,
        auctions_enabled: bool = False,
        token_id: Optional[str] = None,
        color_id: Optional[str] = None,
    ) -> bool:
        if not self.player_name:
            return False
        await self.sio.emit("createGame", {
            "playerName": self.player_name,
            "gameName": game_name,
            "maxPlayers": max_players,
            "isPrivate": is_private,
            "auctionsEnabled": auctions_enabled,
            "tokenId": token_id,
            "colorId": color_id,
        })
        return True

    async def join_game(self, game_id: str, token_id: Optional[str] = None, color_id: Optional[str] = None) -> bool:
        if not self.player_name:
            return False
        await self.sio.emit("joinGame", {
            "gameId": game_id,
            "playerName": self.player_name,
            "tokenId": token_id,
            "colorId": color_id,
        })
        return True

    async def start_game(self) -> bool:
        return await self._emit("startGame")

    async def add_bot(self, difficulty: str = "hard") -> bool:
        return await self._emit("addBot", difficulty=difficulty)

    async def leave_game(self) -> bool:
        sent = await self._emit("leaveGame")
        if sent:
            self.game_id = None
            self.player_id = None
            self.store.clear()
            self.session.clear()
        return sent

    # ---------------------------
    # Game commands
    # ---------------------------

    async def roll_dice(self) -> bool:
        if not self.game_id or self.roll_locked:
            return False
        self.roll_pending = True
        return await self._emit("rollDice")

    async def buy_property(self) -> bool:
        return await self._emit("buyProperty")

    async def decline_property(self) -> bool:
        return await self._emit("declineProperty")

    async def auction_bid(self, amount: int) -> bool:
        return await self._emit("auctionBid", amount=amount)

    async def auction_pass(self) -> bool:
        return await self._emit("auctionPass")

    async def build_house(self, property_index: int) -> bool:
        return await self._emit("buildHouse", propertyIndex=property_index)

    async def sell_house(self, property_index: int) -> bool:
        return await self._emit("sellHouse", propertyIndex=property_index)

    async def mortgage_property(self, property_index: int) -> bool:
        return await self._emit("mortgageProperty", propertyIndex=property_index)

    async def unmortgage_property(self, property_index: int) -> bool:
        return await self._emit("unmortgageProperty", propertyIndex=property_index)

    async def propose_trade(self, target_player_id: str, offer: Dict[str, Any], request: Dict[str, Any]) -> bool:
        return await self._emit("proposeTrade", targetPlayerId=target_player_id, offer=offer, request=request)

    async def accept_trade(self, trade_id: str) -> bool:
        return await self._emit("acceptTrade", tradeId=trade_id)

    async def decline_trade(self, trade_id: str) -> bool:
        return await self._emit("declineTrade", tradeId=trade_id)

    async def pay_jail_fine(self) -> bool:
        return await self._emit("payJailFine")

    async def use_jail_card(self) -> bool:
        return await self._emit("useJailCard")

    async def end_turn(self) -> bool:
        return await self._emit("endTurn")

    async def declare_bankruptcy(self) -> bool:
        return await self._emit("declareBankruptcy")

    async def _emit(self, event: str, **payload: Any) -> bool:
        if not self.game_id:
            return False
        await self.sio.emit(event, {"gameId": self.game_id, **payload})
        return True
