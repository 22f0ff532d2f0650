from __future__ import annotations

from dataclasses import dataclass, field, asdict, replace
from typing import Dict, List, Optional, Any


# ---------------------------
# Authoritative game structures (parsed from the server's camelCase payloads)
# ---------------------------

@dataclass(frozen=True)
class DiceRoll:
    die1: int
    die2: int
    total: int
    # Derived from the faces; two rolls with equal faces and total are the same roll
    is_doubles: bool = field(default=False, compare=False)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["DiceRoll"]:
        if not data:
            return None
        die1 = int(data.get("die1") or 0)
        die2 = int(data.get("die2") or 0)
        total = int(data.get("total") if data.get("total") is not None else die1 + die2)
        doubles = data.get("isDoubles")
        return cls(die1, die2, total, bool(doubles) if doubles is not None else die1 == die2)

    def to_dict(self) -> Dict[str, Any]:
        return {"die1": self.die1, "die2": self.die2, "total": self.total, "isDoubles": self.is_doubles}


@dataclass
class Player:
    id: str
    name: str
    money: int = 1500  # negative means debt
    position: int = 0
    in_jail: bool = False
    jail_turns: int = 0
    properties: List[int] = field(default_factory=list)  # board indices
    get_out_of_jail_cards: int = 0
    bankrupt: bool = False
    disconnected: bool = False
    token: Optional[str] = None
    color: Optional[str] = None
    is_bot: bool = False
    is_host: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Player":
        props = []
        for p in data.get("properties") or []:
            # Server expands owned properties into board-space dicts
            if isinstance(p, dict):
                idx = p.get("index")
                if idx is not None:
                    props.append(int(idx))
            else:
                props.append(int(p))
        return cls(
            id=str(data.get("id")),
            name=str(data.get("name") or ""),
            money=int(data.get("money") or 0),
            position=int(data.get("position") or 0),
            in_jail=bool(data.get("inJail")),
            jail_turns=int(data.get("jailTurns") or 0),
            properties=props,
            get_out_of_jail_cards=int(data.get("getOutOfJailCards") or 0),
            bankrupt=bool(data.get("bankrupt")),
            disconnected=bool(data.get("disconnected")),
            token=data.get("token"),
            color=data.get("color"),
            is_bot=bool(data.get("isBot")),
            is_host=bool(data.get("isHost")),
        )


@dataclass
class BoardSpace:
    index: int
    name: str
    type: str
    color: Optional[str] = None
    price: Optional[int] = None
    owner: Optional[str] = None
    houses: int = 0
    mortgaged: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoardSpace":
        return cls(
            index=int(data.get("index") or 0),
            name=str(data.get("name") or ""),
            type=str(data.get("type") or ""),
            color=data.get("color"),
            price=data.get("price"),
            owner=data.get("owner"),
            houses=int(data.get("houses") or 0),
            mortgaged=bool(data.get("mortgaged")),
        )


@dataclass
class Snapshot:
    players: List[Player] = field(default_factory=list)
    board: List[BoardSpace] = field(default_factory=list)
    current_player_index: int = 0
    last_dice_roll: Optional[DiceRoll] = None
    dice_rolled: bool = False
    can_roll_again: bool = False
    pending_action: Optional[Dict[str, Any]] = None
    auction: Optional[Dict[str, Any]] = None
    trades: List[Dict[str, Any]] = field(default_factory=list)
    game_log: List[Dict[str, Any]] = field(default_factory=list)
    free_parking: int = 0
    started: bool = False
    id: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snapshot":
        return cls(
            players=[Player.from_dict(p) for p in data.get("players") or []],
            board=[BoardSpace.from_dict(s) for s in data.get("board") or []],
            current_player_index=int(data.get("currentPlayerIndex") or 0),
            last_dice_roll=DiceRoll.from_dict(data.get("lastDiceRoll")),
            dice_rolled=bool(data.get("diceRolled")),
            can_roll_again=bool(data.get("canRollAgain")),
            pending_action=data.get("pendingAction"),
            auction=data.get("auction"),
            trades=list(data.get("trades") or []),
            game_log=list(data.get("gameLog") or []),
            free_parking=int(data.get("freeParking") or 0),
            started=bool(data.get("started")),
            id=data.get("id"),
            name=data.get("name"),
        )

    def current_player(self) -> Optional[Player]:
        if 0 <= self.current_player_index < len(self.players):
            return self.players[self.current_player_index]
        return None

    def player(self, player_id: Optional[str]) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def with_player_position(self, player_id: str, position: int) -> "Snapshot":
        players = [replace(p, position=position) if p.id == player_id else p for p in self.players]
        return replace(self, players=players)

    def with_roll(self, roll: DiceRoll, pending_action: Optional[Dict[str, Any]] = None) -> "Snapshot":
        return replace(self, last_dice_roll=roll, dice_rolled=True,
                       pending_action=pending_action if pending_action is not None else self.pending_action)


# ---------------------------
# Client-side ephemera
# ---------------------------

@dataclass(frozen=True)
class MoveOptions:
    play_step_sound: bool = True
    play_landing_sound: bool = False


@dataclass
class AnimationTask:
    player_id: str
    start_position: int
    step_count: int
    direction: int  # +1 forward, -1 backward
    options: MoveOptions = field(default_factory=MoveOptions)
    position: Optional[int] = None  # local animated position while running


@dataclass
class PendingLandingResult:
    result: Dict[str, Any]
    snapshot: Snapshot
    generation: int = 0  # dice-roll generation it arrived under


@dataclass
class Notification:
    channel: str  # "toast", "card" or "error"
    kind: str
    title: str
    message: str
    created_at: int  # epoch ms
    ttl: int  # ms
    fading: bool = False
    position: Optional[int] = None  # board space the toast points at (rent)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
