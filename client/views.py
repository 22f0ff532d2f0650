"""
Render model for the presentational views, served as JSON.

To run alongside a live client: python -m client run --name NAME
"""

from __future__ import annotations

import json
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import config
from .transport import GameClient


# Outbound commands reachable through POST /actions/{command}
COMMANDS = (
    "roll_dice", "buy_property", "decline_property", "auction_bid", "auction_pass",
    "build_house", "sell_house", "mortgage_property", "unmortgage_property",
    "propose_trade", "accept_trade", "decline_trade", "pay_jail_fine", "use_jail_card",
    "end_turn", "declare_bankruptcy", "start_game", "leave_game", "add_bot",
    "create_game", "join_game",
)


def build_view(client: GameClient) -> Dict[str, Any]:
    snap = client.store.snapshot
    dice = client.dice
    view: Dict[str, Any] = {
        "connected": client.connected,
        "gameId": client.game_id,
        "playerId": client.player_id,
        "lobby": client.games,
        "dice": {
            "faces": list(dice.visual),
            "total": dice.display_total,
            "isDoubles": dice.display_doubles,
            "rolling": dice.rolling,
        },
        "notifications": [n.to_dict() for n in client.notifications.active()],
        "animating": client.sequencer.override,
        "rollLocked": client.roll_locked,
    }
    if snap is None:
        view.update({"game": None, "players": [], "isMyTurn": False, "canRoll": False,
                     "canEndTurn": False, "followPosition": 0})
        return view

    players = []
    for p in snap.players:
        players.append({
            "id": p.id,
            "name": p.name,
            "money": p.money,
            "position": client.sequencer.rendered_position(p.id, p.position),
            "inJail": p.in_jail,
            "bankrupt": p.bankrupt,
            "disconnected": p.disconnected,
            "token": p.token,
            "color": p.color,
            "isBot": p.is_bot,
            "properties": p.properties,
        })

    me = client.my_player
    my_turn = client.is_my_turn
    can_end = (my_turn and snap.dice_rolled and not snap.can_roll_again
               and not snap.pending_action and not snap.auction)
    can_roll = my_turn and not can_end and (
        not snap.dice_rolled
        or snap.can_roll_again
        or (me is not None and me.in_jail and not snap.dice_rolled)
    )

    override = client.sequencer.override
    current = snap.current_player()
    if override is not None:
        follow = override["position"]
    elif current is not None:
        follow = current.position
    else:
        follow = me.position if me is not None else 0

    view.update({
        "game": {
            "id": snap.id,
            "name": snap.name,
            "started": snap.started,
            "currentPlayerIndex": snap.current_player_index,
            "diceRolled": snap.dice_rolled,
            "canRollAgain": snap.can_roll_again,
            "pendingAction": snap.pending_action,
            "auction": snap.auction,
            "trades": snap.trades,
            "freeParking": snap.free_parking,
            "lastDiceRoll": snap.last_dice_roll.to_dict() if snap.last_dice_roll else None,
        },
        "players": players,
        "isMyTurn": my_turn,
        "canRoll": bool(can_roll) and not client.roll_locked,
        "canEndTurn": bool(can_end),
        "followPosition": follow,
    })
    return view


def create_app(client: GameClient) -> FastAPI:
    app = FastAPI()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/healthz")
    async def healthz():
        return JSONResponse({"ok": True, "connected": client.connected})

    @app.get("/state")
    async def state():
        return JSONResponse(build_view(client))

    @app.get("/notifications")
    async def notifications():
        return JSONResponse({"notifications": [n.to_dict() for n in client.notifications.active()]})

    @app.post("/actions/{command}")
    async def action(command: str, request: Request):
        if command not in COMMANDS:
            return JSONResponse({"error": "unknown_command"}, status_code=404)
        raw = await request.body()
        try:
            payload = json.loads(raw) if raw else {}
        except ValueError:
            return JSONResponse({"error": "invalid_json"}, status_code=400)
        if not isinstance(payload, dict):
            return JSONResponse({"error": "invalid_payload"}, status_code=400)
        try:
            sent = await getattr(client, command)(**payload)
        except TypeError as e:
            print(f"[VIEW] Bad arguments for {command}: {e}", flush=True)
            return JSONResponse({"error": "bad_arguments"}, status_code=400)
        if not sent:
            return JSONResponse({"ok": False, "error": "refused"}, status_code=409)
        return JSONResponse({"ok": True})

    return app
