from __future__ import annotations

import argparse
import asyncio
from typing import Any, Dict, List, Optional

import socketio
import uvicorn

from . import config
from .transport import GameClient
from .views import create_app


async def _run(args: argparse.Namespace) -> None:
    client = GameClient(args.server, player_name=args.name or "")
    app = create_app(client)
    server = uvicorn.Server(uvicorn.Config(app, host=args.host, port=args.port, log_level="info"))
    print(f"[VIEW] Serving view state on http://{args.host}:{args.port}", flush=True)
    try:
        await asyncio.gather(client.run(), server.serve())
    finally:
        if client.connected:
            await client.close()


def _log_game_state(game: Dict[str, Any]) -> None:
    players = game.get("players") or []
    idx = int(game.get("currentPlayerIndex") or 0)
    if not (0 <= idx < len(players)):
        return
    current = players[idx]
    board = game.get("board") or []
    pos = int(current.get("position") or 0)
    space = board[pos].get("name") if pos < len(board) else pos
    print(f"Current Player: {current.get('name')} (Index: {idx})", flush=True)
    print(f"Status: {'BOT' if current.get('isBot') else 'HUMAN'}", flush=True)
    print(f"Money: {current.get('money')}", flush=True)
    print(f"Position: {pos} ({space})", flush=True)


async def _observe(args: argparse.Namespace) -> None:
    sio = socketio.AsyncClient()

    @sio.event
    async def connect():
        print("[SOCKET] Connected, joining as observer", flush=True)
        await sio.emit("joinGame", {"gameId": args.game_id, "playerName": args.name})

    @sio.on("gameJoined")
    async def game_joined(data):
        print("[SUCCESS] Joined game!", flush=True)
        _log_game_state(data.get("game") or {})

    @sio.on("error")
    async def error(data):
        message = (data or {}).get("message")
        print(f"[ERROR] {message}", flush=True)
        if message == "Game not found":
            await sio.disconnect()

    @sio.on("turnEnded")
    async def turn_ended(data):
        print("------------------------------------------------", flush=True)
        print("[EVENT] turnEnded received", flush=True)
        _log_game_state(data.get("game") or {})

    @sio.on("diceRolled")
    async def dice_rolled(data):
        result = data.get("result") or {}
        print(f"[EVENT] diceRolled: Total {result.get('total')}, Doubles: {result.get('isDoubles')}", flush=True)

    @sio.on("landingResult")
    async def landing_result(data):
        result = data.get("result") or {}
        space = (result.get("space") or {}).get("name")
        print(f"[EVENT] landingResult: {result.get('action') or result.get('type')} on {space}", flush=True)

    print(f"[SOCKET] Connecting to {args.server}...", flush=True)
    await sio.connect(args.server)
    await sio.wait()


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="client", description="Monopoly online client")
    sub = ap.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="connect as a player and serve the view state")
    run.add_argument("--server", default=config.SERVER_URL)
    run.add_argument("--name", default="")
    run.add_argument("--host", default=config.VIEW_HOST)
    run.add_argument("--port", type=int, default=config.VIEW_PORT)

    obs = sub.add_parser("observe", help="join a game and print turn, dice and landing summaries")
    obs.add_argument("--server", default=config.SERVER_URL)
    obs.add_argument("--game-id", required=True)
    obs.add_argument("--name", default="DebugObserver")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if args.command == "run":
            asyncio.run(_run(args))
        else:
            asyncio.run(_observe(args))
    except KeyboardInterrupt:
        pass
    return 0
