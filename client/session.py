"""
Save and load the joined-game session so a restarted client can rejoin.
"""

from __future__ import annotations

import json
import os
from typing import Dict, Optional

from . import config


class SessionFile:
    def __init__(self, path: Optional[str] = None):
        self.path = path or config.SESSION_FILE

    def load(self) -> Dict[str, str]:
        """Saved ``{gameId, playerId, playerName}``; empty when there is none."""
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            print(f"[SESSION] Ignoring unreadable session file {self.path}: {e}", flush=True)
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: str(v) for k, v in data.items() if k in ("gameId", "playerId", "playerName") and v}

    def saved_game(self) -> Optional[Dict[str, str]]:
        data = self.load()
        if data.get("gameId") and data.get("playerId"):
            return data
        return None

    def save(self, game_id: str, player_id: str, player_name: str) -> None:
        data = {"gameId": game_id, "playerId": player_id, "playerName": player_name}
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def clear(self) -> None:
        """Forget the game but keep the player name for the next lobby visit."""
        name = self.load().get("playerName")
        if name:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump({"playerName": name}, f, indent=2)
        elif os.path.exists(self.path):
            os.remove(self.path)
