import asyncio

from fastapi.testclient import TestClient

from client.models import Snapshot
from client.views import build_view, create_app

from conftest import game_dict, roll_dict


def _join(game_client, **kw):
    game_client.game_id = "G1"
    game_client.player_id = "p0"

    async def bootstrap():
        game_client.store.replace(Snapshot.from_dict(game_dict([7, 21], **kw)))

    asyncio.run(bootstrap())


def test_view_before_joining(game_client):
    view = build_view(game_client)
    assert view["game"] is None
    assert view["players"] == []
    assert not view["canRoll"]
    assert view["dice"]["faces"] == [1, 1]


def test_view_for_my_turn(game_client):
    _join(game_client)
    view = build_view(game_client)
    assert view["isMyTurn"]
    assert view["canRoll"]
    assert not view["canEndTurn"]
    assert view["followPosition"] == 7
    assert [p["position"] for p in view["players"]] == [7, 21]


def test_view_after_roll_offers_end_turn(game_client):
    _join(game_client, roll=roll_dict(3, 4))
    view = build_view(game_client)
    assert view["canEndTurn"]
    assert not view["canRoll"]
    assert view["game"]["lastDiceRoll"]["total"] == 7


def test_view_for_other_turn(game_client):
    _join(game_client, current=1)
    view = build_view(game_client)
    assert not view["isMyTurn"]
    assert not view["canRoll"]
    assert view["followPosition"] == 21


def test_state_and_health_endpoints(game_client):
    _join(game_client)
    http = TestClient(create_app(game_client))

    assert http.get("/healthz").json() == {"ok": True, "connected": False}
    state = http.get("/state").json()
    assert state["gameId"] == "G1"
    assert state["players"][1]["name"] == "P1"
    assert http.get("/notifications").json() == {"notifications": []}


def test_action_endpoint_forwards_commands(game_client):
    _join(game_client)
    http = TestClient(create_app(game_client))

    assert http.post("/actions/build_house", json={"property_index": 3}).json() == {"ok": True}
    assert http.post("/actions/end_turn").status_code == 200
    assert game_client.sio.sent == [
        ("buildHouse", {"gameId": "G1", "propertyIndex": 3}),
        ("endTurn", {"gameId": "G1"}),
    ]


def test_action_endpoint_errors(game_client):
    http = TestClient(create_app(game_client))

    assert http.post("/actions/self_destruct").status_code == 404
    # No game joined yet
    assert http.post("/actions/end_turn").status_code == 409
    game_client.game_id = "G1"
    assert http.post("/actions/build_house", json={"bogus": 1}).status_code == 400
    assert http.post("/actions/end_turn", content=b"[1, 2]").status_code == 400
