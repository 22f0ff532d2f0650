import asyncio

from conftest import game_dict, roll_dict


def _joined(game_id="G1", pid="p0"):
    return {"gameId": game_id, "player": {"id": pid, "name": "Alice"}, "game": game_dict([0, 0])}


def test_connect_rejoins_saved_game(game_client, session):
    session.save("G1", "old-socket", "Alice")
    sio = game_client.sio

    async def scenario():
        await game_client.connect()
        await sio.fire("gameRejoined", {"game": game_dict([4, 9])})

    asyncio.run(scenario())
    assert sio.url == "http://test"
    assert sio.sent == [("rejoinGame", {"gameId": "G1", "playerId": "old-socket", "playerName": "Alice"})]
    assert game_client.connected
    assert game_client.game_id == "G1"
    # Re-keyed to the new socket id
    assert game_client.player_id == "p0"
    assert game_client.my_player.position == 4
    assert not game_client.rejoining


def test_connect_without_session_does_not_rejoin(game_client):
    asyncio.run(game_client.connect())
    assert game_client.sio.sent == []


def test_rejoin_failed_clears_session_but_keeps_name(game_client, session):
    session.save("G1", "old-socket", "Alice")

    async def scenario():
        await game_client.connect()
        await game_client.sio.fire("rejoinFailed", {"message": "Game not found"})

    asyncio.run(scenario())
    assert session.saved_game() is None
    assert session.load() == {"playerName": "Alice"}
    assert not game_client.rejoining


def test_game_joined_saves_session(game_client, session):
    asyncio.run(game_client.sio.fire("gameJoined", _joined()))
    assert session.saved_game() == {"gameId": "G1", "playerId": "p0", "playerName": "Alice"}
    assert game_client.is_my_turn
    assert game_client.snapshot.id == "GAME1"


def test_commands_need_a_game(game_client):
    async def scenario():
        return await game_client.roll_dice(), await game_client.end_turn(), await game_client.build_house(3)

    assert asyncio.run(scenario()) == (False, False, False)
    assert game_client.sio.sent == []


def test_commands_carry_game_id(game_client):
    async def scenario():
        await game_client.sio.fire("gameJoined", _joined())
        await game_client.build_house(5)
        await game_client.auction_bid(120)
        await game_client.propose_trade("p1", {"money": 50}, {"properties": [3]})
        await game_client.add_bot()

    asyncio.run(scenario())
    assert game_client.sio.sent == [
        ("buildHouse", {"gameId": "G1", "propertyIndex": 5}),
        ("auctionBid", {"gameId": "G1", "amount": 120}),
        ("proposeTrade", {"gameId": "G1", "targetPlayerId": "p1", "offer": {"money": 50},
                          "request": {"properties": [3]}}),
        ("addBot", {"gameId": "G1", "difficulty": "hard"}),
    ]


def test_roll_is_locked_until_roll_and_walk_finish(game_client):
    sio = game_client.sio

    async def scenario():
        await sio.fire("gameJoined", _joined())
        assert await game_client.roll_dice()
        assert not await game_client.roll_dice()
        roll = roll_dict(2, 3)
        await sio.fire("diceRolled", {"result": roll, "game": game_dict([5, 0], roll=roll, canRollAgain=True)})
        assert not game_client.roll_pending
        # Still walking
        assert game_client.roll_locked
        await game_client.reconciler.wait_idle()
        return await game_client.roll_dice()

    assert asyncio.run(scenario()) is True
    assert [event for event, _ in sio.sent] == ["rollDice", "rollDice"]
    assert game_client.my_player.position == 5


def test_repeated_roll_values_still_unlock_rolling(game_client):
    sio = game_client.sio
    double = roll_dict(3, 3)

    async def scenario():
        await sio.fire("gameJoined", _joined())
        assert await game_client.roll_dice()
        await sio.fire("diceRolled", {"result": double, "game": game_dict([6, 0], roll=double, canRollAgain=True)})
        await game_client.reconciler.wait_idle()
        assert await game_client.roll_dice()
        await sio.fire("diceRolled", {"result": double, "game": game_dict([12, 0], roll=double, canRollAgain=True)})
        await game_client.reconciler.wait_idle()
        assert not game_client.roll_pending
        return await game_client.roll_dice()

    assert asyncio.run(scenario()) is True
    assert game_client.reconciler.roll_generation == 2
    # Dice record kept for rendering: one roll version for both pushes
    assert game_client.store.roll_version == 1
    assert game_client.my_player.position == 12


def test_turn_passing_clears_pending_roll(game_client):
    async def scenario():
        await game_client.sio.fire("gameJoined", _joined())
        await game_client.roll_dice()
        await game_client.sio.fire("turnEnded", {"game": game_dict([0, 0], current=1)})

    asyncio.run(scenario())
    assert not game_client.roll_pending
    assert not game_client.is_my_turn


def test_error_event_shows_error_and_unlocks(game_client):
    async def scenario():
        await game_client.sio.fire("gameJoined", _joined())
        await game_client.roll_dice()
        await game_client.sio.fire("error", {"message": "Not your turn"})
        return game_client.notifications.get("error")

    note = asyncio.run(scenario())
    assert note.message == "Not your turn"
    assert not game_client.roll_pending


def test_disconnect_shows_error(game_client):
    async def scenario():
        await game_client.connect()
        await game_client.close()
        return game_client.notifications.get("error")

    note = asyncio.run(scenario())
    assert note.message == "Disconnected from server"
    assert not game_client.connected


def test_game_events_are_forwarded(game_client):
    async def scenario():
        await game_client.sio.fire("gameJoined", _joined())
        await game_client.sio.fire("gameStarted", {"game": game_dict([0, 0])})
        await game_client.sio.fire("propertyBought", {"game": game_dict([0, 0])})
        await game_client.sio.fire("playerJoined", {"game": game_dict([0, 0, 0])})

    asyncio.run(scenario())
    assert list(game_client.sounds.history) == ["turn_start", "buy_property"]
    assert len(game_client.snapshot.players) == 3


def test_leave_game_forgets_everything(game_client, session):
    async def scenario():
        await game_client.sio.fire("gameJoined", _joined())
        return await game_client.leave_game()

    assert asyncio.run(scenario()) is True
    assert game_client.sio.sent[-1] == ("leaveGame", {"gameId": "G1"})
    assert game_client.game_id is None
    assert game_client.snapshot is None
    assert session.saved_game() is None


def test_lobby_commands(game_client):
    async def scenario():
        await game_client.create_game("Friday night", max_players=6)
        await game_client.join_game("G2", token_id="car")
        await game_client.sio.fire("gamesUpdated", [{"id": "G2", "name": "Open"}])

    asyncio.run(scenario())
    assert game_client.sio.sent[0] == ("createGame", {
        "playerName": "Alice", "gameName": "Friday night", "maxPlayers": 6, "isPrivate": False,
        "auctionsEnabled": False, "tokenId": None, "colorId": None,
    })
    assert game_client.sio.sent[1][1]["tokenId"] == "car"
    assert game_client.games == [{"id": "G2", "name": "Open"}]
