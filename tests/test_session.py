from client.session import SessionFile


def test_missing_file_is_no_session(tmp_path):
    session = SessionFile(str(tmp_path / "none.json"))
    assert session.load() == {}
    assert session.saved_game() is None


def test_save_and_load(session):
    session.save("G1", "p0", "Alice")
    assert session.saved_game() == {"gameId": "G1", "playerId": "p0", "playerName": "Alice"}


def test_corrupt_file_is_no_session(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")
    assert SessionFile(str(path)).load() == {}


def test_clear_without_name_removes_file(tmp_path):
    path = tmp_path / "session.json"
    path.write_text('{"gameId": "G1", "playerId": "p0"}', encoding="utf-8")
    SessionFile(str(path)).clear()
    assert not path.exists()


def test_unknown_keys_are_ignored(tmp_path):
    path = tmp_path / "session.json"
    path.write_text('{"gameId": "G1", "playerId": "p0", "token": "car"}', encoding="utf-8")
    assert SessionFile(str(path)).load() == {"gameId": "G1", "playerId": "p0"}
