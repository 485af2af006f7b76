import string

import pytest

from checkmate.game import AlreadyMatched, attempt_match, create_deterministic_game_id
from checkmate.models import Game, GameStatus, QueueEntry
from checkmate.storage import Table


class _FixedRng:
    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


def _entry(user_id, status="waiting", time_control="5+0"):
    return QueueEntry(
        queue_key=f"{time_control}#1200",
        user_id=user_id,
        time_control=time_control,
        rating=1210,
        joined_at="1700000000",
        status=status,
    )


@pytest.fixture
def tables():
    queue = Table("queue", "queue_key", "user_id")
    games = Table("games", "game_id")
    return queue, games


def _key(entry):
    return {"queue_key": entry.queue_key, "user_id": entry.user_id}


def test_game_id_is_32_hex_chars():
    game_id = create_deterministic_game_id("alice", "bob", "1700000000")
    assert len(game_id) == 32
    assert set(game_id) <= set(string.hexdigits.lower())


def test_game_id_ignores_player_order():
    assert create_deterministic_game_id("alice", "bob", "1700000000") == create_deterministic_game_id(
        "bob", "alice", "1700000000"
    )


def test_game_id_depends_on_timestamp_and_players():
    base = create_deterministic_game_id("alice", "bob", "1700000000")
    assert create_deterministic_game_id("alice", "bob", "1700000001") != base
    assert create_deterministic_game_id("alice", "carol", "1700000000") != base


def test_attempt_match_marks_players_and_stores_game(tables):
    queue, games = tables
    p1, p2 = _entry("alice"), _entry("bob")
    queue.put_item(p1.to_item())
    queue.put_item(p2.to_item())

    game = attempt_match(queue, games, p1, p2, _FixedRng(0.1), now="1700000000")

    assert game.game_id == create_deterministic_game_id("alice", "bob", "1700000000")
    assert game.status is GameStatus.ACTIVE
    assert game.time_control == "5+0"
    assert game.created_at == "1700000000"
    assert {game.white_player_id, game.black_player_id} == {"alice", "bob"}
    for player in (p1, p2):
        stored = queue.get_item(_key(player))
        assert stored["status"] == "matched"
        assert stored["matched_at"] == "1700000000"
    assert Game.from_item(games.get_item({"game_id": game.game_id})) == game


def test_colours_follow_the_coin(tables):
    queue, games = tables
    p1, p2 = _entry("alice"), _entry("bob")
    queue.put_item(p1.to_item())
    queue.put_item(p2.to_item())
    game = attempt_match(queue, games, p1, p2, _FixedRng(0.1), now="1")
    assert (game.white_player_id, game.black_player_id) == ("alice", "bob")

    p3, p4 = _entry("carol"), _entry("dave")
    queue.put_item(p3.to_item())
    queue.put_item(p4.to_item())
    game = attempt_match(queue, games, p3, p4, _FixedRng(0.9), now="1")
    assert (game.white_player_id, game.black_player_id) == ("dave", "carol")


def test_already_matched_opponent_cancels_everything(tables):
    queue, games = tables
    p1, p2 = _entry("alice"), _entry("bob", status="matched")
    queue.put_item(p1.to_item())
    queue.put_item(p2.to_item())

    with pytest.raises(AlreadyMatched):
        attempt_match(queue, games, p1, p2, _FixedRng(0.1), now="1700000000")

    assert queue.get_item(_key(p1))["status"] == "waiting"
    assert "matched_at" not in queue.get_item(_key(p1))
    assert len(games) == 0


def test_missing_player_cannot_be_matched(tables):
    queue, games = tables
    p1, p2 = _entry("alice"), _entry("bob")
    queue.put_item(p1.to_item())

    with pytest.raises(AlreadyMatched):
        attempt_match(queue, games, p1, p2, _FixedRng(0.1), now="1700000000")
    assert queue.get_item(_key(p2)) is None
    assert len(games) == 0


def test_second_match_of_same_players_fails(tables):
    queue, games = tables
    p1, p2 = _entry("alice"), _entry("bob")
    queue.put_item(p1.to_item())
    queue.put_item(p2.to_item())
    attempt_match(queue, games, p1, p2, _FixedRng(0.1), now="1700000000")

    with pytest.raises(AlreadyMatched):
        attempt_match(queue, games, p1, p2, _FixedRng(0.1), now="1700000000")
    assert len(games) == 1