import json

import pytest

from checkmate.models import Connection
from checkmate.notifications import get_connection_id, notify_player
from checkmate.storage import Gateway, Table


@pytest.fixture
def connections():
    table = Table("connections", "connection_id", indexes={"UserIdIndex": "user_id"})
    table.put_item(Connection("conn-a", "alice", "1700000000").to_item())
    table.put_item(Connection("conn-b", "bob", "1700000000").to_item())
    return table


def test_get_connection_id_found(connections):
    assert get_connection_id(connections, "alice") == "conn-a"
    assert get_connection_id(connections, "bob") == "conn-b"


def test_get_connection_id_missing(connections):
    assert get_connection_id(connections, "carol") is None


def test_notify_player_sends_game_matched(connections):
    gateway = Gateway()
    delivered = notify_player(gateway, connections, "alice", "g1", "bob", "white", "5+0")
    assert delivered is True
    sent = gateway.sent_to("conn-a")
    assert len(sent) == 1
    assert json.loads(sent[0]) == {
        "action": "game_matched",
        "game_id": "g1",
        "opponent_id": "bob",
        "color": "white",
        "time_control": "5+0",
    }
    assert gateway.sent_to("conn-b") == []


def test_notify_player_without_connection_sends_nothing(connections):
    gateway = Gateway()
    assert notify_player(gateway, connections, "carol", "g1", "bob", "black", "5+0") is False
    assert gateway.sent_to("conn-a") == []
    assert gateway.sent_to("conn-b") == []


def test_notify_player_with_gone_connection_reports_failure(connections):
    gateway = Gateway(gone={"conn-b"})
    assert notify_player(gateway, connections, "bob", "g1", "alice", "black", "5+0") is False
    assert gateway.sent_to("conn-b") == []


def test_notify_player_survives_broken_connection_record():
    table = Table("connections", "connection_id", indexes={"UserIdIndex": "user_id"})
    table.put_item({"connection_id": "conn-x", "user_id": 7})
    table.put_item({"connection_id": "conn-y", "user_id": "dave", "connected_at": 5})
    gateway = Gateway()
    assert notify_player(gateway, table, "dave", "g1", "alice", "white", "5+0") is False
    assert gateway.sent_to("conn-y") == []