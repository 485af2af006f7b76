import pytest

from checkmate.storage import (
    ConditionFailed,
    Gateway,
    Put,
    Table,
    TransactionCanceled,
    Update,
    transact_write,
)


@pytest.fixture
def queue():
    return Table("queue", "queue_key", "user_id", {"UserIdIndex": "user_id"})


def _entry(key, user, status="waiting"):
    return {"queue_key": key, "user_id": user, "status": status}


def test_put_and_get_round_trip(queue):
    queue.put_item(_entry("k", "a"))
    assert queue.get_item({"queue_key": "k", "user_id": "a"}) == _entry("k", "a")
    assert queue.get_item({"queue_key": "k", "user_id": "b"}) is None


def test_returned_items_are_copies(queue):
    queue.put_item(_entry("k", "a"))
    got = queue.get_item({"queue_key": "k", "user_id": "a"})
    got["status"] = "changed"
    assert queue.get_item({"queue_key": "k", "user_id": "a"})["status"] == "waiting"


def test_conditional_put_failure_leaves_item(queue):
    queue.put_item(_entry("k", "a"))
    with pytest.raises(ConditionFailed):
        queue.put_item(_entry("k", "a", "matched"), condition=lambda old: old is None)
    assert queue.get_item({"queue_key": "k", "user_id": "a"})["status"] == "waiting"


def test_delete_item(queue):
    queue.put_item(_entry("k", "a"))
    queue.delete_item({"queue_key": "k", "user_id": "a"})
    assert len(queue) == 0


def test_key_must_be_complete(queue):
    with pytest.raises(ValueError):
        queue.get_item({"queue_key": "k"})
    with pytest.raises(ValueError):
        queue.put_item({"queue_key": "k"})


def test_update_item_with_condition(queue):
    queue.put_item(_entry("k", "a"))
    key = {"queue_key": "k", "user_id": "a"}
    waiting = lambda old: old is not None and old["status"] == "waiting"
    updated = queue.update_item(key, {"status": "matched", "matched_at": "1"}, waiting)
    assert updated["status"] == "matched"
    with pytest.raises(ConditionFailed):
        queue.update_item(key, {"status": "matched"}, waiting)


def test_update_cannot_change_key(queue):
    with pytest.raises(ValueError):
        queue.update_item({"queue_key": "k", "user_id": "a"}, {"user_id": "b"})


def test_query_sorted_and_filtered(queue):
    queue.put_item(_entry("k", "c"))
    queue.put_item(_entry("k", "a", "matched"))
    queue.put_item(_entry("k", "b"))
    queue.put_item(_entry("other", "d"))
    assert [i["user_id"] for i in queue.query("k")] == ["a", "b", "c"]
    waiting = queue.query("k", predicate=lambda i: i["status"] == "waiting")
    assert [i["user_id"] for i in waiting] == ["b", "c"]


def test_query_on_index(queue):
    queue.put_item(_entry("k1", "a"))
    queue.put_item(_entry("k2", "a"))
    queue.put_item(_entry("k2", "b"))
    assert {i["queue_key"] for i in queue.query("a", index="UserIdIndex")} == {"k1", "k2"}


def test_query_unknown_index(queue):
    with pytest.raises(ValueError):
        queue.query("a", index="Missing")


def test_transaction_applies_all(queue):
    games = Table("games", "game_id")
    queue.put_item(_entry("k", "a"))
    transact_write([
        Update(queue, {"queue_key": "k", "user_id": "a"}, {"status": "matched"}),
        Put(games, {"game_id": "g"}, lambda old: old is None),
    ])
    assert queue.get_item({"queue_key": "k", "user_id": "a"})["status"] == "matched"
    assert games.get_item({"game_id": "g"}) == {"game_id": "g"}


def test_transaction_failure_writes_nothing(queue):
    games = Table("games", "game_id")
    queue.put_item(_entry("k", "a", "matched"))
    waiting = lambda old: old is not None and old["status"] == "waiting"
    with pytest.raises(TransactionCanceled) as info:
        transact_write([
            Put(games, {"game_id": "g"}),
            Update(queue, {"queue_key": "k", "user_id": "a"}, {"status": "x"}, waiting),
        ])
    assert info.value.reasons[0] is None
    assert info.value.reasons[1] is not None
    assert len(games) == 0
    assert queue.get_item({"queue_key": "k", "user_id": "a"})["status"] == "matched"


def test_gateway_records_messages():
    gateway = Gateway()
    gateway.post_to_connection("c1", "hello")
    gateway.post_to_connection("c1", b"bytes")
    assert gateway.sent_to("c1") == ["hello", "bytes"]
    assert gateway.sent_to("c2") == []


def test_gateway_gone_connection():
    gateway = Gateway(gone={"c1"})
    with pytest.raises(LookupError):
        gateway.post_to_connection("c1", "hello")
    assert gateway.sent_to("c1") == []