"""In-memory key-value tables and a websocket gateway."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

Item = dict[str, Any]
Condition = Callable[[Item | None], bool]


class ConditionFailed(Exception):
    """Raised when a conditional write finds its condition false."""


class TransactionCanceled(Exception):
    """Raised when any condition of a transaction fails; nothing is written."""

    def __init__(self, reasons: list[str | None]):
        super().__init__("Transaction cancelled")
        self.reasons = reasons


class Table:
    """A table of items keyed by a hash key and an optional range key."""

    def __init__(
        self,
        name: str,
        hash_key: str,
        range_key: str | None = None,
        indexes: Mapping[str, str] | None = None,
    ):
        self.name = name
        self.hash_key = hash_key
        self.range_key = range_key
        self.indexes = dict(indexes or {})
        self._items: dict[tuple, Item] = {}

    def __len__(self) -> int:
        return len(self._items)

    @property
    def _key_names(self) -> tuple[str, ...]:
        return (self.hash_key,) if self.range_key is None else (self.hash_key, self.range_key)

    def _key_of_item(self, item: Mapping[str, Any]) -> tuple:
        missing = [name for name in self._key_names if item.get(name) is None]
        if missing:
            raise ValueError(f"item for table {self.name} lacks key attribute {missing[0]}")
        return tuple(item[name] for name in self._key_names)

    def _key_of(self, key: Mapping[str, Any]) -> tuple:
        if set(key) != set(self._key_names):
            raise ValueError(f"key for table {self.name} must hold exactly {self._key_names}")
        return self._key_of_item(key)

    def _check(self, stored: tuple, condition: Condition | None) -> bool:
        if condition is None:
            return True
        return bool(condition(copy.deepcopy(self._items.get(stored))))

    def _updated(self, key: Mapping[str, Any], updates: Mapping[str, Any]) -> tuple[tuple, Item]:
        stored = self._key_of(key)
        if any(name in updates for name in self._key_names):
            raise ValueError("key attributes cannot be updated")
        item = copy.deepcopy(self._items.get(stored, dict(key)))
        item.update(copy.deepcopy(dict(updates)))
        return stored, item

    def put_item(self, item: Mapping[str, Any], condition: Condition | None = None) -> None:
        """Store an item, replacing any with the same key."""
        stored = self._key_of_item(item)
        if not self._check(stored, condition):
            raise ConditionFailed(f"condition failed on table {self.name}")
        self._items[stored] = copy.deepcopy(dict(item))

    def get_item(self, key: Mapping[str, Any]) -> Item | None:
        item = self._items.get(self._key_of(key))
        return copy.deepcopy(item) if item is not None else None

    def delete_item(self, key: Mapping[str, Any]) -> None:
        self._items.pop(self._key_of(key), None)

    def update_item(
        self,
        key: Mapping[str, Any],
        updates: Mapping[str, Any],
        condition: Condition | None = None,
    ) -> Item:
        """Set attributes on an item, creating it if absent; return the new item."""
        stored, item = self._updated(key, updates)
        if not self._check(stored, condition):
            raise ConditionFailed(f"condition failed on table {self.name}")
        self._items[stored] = item
        return copy.deepcopy(item)

    def query(
        self,
        hash_value: Any,
        index: str | None = None,
        predicate: Callable[[Item], bool] | None = None,
    ) -> list[Item]:
        """Items whose hash key (or index key) equals hash_value, filtered by predicate."""
        if index is None:
            attribute = self.hash_key
        elif index in self.indexes:
            attribute = self.indexes[index]
        else:
            raise ValueError(f"table {self.name} has no index {index}")
        matches = [item for item in self._items.values() if item.get(attribute) == hash_value]
        if index is None and self.range_key is not None:
            matches.sort(key=lambda item: item[self.range_key])
        return [
            copy.deepcopy(item)
            for item in matches
            if predicate is None or predicate(copy.deepcopy(item))
        ]


@dataclass
class Put:
    table: Table
    item: Item
    condition: Condition | None = None


@dataclass
class Update:
    table: Table
    key: Item
    updates: Item
    condition: Condition | None = None


def transact_write(items: Iterable[Put | Update]) -> None:
    """Apply all writes, or none of them if any condition fails."""
    planned: list[tuple[Table, tuple, Item]] = []
    reasons: list[str | None] = []
    seen: set[tuple[int, tuple]] = set()
    for write in items:
        table = write.table
        if isinstance(write, Put):
            stored = table._key_of_item(write.item)
            new_item = copy.deepcopy(dict(write.item))
        else:
            stored, new_item = table._updated(write.key, write.updates)
        target = (id(table), stored)
        if target in seen:
            raise ValueError("a transaction cannot write one item twice")
        seen.add(target)
        ok = table._check(stored, write.condition)
        reasons.append(None if ok else "ConditionalCheckFailed")
        planned.append((table, stored, new_item))
    if any(reason is not None for reason in reasons):
        raise TransactionCanceled(reasons)
    for table, stored, new_item in planned:
        table._items[stored] = new_item


@dataclass
class Gateway:
    """Delivers messages to websocket connections and remembers what was sent."""

    gone: set[str] = field(default_factory=set)
    _sent: dict[str, list[str]] = field(default_factory=dict, init=False, repr=False)

    def post_to_connection(self, connection_id: str, data: str | bytes) -> None:
        if connection_id in self.gone:
            raise LookupError(f"connection {connection_id} is gone")
        text = data.decode("utf-8") if isinstance(data, bytes) else data
        self._sent.setdefault(connection_id, []).append(text)

    def sent_to(self, connection_id: str) -> list[str]:
        return list(self._sent.get(connection_id, []))