"""Records shared by the matchmaking services."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1


def _str(data: dict[str, Any], key: str, optional: bool = False) -> str | None:
    value = data.get(key)
    if value is None:
        if optional:
            return None
        raise ValueError(f"missing field `{key}`")
    if not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string")
    return value


def _i32(data: dict[str, Any], key: str, optional: bool = False) -> int | None:
    value = data.get(key)
    if value is None:
        if optional:
            return None
        raise ValueError(f"missing field `{key}`")
    if isinstance(value, bool) or not isinstance(value, int) or not _I32_MIN <= value <= _I32_MAX:
        raise ValueError(f"field `{key}` must be a 32-bit integer")
    return value


def _object(text: str | bytes) -> dict[str, Any]:
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    return data


def _dump(data: dict[str, Any]) -> str:
    return json.dumps(data, separators=(",", ":"))


class GameStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


@dataclass
class Game:
    game_id: str
    white_player_id: str
    black_player_id: str
    time_control: str
    status: GameStatus
    created_at: str

    def to_item(self) -> dict[str, Any]:
        return {
            "game_id": self.game_id,
            "white_player_id": self.white_player_id,
            "black_player_id": self.black_player_id,
            "time_control": self.time_control,
            "status": self.status.value,
            "created_at": self.created_at,
        }

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> Game:
        return cls(
            game_id=_str(item, "game_id"),
            white_player_id=_str(item, "white_player_id"),
            black_player_id=_str(item, "black_player_id"),
            time_control=_str(item, "time_control"),
            status=GameStatus(_str(item, "status")),
            created_at=_str(item, "created_at"),
        )


@dataclass
class User:
    user_id: str
    rating: int

    def to_item(self) -> dict[str, Any]:
        return {"user_id": self.user_id, "rating": self.rating}

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> User:
        return cls(user_id=_str(item, "user_id"), rating=_i32(item, "rating"))


@dataclass
class QueueEntry:
    """A player waiting in a rating bucket of the queue."""

    queue_key: str
    user_id: str
    time_control: str
    rating: int
    joined_at: str
    status: str
    matched_at: str | None = None
    rating_bucket: str | None = None
    min_rating: int | None = None
    max_rating: int | None = None

    def to_item(self) -> dict[str, Any]:
        item: dict[str, Any] = {
            "queue_key": self.queue_key,
            "user_id": self.user_id,
            "time_control": self.time_control,
        }
        if self.rating_bucket is not None:
            item["rating_bucket"] = self.rating_bucket
        item["rating"] = self.rating
        item["joined_at"] = self.joined_at
        item["status"] = self.status
        if self.matched_at is not None:
            item["matched_at"] = self.matched_at
        item["min_rating"] = self.min_rating
        item["max_rating"] = self.max_rating
        return item

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> QueueEntry:
        return cls(
            queue_key=_str(item, "queue_key"),
            user_id=_str(item, "user_id"),
            time_control=_str(item, "time_control"),
            rating=_i32(item, "rating"),
            joined_at=_str(item, "joined_at"),
            status=_str(item, "status"),
            matched_at=_str(item, "matched_at", optional=True),
            rating_bucket=_str(item, "rating_bucket", optional=True),
            min_rating=_i32(item, "min_rating", optional=True),
            max_rating=_i32(item, "max_rating", optional=True),
        )


@dataclass
class GameMatchedMessage:
    action: str
    game_id: str
    opponent_id: str
    color: str
    time_control: str

    def to_json(self) -> str:
        return _dump(
            {
                "action": self.action,
                "game_id": self.game_id,
                "opponent_id": self.opponent_id,
                "color": self.color,
                "time_control": self.time_control,
            }
        )


@dataclass
class Connection:
    """A live websocket connection of a user."""

    connection_id: str
    user_id: str
    connected_at: str | None = None

    def to_item(self) -> dict[str, Any]:
        item: dict[str, Any] = {"connection_id": self.connection_id, "user_id": self.user_id}
        if self.connected_at is not None:
            item["connected_at"] = self.connected_at
        return item

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> Connection:
        return cls(
            connection_id=_str(item, "connection_id"),
            user_id=_str(item, "user_id"),
            connected_at=_str(item, "connected_at", optional=True),
        )


@dataclass
class JoinQueueMessage:
    action: str
    time_control: str
    min_rating: int | None = None
    max_rating: int | None = None

    @classmethod
    def from_json(cls, text: str | bytes) -> JoinQueueMessage:
        data = _object(text)
        return cls(
            action=_str(data, "action"),
            time_control=_str(data, "time_control"),
            min_rating=_i32(data, "min_rating", optional=True),
            max_rating=_i32(data, "max_rating", optional=True),
        )


@dataclass
class LeaveQueueMessage:
    action: str
    time_control: str

    @classmethod
    def from_json(cls, text: str | bytes) -> LeaveQueueMessage:
        data = _object(text)
        return cls(action=_str(data, "action"), time_control=_str(data, "time_control"))


@dataclass
class ResponseMessage:
    status: str
    message: str

    def to_json(self) -> str:
        return _dump({"status": self.status, "message": self.message})