"""Websocket routes: connecting, disconnecting and joining or leaving the queue."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Mapping

from .auth import AuthError, extract_claims
from .connections import get_user_id_by_connection, remove_connection, store_connection
from .matching import WAITING, normalize_rating
from .models import Connection, JoinQueueMessage, LeaveQueueMessage, QueueEntry, ResponseMessage
from .storage import Gateway, Table

log = logging.getLogger(__name__)

DEFAULT_RATING = 1200
DEFAULT_REGION = "eu-west-1"
INTERNAL_ERROR_BODY = '{"message": "Internal server error"}'

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1
_INTEGER = re.compile(r"[+-]?[0-9]+")


@dataclass
class WebSocketState:
    """Tables and gateway the websocket handlers work with."""

    queue_table: Table
    connections_table: Table
    users_table: Table
    gateway: Gateway = field(default_factory=Gateway)
    region: str = DEFAULT_REGION


def _now() -> str:
    return str(int(time.time()))


def _parse_rating(value: Any) -> int:
    if isinstance(value, bool):
        return DEFAULT_RATING
    if isinstance(value, str):
        if not _INTEGER.fullmatch(value):
            return DEFAULT_RATING
        value = int(value)
    if isinstance(value, int) and _I32_MIN <= value <= _I32_MAX:
        return value
    return DEFAULT_RATING


def _user_rating(state: WebSocketState, user_id: str) -> int:
    log.info("Fetching rating for user %s from table %s", user_id, state.users_table.name)
    item = state.users_table.get_item({"user_id": user_id})
    rating = DEFAULT_RATING if item is None else _parse_rating(item.get("rating"))
    log.info("User %s has rating %d", user_id, rating)
    return rating


def _queue_key(time_control: str, rating: int) -> tuple[str, str]:
    bucket = str(normalize_rating(rating))
    return f"{time_control}#{bucket}", bucket


def join_queue(
    state: WebSocketState, user_id: str, message: JoinQueueMessage, now: str | None = None
) -> QueueEntry:
    """Put the user in the bucket of their rating; raise ValueError if already there."""
    log.info(
        "Joining queue for user %s with time_control %s, min_rating %r, max_rating %r",
        user_id,
        message.time_control,
        message.min_rating,
        message.max_rating,
    )
    rating = _user_rating(state, user_id)
    queue_key, bucket = _queue_key(message.time_control, rating)

    if state.queue_table.get_item({"queue_key": queue_key, "user_id": user_id}) is not None:
        log.info("User %s already in queue for key %s", user_id, queue_key)
        raise ValueError("Already in queue")

    entry = QueueEntry(
        queue_key=queue_key,
        user_id=user_id,
        time_control=message.time_control,
        rating=rating,
        joined_at=now if now is not None else _now(),
        status=WAITING,
        rating_bucket=bucket,
        min_rating=message.min_rating,
        max_rating=message.max_rating,
    )
    state.queue_table.put_item(entry.to_item())
    log.info("Successfully joined queue for user %s with queue_key %s", user_id, queue_key)
    return entry


def leave_queue(state: WebSocketState, user_id: str, time_control: str) -> None:
    """Remove the user from the bucket of their current rating."""
    log.info("Leaving queue for user %s with time_control %s", user_id, time_control)
    rating = _user_rating(state, user_id)
    queue_key, _ = _queue_key(time_control, rating)
    state.queue_table.delete_item({"queue_key": queue_key, "user_id": user_id})
    log.info("Successfully removed user %s from queue with key %s", user_id, queue_key)


def _connection_id(request: Mapping[str, Any]) -> str:
    context = request.get("requestContext") or {}
    return context.get("connectionId") or ""


def handle_connect(
    state: WebSocketState, request: Mapping[str, Any], now: str | None = None
) -> Connection:
    """Record the connection of the user named by the Bearer token."""
    connection_id = _connection_id(request)
    headers = request.get("headers") or {}
    for name in headers:
        log.info("Header: %s", name)
    header = headers.get("authorization")
    if header is None:
        header = headers.get("Authorization")

    if header is None:
        log.error("Missing Authorization header for connection %s", connection_id)
        raise AuthError("Missing Authorization header")
    if not header.startswith("Bearer "):
        log.error("Invalid auth header format for connection %s", connection_id)
        raise AuthError("Invalid auth header format")

    claims = extract_claims(header[len("Bearer "):])
    if not claims.sub:
        log.error("Invalid user_id for connection %s", connection_id)
        raise AuthError("Invalid user_id")
    log.info("JWT validated, user_id: %s for connection %s", claims.sub, connection_id)

    connection = Connection(
        connection_id=connection_id,
        user_id=claims.sub,
        connected_at=now if now is not None else _now(),
    )
    store_connection(state.connections_table, connection)
    log.info("User %s connected with connection_id %s", claims.sub, connection_id)
    return connection


def handle_disconnect(state: WebSocketState, connection_id: str) -> None:
    remove_connection(state.connections_table, connection_id)
    log.info("Connection %s disconnected", connection_id)


def _connected_user(state: WebSocketState, connection_id: str) -> str:
    user_id = get_user_id_by_connection(state.connections_table, connection_id)
    if user_id is None:
        raise LookupError("Not connected")
    return user_id


def _send_response(state: WebSocketState, connection_id: str, status: str, message: str) -> None:
    data = ResponseMessage(status=status, message=message).to_json()
    log.info("Sending data to connection %s: %s", connection_id, data)
    state.gateway.post_to_connection(connection_id, data)


def handle_join_queue(state: WebSocketState, connection_id: str, body: str) -> None:
    user_id = _connected_user(state, connection_id)
    message = JoinQueueMessage.from_json(body)
    join_queue(state, user_id, message)
    _send_response(state, connection_id, "success", "Joined queue")


def handle_leave_queue(state: WebSocketState, connection_id: str, body: str) -> None:
    user_id = _connected_user(state, connection_id)
    message = LeaveQueueMessage.from_json(body)
    leave_queue(state, user_id, message.time_control)
    _send_response(state, connection_id, "success", "Left queue")


def handle_default(state: WebSocketState, connection_id: str) -> None:
    _send_response(state, connection_id, "error", "Unknown action")


def _response(status_code: int, body: str | None) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {},
        "multiValueHeaders": {},
        "body": body,
        "isBase64Encoded": False,
    }


def handle_event(state: WebSocketState, event: Mapping[str, Any]) -> dict[str, Any]:
    """Dispatch a websocket event by its route; failures answer with status 500."""
    context = event.get("requestContext") or {}
    connection_id = context.get("connectionId") or ""
    route = context.get("routeKey") or "$default"
    body = event.get("body")
    log.info(
        "Received websocket event: route=%s, connection_id=%s, body=%r",
        route,
        connection_id or "unknown",
        body,
    )

    try:
        if route == "$connect":
            handle_connect(state, event)
        elif route == "$disconnect":
            handle_disconnect(state, connection_id)
        elif route in ("join_queue", "leave_queue"):
            if body is None:
                log.warning("No body provided for %s for connection %s", route, connection_id)
            elif route == "join_queue":
                handle_join_queue(state, connection_id, body)
            else:
                handle_leave_queue(state, connection_id, body)
        else:
            handle_default(state, connection_id)
    except Exception as exc:  # every failure becomes an internal-error answer
        log.error(
            "Handler failed for route %s and connection %s: %r", route, connection_id, exc
        )
        return _response(500, INTERNAL_ERROR_BODY)

    log.info("Handler completed successfully for route %s and connection %s", route, connection_id)
    return _response(200, None)