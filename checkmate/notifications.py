"""Telling matched players about their new game."""

from __future__ import annotations

import logging

from .models import Connection, GameMatchedMessage
from .storage import Gateway, Table

log = logging.getLogger(__name__)

USER_ID_INDEX = "UserIdIndex"


def get_connection_id(connections_table: Table, user_id: str) -> str | None:
    """The websocket connection of a user, looked up through the user-id index."""
    log.info("Looking up connection for user %s using %s", user_id, USER_ID_INDEX)
    items = connections_table.query(user_id, index=USER_ID_INDEX)
    if not items:
        log.info("No connection found for user %s", user_id)
        return None
    connection = Connection.from_item(items[0])
    log.info("Found connection %s for user %s", connection.connection_id, user_id)
    return connection.connection_id


def notify_player(
    gateway: Gateway,
    connections_table: Table,
    user_id: str,
    game_id: str,
    opponent_id: str,
    color: str,
    time_control: str,
) -> bool:
    """Send a game_matched message to a player; return whether it was delivered.

    Failures are logged, never raised.
    """
    log.info("Notifying player %s of new game %s", user_id, game_id)
    try:
        connection_id = get_connection_id(connections_table, user_id)
    except Exception as exc:  # a failed lookup only skips the notification
        log.error("Failed to get connection for user %s: %r", user_id, exc)
        return False
    if connection_id is None:
        log.error("No active connection found for user %s", user_id)
        return False

    message = GameMatchedMessage(
        action="game_matched",
        game_id=game_id,
        opponent_id=opponent_id,
        color=color,
        time_control=time_control,
    )
    try:
        gateway.post_to_connection(connection_id, message.to_json())
    except Exception as exc:  # delivery failures are reported, not raised
        log.error("Failed to send notification to player %s: %r", user_id, exc)
        return False
    log.info("Successfully notified player %s of game %s", user_id, game_id)
    return True