"""Storage of websocket connections."""

from __future__ import annotations

import logging

from .models import Connection
from .storage import Table

log = logging.getLogger(__name__)


def store_connection(table: Table, connection: Connection) -> None:
    log.info(
        "Storing connection for user %s with connection_id %s",
        connection.user_id,
        connection.connection_id,
    )
    table.put_item(connection.to_item())


def get_user_id_by_connection(table: Table, connection_id: str) -> str | None:
    """The user behind a connection, or None when the connection is unknown."""
    log.info("Looking up user_id for connection_id %s", connection_id)
    item = table.get_item({"connection_id": connection_id})
    if item is None:
        log.info("No user found for connection_id %s", connection_id)
        return None
    connection = Connection.from_item(item)
    log.info("Found user_id %s for connection_id %s", connection.user_id, connection_id)
    return connection.user_id


def remove_connection(table: Table, connection_id: str) -> None:
    log.info("Removing connection for connection_id %s", connection_id)
    table.delete_item({"connection_id": connection_id})