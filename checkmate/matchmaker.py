"""Matching players as they join the queue."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Mapping

from .game import AlreadyMatched, attempt_match
from .matching import WAITING, find_match_for_player
from .models import Game, QueueEntry
from .notifications import notify_player
from .storage import Gateway, Table

log = logging.getLogger(__name__)


@dataclass
class MatchmakerState:
    """Tables and gateway the matchmaker works with."""

    queue_table: Table
    games_table: Table
    connections_table: Table
    gateway: Gateway
    rng: random.Random = field(default_factory=random.Random)


def _new_image(record: Mapping[str, Any]) -> dict[str, Any]:
    change = record.get("dynamodb") or {}
    return dict(change.get("NewImage") or {})


def _still_waiting(state: MatchmakerState, player: QueueEntry) -> bool:
    item = state.queue_table.get_item({"queue_key": player.queue_key, "user_id": player.user_id})
    return item is not None and item.get("status") == WAITING


def process_record(state: MatchmakerState, record: Mapping[str, Any]) -> Game | None:
    """Try to match the player a stream record inserted; return the new game, if any.

    Records other than inserts, and players no longer waiting, are skipped.
    Raises ValueError when an insert carries no new image.
    """
    event_name = record.get("eventName", "")
    if event_name != "INSERT":
        log.info("Skipping non-INSERT event: %s", event_name)
        return None

    image = _new_image(record)
    if not image:
        raise ValueError("No new_image in stream record")
    player = QueueEntry.from_item(image)

    if player.status != WAITING:
        log.info(
            "Player %s is not waiting (status: %s), skipping", player.user_id, player.status
        )
        return None

    log.info(
        "Processing new player in queue: %s (rating: %d, time_control: %s)",
        player.user_id,
        player.rating,
        player.time_control,
    )

    while True:
        opponent = find_match_for_player(state.queue_table, player, state.rng)
        if opponent is None:
            log.info(
                "No match found for player %s within rating range, they will remain in queue",
                player.user_id,
            )
            return None

        log.info("Found potential opponent: %s (rating: %d)", opponent.user_id, opponent.rating)
        try:
            game = attempt_match(
                state.queue_table, state.games_table, player, opponent, state.rng
            )
        except AlreadyMatched as exc:
            log.warning(
                "Failed to match with %s (they may have been matched already): %r",
                opponent.user_id,
                exc,
            )
            if not _still_waiting(state, player):
                log.info("Player %s is no longer waiting", player.user_id)
                return None
            log.info("Retrying matchmaking for player %s", player.user_id)
            continue

        if game.white_player_id == player.user_id:
            player_color, opponent_color = "white", "black"
        else:
            player_color, opponent_color = "black", "white"

        notify_player(
            state.gateway,
            state.connections_table,
            player.user_id,
            game.game_id,
            opponent.user_id,
            player_color,
            game.time_control,
        )
        notify_player(
            state.gateway,
            state.connections_table,
            opponent.user_id,
            game.game_id,
            player.user_id,
            opponent_color,
            game.time_control,
        )
        log.info("Match complete, both players notified")
        return game


def handle_stream_event(state: MatchmakerState, event: Mapping[str, Any]) -> list[Game]:
    """Process every record of a stream event; a failing record does not stop the rest."""
    records = event.get("Records") or []
    log.info("Received stream event with %d records", len(records))
    games = []
    for record in records:
        try:
            game = process_record(state, record)
        except Exception as exc:  # one bad record must not stop the others
            log.error("Failed to process record: %r", exc)
            continue
        if game is not None:
            games.append(game)
    return games