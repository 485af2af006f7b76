"""Pairing two queued players into a game atomically."""

from __future__ import annotations

import hashlib
import logging
import random
import time

from .models import Game, GameStatus, QueueEntry
from .storage import Put, Table, TransactionCanceled, Update, transact_write

log = logging.getLogger(__name__)


class AlreadyMatched(Exception):
    """Raised when one of the players was matched by someone else first."""


def create_deterministic_game_id(player1_id: str, player2_id: str, timestamp: str) -> str:
    """A game id fixed by the pair of players and the time, whatever their order."""
    first, second = sorted((player1_id, player2_id))
    digest = hashlib.sha256(f"{first}#{second}#{timestamp}".encode("utf-8")).digest()
    return digest[:16].hex()


def _still_waiting(item: dict | None) -> bool:
    return item is not None and item.get("status") == "waiting" and "matched_at" not in item


def _mark_matched(queue_table: Table, player: QueueEntry, matched_at: str) -> Update:
    return Update(
        table=queue_table,
        key={"queue_key": player.queue_key, "user_id": player.user_id},
        updates={"status": "matched", "matched_at": matched_at},
        condition=_still_waiting,
    )


def attempt_match(
    queue_table: Table,
    games_table: Table,
    player1: QueueEntry,
    player2: QueueEntry,
    rng: random.Random | None = None,
    now: str | None = None,
) -> Game:
    """Mark both players matched and create their game in one transaction.

    Colours are assigned at random. Raises AlreadyMatched when either player
    is no longer waiting; nothing is written in that case.
    """
    rng = rng or random.Random()
    if now is None:
        now = str(int(time.time()))
    game_id = create_deterministic_game_id(player1.user_id, player2.user_id, now)
    log.info(
        "Attempting to match %s and %s (game_id: %s)", player1.user_id, player2.user_id, game_id
    )

    if rng.random() < 0.5:
        white, black = player1.user_id, player2.user_id
    else:
        white, black = player2.user_id, player1.user_id

    game = Game(
        game_id=game_id,
        white_player_id=white,
        black_player_id=black,
        time_control=player1.time_control,
        status=GameStatus.ACTIVE,
        created_at=now,
    )

    try:
        transact_write(
            [
                _mark_matched(queue_table, player1, now),
                _mark_matched(queue_table, player2, now),
                Put(table=games_table, item=game.to_item(), condition=lambda item: item is None),
            ]
        )
    except TransactionCanceled as exc:
        log.warning(
            "Transaction cancelled - player already matched: %s or %s",
            player1.user_id,
            player2.user_id,
        )
        raise AlreadyMatched("Player already matched") from exc

    log.info(
        "Successfully matched %s and %s in game %s", player1.user_id, player2.user_id, game_id
    )
    return game