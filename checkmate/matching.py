"""Finding an opponent in the rating buckets of the queue."""

from __future__ import annotations

import logging
import random

from .models import QueueEntry
from .storage import Table

log = logging.getLogger(__name__)

RANGE_STEP = 50
MAX_RANGE = 500
WAITING = "waiting"


def normalize_rating(rating: int) -> int:
    """The bucket of a rating: the rating truncated to a multiple of 50 towards zero."""
    quotient = abs(rating) // RANGE_STEP
    if rating < 0:
        quotient = -quotient
    return quotient * RANGE_STEP


def _queue_key(time_control: str, bucket: int) -> str:
    return f"{time_control}#{bucket}"


def query_bucket(queue_table: Table, queue_key: str, exclude_user_id: str) -> list[QueueEntry]:
    """Waiting players in one bucket, other than exclude_user_id."""
    items = queue_table.query(queue_key, predicate=lambda item: item.get("status") == WAITING)
    candidates = []
    for item in items:
        try:
            entry = QueueEntry.from_item(item)
        except ValueError as exc:
            log.warning("Failed to parse queue entry: %r", exc)
            continue
        if entry.user_id != exclude_user_id:
            candidates.append(entry)
    return candidates


def _pick(
    queue_table: Table, queue_key: str, player: QueueEntry, rng: random.Random
) -> QueueEntry | None:
    candidates = query_bucket(queue_table, queue_key, player.user_id)
    if not candidates:
        log.info("No candidates in bucket %s", queue_key)
        return None
    log.info("Found %d candidates in bucket %s", len(candidates), queue_key)
    opponent = rng.choice(candidates)
    log.info("Selected opponent: %s (rating: %d)", opponent.user_id, opponent.rating)
    return opponent


def find_match_for_player(
    queue_table: Table, player: QueueEntry, rng: random.Random | None = None
) -> QueueEntry | None:
    """Find a waiting opponent, searching outwards from the player's own bucket.

    The own bucket is tried first; then ranges of 50, 100, ... 500 points, each
    in both directions in random order. Returns None when nobody is found.
    """
    rng = rng or random.Random()
    log.info(
        "Finding match for player %s (rating: %d, time_control: %s)",
        player.user_id,
        player.rating,
        player.time_control,
    )
    own_bucket = normalize_rating(player.rating)
    opponent = _pick(queue_table, _queue_key(player.time_control, own_bucket), player, rng)
    if opponent is not None:
        return opponent

    direction = 1 if rng.random() < 0.5 else -1
    log.info("Search direction: %s", "upward" if direction == 1 else "downward")

    for spread in range(RANGE_STEP, MAX_RANGE + 1, RANGE_STEP):
        offsets = [spread * direction, -spread * direction]
        rng.shuffle(offsets)
        for offset in offsets:
            bucket = normalize_rating(player.rating + offset)
            opponent = _pick(queue_table, _queue_key(player.time_control, bucket), player, rng)
            if opponent is not None:
                return opponent

    log.info("No match found for player %s within ±%d points", player.user_id, MAX_RANGE)
    return None