# checkmate

The request handling of an online chess site, as a plain Python library with
no third-party dependencies. It covers:

- **Matchmaking** – players wait in rating buckets of 50 points per time
  control (`normalize_rating` truncates a rating to a multiple of 50 towards
  zero). A newcomer is first matched inside their own bucket; otherwise the
  search widens step by step (±50, ±100, … ±500), starting in a random
  direction and trying both directions of each step in random order, and a
  random waiting opponent is picked from the first bucket that has one. A
  match marks both queue entries as `matched` and creates the game record in
  one all-or-nothing write, so two concurrent searches cannot claim the same
  opponent; on such a clash the search is retried while the newcomer is still
  waiting.
- **Game records** – each game gets a 32-hex-digit id derived from the two
  player ids (in sorted order) and the match time, and a random colour
  assignment. Both players are then sent a `game_matched` message on their
  websocket connection, found through the connections table's `UserIdIndex`.
- **Websocket routes** – `$connect` (reads the user from a `Bearer`
  Authorization header), `$disconnect`, `join_queue`, `leave_queue` and a
  default route that answers "Unknown action". `handle_event` dispatches an
  event by its route key and answers status 200, or 500 with
  `{"message": "Internal server error"}` when the handler fails. A user's
  rating is read from the users table, defaulting to 1200.
- **Authoriser** – `authorize` turns a `Bearer` token accepted by a `verify`
  callable into an allow policy scoped to the whole stage (`…/stage/*`), and
  anything else into a deny policy.
- **HTTP routing** – `App.handle` serves `GET /health`, `GET /users/me` and
  `DELETE /users/me`, answers `OPTIONS` preflights, and gives 404, 405 or 401
  (no claims on a user route) where appropriate.
- **User profiles** – `handle_post_confirmation` creates a profile with a
  rating of 1200 for a newly confirmed user; `delete_me` removes the profile
  and then the account, trying the username, the subject and the e-mail in
  turn.

Storage is modelled by `checkmate.storage.Table`, an in-memory table with a
hash key, an optional range key, secondary indexes, conditional writes
(`ConditionFailed`) and all-or-nothing transactions (`transact_write`,
`TransactionCanceled`), and by `checkmate.storage.Gateway`, which delivers
messages to connections and records what was sent to each
(`Gateway.sent_to`). Accounts are held by `checkmate.users.UserDirectory`.

## Modules

| Module | What it holds |
| --- | --- |
| `checkmate.auth` | `Claims`, `extract_claims`, `AuthError` |
| `checkmate.models` | `Game`, `GameStatus`, `User`, `QueueEntry`, `Connection`, `GameMatchedMessage`, `JoinQueueMessage`, `LeaveQueueMessage`, `ResponseMessage` |
| `checkmate.storage` | `Table`, `Put`, `Update`, `transact_write`, `Gateway`, `ConditionFailed`, `TransactionCanceled` |
| `checkmate.matching` | `normalize_rating`, `query_bucket`, `find_match_for_player` |
| `checkmate.game` | `create_deterministic_game_id`, `attempt_match`, `AlreadyMatched` |
| `checkmate.notifications` | `get_connection_id`, `notify_player` |
| `checkmate.matchmaker` | `MatchmakerState`, `process_record`, `handle_stream_event` |
| `checkmate.websocket` | `WebSocketState`, `join_queue`, `leave_queue`, the route handlers and `handle_event` |
| `checkmate.connections` | `store_connection`, `get_user_id_by_connection`, `remove_connection` |
| `checkmate.authorizer` | `AuthPolicy`, `PolicyDocument`, `IamPolicyStatement`, `AuthorizerEvent`, `bearer_token`, `authorize` |
| `checkmate.health` | `HealthResponse`, `health_check` |
| `checkmate.users` | `ApiState`, `UserDirectory`, `HttpError`, `get_me`, `delete_me`, `handle_post_confirmation` |
| `checkmate.api` | `App`, `Response`, `create_app` |

## A few examples

```python
from checkmate.authorizer import AuthPolicy
from checkmate.health import health_check
from checkmate.matching import normalize_rating

normalize_rating(1234)          # 1200

health = health_check()
health.status, health.service   # ("healthy", "checkmate")

policy = AuthPolicy.allow("user-1", "abc123/prod/$connect")
policy.to_dict()["policyDocument"]["Statement"][0]["Resource"]
# ["abc123/prod/*"]
```

Matching a player who has just joined the queue:

```python
from checkmate.matchmaker import MatchmakerState, process_record
from checkmate.storage import Gateway, Table

state = MatchmakerState(
    queue_table=Table("queue", "queue_key", "user_id"),
    games_table=Table("games", "game_id"),
    connections_table=Table("connections", "connection_id",
                            indexes={"UserIdIndex": "user_id"}),
    gateway=Gateway(),
)
# process_record(state, {"eventName": "INSERT", "dynamodb": {"NewImage": {...}}})
# returns the new Game, or None when nobody suitable is waiting.
```

## What it does not do

- It talks to no real database, websocket gateway or identity provider: all
  state lives in `Table`, `Gateway` and `UserDirectory` objects in memory.
- It runs no server and has no command; callers hand events and requests to
  `handle_event`, `handle_stream_event`, `authorize` and `App.handle`.
- It does not check token signatures. `extract_claims` reads the payload of a
  JWT as it stands and raises `AuthError` only when the token is not three
  dot-separated parts or its payload is not valid claims JSON; `authorize`
  leaves verification to the `verify` callable it is given.

## Tests

The test suite uses pytest and is installed with the `test` extra.