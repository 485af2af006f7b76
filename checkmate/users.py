"""User profile handlers and the profile-creation hook."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Mapping

from .auth import Claims
from .models import User
from .storage import Table

log = logging.getLogger(__name__)

DEFAULT_RATING = 1200


class HttpError(Exception):
    """An error answer with a status and a JSON body."""

    def __init__(self, status: int, error: str):
        super().__init__(error)
        self.status = status
        self.body = {"error": error}


class UserDirectory:
    """Accounts of the identity provider, grouped by user pool."""

    def __init__(self) -> None:
        self._pools: dict[str, set[str]] = {}

    def add_user(self, user_pool_id: str, username: str) -> None:
        self._pools.setdefault(user_pool_id, set()).add(username)

    def admin_delete_user(self, user_pool_id: str, username: str) -> None:
        """Remove an account; raise LookupError if it does not exist."""
        users = self._pools.get(user_pool_id)
        if users is None:
            raise LookupError(f"User pool {user_pool_id} does not exist")
        if username not in users:
            raise LookupError(f"User {username} does not exist")
        users.remove(username)


@dataclass
class ApiState:
    users_table: Table
    directory: UserDirectory
    user_pool_id: str


def get_me(state: ApiState, claims: Claims) -> User:
    """The profile of the signed-in user."""
    try:
        item = state.users_table.get_item({"user_id": claims.sub})
    except Exception as exc:  # storage failures become server errors
        raise HttpError(HTTPStatus.INTERNAL_SERVER_ERROR, f"Failed to get item: {exc!r}") from exc
    if item is None:
        raise HttpError(HTTPStatus.NOT_FOUND, "User not found")
    try:
        return User.from_item(item)
    except ValueError as exc:
        raise HttpError(
            HTTPStatus.INTERNAL_SERVER_ERROR, f"Deserialization error: {exc!r}"
        ) from exc


def delete_me(state: ApiState, claims: Claims) -> HTTPStatus:
    """Delete the profile, then the account, trying each name the user may have."""
    try:
        state.users_table.delete_item({"user_id": claims.sub})
    except Exception as exc:  # storage failures become server errors
        raise HttpError(
            HTTPStatus.INTERNAL_SERVER_ERROR, f"Failed to delete user from DynamoDB: {exc!r}"
        ) from exc

    usernames = [
        name for name in (claims.cognito_username, claims.sub, claims.email) if name is not None
    ]
    last_error: Exception | None = None
    for username in usernames:
        try:
            state.directory.admin_delete_user(state.user_pool_id, username)
        except Exception as exc:  # try the next name
            last_error = exc
            continue
        return HTTPStatus.NO_CONTENT

    raise HttpError(
        HTTPStatus.INTERNAL_SERVER_ERROR, f"Failed to delete user from Cognito: {last_error!r}"
    )


def handle_post_confirmation(table: Table, event: Mapping[str, Any]) -> dict[str, Any]:
    """Create the profile of a newly confirmed user and hand the event back."""
    request = event.get("request") or {}
    attributes = request.get("userAttributes") or {}
    user_id = attributes.get("sub")
    if user_id is None:
        raise ValueError("Missing sub in user attributes")
    table.put_item(User(user_id=user_id, rating=DEFAULT_RATING).to_item())
    log.info(
        "Successfully created user profile for %s", event.get("userName") or "unknown"
    )
    return copy.deepcopy(dict(event))