"""Routing of the HTTP service."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from http import HTTPStatus
from typing import Any, Callable

from .auth import Claims
from .health import health_check
from .users import ApiState, HttpError, delete_me, get_me

_CORS_HEADERS = {"access-control-allow-origin": "*"}
_PREFLIGHT_HEADERS = {
    "access-control-allow-origin": "*",
    "access-control-allow-methods": "*",
    "access-control-allow-headers": "*",
}


@dataclass
class Response:
    status: int
    body: Any = None
    headers: dict[str, str] = field(default_factory=lambda: dict(_CORS_HEADERS))

    @property
    def text(self) -> str:
        """The body as JSON text, empty when there is none."""
        if self.body is None:
            return ""
        return json.dumps(self.body, separators=(",", ":"))


Handler = Callable[[Claims | None], Response]


class App:
    """Dispatches requests to the health and user handlers."""

    def __init__(self, state: ApiState):
        self.state = state
        self._routes: dict[str, dict[str, Handler]] = {
            "/health": {"GET": self._health},
            "/users/me": {"GET": self._get_me, "DELETE": self._delete_me},
        }

    def handle(self, method: str, path: str, claims: Claims | None = None) -> Response:
        method = method.upper()
        if method == "OPTIONS":
            return Response(HTTPStatus.OK, headers=dict(_PREFLIGHT_HEADERS))
        methods = self._routes.get(path)
        if methods is None:
            return Response(HTTPStatus.NOT_FOUND)
        handler = methods.get(method)
        if handler is None:
            return Response(HTTPStatus.METHOD_NOT_ALLOWED)
        try:
            return handler(claims)
        except HttpError as exc:
            return Response(exc.status, exc.body)

    def _health(self, claims: Claims | None) -> Response:
        return Response(HTTPStatus.OK, asdict(health_check()))

    @staticmethod
    def _require(claims: Claims | None) -> Claims:
        if claims is None:
            raise HttpError(HTTPStatus.UNAUTHORIZED, "Unauthorized")
        return claims

    def _get_me(self, claims: Claims | None) -> Response:
        user = get_me(self.state, self._require(claims))
        return Response(HTTPStatus.OK, user.to_item())

    def _delete_me(self, claims: Claims | None) -> Response:
        return Response(delete_me(self.state, self._require(claims)))


def create_app(state: ApiState) -> App:
    return App(state)