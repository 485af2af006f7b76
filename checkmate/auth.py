"""Reading the claims carried by identity tokens."""

from __future__ import annotations

import base64
import binascii
import json
import re
from dataclasses import dataclass
from typing import Any

_BASE64URL = re.compile(r"[A-Za-z0-9_-]*")
_U64_LIMIT = 2**64


class AuthError(ValueError):
    """Raised when a token or its claims cannot be read."""


@dataclass(frozen=True)
class Claims:
    """Claims of an identity token."""

    sub: str
    exp: int
    iat: int
    email: str | None = None
    cognito_username: str | None = None
    token_use: str | None = None
    email_verified: bool | None = None
    iss: str | None = None
    aud: str | None = None
    event_id: str | None = None
    jti: str | None = None
    auth_time: int | None = None


def _decode_segment(segment: str) -> bytes:
    if not _BASE64URL.fullmatch(segment) or len(segment) % 4 == 1:
        raise AuthError("Invalid JWT payload")
    try:
        raw = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except (binascii.Error, ValueError) as exc:
        raise AuthError("Invalid JWT payload") from exc
    # Reject encodings with stray trailing bits.
    if base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii") != segment:
        raise AuthError("Invalid JWT payload")
    return raw


def _string(data: dict[str, Any], key: str, optional: bool = True) -> str | None:
    value = data.get(key)
    if value is None:
        if optional:
            return None
        raise AuthError("Invalid claims JSON")
    if not isinstance(value, str):
        raise AuthError("Invalid claims JSON")
    return value


def _unsigned(data: dict[str, Any], key: str, optional: bool = True) -> int | None:
    value = data.get(key)
    if value is None:
        if optional:
            return None
        raise AuthError("Invalid claims JSON")
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < _U64_LIMIT:
        raise AuthError("Invalid claims JSON")
    return value


def _flag(data: dict[str, Any], key: str) -> bool | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise AuthError("Invalid claims JSON")
    return value


def extract_claims(token: str) -> Claims:
    """Read the claims of a JWT without checking its signature."""
    parts = token.split(".")
    if len(parts) != 3:
        raise AuthError("Invalid JWT format")
    payload = _decode_segment(parts[1])
    try:
        data = json.loads(payload)
    except ValueError as exc:
        raise AuthError("Invalid claims JSON") from exc
    if not isinstance(data, dict):
        raise AuthError("Invalid claims JSON")
    return Claims(
        sub=_string(data, "sub", optional=False),
        exp=_unsigned(data, "exp", optional=False),
        iat=_unsigned(data, "iat", optional=False),
        email=_string(data, "email"),
        cognito_username=_string(data, "cognito:username"),
        token_use=_string(data, "token_use"),
        email_verified=_flag(data, "email_verified"),
        iss=_string(data, "iss"),
        aud=_string(data, "aud"),
        event_id=_string(data, "event_id"),
        jti=_string(data, "jti"),
        auth_time=_unsigned(data, "auth_time"),
    )