import base64
import json

import pytest

from checkmate.auth import AuthError, Claims, extract_claims


def _segment(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _token(payload) -> str:
    header = _segment(json.dumps({"alg": "none"}).encode())
    body = _segment(json.dumps(payload).encode())
    return f"{header}.{body}.signature"


def test_full_claims_round_trip():
    payload = {
        "sub": "user-1",
        "email": "player@example.com",
        "cognito:username": "player",
        "exp": 2000,
        "iat": 1000,
        "token_use": "id",
        "email_verified": True,
        "iss": "issuer",
        "aud": "client",
        "event_id": "event",
        "jti": "jti-1",
        "auth_time": 999,
    }
    claims = extract_claims(_token(payload))
    assert claims == Claims(
        sub="user-1",
        exp=2000,
        iat=1000,
        email="player@example.com",
        cognito_username="player",
        token_use="id",
        email_verified=True,
        iss="issuer",
        aud="client",
        event_id="event",
        jti="jti-1",
        auth_time=999,
    )


def test_minimal_claims_leave_optional_fields_empty():
    claims = extract_claims(_token({"sub": "abc", "exp": 5, "iat": 4}))
    assert claims.sub == "abc"
    assert claims.email is None
    assert claims.cognito_username is None
    assert claims.auth_time is None


@pytest.mark.parametrize("token", ["a.b", "a.b.c.d", "nodots"])
def test_wrong_part_count(token):
    with pytest.raises(AuthError, match="Invalid JWT format"):
        extract_claims(token)


def test_invalid_base64_payload():
    with pytest.raises(AuthError, match="Invalid JWT payload"):
        extract_claims("x.@@@.y")


def test_padded_payload_is_rejected():
    padded = base64.urlsafe_b64encode(b'{"sub":"a","exp":1,"iat":1}').decode()
    assert padded.endswith("=") or len(padded) % 4 == 0
    with pytest.raises(AuthError, match="Invalid JWT payload"):
        extract_claims(f"h.{padded}=.s" if not padded.endswith("=") else f"h.{padded}.s")


def test_missing_sub_is_rejected():
    with pytest.raises(AuthError, match="Invalid claims JSON"):
        extract_claims(_token({"exp": 1, "iat": 1}))


def test_non_json_payload_is_rejected():
    token = f"h.{_segment(b'not json')}.s"
    with pytest.raises(AuthError, match="Invalid claims JSON"):
        extract_claims(token)


def test_negative_expiry_is_rejected():
    with pytest.raises(AuthError, match="Invalid claims JSON"):
        extract_claims(_token({"sub": "a", "exp": -1, "iat": 1}))


def test_non_object_payload_is_rejected():
    with pytest.raises(ValueError):
        extract_claims(_token(["sub"]))