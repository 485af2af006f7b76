"""Authorizer for websocket connections."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

log = logging.getLogger(__name__)

_POLICY_VERSION = "2012-10-17"
_INVOKE = "execute-api:Invoke"


@dataclass
class IamPolicyStatement:
    action: list[str]
    effect: str
    resource: list[str]


@dataclass
class PolicyDocument:
    version: str
    statement: list[IamPolicyStatement]


@dataclass
class AuthPolicy:
    principal_id: str
    policy_document: PolicyDocument
    context: dict[str, Any] | None = None

    @classmethod
    def allow(cls, principal_id: str, resource: str) -> AuthPolicy:
        """Allow every route of the stage that resource belongs to."""
        base, slash, _ = resource.rpartition("/")
        wildcard = f"{base}/*" if slash else resource
        return cls(
            principal_id=principal_id,
            policy_document=PolicyDocument(
                version=_POLICY_VERSION,
                statement=[IamPolicyStatement([_INVOKE], "Allow", [wildcard])],
            ),
            context={"userId": principal_id},
        )

    @classmethod
    def deny(cls) -> AuthPolicy:
        return cls(
            principal_id="user",
            policy_document=PolicyDocument(
                version=_POLICY_VERSION,
                statement=[IamPolicyStatement([_INVOKE], "Deny", ["*"])],
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "principalId": self.principal_id,
            "policyDocument": {
                "Version": self.policy_document.version,
                "Statement": [
                    {
                        "Action": list(s.action),
                        "Effect": s.effect,
                        "Resource": list(s.resource),
                    }
                    for s in self.policy_document.statement
                ],
            },
        }
        if self.context is not None:
            data["context"] = dict(self.context)
        return data


def _opt_map(data: Mapping[str, Any], key: str) -> dict[str, Any] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValueError(f"field `{key}` must be an object")
    return dict(value)


def _str_map(data: Mapping[str, Any], key: str) -> dict[str, str] | None:
    value = _opt_map(data, key)
    if value is not None and not all(isinstance(v, str) for v in value.values()):
        raise ValueError(f"field `{key}` must map to strings")
    return value


def _list_map(data: Mapping[str, Any], key: str) -> dict[str, list[str]] | None:
    value = _opt_map(data, key)
    if value is not None and not all(
        isinstance(v, list) and all(isinstance(s, str) for s in v) for v in value.values()
    ):
        raise ValueError(f"field `{key}` must map to lists of strings")
    return value


@dataclass
class AuthorizerEvent:
    event_type: str
    method_arn: str
    headers: dict[str, str] | None = None
    multi_value_headers: dict[str, list[str]] | None = None
    query_string_parameters: dict[str, str] | None = None
    multi_value_query_string_parameters: dict[str, list[str]] | None = None
    request_context: dict[str, Any] | None = field(default=None, repr=False)
    stage_variables: dict[str, str] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AuthorizerEvent:
        for key in ("type", "methodArn"):
            if not isinstance(data.get(key), str):
                raise ValueError(f"missing or invalid field `{key}`")
        return cls(
            event_type=data["type"],
            method_arn=data["methodArn"],
            headers=_str_map(data, "headers"),
            multi_value_headers=_list_map(data, "multiValueHeaders"),
            query_string_parameters=_str_map(data, "queryStringParameters"),
            multi_value_query_string_parameters=_list_map(data, "multiValueQueryStringParameters"),
            request_context=_opt_map(data, "requestContext"),
            stage_variables=_str_map(data, "stageVariables"),
        )


def bearer_token(headers: Mapping[str, str] | None) -> str | None:
    """The token of a Bearer Authorization header, or None."""
    if headers is None:
        return None
    value = headers.get("Authorization")
    if value is None:
        value = headers.get("authorization")
    if value is None or not value.startswith("Bearer "):
        return None
    return value[len("Bearer "):]


def authorize(event: AuthorizerEvent, verify: Callable[[str], Any]) -> AuthPolicy:
    """Allow the connection if verify accepts its bearer token, else deny."""
    log.info("Received websocket authorizer request")
    token = bearer_token(event.headers)
    if token is None:
        log.error("No Bearer Authorization header provided")
        return AuthPolicy.deny()
    try:
        claims = verify(token)
    except Exception as exc:  # any verification failure denies access
        log.error("JWT verification failed: %r", exc)
        return AuthPolicy.deny()
    policy = AuthPolicy.allow(claims.sub, event.method_arn)
    log.info("Returning auth policy %r", policy)
    return policy