"""Health check of the HTTP service."""

from __future__ import annotations

import json
from dataclasses import dataclass

SERVICE_NAME = "checkmate"
SERVICE_VERSION = "0.1.0"


@dataclass
class HealthResponse:
    status: str
    service: str
    version: str

    def to_json(self) -> str:
        return json.dumps(
            {"status": self.status, "service": self.service, "version": self.version},
            separators=(",", ":"),
        )

    @classmethod
    def from_json(cls, text: str | bytes) -> HealthResponse:
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        values = {}
        for key in ("status", "service", "version"):
            value = data.get(key)
            if not isinstance(value, str):
                raise ValueError(f"missing or invalid field `{key}`")
            values[key] = value
        return cls(**values)


def health_check() -> HealthResponse:
    return HealthResponse(status="healthy", service=SERVICE_NAME, version=SERVICE_VERSION)