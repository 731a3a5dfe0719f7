"""Fetch lifecycle log records with schema enforcement."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from jsonschema import Draft7Validator

logger = logging.getLogger(__name__)

FETCH_EVENTS = ("fetch_started", "fetch_settled", "fetch_discarded")
FETCH_OUTCOMES = ("pending", "data", "error")

FETCH_LOG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": [
        "request_id",
        "operation",
        "request_key",
        "event",
        "sequence",
        "outcome",
        "recorded_at",
    ],
    "properties": {
        "request_id": {"type": "string"},
        "operation": {"type": "string"},
        "request_key": {"type": "string"},
        "event": {"type": "string", "enum": list(FETCH_EVENTS)},
        "sequence": {"type": "integer", "minimum": 1},
        "outcome": {"type": "string", "enum": list(FETCH_OUTCOMES)},
        "latency_ms": {"type": ["number", "null"], "minimum": 0},
        "error_type": {"type": ["string", "null"]},
        "recorded_at": {"type": "string", "format": "date-time"},
    },
    "additionalProperties": False,
}

_validator = Draft7Validator(FETCH_LOG_SCHEMA)


def validate_fetch_log(payload: Dict[str, Any]) -> None:
    errors = sorted(_validator.iter_errors(payload), key=lambda e: e.path)
    if errors:
        messages = ", ".join(error.message for error in errors)
        raise ValueError(f"fetch log validation failed: {messages}")


@dataclass
class FetchLogRecord:
    operation: str
    request_key: str
    event: str
    sequence: int
    outcome: str = "pending"
    latency_ms: Optional[float] = None
    error_type: Optional[str] = None
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    recorded_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "request_id": self.request_id,
            "operation": self.operation,
            "request_key": self.request_key,
            "event": self.event,
            "sequence": self.sequence,
            "outcome": self.outcome,
            "latency_ms": self.latency_ms,
            "error_type": self.error_type,
            "recorded_at": self.recorded_at,
        }
        validate_fetch_log(payload)
        return payload


def emit_fetch_log(record: FetchLogRecord) -> Dict[str, Any]:
    payload = record.to_dict()
    logger.info(json.dumps(payload, sort_keys=True))
    return payload
