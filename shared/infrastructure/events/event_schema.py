"""
Event Schema.

Defines the Event envelope published on every Redis channel.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any


@dataclass
class Event:
    """
    Envelope for real-time order events.

    'entity' carries event-specific data (status, history row, totals).
    'actor' identifies who triggered the event (user id, or the customer
    for checkouts).
    """

    type: str
    order_id: str | None = None
    entity: dict[str, Any] = field(default_factory=dict)
    actor: dict[str, Any] = field(default_factory=dict)
    ts: str | None = None
    v: int = 1  # Schema version

    def __post_init__(self) -> None:
        """Reject malformed events before they reach Redis or a callback."""
        if not self.type or not isinstance(self.type, str):
            raise ValueError("Event type must be a non-empty string")

        if self.order_id is not None and (not isinstance(self.order_id, str) or not self.order_id):
            raise ValueError("Event order_id must be a non-empty string or None")

        if self.entity is not None and not isinstance(self.entity, dict):
            raise ValueError("Event entity must be a dict or None")

        if self.actor is not None and not isinstance(self.actor, dict):
            raise ValueError("Event actor must be a dict or None")

    def to_json(self) -> str:
        """Serialize event to JSON string."""
        data = asdict(self)
        data["entity"] = data["entity"] or {}
        data["actor"] = data["actor"] or {}
        data["ts"] = data["ts"] or datetime.now(timezone.utc).isoformat()
        return json.dumps(data, ensure_ascii=False, default=str)

    def to_dict(self) -> dict[str, Any]:
        """Plain dict form, as sent to WebSocket clients."""
        return json.loads(self.to_json())

    @classmethod
    def from_json(cls, json_str: str | bytes) -> "Event":
        """
        Deserialize event from JSON string.

        Raises ValueError (json.JSONDecodeError included) on bad input.
        """
        data = json.loads(json_str)
        if not isinstance(data, dict):
            raise ValueError("Event payload must be a JSON object")
        return cls(**data)
