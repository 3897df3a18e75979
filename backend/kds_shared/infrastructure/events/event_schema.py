"""
Event envelope published on the station and order channels.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kds_shared.config.constants import DisplayStation


class Event(BaseModel):
    """
    One kitchen/bar event.

    ``station`` is set for ticket events and None for order events.
    ``entity`` holds the event data (ticket id, statuses, items) and
    ``actor`` the user id and role behind the change, if any.
    """

    model_config = ConfigDict(extra="forbid")

    type: str = Field(min_length=1)
    order_id: int = Field(gt=0)
    station: str | None = None
    entity: dict[str, Any] = Field(default_factory=dict)
    actor: dict[str, Any] = Field(default_factory=dict)
    ts: str | None = None
    v: int = 1

    @field_validator("station")
    @classmethod
    def known_station(cls, value: str | None) -> str | None:
        if value is not None and value not in DisplayStation.ALL:
            raise ValueError(f"station must be one of {sorted(DisplayStation.ALL)}")
        return value

    def to_json(self) -> str:
        """Serialize, stamping ``ts`` with the current UTC time when unset."""
        if self.ts is None:
            stamped = self.model_copy(update={"ts": datetime.now(timezone.utc).isoformat()})
            return stamped.model_dump_json()
        return self.model_dump_json()

    @classmethod
    def from_json(cls, raw: str | bytes) -> "Event":
        return cls.model_validate_json(raw)
