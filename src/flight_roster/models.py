"""Roster data model.

Documents are stored with camelCase field names (``flightNumber``,
``signedUpUsers``...). The models accept either spelling and dump back to
the stored form with ``to_document()``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

REQUIRED_FLIGHT_FIELDS = ("flight_number", "departure", "arrival", "departure_time")
DISPLAY_NAME_FALLBACK_LENGTH = 8


def fallback_display_name(participant_id: str) -> str:
    """Default callsign for a participant that never saved one."""
    return participant_id[:DISPLAY_NAME_FALLBACK_LENGTH]


def normalize_signups(participant_ids: Any) -> tuple[str, ...]:
    """Apply set semantics to a signup sequence, keeping signup order.

    Empty IDs are dropped and only the first occurrence of each ID is kept.
    """
    seen: set[str] = set()
    result: list[str] = []
    for participant_id in participant_ids or ():
        if not participant_id or participant_id in seen:
            continue
        seen.add(participant_id)
        result.append(participant_id)
    return tuple(result)


class FlightFields(BaseModel):
    """The administrator-editable part of a flight record."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    flight_number: str = Field("", alias="flightNumber")
    departure: str = ""
    arrival: str = ""
    departure_time: str = Field("", alias="departureTime")

    def missing_fields(self) -> list[str]:
        """Names of required fields left empty."""
        return [name for name in REQUIRED_FLIGHT_FIELDS if not getattr(self, name)]

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class FlightRecord(FlightFields):
    """One roster entry as materialized from the store."""

    id: str = Field(..., min_length=1)
    flight_number: str = Field(..., alias="flightNumber")
    signed_up_users: tuple[str, ...] = Field((), alias="signedUpUsers")

    @field_validator("signed_up_users", mode="before")
    @classmethod
    def validate_signed_up_users(cls, v: Any) -> tuple[str, ...]:
        """Drop blanks, non-strings and duplicates left by concurrent writers."""
        if v is None:
            return ()
        if isinstance(v, str) or not isinstance(v, (list, tuple)):
            raise ValueError(f"Invalid signedUpUsers: {v!r}")
        return normalize_signups(item for item in v if isinstance(item, str))

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "FlightRecord":
        """Build a record from a stored document and its store-assigned ID."""
        return cls.model_validate({**data, "id": doc_id})

    @property
    def fields(self) -> FlightFields:
        return FlightFields(
            flight_number=self.flight_number,
            departure=self.departure,
            arrival=self.arrival,
            departure_time=self.departure_time,
        )

    def is_signed_up(self, participant_id: str) -> bool:
        return participant_id in self.signed_up_users

    def to_document(self) -> dict[str, Any]:
        document = self.model_dump(by_alias=True, exclude={"id"})
        document["signedUpUsers"] = list(self.signed_up_users)
        return document


class Profile(BaseModel):
    """A participant's self-chosen callsign."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    participant_id: str = Field(..., alias="participantId")
    display_name: str = Field("", alias="displayName")

    def to_document(self) -> dict[str, Any]:
        # The participant ID is the document key, not part of the body.
        return {"displayName": self.display_name}


__all__ = [
    "DISPLAY_NAME_FALLBACK_LENGTH",
    "FlightFields",
    "FlightRecord",
    "Profile",
    "REQUIRED_FLIGHT_FIELDS",
    "fallback_display_name",
    "normalize_signups",
]
