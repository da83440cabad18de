from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field as PydanticField, field_validator
from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


def as_utc(value: datetime | None) -> datetime | None:
    """Timezone-aware UTC. Naive values (SQLite drops tzinfo on the way out) are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Signal(SQLModel, table=True):
    __tablename__ = "signals"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    owner: str = Field(index=True, nullable=False)
    signal_type: str = Field(index=True, nullable=False)
    event_timestamp: datetime = Field(index=True, nullable=False)
    payload: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SignalCreate(BaseModel):
    # The owner is never read from the body; it comes from the verified token.
    model_config = ConfigDict(populate_by_name=True)

    signal_type: str | None = PydanticField(
        default=None, validation_alias=AliasChoices("type", "signal_type")
    )
    event_timestamp: datetime | None = PydanticField(
        default=None, validation_alias=AliasChoices("eventTimestamp", "timestamp", "event_timestamp")
    )
    payload: dict[str, Any] | None = None


class SignalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    owner: str
    signal_type: str = PydanticField(serialization_alias="type")
    event_timestamp: datetime = PydanticField(serialization_alias="eventTimestamp")
    payload: dict[str, Any] = PydanticField(default_factory=dict)
    created_at: datetime = PydanticField(serialization_alias="createdAt")

    @field_validator("event_timestamp", "created_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    def to_wire(self) -> dict:
        """JSON-ready form used by both HTTP responses and live pushes."""
        return self.model_dump(mode="json", by_alias=True)


class SignalFilter(BaseModel):
    signal_type: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    limit: int = 50
