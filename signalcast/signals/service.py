import logging
from datetime import datetime
from typing import List
from uuid import UUID

from sqlmodel import Session, select

from ..core.errors import ForbiddenError, NotFoundError, ValidationError
from ..models.JWTAuthToken import Identity
from ..models.Signal import Signal, SignalCreate, SignalFilter, as_utc

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 500

def parse_limit(raw: str | int | None) -> int:
    """
    Lenient limit parsing: anything unusable falls back to the default and
    the result never exceeds MAX_LIMIT.
    """
    try:
        limit = int(raw) if raw is not None else DEFAULT_LIMIT
    except (TypeError, ValueError):
        limit = DEFAULT_LIMIT
    if limit <= 0:
        limit = DEFAULT_LIMIT
    return min(limit, MAX_LIMIT)

def build_filter(
    signal_type: str | None,
    start: datetime | None,
    end: datetime | None,
    limit: str | int | None,
) -> SignalFilter:
    return SignalFilter(
        signal_type=signal_type or None,
        start=start,
        end=end,
        limit=parse_limit(limit),
    )

def create_signal_service(db: Session, identity: Identity, data: SignalCreate) -> Signal:
    if not data.signal_type or data.event_timestamp is None:
        raise ValidationError("Missing fields: type, eventTimestamp")

    signal = Signal(
        owner=identity.email,
        signal_type=data.signal_type,
        event_timestamp=as_utc(data.event_timestamp),
        payload=data.payload or {},
    )
    db.add(signal)
    db.commit()
    db.refresh(signal)
    logger.info("Signal %s (%s) created by %s", signal.id, signal.signal_type, signal.owner)
    return signal

def list_signals_service(db: Session, filters: SignalFilter) -> List[Signal]:
    """
    Newest event first. Every authenticated caller sees every signal.
    Bounds are inclusive on both ends.
    """
    statement = select(Signal)
    if filters.signal_type:
        statement = statement.where(Signal.signal_type == filters.signal_type)
    if filters.start is not None:
        statement = statement.where(Signal.event_timestamp >= as_utc(filters.start))
    if filters.end is not None:
        statement = statement.where(Signal.event_timestamp <= as_utc(filters.end))

    statement = (
        statement.order_by(Signal.event_timestamp.desc(), Signal.created_at.desc())
        .limit(filters.limit)
    )
    return list(db.exec(statement).all())

def delete_signal_service(db: Session, identity: Identity, signal_id: str) -> str:
    try:
        key = UUID(str(signal_id))
    except ValueError:
        raise NotFoundError("Not found")

    signal = db.get(Signal, key)
    if not signal:
        raise NotFoundError("Not found")

    if signal.owner != identity.email:
        raise ForbiddenError("Forbidden. This is not your signal.")

    db.delete(signal)
    db.commit()
    logger.info("Signal %s deleted by %s", key, identity.email)
    return str(key)
