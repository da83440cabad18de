from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from ..auth.service import get_current_identity
from ..core.database import get_session
from ..live.broadcaster import Broadcaster, get_broadcaster
from ..models.JWTAuthToken import Identity
from ..models.Signal import SignalCreate, SignalRead
from . import service

router = APIRouter(prefix="/api/signals", tags=["signals"])

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_signal(
    data: SignalCreate,
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Session = Depends(get_session),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    signal = await run_in_threadpool(service.create_signal_service, db, identity, data)
    record = SignalRead.model_validate(signal).to_wire()
    broadcaster.publish_created(record)
    return record

@router.get("")
async def list_signals(
    identity: Annotated[Identity, Depends(get_current_identity)],
    signal_type: Annotated[str | None, Query(alias="type")] = None,
    start: Annotated[datetime | None, Query(alias="from")] = None,
    end: Annotated[datetime | None, Query(alias="to")] = None,
    limit: str | None = None,
    db: Session = Depends(get_session),
):
    filters = service.build_filter(signal_type, start, end, limit)
    signals = await run_in_threadpool(service.list_signals_service, db, filters)
    return [SignalRead.model_validate(signal).to_wire() for signal in signals]

@router.delete("/{signal_id}")
async def delete_signal(
    signal_id: str,
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Session = Depends(get_session),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    deleted_id = await run_in_threadpool(service.delete_signal_service, db, identity, signal_id)
    broadcaster.publish_deleted(deleted_id)
    return {"ok": True}
