from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..db.database import get_db
from ..errors import SoundboxError, StorageFailure
from ..security import client_ip, require_api_key
from ..services.heartbeat import HeartbeatRecorder
from ..services.heartbeat_schema import HeartbeatSchemaCache
from ..services.transactions import TransactionQueue
from .dependencies import get_schema_cache
from .errors import http_error

router = APIRouter()

logger = logging.getLogger(__name__)

async def read_json(request: Request) -> dict:
    try:
        body = await request.json()
    except Exception:
        return {}
    return body if isinstance(body, dict) else {}

@router.post("/qris", dependencies=[Depends(require_api_key)])
async def create_transaction(request: Request, db: Session = Depends(get_db)):
    body = await read_json(request)
    try:
        transaction_id = TransactionQueue(db).create(body.get("store_id"), body.get("amount"))
    except SoundboxError as e:
        raise http_error(e)
    return {"ok": True, "transaction_id": transaction_id}

@router.get("/next-transaction")
def next_transaction(
    request: Request,
    store_id: Optional[str] = None,
    firmware: Optional[str] = None,
    x_device_token: Optional[str] = Header(default=None),
    x_firmware_version: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    schema_cache: HeartbeatSchemaCache = Depends(get_schema_cache),
):
    queue = TransactionQueue(db)
    try:
        store = queue.authenticate_device(store_id, x_device_token)
    except SoundboxError as e:
        raise http_error(e)

    # liveness is best-effort; nothing here may stop the claim below
    try:
        recorder = HeartbeatRecorder(db, schema_cache.get(db.get_bind()))
        recorder.record(
            store.store_id,
            store.device_token,
            ip_address=client_ip(request),
            firmware_version=x_firmware_version or firmware,
        )
    except Exception as e:
        logger.error(f"Heartbeat skipped for store {store.store_id}: {e}")

    try:
        claimed = queue.claim_next(store.store_id)
    except SQLAlchemyError as e:
        logger.error(f"Claim failed for store {store.store_id}: {e}")
        raise http_error(StorageFailure("Server error"))

    if claimed is None:
        return {"available": False}
    return {
        "available": True,
        "transaction_id": claimed.transaction_id,
        "amount": claimed.amount,
        "store_id": claimed.store_id,
    }
