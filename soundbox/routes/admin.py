from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile, File
from sqlalchemy.orm import Session
from typing import Optional
import tempfile
import logging
import os

from ..db.database import get_db
from ..errors import SoundboxError
from ..security import require_admin
from ..services.devices import list_devices
from ..services.heartbeat_schema import HeartbeatSchemaCache
from ..services.store_loader import StoreLoader
from ..services.stores import StoreRegistry
from ..services.transactions import TransactionQueue
from .dependencies import get_schema_cache
from .endpoints import read_json
from .errors import http_error

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])

logger = logging.getLogger(__name__)

@router.get("/stores")
def list_stores(db: Session = Depends(get_db)):
    stores = StoreRegistry(db).list()
    return {"ok": True, "stores": [s.to_dict() for s in stores]}

@router.post("/stores")
async def upsert_store(request: Request, db: Session = Depends(get_db)):
    body = await read_json(request)
    try:
        store = StoreRegistry(db).upsert(
            body.get("store_id"), body.get("name"), device_token=body.get("device_token")
        )
    except SoundboxError as e:
        raise http_error(e)
    return {"ok": True, "store_id": store.store_id, "name": store.name, "device_token": store.device_token}

@router.post("/stores/upload")
async def upload_stores(file: UploadFile = File(...), db: Session = Depends(get_db)):

    if not file.filename or not file.filename.endswith('.csv'):
        raise HTTPException(status_code=400, detail="File must be a CSV")

    temp_file_path = None
    try:
        with tempfile.NamedTemporaryFile(delete=False, suffix='.csv') as temp_file:
            content = await file.read()
            temp_file.write(content)
            temp_file_path = temp_file.name

        records_loaded = StoreLoader(db).load_stores(temp_file_path)
        return {
            "ok": True,
            "message": "Stores uploaded successfully",
            "filename": file.filename,
            "records_loaded": records_loaded
        }

    except SoundboxError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Store upload failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to upload stores: {str(e)}")
    finally:
        if temp_file_path:
            os.unlink(temp_file_path)

async def _set_enabled(request, db, enabled):
    body = await read_json(request)
    try:
        StoreRegistry(db).set_enabled(body.get("store_id"), enabled)
    except SoundboxError as e:
        raise http_error(e)
    return {"ok": True}

@router.post("/stores/enable")
async def enable_store(request: Request, db: Session = Depends(get_db)):
    return await _set_enabled(request, db, True)

@router.post("/stores/disable")
async def disable_store(request: Request, db: Session = Depends(get_db)):
    return await _set_enabled(request, db, False)

@router.post("/stores/delete")
async def delete_store(request: Request, db: Session = Depends(get_db)):
    body = await read_json(request)
    try:
        StoreRegistry(db).delete(body.get("store_id"))
    except SoundboxError as e:
        raise http_error(e)
    return {"ok": True}

@router.get("/transactions")
def list_transactions(
    store_id: Optional[str] = None,
    played: Optional[str] = None,
    limit: Optional[str] = None,
    db: Session = Depends(get_db),
):
    try:
        limit = min(max(int(limit), 1), 200) if limit else 50
    except ValueError:
        limit = 50
    played_filter = {"0": False, "1": True}.get(played)

    rows = TransactionQueue(db).list(store_id=store_id, played=played_filter, limit=limit)
    return {"ok": True, "transactions": [r.to_dict() for r in rows]}

@router.post("/transactions/clear")
async def clear_transactions(request: Request, db: Session = Depends(get_db)):
    body = await read_json(request)
    try:
        deleted = TransactionQueue(db).clear(body.get("store_id"))
    except SoundboxError as e:
        raise http_error(e)
    return {"ok": True, "deleted": deleted}

@router.get("/devices")
def devices(db: Session = Depends(get_db), schema_cache: HeartbeatSchemaCache = Depends(get_schema_cache)):
    schema = schema_cache.get(db.get_bind())
    return {"ok": True, "identity": schema.identity.name, "devices": list_devices(db, schema)}
