from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
import uvicorn

from soundbox import config
from soundbox.db.database import SessionLocal, create_tables, get_db
from soundbox.routes.admin import router as admin_router
from soundbox.routes.dependencies import get_schema_cache
from soundbox.routes.endpoints import router
from soundbox.services.alerts import log_alert
from soundbox.services.heartbeat_schema import HeartbeatSchemaCache
from soundbox.services.offline_alerts import OfflineAlertJob
from soundbox.services.scheduler import TaskScheduler

app = FastAPI(title="Soundbox Dispatch API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "x-admin-key", "x-api-key", "x-device-token", "x-firmware-version"],
)

app.include_router(router)
app.include_router(admin_router)

app.state.heartbeat_schema = HeartbeatSchemaCache()
app.state.scheduler = TaskScheduler()

@app.on_event("startup")
async def startup():
    create_tables()

    if config.SCHEDULER_ENABLED:
        job = OfflineAlertJob(SessionLocal, app.state.heartbeat_schema, dispatch=log_alert)
        app.state.offline_alert_job = job
        app.state.scheduler.add_task("offline_alerts", job.run, config.OFFLINE_CHECK_INTERVAL_SECONDS)
        app.state.scheduler.launch()

@app.on_event("shutdown")
async def shutdown():
    app.state.scheduler.stop()
    job = getattr(app.state, "offline_alert_job", None)
    if job is not None:
        job.shutdown(wait=False)

@app.get("/")
async def root():
    return {
        "message": "Soundbox Dispatch API",
        "endpoints": {
            "create_transaction": "POST /qris",
            "next_transaction": "GET /next-transaction?store_id=<id>",
            "stores": "/admin/stores",
            "upload_stores": "/admin/stores/upload",
            "transactions": "/admin/transactions",
            "devices": "/admin/devices",
            "health": "/health"
        }
    }

@app.get("/health")
def health(db: Session = Depends(get_db), schema_cache: HeartbeatSchemaCache = Depends(get_schema_cache)):
    schema = schema_cache.get(db.get_bind())
    return {
        "ok": True,
        "heartbeat_identity": schema.identity.name,
        "scheduler": app.state.scheduler.get_status(),
    }

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8001)
