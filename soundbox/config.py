import os


def _flag(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./soundbox.db")

# credentials
ADMIN_KEY = os.getenv("ADMIN_KEY", "")
API_KEY = os.getenv("API_KEY", "")

# claim protocol
CLAIM_MAX_ATTEMPTS = int(os.getenv("CLAIM_MAX_ATTEMPTS", "3"))

# liveness
HEARTBEAT_TABLE = os.getenv("HEARTBEAT_TABLE", "device_heartbeat")
OFFLINE_THRESHOLD_MINUTES = int(os.getenv("OFFLINE_THRESHOLD_MINUTES", "30"))
OFFLINE_CEILING_HOURS = int(os.getenv("OFFLINE_CEILING_HOURS", "24"))
OFFLINE_CHECK_INTERVAL_SECONDS = int(os.getenv("OFFLINE_CHECK_INTERVAL_SECONDS", "300"))
SCHEDULER_ENABLED = _flag("SCHEDULER_ENABLED", True)

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
