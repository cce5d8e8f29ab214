import logging
from datetime import datetime, timezone

from sqlalchemy import text

from .heartbeat_schema import HeartbeatSchema

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(moment):
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


def utcnow():
    return datetime.now(timezone.utc)


class HeartbeatRecorder:
    def __init__(self, db, schema: HeartbeatSchema, now=utcnow):
        self.db = db
        self.schema = schema
        self.now = now

    def build_values(self, store_id, device_token, ip_address=None, firmware_version=None):
        schema = self.schema
        if not schema.available:
            return None

        values = {schema.key_column: schema.key_value(store_id, device_token)}
        if schema.has_last_seen:
            values["last_seen"] = format_timestamp(self.now())
        # unreported fields keep their last known value
        if schema.has_ip_address and ip_address is not None:
            values["ip_address"] = ip_address
        if schema.has_firmware_version and firmware_version is not None:
            values["firmware_version"] = firmware_version
        if "store_id" in schema.columns and "store_id" not in values:
            values["store_id"] = store_id
        return values

    def upsert(self, values):
        key = self.schema.key_column
        table = self.schema.table
        assignments = ", ".join(f"{col} = :{col}" for col in values if col != key)

        updated = 0
        if assignments:
            result = self.db.execute(
                text(f"UPDATE {table} SET {assignments} WHERE {key} = :{key}"), values
            )
            updated = result.rowcount
        else:
            exists = self.db.execute(
                text(f"SELECT 1 FROM {table} WHERE {key} = :{key}"), values
            ).first()
            updated = 1 if exists else 0

        if not updated:
            columns = ", ".join(values)
            params = ", ".join(f":{col}" for col in values)
            self.db.execute(text(f"INSERT INTO {table} ({columns}) VALUES ({params})"), values)
        self.db.commit()

    def record(self, store_id, device_token, ip_address=None, firmware_version=None):
        """Best-effort liveness write; returns True when a row was written.

        Never raises. A failing write is rolled back and logged so the
        caller's claim goes ahead regardless.
        """
        values = self.build_values(store_id, device_token, ip_address, firmware_version)
        if values is None:
            return False
        try:
            self.upsert(values)
            return True
        except Exception as e:
            logger.error(f"Heartbeat write failed for store {store_id}: {e}")
            try:
                self.db.rollback()
            except Exception as rollback_error:
                logger.error(f"Heartbeat rollback failed for store {store_id}: {rollback_error}")
            return False
