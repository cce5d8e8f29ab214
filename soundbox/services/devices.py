from sqlalchemy import text

from .heartbeat_schema import HeartbeatSchema

LIVENESS_COLUMNS = ("last_seen", "ip_address", "firmware_version")


def list_devices(db, schema: HeartbeatSchema):
    """Every store with whatever liveness data its heartbeat row carries.

    With no usable join the stores are still listed, liveness fields null.
    """
    predicate = schema.join_predicate()
    if predicate is None:
        selected = ", ".join(f"NULL AS {col}" for col in LIVENESS_COLUMNS)
        sql = f"SELECT s.store_id, s.name, s.enabled, {selected} FROM stores s"
    else:
        selected = ", ".join(
            f"h.{col} AS {col}" if col in schema.columns else f"NULL AS {col}"
            for col in LIVENESS_COLUMNS
        )
        sql = (
            f"SELECT s.store_id, s.name, s.enabled, {selected} "
            f"FROM stores s LEFT JOIN {schema.table} h ON {predicate}"
        )
    sql += " ORDER BY s.store_id"

    devices = []
    for row in db.execute(text(sql)).mappings():
        last_seen = row["last_seen"]
        if last_seen is not None and not isinstance(last_seen, str):
            last_seen = last_seen.isoformat()
        devices.append({
            "store_id": row["store_id"],
            "name": row["name"],
            "enabled": bool(row["enabled"]),
            "last_seen": last_seen,
            "ip_address": row["ip_address"],
            "firmware_version": row["firmware_version"],
        })
    return devices
