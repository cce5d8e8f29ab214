import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from dateutil import parser
from sqlalchemy import text

from ..config import OFFLINE_CEILING_HOURS, OFFLINE_THRESHOLD_MINUTES
from ..errors import SchemaUnavailable
from .alerts import log_alert
from .heartbeat import format_timestamp, utcnow

logger = logging.getLogger(__name__)


@dataclass
class OfflineDevice:
    store_id: str
    store_name: str
    last_seen: datetime
    minutes_offline: int


def parse_last_seen(value):
    # sqlite hands timestamps back as text
    if isinstance(value, str):
        value = parser.parse(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def minutes_between(earlier, later):
    return int((later - earlier).total_seconds() // 60)


class OfflineAlertJob:
    """Finds devices that went quiet recently and raises one alert each.

    A device qualifies when its last heartbeat is older than ``threshold``
    but newer than ``ceiling``. Past the ceiling it is assumed to be known
    dead and stays silent until it polls again.
    """

    def __init__(
        self,
        session_factory,
        schema_cache,
        dispatch=log_alert,
        threshold=timedelta(minutes=OFFLINE_THRESHOLD_MINUTES),
        ceiling=timedelta(hours=OFFLINE_CEILING_HOURS),
        now=utcnow,
        executor=None,
    ):
        self.session_factory = session_factory
        self.schema_cache = schema_cache
        self.dispatch = dispatch
        self.threshold = threshold
        self.ceiling = ceiling
        self.now = now
        self.executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="offline-alert")

    def find_offline(self, db, now):
        schema = self.schema_cache.get(db.get_bind())
        predicate = schema.join_predicate()
        if predicate is None or not schema.has_last_seen:
            raise SchemaUnavailable("heartbeat table has no usable identity or last_seen column")

        rows = db.execute(
            text(
                f"SELECT s.store_id, s.name, h.last_seen "
                f"FROM stores s JOIN {schema.table} h ON {predicate} "
                f"WHERE s.enabled = :enabled "
                f"AND h.last_seen IS NOT NULL "
                f"AND h.last_seen < :stale_before "
                f"AND h.last_seen > :ceiling_after"
            ),
            {
                "enabled": True,
                "stale_before": format_timestamp(now - self.threshold),
                "ceiling_after": format_timestamp(now - self.ceiling),
            },
        ).all()

        devices = []
        for store_id, name, last_seen in rows:
            seen = parse_last_seen(last_seen)
            devices.append(OfflineDevice(
                store_id=store_id,
                store_name=name,
                last_seen=seen,
                minutes_offline=minutes_between(seen, now),
            ))
        return devices

    def _send(self, device):
        future = self.executor.submit(self.dispatch, device.store_name, device.minutes_offline)

        def _done(f):
            error = f.exception()
            if error is not None:
                logger.error(f"Offline alert for store {device.store_id} failed: {error}")

        future.add_done_callback(_done)

    def run(self):
        """One scheduled pass; returns how many alerts were sent."""
        now = self.now()
        try:
            db = self.session_factory()
            try:
                devices = self.find_offline(db, now)
            finally:
                db.close()
        except SchemaUnavailable as e:
            logger.info(f"Skipping offline scan: {e}")
            return 0
        except Exception as e:
            logger.error(f"Offline scan failed: {e}")
            return 0

        for device in devices:
            self._send(device)

        logger.info(f"Offline scan complete: {len(devices)} device(s) alerted")
        return len(devices)

    def shutdown(self, wait=True):
        self.executor.shutdown(wait=wait)
