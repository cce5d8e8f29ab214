from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional

from sqlalchemy import inspect

from ..config import HEARTBEAT_TABLE

logger = logging.getLogger(__name__)


class HeartbeatIdentity(Enum):
    # declaration order is the preference order
    DEVICE_TOKEN = "device_token"
    DEVICE_ID = "device_id"
    TOKEN = "token"
    STORE_ID = "store_id"
    NONE = None

    @property
    def column(self) -> Optional[str]:
        return self.value

    @property
    def keyed_by_store(self) -> bool:
        return self is HeartbeatIdentity.STORE_ID


IDENTITY_PREFERENCE = (
    HeartbeatIdentity.DEVICE_TOKEN,
    HeartbeatIdentity.DEVICE_ID,
    HeartbeatIdentity.TOKEN,
    HeartbeatIdentity.STORE_ID,
)


def resolve_identity(columns) -> HeartbeatIdentity:
    for identity in IDENTITY_PREFERENCE:
        if identity.column in columns:
            return identity
    return HeartbeatIdentity.NONE


@dataclass(frozen=True)
class HeartbeatSchema:
    table: str
    columns: FrozenSet[str]
    identity: HeartbeatIdentity

    @classmethod
    def from_columns(cls, columns, table=HEARTBEAT_TABLE) -> "HeartbeatSchema":
        columns = frozenset(columns)
        return cls(table=table, columns=columns, identity=resolve_identity(columns))

    @property
    def available(self) -> bool:
        return self.identity is not HeartbeatIdentity.NONE

    @property
    def key_column(self) -> Optional[str]:
        return self.identity.column

    @property
    def has_last_seen(self) -> bool:
        return "last_seen" in self.columns

    @property
    def has_ip_address(self) -> bool:
        return "ip_address" in self.columns

    @property
    def has_firmware_version(self) -> bool:
        return "firmware_version" in self.columns

    def join_predicate(self, store_alias="s", heartbeat_alias="h") -> Optional[str]:
        identity = self.identity
        if identity is HeartbeatIdentity.NONE:
            return None
        if identity is HeartbeatIdentity.STORE_ID:
            return f"{heartbeat_alias}.store_id = {store_alias}.store_id"
        # DEVICE_TOKEN, DEVICE_ID and TOKEN all hold the store's device credential
        return f"{heartbeat_alias}.{identity.column} = {store_alias}.device_token"

    def key_value(self, store_id: str, device_token: str) -> str:
        return store_id if self.identity.keyed_by_store else device_token


def inspect_columns(bind, table=HEARTBEAT_TABLE) -> FrozenSet[str]:
    # an uninspectable table counts as having no columns
    try:
        return frozenset(col["name"] for col in inspect(bind).get_columns(table))
    except Exception as e:
        logger.warning(f"Could not inspect {table}: {e}")
        return frozenset()


class HeartbeatSchemaCache:
    # first get() inspects under the lock; the result is kept for the process lifetime

    def __init__(self, table=HEARTBEAT_TABLE):
        self.table = table
        self._schema: Optional[HeartbeatSchema] = None
        self._lock = threading.Lock()

    def get(self, bind) -> HeartbeatSchema:
        schema = self._schema
        if schema is not None:
            return schema
        with self._lock:
            if self._schema is None:
                columns = inspect_columns(bind, self.table)
                self._schema = HeartbeatSchema.from_columns(columns, self.table)
                logger.info(
                    f"Heartbeat schema resolved: identity={self._schema.identity.name} "
                    f"columns={sorted(columns)}"
                )
            return self._schema
