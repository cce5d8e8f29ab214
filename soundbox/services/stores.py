import logging
import re
import secrets
from typing import Optional

from sqlalchemy.orm import Session

from ..db.models.store import Store
from ..errors import InvalidInput, NotFound, StoreUnavailable

logger = logging.getLogger(__name__)

STORE_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


def clean(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def generate_device_token() -> str:
    return f"sb_{secrets.token_hex(16)}"


def validate_store_id(store_id) -> str:
    store_id = clean(store_id)
    if not store_id:
        raise InvalidInput("store_id required")
    if not STORE_ID_PATTERN.match(store_id):
        raise InvalidInput("store_id may only contain letters, digits, '.', '_' and '-'")
    return store_id


class StoreRegistry:
    def __init__(self, db: Session):
        self.db = db

    def get(self, store_id) -> Optional[Store]:
        if not store_id:
            return None
        return self.db.query(Store).filter(Store.store_id == store_id).first()

    def require_enabled(self, store_id) -> Store:
        store = self.get(store_id)
        if store is None or not store.enabled:
            raise StoreUnavailable()
        return store

    def list(self):
        return self.db.query(Store).order_by(Store.created_at.desc(), Store.store_id).all()

    def upsert(self, store_id, name, device_token=None, enabled=None, commit=True) -> Store:
        store_id = validate_store_id(store_id)
        name = clean(name)
        if not name:
            raise InvalidInput("store_id and name required")
        incoming_token = clean(device_token)

        store = self.get(store_id)
        if store is not None:
            store.name = name
            store.device_token = incoming_token or store.device_token
            if enabled is not None:
                store.enabled = bool(enabled)
            logger.info(f"Updated store {store_id}")
        else:
            store = Store(
                store_id=store_id,
                name=name,
                device_token=incoming_token or generate_device_token(),
                enabled=True if enabled is None else bool(enabled),
            )
            self.db.add(store)
            logger.info(f"Registered store {store_id}")

        if commit:
            self.db.commit()
            self.db.refresh(store)
        return store

    def set_enabled(self, store_id, enabled: bool) -> Store:
        store = self._require(store_id)
        store.enabled = enabled
        self.db.commit()
        logger.info(f"Store {store.store_id} {'enabled' if enabled else 'disabled'}")
        return store

    def delete(self, store_id) -> None:
        store = self._require(store_id)
        self.db.delete(store)
        self.db.commit()
        logger.info(f"Deleted store {store.store_id}")

    def _require(self, store_id) -> Store:
        store_id = clean(store_id)
        if not store_id:
            raise InvalidInput("store_id required")
        store = self.get(store_id)
        if store is None:
            raise NotFound("Store not found")
        return store
