from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from numbers import Number
from typing import Optional

from sqlalchemy.orm import Session

from ..config import CLAIM_MAX_ATTEMPTS
from ..db.models.transaction import Transaction
from ..errors import InvalidInput, Unauthorized
from .stores import StoreRegistry, clean

logger = logging.getLogger(__name__)


@dataclass
class ClaimedTransaction:
    transaction_id: str
    amount: int
    store_id: str


# amounts are stored in a signed 64-bit column
MAX_AMOUNT = 2**63 - 1


def validate_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, Number):
        raise InvalidInput("amount must be a number")
    if not isinstance(amount, int):
        if not math.isfinite(amount):
            raise InvalidInput("amount must be a positive number")
        if int(amount) != amount:
            raise InvalidInput("amount must be a whole number of the smallest currency unit")
        amount = int(amount)
    if amount <= 0:
        raise InvalidInput("amount must be a positive number")
    if amount > MAX_AMOUNT:
        raise InvalidInput("amount is too large")
    return amount


def new_transaction_id() -> str:
    return str(uuid.uuid4())


class TransactionQueue:
    def __init__(self, db: Session, max_attempts: int = CLAIM_MAX_ATTEMPTS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.db = db
        self.max_attempts = max_attempts
        self.stores = StoreRegistry(db)

    def create(self, store_id, amount) -> str:
        store_id = clean(store_id)
        if not store_id:
            raise InvalidInput("store_id required")
        store = self.stores.require_enabled(store_id)
        amount = validate_amount(amount)

        transaction_id = new_transaction_id()
        self.db.add(Transaction(
            transaction_id=transaction_id,
            store_id=store.store_id,
            amount=amount,
            played=False,
        ))
        self.db.commit()
        logger.info(f"Queued transaction {transaction_id} for store {store.store_id}")
        return transaction_id

    def authenticate_device(self, store_id, device_token):
        store_id = clean(store_id)
        if not store_id:
            raise InvalidInput("store_id required")
        store = self.stores.require_enabled(store_id)
        # exact, case-sensitive; surrounding whitespace is the only normalization
        if not clean(device_token) or clean(device_token) != store.device_token:
            raise Unauthorized()
        return store

    def oldest_pending(self, store_id) -> Optional[Transaction]:
        return (
            self.db.query(Transaction)
            .filter(Transaction.store_id == store_id, Transaction.played.is_(False))
            .order_by(Transaction.id.asc())
            .first()
        )

    def mark_played(self, row_id) -> bool:
        # compare-and-swap on played; True only for the caller that flipped it
        updated = (
            self.db.query(Transaction)
            .filter(Transaction.id == row_id, Transaction.played.is_(False))
            .update({Transaction.played: True}, synchronize_session=False)
        )
        self.db.commit()
        return updated == 1

    def claim_next(self, store_id) -> Optional[ClaimedTransaction]:
        for attempt in range(1, self.max_attempts + 1):
            pending = self.oldest_pending(store_id)
            if pending is None:
                return None

            claimed = ClaimedTransaction(
                transaction_id=pending.transaction_id,
                amount=pending.amount,
                store_id=pending.store_id,
            )
            if self.mark_played(pending.id):
                logger.info(f"Store {store_id} claimed transaction {claimed.transaction_id}")
                return claimed

            logger.info(
                f"Lost claim race on store {store_id} (attempt {attempt}/{self.max_attempts})"
            )

        logger.warning(f"Giving up claim for store {store_id} after {self.max_attempts} attempts")
        return None

    def list(self, store_id=None, played=None, limit=50):
        query = self.db.query(Transaction)
        if store_id:
            query = query.filter(Transaction.store_id == store_id)
        if played is not None:
            query = query.filter(Transaction.played.is_(bool(played)))
        return query.order_by(Transaction.id.desc()).limit(limit).all()

    def clear(self, store_id) -> int:
        store_id = clean(store_id)
        if not store_id:
            raise InvalidInput("store_id required")
        deleted = (
            self.db.query(Transaction)
            .filter(Transaction.store_id == store_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"Cleared {deleted} transactions for store {store_id}")
        return deleted
