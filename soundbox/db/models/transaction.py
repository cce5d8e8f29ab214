from sqlalchemy import BigInteger, Boolean, Column, DateTime, Index, Integer, String, func
from ..database import Base

class Transaction(Base):

    __tablename__ = "transactions"

    # id is the queue order; transaction_id is what devices and cashiers see
    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(String, nullable=False, unique=True)
    store_id = Column(String, nullable=False)
    amount = Column(BigInteger, nullable=False)
    played = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())

    __table_args__ = (Index("ix_transactions_store_pending", "store_id", "played", "id"),)

    def to_dict(self):
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "store_id": self.store_id,
            "amount": self.amount,
            "played": bool(self.played),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
