from sqlalchemy import Boolean, Column, DateTime, String, func
from ..database import Base

class Store(Base):

    __tablename__ = "stores"

    store_id = Column(String, primary_key=True, nullable=False)
    name = Column(String, nullable=False)
    device_token = Column(String, nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())

    def to_dict(self):
        return {
            "store_id": self.store_id,
            "name": self.name,
            "device_token": self.device_token,
            "enabled": bool(self.enabled),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
