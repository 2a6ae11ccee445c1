"""
Pilgrim Model - Pilgrim Accounts

Pilgrims are managed by moderators and live in their own table. The realtime
layer only reads the display name and push token and writes the presence flag.
"""
from sqlalchemy import Column, String, DateTime, Boolean, Integer
import uuid

from .database import Base, utcnow


class Pilgrim(Base):
    """Pilgrim account"""
    __tablename__ = "pilgrims"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    full_name = Column(String(255), nullable=False)
    national_id = Column(String(50), unique=True, nullable=True)
    phone_number = Column(String(20), unique=True, nullable=True)

    push_token = Column(String(512), nullable=True)
    battery_percent = Column(Integer, nullable=True)

    is_online = Column(Boolean, default=False, index=True)
    last_active_at = Column(DateTime, default=utcnow, nullable=True)

    active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    @property
    def role(self) -> str:
        return "pilgrim"

    def set_online(self):
        self.is_online = True
        self.last_active_at = utcnow()

    def set_offline(self):
        self.is_online = False
        self.last_active_at = utcnow()

    def __repr__(self):
        return f"<Pilgrim {self.full_name}>"
