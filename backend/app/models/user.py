"""
User Model - Staff Accounts

Purpose: Store moderator and admin accounts (the "staff" side of the app).

Key Fields:
- `role`: moderator or admin
- `push_token`: FCM device token, NULL until the app registers one
- `is_online`: Real-time status (written by the socket layer on register/disconnect)
- `last_active_at`: Updated on every presence transition
"""
from sqlalchemy import Column, String, DateTime, Boolean, CheckConstraint
import uuid

from .database import Base, utcnow


class User(Base):
    """Staff account (moderator / admin)"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=True, index=True)
    phone_number = Column(String(20), unique=True, nullable=True, index=True)
    role = Column(String(20), nullable=False, default='moderator')

    # Push notifications
    push_token = Column(String(512), nullable=True)

    # Online status tracking
    is_online = Column(Boolean, default=False, index=True)
    last_active_at = Column(DateTime, default=utcnow, nullable=True)

    # Account status
    active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("role IN ('moderator', 'admin')", name='ck_user_role'),
    )

    def set_online(self):
        """Mark user as online"""
        self.is_online = True
        self.last_active_at = utcnow()

    def set_offline(self):
        """Mark user as offline"""
        self.is_online = False
        self.last_active_at = utcnow()

    def to_dict(self):
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
            "phone_number": self.phone_number,
            "role": self.role,
            "is_online": self.is_online,
            "last_active_at": self.last_active_at.isoformat() if self.last_active_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.email or self.id[:8]} ({self.role})>"
