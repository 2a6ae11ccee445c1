"""
Call History Model - Call Attempt Log

One row per call-offer. Status moves forward only:
    ringing -> in-progress -> completed
    ringing -> declined
    ringing -> missed
"""
import enum
import uuid

from sqlalchemy import Column, String, DateTime, Boolean, Integer, Index

from .database import Base, utcnow


class CallStatus(str, enum.Enum):
    RINGING = "ringing"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    DECLINED = "declined"
    MISSED = "missed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({CallStatus.COMPLETED, CallStatus.DECLINED, CallStatus.MISSED})

# Allowed forward transitions; anything else is rejected by the store
ALLOWED_TRANSITIONS: dict[CallStatus, frozenset[CallStatus]] = {
    CallStatus.RINGING: frozenset({CallStatus.IN_PROGRESS, CallStatus.DECLINED, CallStatus.MISSED}),
    CallStatus.IN_PROGRESS: frozenset({CallStatus.COMPLETED}),
    CallStatus.COMPLETED: frozenset(),
    CallStatus.DECLINED: frozenset(),
    CallStatus.MISSED: frozenset(),
}


class CallRecord(Base):
    """Durable record of a call attempt and its outcome"""
    __tablename__ = "call_history"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Identities, not connections (either may be a staff user or a pilgrim)
    caller_id = Column(String(36), nullable=False, index=True)
    receiver_id = Column(String(36), nullable=False, index=True)

    call_type = Column(String(20), nullable=False, default='internet')
    status = Column(String(20), nullable=False, default=CallStatus.RINGING.value, index=True)

    # Timing
    started_at = Column(DateTime, nullable=True)
    ended_at = Column(DateTime, nullable=True)
    duration = Column(Integer, nullable=False, default=0)  # seconds

    # Missed-call acknowledgement
    is_read = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index('idx_call_history_caller_created', 'caller_id', 'created_at'),
        Index('idx_call_history_receiver_created', 'receiver_id', 'created_at'),
    )

    @property
    def call_status(self) -> CallStatus:
        return CallStatus(self.status)

    def counterpart_of(self, user_id: str) -> str:
        """Return the other party of this call for the given participant."""
        if user_id == self.receiver_id:
            return self.caller_id
        return self.receiver_id

    def to_dict(self):
        return {
            "id": self.id,
            "caller_id": self.caller_id,
            "receiver_id": self.receiver_id,
            "call_type": self.call_type,
            "status": self.status,
            "duration": self.duration,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<CallRecord {self.id[:8]} {self.caller_id}->{self.receiver_id} {self.status}>"
