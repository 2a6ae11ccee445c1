"""
Database Models Package

This module exports all SQLAlchemy models used by the realtime layer.

Tables:
1. users - Staff accounts (moderators, admins) with presence flag and push token
2. pilgrims - Pilgrim accounts with presence flag and push token
3. call_history - Call attempts and their terminal outcome
"""

from .database import (
    engine,
    AsyncSessionLocal,
    Base,
    init_db,
    utcnow,
)

from .user import User
from .pilgrim import Pilgrim
from .call_history import CallRecord, CallStatus, TERMINAL_STATUSES, ALLOWED_TRANSITIONS

__all__ = [
    # Database utilities
    "engine",
    "AsyncSessionLocal",
    "Base",
    "init_db",
    "utcnow",

    # Models
    "User",
    "Pilgrim",
    "CallRecord",
    "CallStatus",
    "TERMINAL_STATUSES",
    "ALLOWED_TRANSITIONS",
]
