"""
Call Record Module

Re-exports the call record store, lifecycle rules, history queries and exceptions.
"""
from .store import CallRecordStore
from .lifecycle import CallOutcome, classify_call_end, compute_duration, ring_timeout_watchdog
from .history import get_user_call_history, get_unread_missed_count, mark_missed_calls_read
from .exceptions import (
    CallServiceError,
    CallNotFoundError,
    InvalidCallTransitionError,
)

# Singleton instance
call_record_store = CallRecordStore()

__all__ = [
    "CallRecordStore",
    "call_record_store",
    "CallOutcome",
    "classify_call_end",
    "compute_duration",
    "ring_timeout_watchdog",
    "get_user_call_history",
    "get_unread_missed_count",
    "mark_missed_calls_read",
    "CallServiceError",
    "CallNotFoundError",
    "InvalidCallTransitionError",
]
