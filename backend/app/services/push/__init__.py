"""
Push Notification Module

Re-exports the FCM dispatcher and its result/exception types.
"""
from .dispatcher import PushDispatcher, PushResult, build_message, is_data_only, push_dispatcher
from .exceptions import PushDispatchError

__all__ = [
    "PushDispatcher",
    "PushResult",
    "PushDispatchError",
    "build_message",
    "is_data_only",
    "push_dispatcher",
]
