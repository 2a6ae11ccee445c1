"""
Session management module.

Provides the SessionCoordinator for Socket.IO connections and the
CallSignaling state machine it delegates call events to.
"""
from .coordinator import SessionCoordinator, normalize_role
from .signaling import CallSignaling

__all__ = ["SessionCoordinator", "CallSignaling", "normalize_role"]
