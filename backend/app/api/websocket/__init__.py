"""
Realtime API module.

Provides the Socket.IO server, the process-wide room registry and the
session coordinator behind it.
"""
from .server import register_socket_handlers, room_registry, session_coordinator, sio

__all__ = ["sio", "room_registry", "session_coordinator", "register_socket_handlers"]
