"""Business Logic Services.

This package contains all service modules that implement the core
logic of the pilgrimage realtime layer.

Service Categories:
- Connection: Socket.IO room registry and per-connection state
- Session: Connection lifecycle, group fan-out, call signaling
- Call: Call record store, lifecycle rules, history
- Push: Firebase Cloud Messaging delivery

Shared collaborators:
- directory: account lookup across staff and pilgrim stores
- status_service: presence flags and the Redis presence cache
"""
