"""
Application-wide constants for the realtime layer.

This file centralizes event names, room naming and operational limits so the
socket handlers, the coordinator and the REST collaborators agree on one
wire contract.

Note: Environment-dependent settings (DB, Redis, Firebase) belong in settings.py.
This file is for values that rarely change between environments.
"""

# ==============================================================================
# ROOMS
# ==============================================================================

# Personal delivery room, one per registered user id
USER_ROOM_PREFIX: str = "user_"

# Group broadcast room, one per pilgrim group
GROUP_ROOM_PREFIX: str = "group_"

# ==============================================================================
# ROLES
# ==============================================================================

ROLE_PILGRIM: str = "pilgrim"
ROLE_STAFF: str = "staff"

# Staff account roles stored on the users table
STAFF_ACCOUNT_ROLES: tuple[str, ...] = ("moderator", "admin")

# ==============================================================================
# INBOUND EVENTS (client -> server)
# ==============================================================================

EVENT_REGISTER_USER: str = "register-user"
EVENT_JOIN_GROUP: str = "join_group"
EVENT_LEAVE_GROUP: str = "leave_group"
EVENT_UPDATE_LOCATION: str = "update_location"
EVENT_SOS_ALERT: str = "sos_alert"
EVENT_SOS_CANCEL: str = "sos_cancel"

# ==============================================================================
# OUTBOUND EVENTS (server -> client)
# ==============================================================================

EVENT_STATUS_UPDATE: str = "status_update"
EVENT_LOCATION_UPDATE: str = "location_update"
EVENT_BATTERY_UPDATE: str = "battery-update"
EVENT_SOS_ALERT_RECEIVED: str = "sos-alert-received"
EVENT_SOS_ALERT_CANCELLED: str = "sos-alert-cancelled"
EVENT_MISSED_CALL_RECEIVED: str = "missed-call-received"

# ==============================================================================
# BIDIRECTIONAL EVENTS (same name in and out)
# ==============================================================================

EVENT_NAV_BEACON: str = "mod_nav_beacon"
EVENT_CALL_OFFER: str = "call-offer"
EVENT_CALL_ANSWER: str = "call-answer"
EVENT_ICE_CANDIDATE: str = "ice-candidate"
EVENT_CALL_DECLINED: str = "call-declined"
EVENT_CALL_CANCEL: str = "call-cancel"
EVENT_CALL_BUSY: str = "call-busy"
EVENT_CALL_END: str = "call-end"

# ==============================================================================
# CALLS
# ==============================================================================

CALL_TYPE_INTERNET: str = "internet"

# Push payload types understood by the mobile client
PUSH_TYPE_INCOMING_CALL: str = "incoming_call"
PUSH_TYPE_MISSED_CALL: str = "missed_call"
PUSH_TYPE_SOS_ALERT: str = "sos_alert"
PUSH_MESSAGE_TYPE_TTS: str = "tts"

# Fallback display names
UNKNOWN_CALLER_NAME: str = "Unknown"

# Maximum rows returned by the call history endpoint
DEFAULT_CALL_HISTORY_LIMIT: int = 100

# ==============================================================================
# PUSH (FCM)
# ==============================================================================

PUSH_CHANNEL_URGENT: str = "urgent"
PUSH_CHANNEL_DEFAULT: str = "default"

# ==============================================================================
# PRESENCE
# ==============================================================================

# Redis key prefix for the presence cache
PRESENCE_KEY_PREFIX: str = "online:"

# ==============================================================================
# DATABASE POOL
# ==============================================================================

DB_POOL_SIZE: int = 10
DB_POOL_MAX_OVERFLOW: int = 20
