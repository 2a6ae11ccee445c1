"""
Call Service Exceptions

Custom exceptions for call-record errors.
"""


class CallServiceError(Exception):
    """Base exception for call service errors"""
    pass


class CallNotFoundError(CallServiceError):
    """Raised when a call record is not found"""
    pass


class InvalidCallTransitionError(CallServiceError):
    """Raised when a status change would move a call record backwards"""

    def __init__(self, call_id: str, current: str, requested: str):
        self.call_id = call_id
        self.current = current
        self.requested = requested
        super().__init__(f"Call {call_id} cannot move from '{current}' to '{requested}'")
