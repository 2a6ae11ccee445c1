"""Push delivery exceptions."""


class PushDispatchError(Exception):
    """Raised when the push provider rejects the whole batch"""
    pass
