class DispatchError(Exception):
    """Base class for errors surfaced to API callers."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgumentError(DispatchError):
    """Missing or malformed request input. Aborts the whole call."""


class NotFoundError(DispatchError):
    """None of the requested records exist."""
