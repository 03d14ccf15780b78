"""
Core Errors - исключения статистики Reader.
"""

from typing import Optional


class UserNotReadyError(RuntimeError):
    """Raised when a stats read is attempted before the current user is known.

    The only error allowed to escape the public read methods: every stats
    query is scoped by user id and meaningless without one.
    """

    def __init__(self, message: str = "UserId not ready"):
        super().__init__(message)


class ReaderApiError(Exception):
    """Non-2xx response from the Reader backend."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        endpoint: Optional[str] = None,
    ):
        super().__init__(message)
        self.status = status
        self.endpoint = endpoint

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is not None:
            return f"{base} (status={self.status}, endpoint={self.endpoint})"
        return base
