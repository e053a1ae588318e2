"""Errors raised by the catalog and profile services."""

from __future__ import annotations


class NotFoundError(KeyError):
    """Raised when a unary lookup references an unknown id."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message
