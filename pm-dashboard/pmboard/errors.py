"""Error types raised by the board engine."""

from __future__ import annotations

from typing import Optional


class BoardError(Exception):
    """Base class for all board engine errors."""


class NotFound(BoardError):
    """A referenced task, comment or directory record does not exist."""

    def __init__(self, kind: str, ident: str):
        super().__init__(f"{kind} '{ident}' not found")
        self.kind = kind
        self.ident = ident


class PolicyViolation(BoardError):
    """A move would put a column over its WIP limit."""

    def __init__(self, column: str, limit: int, count: int):
        super().__init__(
            f"Column '{column}' has reached its WIP limit of {limit} tasks ({count} present)."
        )
        self.column = column
        self.limit = limit
        self.count = count


class ValidationError(BoardError):
    """Input was rejected before any mutation happened."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field
