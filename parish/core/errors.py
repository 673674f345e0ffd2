"""Error taxonomy shared by services and the HTTP layer.

Services raise these; ``parish.main`` maps each one to a response so that
no repository or rendering failure reaches the unhandled-error path.
"""
from typing import Optional


class ParishError(Exception):
    """Base class for all application errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ParishError, ValueError):
    """Missing required field or invalid enum value. Shown inline, never retried."""


class NotFoundError(ParishError):
    """The requested row does not exist."""


class RepositoryError(ParishError):
    """The backing store failed. The caller must re-trigger the operation."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class AuthorizationError(ParishError):
    """Guard denial."""


class RenderingError(ParishError):
    """QR or PDF generation failed."""

    def __init__(self, message: str, rendered: int = 0):
        super().__init__(message)
        self.rendered = rendered
