from __future__ import annotations


class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    def __init__(self, message: str, issues: list[tuple[object, str]] | None = None):
        super().__init__(message)
        self.issues = list(issues or [])


class NotFoundError(AppError):
    pass


class PartialBatchFailure(AppError):
    """Some calls of a dispatched batch failed; the others already took effect."""

    def __init__(self, message: str, succeeded: list, failed: list):
        super().__init__(message)
        self.succeeded = list(succeeded)
        self.failed = list(failed)
