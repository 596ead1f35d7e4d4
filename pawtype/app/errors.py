from __future__ import annotations

from typing import Dict, Optional


class AppError(Exception):
    # Base class for domain errors (intended, meaningful failures).
    pass


class IdentityUnavailable(AppError):
    # Raised when no stable respondent id is known yet; writes are blocked.
    pass


class IncompleteAnswers(AppError):
    # Raised when classification is attempted before every question is answered.
    pass


class SessionStateError(AppError):
    # Raised for an illegal questionnaire transition (answer/back/start out of state).
    pass


class ValidationFailed(AppError):
    # Raised when one or more survey fields fail validation. Recoverable.
    def __init__(self, field_errors: Dict[str, str], message: Optional[str] = None):
        self.field_errors = dict(field_errors)
        super().__init__(message or f"Validation failed for: {', '.join(sorted(self.field_errors))}")


class PersistenceFailed(AppError):
    # Raised when create/list/delete against the submission store fails.
    pass


class AuthenticationFailed(AppError):
    # Raised on administrative passphrase mismatch.
    pass


class UnknownCategory(AppError):
    # Raised when a category code has no profile in the result catalogue.
    pass


class ImportFailed(AppError):
    # Raised when a structured export payload cannot be re-ingested.
    pass
