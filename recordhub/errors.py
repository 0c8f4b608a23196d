# recordhub/errors.py
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    VALIDATION = "ValidationError"
    PERSISTENCE = "PersistenceError"
    EMPTY_COHORT = "EmptyCohortError"
    NOT_FOUND = "NotFoundError"
    AUTHENTICATION = "AuthenticationError"


class RecordHubError(Exception):
    """Base class for every error raised by recordhub."""
    kind: ErrorKind = ErrorKind.PERSISTENCE

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"ok": False, "error": self.kind.value, "detail": self.message}
        if self.details:
            out["details"] = self.details
        return out


class ValidationError(RecordHubError):
    """A required field is missing/empty or a stored document is malformed."""
    kind = ErrorKind.VALIDATION


class PersistenceError(RecordHubError):
    """The document store (or the network in front of it) failed."""
    kind = ErrorKind.PERSISTENCE


class EmptyCohortError(RecordHubError):
    kind = ErrorKind.EMPTY_COHORT


class NotFoundError(RecordHubError):
    kind = ErrorKind.NOT_FOUND


class AuthenticationError(RecordHubError):
    kind = ErrorKind.AUTHENTICATION
