"""Error taxonomy for scan orchestration.

Every error carries a machine-readable ``code`` that ends up in the CLI's
result envelope.
"""

from __future__ import annotations

from typing import Optional


class ScanError(Exception):
    """Base exception for orchestration failures."""

    code = "SCAN.FAILED"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def __str__(self) -> str:
        return self.message


class ConfigurationMissingError(ScanError):
    """Raised when a required collaborator or run parameter is absent."""

    code = "CONFIG.MISSING"


class ValidationFailedError(ScanError):
    """Raised when run inputs are rejected before any scan work starts."""

    code = "VALIDATION.FAILED"


class CollaboratorUnavailableError(ScanError):
    """Raised when Gitea or SonarQube cannot serve a request."""

    code = "COLLABORATOR.UNAVAILABLE"

    def __init__(self, message: str, code: Optional[str] = None, not_found: bool = False):
        super().__init__(message, code)
        self.not_found = not_found


class ProtocolViolationError(ScanError):
    """Raised when SonarQube reports a task status outside the known set."""

    code = "SONARQUBE.UNKNOWN_STATUS"


class ScanCancelledError(ScanError):
    """Raised when a wait is interrupted by cancellation."""

    code = "SCAN.CANCELLED"


class ScanDeadlineExceededError(ScanError):
    """Raised when a wait runs past its deadline."""

    code = "SCAN.DEADLINE_EXCEEDED"


class ScanLockUnavailableError(ScanError):
    """Raised when another run holds the project's scan lock."""

    code = "SCAN.LOCK_UNAVAILABLE"


GITEA_API_FAILED = "GITEA.API_FAILED"
SONARQUBE_API_FAILED = "SONARQUBE.API_FAILED"


def is_not_found(exc: BaseException) -> bool:
    """Whether a collaborator error means the requested object does not exist."""
    if isinstance(exc, CollaboratorUnavailableError):
        return exc.not_found
    if getattr(exc, "status_code", None) == 404:
        return True
    text = str(exc).lower()
    return "not found" in text or "404" in text


def collaborator_unavailable(
    exc: BaseException, code: str, action: str
) -> CollaboratorUnavailableError:
    """Wrap an adapter exception as a ``CollaboratorUnavailableError``."""
    if isinstance(exc, CollaboratorUnavailableError):
        return exc
    return CollaboratorUnavailableError(f"{action}: {exc}", code=code, not_found=is_not_found(exc))
