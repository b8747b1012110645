"""Exceptions raised by the SonarQube client and scanner runner."""

from __future__ import annotations


class SonarQubeError(Exception):
    """Base exception for SonarQube failures."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SonarQubeNotFoundError(SonarQubeError):
    """Raised when a project or task does not exist."""


class SonarQubeAuthError(SonarQubeError):
    """Raised when the token is rejected or lacks permissions."""


class SonarQubeProjectExistsError(SonarQubeError):
    """Raised when creating a project whose key is already taken."""


class SonarScannerError(SonarQubeError):
    """Raised when the sonar-scanner process fails or reports no task."""

    def __init__(self, message: str, diagnostics: list[str] | None = None):
        super().__init__(message)
        self.diagnostics = diagnostics or []
