"""Custom exceptions for the Gitea client."""

from __future__ import annotations


class GiteaError(Exception):
    """Base exception for Gitea API failures."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GiteaConfigurationError(GiteaError):
    """Raised when required configuration is missing."""


class GiteaNotFoundError(GiteaError):
    """Raised when the requested repository object does not exist."""


class GiteaAuthError(GiteaError):
    """Raised when the token is missing permissions or invalid."""


class GiteaRetryableError(GiteaError):
    """Raised for transient issues where retrying later may succeed."""


class GiteaProjectStructureError(GiteaError):
    """Raised when the repository's top-level layout cannot be interpreted."""
