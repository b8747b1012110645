from .exceptions import (
    GiteaAuthError,
    GiteaConfigurationError,
    GiteaError,
    GiteaNotFoundError,
    GiteaProjectStructureError,
    GiteaRetryableError,
)
from .gitea_client import GiteaClient, analyze_project_structure

__all__ = [
    "GiteaAuthError",
    "GiteaClient",
    "GiteaConfigurationError",
    "GiteaError",
    "GiteaNotFoundError",
    "GiteaProjectStructureError",
    "GiteaRetryableError",
    "analyze_project_structure",
]
