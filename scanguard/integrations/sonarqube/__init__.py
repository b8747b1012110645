from .client import SonarQubeClient
from .exceptions import (
    SonarQubeAuthError,
    SonarQubeError,
    SonarQubeNotFoundError,
    SonarQubeProjectExistsError,
    SonarScannerError,
)
from .scanner import SonarScannerRunner

__all__ = [
    "SonarQubeAuthError",
    "SonarQubeClient",
    "SonarQubeError",
    "SonarQubeNotFoundError",
    "SonarQubeProjectExistsError",
    "SonarScannerError",
    "SonarScannerRunner",
]
