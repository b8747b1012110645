"""
Shared enums for entities.
"""

from enum import Enum


class AnalysisStatus(str, Enum):
    """Lifecycle of a SonarQube compute-engine task."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELED = "CANCELED"

    @property
    def is_terminal(self) -> bool:
        return self in (AnalysisStatus.SUCCESS, AnalysisStatus.FAILED, AnalysisStatus.CANCELED)


class QualityGateStatus(str, Enum):
    """Quality gate verdict for a project's latest analysis."""

    OK = "OK"
    WARN = "WARN"
    ERROR = "ERROR"
    NONE = "NONE"


class PullRequestState(str, Enum):
    OPEN = "open"
