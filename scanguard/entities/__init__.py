# Shared enums
from .enums import AnalysisStatus, PullRequestState, QualityGateStatus

# Run results
from .scan import BranchScanSummary, CommitScanResult, PRScanSummary, ScanCandidate

# SonarQube
from .sonar import AnalysisRecord, QualityGateVerdict, ScanSubmission, SonarProject, TaskStatus

# Gitea
from .source_control import BranchCommitRange, Commit, ProjectStructure, PullRequest

__all__ = [
    "AnalysisRecord",
    "AnalysisStatus",
    "BranchCommitRange",
    "BranchScanSummary",
    "Commit",
    "CommitScanResult",
    "PRScanSummary",
    "ProjectStructure",
    "PullRequest",
    "PullRequestState",
    "QualityGateStatus",
    "QualityGateVerdict",
    "ScanCandidate",
    "ScanSubmission",
    "SonarProject",
    "TaskStatus",
]
