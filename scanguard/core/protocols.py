"""
Collaborator protocols - what the orchestrator needs from source control and
from the quality service.

Implementations:
- GiteaClient: SourceControlReader over the Gitea REST API
- SonarQubeClient: QualityServiceClient over the SonarQube Web API + scanner

Workflows only depend on these protocols, so tests drive them with fakes.
"""

from typing import Dict, List, Protocol, runtime_checkable

from scanguard.entities import (
    AnalysisRecord,
    BranchCommitRange,
    PullRequest,
    QualityGateVerdict,
    ScanSubmission,
    SonarProject,
    TaskStatus,
)


@runtime_checkable
class SourceControlReader(Protocol):
    def get_branch_commit_range(self, branch: str) -> BranchCommitRange:
        """First/last commit of the branch slice that may need scanning."""
        ...

    def get_commit_changed_files(self, sha: str) -> List[str]:
        """Repository-relative paths touched by a commit."""
        ...

    def get_project_subtree_names(self, branch: str) -> List[str]:
        """Ordered ``[main, ext1, ext2, ...]``; empty when the layout is flat."""
        ...

    def get_pull_request(self, number: int) -> PullRequest:
        ...


@runtime_checkable
class QualityServiceClient(Protocol):
    def get_known_analyses(self, project_key: str) -> List[AnalysisRecord]:
        ...

    def get_project(self, project_key: str) -> SonarProject:
        ...

    def create_project(self, project_key: str, name: str, visibility: str) -> SonarProject:
        ...

    def submit_scan(
        self, project_key: str, branch: str, properties: Dict[str, str]
    ) -> ScanSubmission:
        """Start an analysis and return the compute-engine task handle."""
        ...

    def get_scan_status(self, task_id: str) -> TaskStatus:
        ...

    def get_quality_gate_verdict(self, project_key: str) -> QualityGateVerdict:
        ...
