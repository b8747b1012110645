"""
Scan entities - candidates, per-commit outcomes and per-run summaries.

Nothing here is persisted; a summary lives for one invocation and is rendered
by the CLI.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from .enums import AnalysisStatus, QualityGateStatus


class ScanCandidate(BaseModel):
    sha: str
    branch: str


class CommitScanResult(BaseModel):
    commit_sha: str
    analysis_id: Optional[str] = None
    status: str = Field(
        ...,
        description="Terminal analysis status, or FAILED when submit/poll failed locally",
    )
    error_message: Optional[str] = None
    error_code: Optional[str] = Field(
        None, description="Error code when the failure happened on our side"
    )
    quality_gate_status: Optional[QualityGateStatus] = None

    @property
    def succeeded(self) -> bool:
        return self.status == AnalysisStatus.SUCCESS.value


class BranchScanSummary(BaseModel):
    branch: str
    project_key: str
    commits_scanned: int = 0
    skipped_count: int = Field(0, description="Candidates with an existing analysis")
    no_relevant_changes_count: int = Field(
        0, description="Candidates that touch no project subtree"
    )
    scan_results: List[CommitScanResult] = Field(default_factory=list)
    no_changes: bool = False
    interrupted: bool = Field(
        False, description="Cancellation stopped the run before every candidate was handled"
    )
    uncertain_shas: List[str] = Field(
        default_factory=list,
        description="Candidates scanned because relevance or history could not be determined",
    )


class PRScanSummary(BaseModel):
    pr_number: int
    pr_title: str = ""
    head_branch: str
    base_branch: str
    project_key: str
    commit_sha: str
    commits_scanned: int = 0
    scanned: bool = False
    already_scanned: bool = False
    no_relevant_changes: bool = False
    uncertain: bool = Field(
        False, description="Relevance or history lookup failed and the commit was scanned anyway"
    )
    interrupted: bool = Field(
        False, description="Cancellation or the run deadline stopped the scan of the head commit"
    )
    scan_result: Optional[CommitScanResult] = None
