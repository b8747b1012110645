"""Shared fakes and fixtures for scan orchestration tests."""

from typing import Dict, List, Optional

import pytest

from scanguard.config import Settings
from scanguard.entities import (
    AnalysisRecord,
    BranchCommitRange,
    Commit,
    PullRequest,
    QualityGateStatus,
    QualityGateVerdict,
    ScanSubmission,
    SonarProject,
    TaskStatus,
)
from scanguard.integrations.sonarqube.exceptions import (
    SonarQubeError,
    SonarQubeNotFoundError,
    SonarQubeProjectExistsError,
)
from scanguard.services.gitea.exceptions import GiteaNotFoundError


class FakeSourceControl:
    """In-memory SourceControlReader; an Exception value is raised instead of returned."""

    def __init__(
        self,
        commit_range=None,
        subtrees=None,
        files: Optional[Dict[str, object]] = None,
        pull_requests: Optional[Dict[int, object]] = None,
    ):
        self.commit_range = commit_range if commit_range is not None else BranchCommitRange()
        self.subtrees = subtrees if subtrees is not None else []
        self.files = files or {}
        self.pull_requests = pull_requests or {}
        self.calls: List[tuple] = []

    @staticmethod
    def _value(value):
        if isinstance(value, Exception):
            raise value
        return value

    def get_branch_commit_range(self, branch):
        self.calls.append(("get_branch_commit_range", branch))
        return self._value(self.commit_range)

    def get_commit_changed_files(self, sha):
        self.calls.append(("get_commit_changed_files", sha))
        return self._value(self.files.get(sha, []))

    def get_project_subtree_names(self, branch):
        self.calls.append(("get_project_subtree_names", branch))
        return self._value(self.subtrees)

    def get_pull_request(self, number):
        self.calls.append(("get_pull_request", number))
        if number not in self.pull_requests:
            raise GiteaNotFoundError(f"Gitea returned 404 for /pulls/{number}", status_code=404)
        return self._value(self.pull_requests[number])


class FakeQualityService:
    """
    In-memory QualityServiceClient.

    ``statuses`` maps a revision to the sequence of task statuses reported
    while polling it. A SUCCESS records an analysis for that revision, so a
    second run over the same commits sees them as already scanned.
    """

    def __init__(
        self,
        analyses: Optional[List[AnalysisRecord]] = None,
        projects: Optional[List[str]] = None,
        statuses: Optional[Dict[str, List[str]]] = None,
        gate: object = QualityGateStatus.OK,
    ):
        self.analyses = list(analyses or [])
        self.projects = {key: SonarProject(key=key) for key in (projects or [])}
        self.statuses = {sha: list(seq) for sha, seq in (statuses or {}).items()}
        self.gate = gate
        self.analyses_error: Optional[Exception] = None
        self.get_project_error: Optional[Exception] = None
        self.create_error: Optional[Exception] = None
        self.submit_errors: Dict[str, Exception] = {}
        self.submissions: List[ScanSubmission] = []
        self.created: List[tuple] = []
        self.status_requests: List[str] = []
        self.gate_requests: List[str] = []
        self.project_requests: List[str] = []
        self._task_revisions: Dict[str, str] = {}

    def get_known_analyses(self, project_key):
        if self.analyses_error:
            raise self.analyses_error
        return list(self.analyses)

    def get_project(self, project_key):
        self.project_requests.append(project_key)
        if self.get_project_error:
            raise self.get_project_error
        if project_key not in self.projects:
            raise SonarQubeNotFoundError(f"Project {project_key} not found", status_code=404)
        return self.projects[project_key]

    def create_project(self, project_key, name, visibility):
        self.created.append((project_key, name, visibility))
        if self.create_error:
            raise self.create_error
        if project_key in self.projects:
            raise SonarQubeProjectExistsError(
                f"Could not create Project with key: \"{project_key}\". A similar key already exists",
                status_code=400,
            )
        self.projects[project_key] = SonarProject(key=project_key, name=name, visibility=visibility)
        return self.projects[project_key]

    def submit_scan(self, project_key, branch, properties):
        revision = properties["sonar.scm.revision"]
        if revision in self.submit_errors:
            raise self.submit_errors[revision]
        task_id = f"task-{revision}"
        self._task_revisions[task_id] = revision
        submission = ScanSubmission(
            task_id=task_id, project_key=project_key, branch=branch, properties=properties
        )
        self.submissions.append(submission)
        return submission

    def get_scan_status(self, task_id):
        self.status_requests.append(task_id)
        revision = self._task_revisions.get(task_id, "")
        sequence = self.statuses.setdefault(revision, ["SUCCESS"])
        status = sequence.pop(0) if len(sequence) > 1 else sequence[0]
        if isinstance(status, Exception):
            raise status

        analysis_id = None
        error_message = None
        if status == "SUCCESS":
            analysis_id = f"AX-{revision}"
            if not any(a.revision == revision for a in self.analyses):
                self.analyses.append(AnalysisRecord(analysis_id=analysis_id, revision=revision))
        elif status == "FAILED":
            error_message = "Analysis failed on the server"
        return TaskStatus(
            task_id=task_id, status=status, analysis_id=analysis_id, error_message=error_message
        )

    def get_quality_gate_verdict(self, project_key):
        self.gate_requests.append(project_key)
        if isinstance(self.gate, Exception):
            raise self.gate
        return QualityGateVerdict(project_key=project_key, status=self.gate)


def commit_range(first: str = "", last: str = "") -> BranchCommitRange:
    return BranchCommitRange(
        first_commit=Commit(sha=first) if first else None,
        last_commit=Commit(sha=last) if last else None,
    )


def pull_request(number: int = 7, state: str = "open", head_sha: str = "h1") -> PullRequest:
    return PullRequest(
        number=number,
        state=state,
        title="Add posting rules",
        head_branch="t123456",
        head_sha=head_sha,
        base_branch="main",
    )


@pytest.fixture
def settings():
    return Settings(
        SONAR_POLL_INTERVAL_SECONDS=0,
        SONAR_POLL_MAX_WAIT_SECONDS=30,
        SONAR_PROJECT_VISIBILITY="private",
        SCAN_LOCK_ENABLED=False,
    )


@pytest.fixture
def sonar_error():
    return SonarQubeError("SonarQube returned 503 for /api/ce/task", status_code=503)
