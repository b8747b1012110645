from __future__ import annotations

import logging
from contextlib import nullcontext
from typing import Callable, ContextManager, List, Optional, Tuple

from scanguard.config import Settings
from scanguard.core.cancellation import CancellationToken
from scanguard.core.protocols import QualityServiceClient, SourceControlReader
from scanguard.entities import AnalysisStatus, CommitScanResult, ScanCandidate
from scanguard.scanning.dedup import ScanDeduplicator
from scanguard.scanning.exceptions import (
    CollaboratorUnavailableError,
    ConfigurationMissingError,
    ScanCancelledError,
    ScanError,
)
from scanguard.scanning.poller import CompletionPoller
from scanguard.scanning.provisioner import ProjectProvisioner
from scanguard.scanning.relevance import ChangeRelevanceClassifier
from scanguard.scanning.submitter import ScanSubmitter, short_label

LockFactory = Callable[[str], ContextManager]


class ScanWorkflowBase:
    """
    Shared wiring for the branch and pull-request workflows.

    Collaborators and settings are injected; nothing here reads process-wide
    configuration.
    """

    def __init__(
        self,
        source_control: Optional[SourceControlReader],
        quality_client: Optional[QualityServiceClient],
        settings: Settings,
        logger: Optional[logging.Logger] = None,
        lock_factory: Optional[LockFactory] = None,
    ):
        self.source_control = source_control
        self.quality_client = quality_client
        self.settings = settings
        self.logger = logger or logging.getLogger(type(self).__module__)
        self.lock_factory = lock_factory

        if quality_client is not None:
            self.deduplicator = ScanDeduplicator(quality_client)
            self.provisioner = ProjectProvisioner(
                quality_client, visibility=settings.SONAR_PROJECT_VISIBILITY
            )
            self.submitter = ScanSubmitter(quality_client)
            self.poller = CompletionPoller(
                quality_client,
                poll_interval=settings.SONAR_POLL_INTERVAL_SECONDS,
                max_duration=settings.SONAR_POLL_MAX_WAIT_SECONDS,
            )

    def _require_collaborators(self) -> None:
        if self.source_control is None:
            raise ConfigurationMissingError("Source-control client is not configured")
        if self.quality_client is None:
            raise ConfigurationMissingError("Quality service client is not configured")

    @staticmethod
    def _require_repository(owner: Optional[str], repo: Optional[str]) -> None:
        missing = [name for name, value in (("owner", owner), ("repo", repo)) if not value]
        if missing:
            raise ConfigurationMissingError(f"Missing repository {' and '.join(missing)}")

    def _start_run(self) -> None:
        # Project layout is cached per run only
        self.classifier = ChangeRelevanceClassifier(self.source_control)

    def _project_lock(self, project_key: str) -> ContextManager:
        if self.lock_factory is None:
            return nullcontext()
        return self.lock_factory(project_key)

    def _stopped_before_provisioning(
        self, project_key: str, cancel_token: CancellationToken
    ) -> bool:
        if not cancel_token.stopped:
            return False
        self.logger.warning(f"Run stopped before provisioning {project_key}; nothing submitted")
        return True

    def _is_relevant(self, candidate: ScanCandidate) -> Tuple[bool, bool]:
        """(relevant, uncertain). Lookup failures count as relevant."""
        try:
            return self.classifier.is_relevant(candidate.branch, candidate.sha), False
        except CollaboratorUnavailableError as exc:
            self.logger.warning(
                f"Could not classify commit {short_label(candidate.sha)}, treating it as relevant: {exc}"
            )
            return True, True

    def _scan_candidate(
        self, project_key: str, candidate: ScanCandidate, cancel_token: CancellationToken
    ) -> CommitScanResult:
        """Submit one candidate and wait for it; failures become a FAILED result."""
        try:
            submission = self.submitter.submit(project_key, candidate)
        except ScanError as exc:
            self.logger.error(f"Submission of {short_label(candidate.sha)} failed: {exc}")
            return CommitScanResult(
                commit_sha=candidate.sha,
                status=AnalysisStatus.FAILED.value,
                error_code=exc.code,
                error_message=str(exc),
            )

        try:
            task = self.poller.wait_for_completion(submission.task_id, cancel_token=cancel_token)
        except ScanError as exc:
            self.logger.error(
                f"Waiting for task {submission.task_id} ({short_label(candidate.sha)}) failed: {exc}"
            )
            return CommitScanResult(
                commit_sha=candidate.sha,
                status=AnalysisStatus.FAILED.value,
                error_code=exc.code,
                error_message=str(exc),
            )

        if task.status == AnalysisStatus.SUCCESS.value and not task.analysis_id:
            self.logger.warning(
                f"Task {task.task_id} succeeded without an analysis id for {candidate.sha}"
            )
        return CommitScanResult(
            commit_sha=candidate.sha,
            analysis_id=task.analysis_id,
            status=task.status,
            error_message=task.error_message,
        )

    def _scan_candidates(
        self,
        project_key: str,
        candidates: List[ScanCandidate],
        cancel_token: CancellationToken,
    ) -> Tuple[List[CommitScanResult], bool]:
        """Scan strictly one after another. Returns (results, interrupted)."""
        results: List[CommitScanResult] = []
        for index, candidate in enumerate(candidates):
            if cancel_token.stopped:
                self.logger.warning(
                    f"Run stopped; {len(candidates) - index} candidate(s) of {project_key} not submitted"
                )
                return results, True

            result = self._scan_candidate(project_key, candidate, cancel_token)
            results.append(result)
            if result.error_code == ScanCancelledError.code:
                remaining = len(candidates) - index - 1
                if remaining:
                    self.logger.warning(
                        f"Run cancelled; {remaining} candidate(s) of {project_key} not submitted"
                    )
                return results, True
        return results, False
