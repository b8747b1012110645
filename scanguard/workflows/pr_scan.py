"""
Pull-request scan workflow.

Scans the head commit of an open pull request into the head branch's project
and attaches the quality gate verdict when the analysis succeeds.
"""

from __future__ import annotations

from typing import Optional

from scanguard.core.cancellation import CancellationToken
from scanguard.entities import AnalysisStatus, PRScanSummary, PullRequest, ScanCandidate
from scanguard.scanning.exceptions import (
    GITEA_API_FAILED,
    ValidationFailedError,
    collaborator_unavailable,
    is_not_found,
)
from scanguard.scanning.submitter import short_label
from scanguard.scanning.validation import build_project_key, validate_pr_number
from scanguard.workflows.base import ScanWorkflowBase


class PRScanWorkflow(ScanWorkflowBase):
    def _fetch_pull_request(self, pr_number: int) -> PullRequest:
        try:
            return self.source_control.get_pull_request(pr_number)
        except Exception as exc:
            if is_not_found(exc):
                raise ValidationFailedError(
                    f"Pull request #{pr_number} not found", code="PR.NOT_FOUND"
                ) from exc
            raise collaborator_unavailable(
                exc, GITEA_API_FAILED, f"Failed to get pull request #{pr_number}"
            ) from exc

    def scan_pr(
        self,
        pr_number: Optional[int],
        owner: Optional[str],
        repo: Optional[str],
        cancel_token: Optional[CancellationToken] = None,
    ) -> PRScanSummary:
        self._require_collaborators()
        validate_pr_number(pr_number)
        self._require_repository(owner, repo)

        pr = self._fetch_pull_request(pr_number)
        if not pr.is_open:
            raise ValidationFailedError(
                f"Pull request #{pr_number} is {pr.state or 'not open'}", code="PR.NOT_OPEN"
            )

        self._start_run()
        cancel_token = cancel_token or CancellationToken()
        project_key = build_project_key(owner, repo, pr.head_branch)
        summary = PRScanSummary(
            pr_number=pr.number,
            pr_title=pr.title,
            head_branch=pr.head_branch,
            base_branch=pr.base_branch,
            project_key=project_key,
            commit_sha=pr.head_sha,
        )
        self.logger.info(
            f"Scanning PR #{pr.number} ({pr.head_branch} -> {pr.base_branch}) "
            f"at {short_label(pr.head_sha)} into {project_key}"
        )

        candidate = ScanCandidate(sha=pr.head_sha, branch=pr.head_branch)
        is_relevant, uncertain = self._is_relevant(candidate)
        summary.uncertain = uncertain
        if not is_relevant:
            self.logger.info(f"PR #{pr.number} head touches no project files")
            summary.no_relevant_changes = True
            return summary

        with self._project_lock(project_key):
            dedup = self.deduplicator.deduplicate(project_key, [candidate])
            summary.uncertain = summary.uncertain or dedup.uncertain
            if not dedup.to_scan:
                self.logger.info(f"PR #{pr.number} head is already analysed")
                summary.already_scanned = True
                return summary

            if self._stopped_before_provisioning(project_key, cancel_token):
                summary.interrupted = True
                return summary

            self.provisioner.ensure_project(project_key, owner, repo, pr.head_branch)
            results, summary.interrupted = self._scan_candidates(
                project_key, dedup.to_scan, cancel_token
            )

        if not results:
            return summary

        result = results[0]
        summary.scanned = True
        summary.commits_scanned = 1
        if result.status == AnalysisStatus.SUCCESS.value:
            result.quality_gate_status = self._quality_gate(project_key)
        summary.scan_result = result
        return summary

    def _quality_gate(self, project_key: str):
        try:
            return self.quality_client.get_quality_gate_verdict(project_key).status
        except Exception as exc:
            self.logger.warning(f"Could not fetch quality gate of {project_key}: {exc}")
            return None
