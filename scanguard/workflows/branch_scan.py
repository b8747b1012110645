"""
Branch scan workflow.

Scans the first and last commit of a branch's relevant history slice into the
branch's SonarQube project, skipping commits that touch no project subtree and
commits that already have an analysis.
"""

from __future__ import annotations

from typing import List, Optional

from scanguard.core.cancellation import CancellationToken
from scanguard.entities import BranchCommitRange, BranchScanSummary, ScanCandidate
from scanguard.scanning.exceptions import GITEA_API_FAILED, collaborator_unavailable
from scanguard.scanning.submitter import short_label
from scanguard.scanning.validation import build_project_key, validate_branch
from scanguard.workflows.base import ScanWorkflowBase


def build_candidates(branch: str, commit_range: BranchCommitRange) -> List[ScanCandidate]:
    """First commit, then last; empty SHAs skipped and first == last collapsed."""
    candidates: List[ScanCandidate] = []
    for commit in (commit_range.first_commit, commit_range.last_commit):
        if commit is None or not commit.sha:
            continue
        if any(c.sha == commit.sha for c in candidates):
            continue
        candidates.append(ScanCandidate(sha=commit.sha, branch=branch))
    return candidates


class BranchScanWorkflow(ScanWorkflowBase):
    def scan_branch(
        self,
        branch: Optional[str],
        owner: Optional[str],
        repo: Optional[str],
        cancel_token: Optional[CancellationToken] = None,
    ) -> BranchScanSummary:
        self._require_collaborators()
        validate_branch(branch)
        self._require_repository(owner, repo)

        self._start_run()
        cancel_token = cancel_token or CancellationToken()
        project_key = build_project_key(owner, repo, branch)
        summary = BranchScanSummary(branch=branch, project_key=project_key)
        self.logger.info(f"Scanning branch {branch} of {owner}/{repo} into {project_key}")

        try:
            commit_range = self.source_control.get_branch_commit_range(branch)
        except Exception as exc:
            raise collaborator_unavailable(
                exc, GITEA_API_FAILED, f"Failed to get commit range of {branch}"
            ) from exc

        candidates = build_candidates(branch, commit_range)
        if not candidates:
            self.logger.info(f"No commits to scan on {branch}")
            summary.no_changes = True
            return summary

        relevant: List[ScanCandidate] = []
        for candidate in candidates:
            is_relevant, uncertain = self._is_relevant(candidate)
            if uncertain:
                summary.uncertain_shas.append(candidate.sha)
            if is_relevant:
                relevant.append(candidate)
            else:
                summary.no_relevant_changes_count += 1
                self.logger.info(f"Commit {short_label(candidate.sha)} touches no project files")

        if not relevant:
            summary.no_changes = True
            return summary

        with self._project_lock(project_key):
            dedup = self.deduplicator.deduplicate(project_key, relevant)
            summary.skipped_count = dedup.skipped_count
            if dedup.uncertain:
                summary.uncertain_shas.extend(
                    c.sha for c in dedup.to_scan if c.sha not in summary.uncertain_shas
                )
            if not dedup.to_scan:
                self.logger.info(f"All candidates of {branch} are already analysed")
                return summary

            if self._stopped_before_provisioning(project_key, cancel_token):
                summary.interrupted = True
                return summary

            self.provisioner.ensure_project(project_key, owner, repo, branch)

            results, interrupted = self._scan_candidates(project_key, dedup.to_scan, cancel_token)

        summary.scan_results = results
        summary.commits_scanned = len(results)
        summary.interrupted = interrupted

        succeeded = sum(1 for r in results if r.succeeded)
        self.logger.info(
            f"Branch {branch}: {succeeded}/{len(results)} scan(s) succeeded, "
            f"{summary.skipped_count} skipped, "
            f"{summary.no_relevant_changes_count} without relevant changes"
        )
        return summary
