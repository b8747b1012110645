"""Tests for result rendering and the CLI runner."""

import json

from scanguard.cli import build_lock_factory, build_parser, lock_lease_seconds, run
from scanguard.core.cancellation import CancellationToken
from scanguard.entities import BranchScanSummary, CommitScanResult, PRScanSummary, QualityGateStatus
from scanguard.output import build_envelope, render, render_branch_summary, render_pr_summary
from scanguard.scanning.exceptions import ValidationFailedError

from conftest import FakeQualityService, FakeSourceControl, commit_range, pull_request


def branch_summary():
    return BranchScanSummary(
        branch="main",
        project_key="acme_erp_main",
        commits_scanned=2,
        skipped_count=1,
        scan_results=[
            CommitScanResult(commit_sha="abcdef1234", analysis_id="AX1", status="SUCCESS"),
            CommitScanResult(commit_sha="", status="FAILED", error_message="scanner crashed"),
        ],
    )


class TestRendering:
    def test_success_envelope(self):
        envelope = build_envelope(
            "nr-sq-scan-branch", data=branch_summary(), duration_ms=12, trace_id="tr1"
        )

        assert envelope["status"] == "success"
        assert envelope["data"]["scan_results"][0]["analysis_id"] == "AX1"
        assert envelope["metadata"] == {"duration_ms": 12, "trace_id": "tr1", "api_version": "v1"}
        assert "error" not in envelope

    def test_error_envelope(self):
        error = ValidationFailedError("bad branch", code="BRANCH.INVALID_FORMAT")
        envelope = json.loads(render("json", "nr-sq-scan-branch", error=error))

        assert envelope["status"] == "error"
        assert envelope["error"] == {"code": "BRANCH.INVALID_FORMAT", "message": "bad branch"}
        assert "data" not in envelope
        assert envelope["metadata"]["trace_id"]

    def test_branch_text(self):
        text = render_branch_summary(branch_summary())

        assert "Commits scanned: 2" in text
        assert "Skipped (already scanned): 1" in text
        assert "1. ✓ abcdef1 - SUCCESS" in text
        assert "2. ✗ unknown - FAILED" in text
        assert "Error: scanner crashed" in text

    def test_branch_text_without_changes(self):
        summary = BranchScanSummary(
            branch="main", project_key="k", no_changes=True, no_relevant_changes_count=2
        )
        text = render_branch_summary(summary)

        assert "No changes to scan" in text
        assert "Commits without relevant changes: 2" in text

    def test_pr_text(self):
        summary = PRScanSummary(
            pr_number=7,
            pr_title="Posting rules",
            head_branch="t123456",
            base_branch="main",
            project_key="acme_erp_t123456",
            commit_sha="h1h2h3h4h5",
            scanned=True,
            scan_result=CommitScanResult(
                commit_sha="h1h2h3h4h5",
                status="SUCCESS",
                quality_gate_status=QualityGateStatus.ERROR,
            ),
        )
        text = render_pr_summary(summary)

        assert "Pull request #7: Posting rules" in text
        assert "Commit: h1h2h3h" in text
        assert "Result: ✓ SUCCESS" in text
        assert "Quality Gate: ✗ ERROR" in text

    def test_interrupted_pr_text(self):
        summary = PRScanSummary(
            pr_number=7,
            head_branch="t123456",
            base_branch="main",
            project_key="acme_erp_t123456",
            commit_sha="h1h2h3h4h5",
            interrupted=True,
        )

        assert "Run was interrupted" in render_pr_summary(summary)


class TestCliRun:
    def test_scan_branch_json(self, settings):
        source = FakeSourceControl(commit_range=commit_range("c1", "c1"))
        quality = FakeQualityService()
        args = build_parser().parse_args(
            ["--owner", "acme", "--repo", "erp", "--format", "json", "scan-branch", "--branch", "main"]
        )

        exit_code, rendered = run(args, settings, client_factory=lambda *a: (source, quality))

        envelope = json.loads(rendered)
        assert exit_code == 0
        assert envelope["command"] == "nr-sq-scan-branch"
        assert envelope["data"]["commits_scanned"] == 1

    def test_invalid_branch_exit_code(self, settings):
        args = build_parser().parse_args(
            ["--owner", "acme", "--repo", "erp", "scan-branch", "--branch", "feature-x"]
        )

        exit_code, rendered = run(
            args,
            settings,
            client_factory=lambda *a: (FakeSourceControl(), FakeQualityService()),
        )

        assert exit_code == 1
        assert rendered.startswith("Error [BRANCH.INVALID_FORMAT]")

    def test_scan_pr_uses_settings_fallbacks(self, settings):
        settings.BR_OWNER = "acme"
        settings.BR_REPO = "erp"
        settings.BR_PR_NUMBER = 7
        source = FakeSourceControl(pull_requests={7: pull_request()})
        args = build_parser().parse_args(["--format", "json", "scan-pr"])

        exit_code, rendered = run(
            args, settings, client_factory=lambda *a: (source, FakeQualityService())
        )

        envelope = json.loads(rendered)
        assert exit_code == 0
        assert envelope["command"] == "nr-sq-scan-pr"
        assert envelope["data"]["project_key"] == "acme_erp_t123456"
        assert envelope["data"]["scan_result"]["quality_gate_status"] == "OK"

    def test_interrupted_run_exits_non_zero(self, settings):
        source = FakeSourceControl(commit_range=commit_range("c1", "c1"))
        quality = FakeQualityService()
        token = CancellationToken()
        token.cancel()
        args = build_parser().parse_args(
            ["--owner", "acme", "--repo", "erp", "--format", "json", "scan-branch", "--branch", "main"]
        )

        exit_code, rendered = run(
            args, settings, client_factory=lambda *a: (source, quality), cancel_token=token
        )

        envelope = json.loads(rendered)
        assert exit_code == 1
        assert envelope["data"]["interrupted"] is True
        assert quality.submissions == []


class TestLockLease:
    def test_derived_from_scanner_and_poll_limits(self, settings):
        settings.SONAR_SCANNER_TIMEOUT_SECONDS = 1800
        settings.SONAR_POLL_MAX_WAIT_SECONDS = 300
        settings.SCAN_LOCK_TIMEOUT_SECONDS = None

        assert lock_lease_seconds(settings) == 2 * (1800 + 300) + 60

    def test_explicit_lease_wins(self, settings):
        settings.SCAN_LOCK_TIMEOUT_SECONDS = 900

        assert lock_lease_seconds(settings) == 900

    def test_factory_uses_lease(self, settings):
        settings.SCAN_LOCK_ENABLED = True
        settings.SCAN_LOCK_TIMEOUT_SECONDS = None

        lock = build_lock_factory(settings)("acme_erp_main")

        assert lock.timeout == lock_lease_seconds(settings)
        assert lock.timeout > 2 * (
            settings.SONAR_SCANNER_TIMEOUT_SECONDS + settings.SONAR_POLL_MAX_WAIT_SECONDS
        )
