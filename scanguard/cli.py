"""
Command-line entry point.

Usage:
    scanguard scan-branch --owner acme --repo erp --branch t123456
    scanguard scan-pr --owner acme --repo erp --pr 42 --format json

Flags fall back to BR_OWNER / BR_REPO / BR_BRANCH / BR_PR_NUMBER and the rest
of the settings environment.
"""

import argparse
import logging
import math
import signal
import sys
import time
from typing import Callable, Optional, Tuple

from scanguard.config import Settings, settings
from scanguard.core.cancellation import CancellationToken
from scanguard.core.logging import configure_logging
from scanguard.core.redis import ProjectScanLockFactory
from scanguard.integrations.sonarqube import SonarQubeClient, SonarScannerRunner
from scanguard.output import OUTPUT_FORMATS, new_trace_id, render
from scanguard.scanning.exceptions import ConfigurationMissingError, ScanError
from scanguard.services.gitea import GiteaClient, GiteaError
from scanguard.workflows import BranchScanWorkflow, PRScanWorkflow

logger = logging.getLogger(__name__)

COMMAND_NAMES = {
    "scan-branch": "nr-sq-scan-branch",
    "scan-pr": "nr-sq-scan-pr",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scanguard",
        description="Scan the commits of a branch or pull request with SonarQube",
    )
    parser.add_argument("--owner", help="Repository owner (default: BR_OWNER)")
    parser.add_argument("--repo", help="Repository name (default: BR_REPO)")
    parser.add_argument(
        "--format",
        dest="output_format",
        choices=OUTPUT_FORMATS,
        help="Output format (default: OUTPUT_FORMAT)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Overall deadline in seconds for waiting on scans",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    branch_parser = subparsers.add_parser("scan-branch", help="Scan a branch")
    branch_parser.add_argument("--branch", help="Branch to scan (default: BR_BRANCH)")

    pr_parser = subparsers.add_parser("scan-pr", help="Scan the head of a pull request")
    pr_parser.add_argument(
        "--pr", dest="pr_number", type=int, help="Pull request number (default: BR_PR_NUMBER)"
    )
    return parser


def build_clients(
    settings: Settings, owner: Optional[str], repo: Optional[str]
) -> Tuple[Optional[GiteaClient], SonarQubeClient]:
    gitea = None
    if owner and repo:
        try:
            gitea = GiteaClient(
                owner=owner,
                repo=repo,
                token=settings.GITEA_TOKEN,
                api_url=settings.GITEA_URL,
                api_version=settings.GITEA_API_VERSION,
                base_branch=settings.GITEA_BASE_BRANCH,
                start_tag=settings.GITEA_START_TAG,
                timeout=settings.HTTP_TIMEOUT_SECONDS,
            )
        except GiteaError as exc:
            raise ConfigurationMissingError(str(exc)) from exc

    scanner = SonarScannerRunner(
        host_url=settings.SONAR_HOST_URL,
        token=settings.SONAR_TOKEN,
        source_dir=settings.SONAR_SOURCE_DIR,
        scanner_home=settings.SONAR_SCANNER_HOME,
        worktrees_dir=settings.SONAR_WORKTREES_DIR,
        timeout=settings.SONAR_SCANNER_TIMEOUT_SECONDS,
        disable_branch_analysis=settings.SONAR_DISABLE_BRANCH_ANALYSIS,
    )
    sonar = SonarQubeClient(
        host_url=settings.SONAR_HOST_URL,
        token=settings.SONAR_TOKEN,
        scanner=scanner,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    return gitea, sonar


MAX_CANDIDATES_PER_RUN = 2


def lock_lease_seconds(settings: Settings) -> int:
    """Lock lease long enough for every candidate to hit both its scanner and poll limits."""
    if settings.SCAN_LOCK_TIMEOUT_SECONDS:
        return settings.SCAN_LOCK_TIMEOUT_SECONDS
    per_candidate = settings.SONAR_SCANNER_TIMEOUT_SECONDS + settings.SONAR_POLL_MAX_WAIT_SECONDS
    return int(math.ceil(MAX_CANDIDATES_PER_RUN * per_candidate)) + 60


def build_lock_factory(settings: Settings) -> Optional[ProjectScanLockFactory]:
    if not settings.SCAN_LOCK_ENABLED:
        return None
    return ProjectScanLockFactory(
        settings.REDIS_URL,
        timeout=lock_lease_seconds(settings),
        blocking_timeout=settings.SCAN_LOCK_BLOCKING_TIMEOUT_SECONDS,
    )


def install_signal_handlers(token: CancellationToken) -> None:
    def _cancel(signum, _frame):
        logger.warning(f"Received signal {signum}, stopping after the current wait")
        token.cancel()

    signal.signal(signal.SIGINT, _cancel)
    signal.signal(signal.SIGTERM, _cancel)


def run(
    args: argparse.Namespace,
    settings: Settings,
    client_factory: Callable = build_clients,
    cancel_token: Optional[CancellationToken] = None,
) -> Tuple[int, str]:
    """Execute one command; returns (exit code, rendered output)."""
    output_format = args.output_format or settings.OUTPUT_FORMAT
    owner = args.owner or settings.BR_OWNER
    repo = args.repo or settings.BR_REPO
    command = COMMAND_NAMES[args.command]
    token = cancel_token or CancellationToken(args.timeout)

    started = time.monotonic()
    trace_id = new_trace_id()
    data = None
    error = None
    gitea = None
    try:
        gitea, sonar = client_factory(settings, owner, repo)
        lock_factory = build_lock_factory(settings)
        if args.command == "scan-branch":
            workflow = BranchScanWorkflow(gitea, sonar, settings, lock_factory=lock_factory)
            data = workflow.scan_branch(
                args.branch or settings.BR_BRANCH, owner, repo, cancel_token=token
            )
        else:
            workflow = PRScanWorkflow(gitea, sonar, settings, lock_factory=lock_factory)
            pr_number = args.pr_number if args.pr_number is not None else settings.BR_PR_NUMBER
            data = workflow.scan_pr(pr_number, owner, repo, cancel_token=token)
    except ScanError as exc:
        logger.error(f"{command} failed [{exc.code}]: {exc}")
        error = exc
    finally:
        if gitea is not None:
            gitea.close()

    interrupted = bool(data is not None and data.interrupted)
    if interrupted:
        logger.warning(f"{command} was interrupted before all scans completed")

    duration_ms = int((time.monotonic() - started) * 1000)
    rendered = render(
        output_format,
        command,
        data=data,
        error=error,
        duration_ms=duration_ms,
        trace_id=trace_id,
        api_version=settings.API_VERSION,
    )
    return (1 if error or interrupted else 0), rendered


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.ENV, settings.LOG_LEVEL)

    token = CancellationToken(args.timeout)
    install_signal_handlers(token)

    exit_code, rendered = run(args, settings, cancel_token=token)
    print(rendered)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
