import logging
import os
import re
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

from scanguard.integrations.sonarqube.exceptions import SonarScannerError

logger = logging.getLogger(__name__)

REPORT_TASK_FILE = Path(".scannerwork") / "report-task.txt"
TASK_ID_PATTERN = re.compile(r"api/ce/task\?id=([A-Za-z0-9_-]+)")

# Known failure signatures in scanner output, mapped to a readable hint
_DIAGNOSTIC_HINTS = (
    (("Unauthorized", "401"), "Authentication failed: invalid token or credentials"),
    (("Connection refused", "ConnectException"), "Cannot connect to the SonarQube server"),
    (("No sources found", "No files to analyze"), "No source files found for analysis"),
    (("OutOfMemoryError",), "Insufficient memory: increase the scanner heap size"),
    (("Permission denied", "Access denied"), "File system permission error"),
)


def parse_report_task(path: Path) -> Dict[str, str]:
    """Parse the ``key=value`` report file the scanner writes after upload."""
    values: Dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        values[key.strip()] = value.strip()
    return values


def diagnose_scanner_output(output: str) -> List[str]:
    diagnostics: List[str] = []
    for raw_line in output.splitlines():
        line = raw_line.strip()
        for needles, hint in _DIAGNOSTIC_HINTS:
            if any(needle in line for needle in needles) and hint not in diagnostics:
                diagnostics.append(hint)
        if line.startswith("ERROR:"):
            message = line[len("ERROR:") :].strip()
            if message:
                diagnostics.append(f"Scanner error: {message}")
    return diagnostics


class SonarScannerRunner:
    """
    Runs sonar-scanner against one revision of a local git checkout.

    Each revision is checked out into its own detached worktree so the CI
    checkout itself is never moved; the worktree is removed afterwards.
    """

    def __init__(
        self,
        host_url: str,
        token: str,
        source_dir: str = ".",
        scanner_home: Optional[str] = None,
        worktrees_dir: Optional[str] = None,
        timeout: int = 1800,
        disable_branch_analysis: bool = True,
    ) -> None:
        self.host = host_url.rstrip("/")
        self.token = token
        self.source_dir = Path(source_dir).resolve()
        self.scanner_home = scanner_home
        self.worktrees_dir = Path(worktrees_dir) if worktrees_dir else None
        self.timeout = timeout
        self.disable_branch_analysis = disable_branch_analysis

    def scanner_executable(self) -> str:
        scanner_home = self.scanner_home or os.environ.get("SONAR_SCANNER_HOME", "")
        if scanner_home:
            return os.path.join(scanner_home, "bin", "sonar-scanner")
        return "sonar-scanner"

    def build_scan_command(
        self, project_key: str, branch: str, properties: Dict[str, str]
    ) -> List[str]:
        scanner_args = [
            f"-Dsonar.projectKey={project_key}",
            "-Dsonar.sources=.",
            f"-Dsonar.host.url={self.host}",
            f"-Dsonar.token={self.token}",
            "-Dsonar.sourceEncoding=UTF-8",
            "-Dsonar.scm.provider=git",
        ]
        if branch and not self.disable_branch_analysis:
            scanner_args.append(f"-Dsonar.branch.name={branch}")
        for key, value in properties.items():
            scanner_args.append(f"-D{key}={value}")

        return [self.scanner_executable(), *scanner_args]

    def _git(self, *args: str, cwd: Path, timeout: int = 120) -> subprocess.CompletedProcess:
        return subprocess.run(
            ["git", *args],
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=timeout,
        )

    def _ensure_revision(self, revision: str) -> None:
        if self._git("cat-file", "-e", f"{revision}^{{commit}}", cwd=self.source_dir).returncode == 0:
            return
        logger.info(f"Commit {revision[:8]} not in local checkout, fetching from origin")
        fetched = self._git("fetch", "--quiet", "origin", revision, cwd=self.source_dir, timeout=600)
        if fetched.returncode != 0:
            raise SonarScannerError(
                f"Commit {revision} is not available in {self.source_dir}: {fetched.stderr.strip()}"
            )

    def _create_worktree(self, revision: str) -> Path:
        parent = self.worktrees_dir or Path(tempfile.gettempdir()) / "scanguard-worktrees"
        parent.mkdir(parents=True, exist_ok=True)
        worktree_path = Path(tempfile.mkdtemp(prefix=f"{revision[:12]}-", dir=parent))
        # git refuses to add a worktree into an existing directory
        worktree_path.rmdir()

        result = self._git(
            "worktree", "add", "--detach", str(worktree_path), revision, cwd=self.source_dir
        )
        if result.returncode != 0:
            raise SonarScannerError(
                f"Could not create worktree for {revision[:8]}: {result.stderr.strip()}"
            )
        logger.debug(f"Created worktree {worktree_path} at {revision[:8]}")
        return worktree_path

    def _remove_worktree(self, worktree_path: Path) -> None:
        result = self._git("worktree", "remove", "--force", str(worktree_path), cwd=self.source_dir)
        if result.returncode != 0:
            logger.warning(f"git worktree remove failed for {worktree_path}: {result.stderr.strip()}")
            shutil.rmtree(worktree_path, ignore_errors=True)
            self._git("worktree", "prune", cwd=self.source_dir)

    def _read_task_id(self, worktree_path: Path, output: str) -> str:
        report_path = worktree_path / REPORT_TASK_FILE
        if report_path.exists():
            task_id = parse_report_task(report_path).get("ceTaskId")
            if task_id:
                return task_id

        match = TASK_ID_PATTERN.search(output)
        if match:
            return match.group(1)
        raise SonarScannerError("Scanner finished without reporting a compute-engine task id")

    def run(self, project_key: str, branch: str, revision: str, properties: Dict[str, str]) -> str:
        """Scan ``revision`` and return the compute-engine task id."""
        self._ensure_revision(revision)
        worktree_path = self._create_worktree(revision)
        try:
            cmd = self.build_scan_command(project_key, branch, properties)
            logger.info(f"Running sonar-scanner for {project_key} at {revision[:8]}")
            try:
                result = subprocess.run(
                    cmd,
                    cwd=str(worktree_path),
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
            except subprocess.TimeoutExpired as exc:
                raise SonarScannerError(
                    f"sonar-scanner timed out after {self.timeout}s for {revision[:8]}"
                ) from exc
            except FileNotFoundError as exc:
                raise SonarScannerError(f"sonar-scanner executable not found: {cmd[0]}") from exc

            output = f"{result.stdout or ''}\n{result.stderr or ''}"
            if result.returncode != 0:
                diagnostics = diagnose_scanner_output(output)
                summary = "; ".join(diagnostics) if diagnostics else "see scanner output"
                logger.error(
                    f"sonar-scanner exited with {result.returncode} for {project_key}: {summary}"
                )
                raise SonarScannerError(
                    f"sonar-scanner exited with code {result.returncode}: {summary}",
                    diagnostics=diagnostics,
                )

            return self._read_task_id(worktree_path, output)
        finally:
            self._remove_worktree(worktree_path)
