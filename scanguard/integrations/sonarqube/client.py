import logging
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from scanguard.entities import (
    AnalysisRecord,
    QualityGateStatus,
    QualityGateVerdict,
    ScanSubmission,
    SonarProject,
    TaskStatus,
)
from scanguard.integrations.sonarqube.exceptions import (
    SonarQubeAuthError,
    SonarQubeError,
    SonarQubeNotFoundError,
    SonarQubeProjectExistsError,
)
from scanguard.integrations.sonarqube.scanner import SonarScannerRunner

logger = logging.getLogger(__name__)

ANALYSES_PAGE_SIZE = 100
REVISION_PROPERTY = "sonar.scm.revision"


class SonarQubeClient:
    """SonarQube Web API access plus scan submission through sonar-scanner."""

    def __init__(
        self,
        host_url: str,
        token: str,
        scanner: Optional[SonarScannerRunner] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.host = host_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.scanner = scanner
        self.session = session or self._build_session()

    def _build_session(self) -> requests.Session:
        session = requests.Session()
        retry = Retry(
            total=3,
            read=3,
            connect=3,
            backoff_factor=0.5,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.auth = (self.token, "")
        session.headers.update({"Accept": "application/json"})
        return session

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            errors = response.json().get("errors") or []
        except ValueError:
            errors = []
        messages = [e.get("msg", "") for e in errors if e.get("msg")]
        if messages:
            return "; ".join(messages)
        return response.text[:200] or response.reason or ""

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.host}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise SonarQubeError(f"SonarQube request {path} failed: {exc}") from exc

        status = response.status_code
        if status >= 400:
            detail = self._error_message(response)
            message = f"SonarQube returned {status} for {path}: {detail}"
            if status in (401, 403):
                raise SonarQubeAuthError(message, status_code=status)
            if status == 404:
                raise SonarQubeNotFoundError(message, status_code=status)
            if status == 400 and "already exist" in detail.lower():
                raise SonarQubeProjectExistsError(message, status_code=status)
            raise SonarQubeError(message, status_code=status)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise SonarQubeError(f"SonarQube returned invalid JSON for {path}") from exc

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def get_project(self, project_key: str) -> SonarProject:
        data = self._request(
            "GET", "/api/projects/search", params={"projects": project_key, "ps": 1}
        )
        for component in data.get("components") or []:
            if component.get("key") == project_key:
                return SonarProject(
                    key=component["key"],
                    name=component.get("name", ""),
                    visibility=component.get("visibility"),
                )
        raise SonarQubeNotFoundError(f"Project {project_key} not found", status_code=404)

    def create_project(self, project_key: str, name: str, visibility: str) -> SonarProject:
        data = self._request(
            "POST",
            "/api/projects/create",
            data={"project": project_key, "name": name, "visibility": visibility},
        )
        project = data.get("project") or {}
        logger.info(f"Created SonarQube project {project_key}")
        return SonarProject(
            key=project.get("key", project_key),
            name=project.get("name", name),
            visibility=project.get("visibility", visibility),
        )

    # ------------------------------------------------------------------
    # Analyses
    # ------------------------------------------------------------------

    def get_known_analyses(self, project_key: str) -> List[AnalysisRecord]:
        """Every analysis recorded for the project; empty when it does not exist yet."""
        records: List[AnalysisRecord] = []
        page = 1
        while True:
            try:
                data = self._request(
                    "GET",
                    "/api/project_analyses/search",
                    params={"project": project_key, "p": page, "ps": ANALYSES_PAGE_SIZE},
                )
            except SonarQubeNotFoundError:
                return []

            analyses = data.get("analyses") or []
            for analysis in analyses:
                records.append(
                    AnalysisRecord(
                        analysis_id=analysis.get("key", ""),
                        revision=analysis.get("revision"),
                        date=analysis.get("date"),
                        project_version=analysis.get("projectVersion"),
                    )
                )

            total = (data.get("paging") or {}).get("total", len(records))
            if not analyses or len(records) >= total:
                break
            page += 1

        logger.debug(f"Found {len(records)} analyses for {project_key}")
        return records

    def submit_scan(
        self, project_key: str, branch: str, properties: Dict[str, str]
    ) -> ScanSubmission:
        if self.scanner is None:
            raise SonarQubeError("No scanner configured; cannot submit analyses")
        revision = properties.get(REVISION_PROPERTY)
        if not revision:
            raise SonarQubeError(f"Scan properties must include {REVISION_PROPERTY}")

        task_id = self.scanner.run(project_key, branch, revision, properties)
        logger.info(f"Submitted scan of {revision[:8]} to {project_key}: task {task_id}")
        return ScanSubmission(
            task_id=task_id, project_key=project_key, branch=branch, properties=properties
        )

    def get_scan_status(self, task_id: str) -> TaskStatus:
        data = self._request("GET", "/api/ce/task", params={"id": task_id})
        task = data.get("task") or {}
        if not task.get("status"):
            raise SonarQubeError(f"Task {task_id} response carries no status")
        return TaskStatus(
            task_id=task.get("id", task_id),
            status=task["status"],
            analysis_id=task.get("analysisId"),
            error_message=task.get("errorMessage"),
        )

    def get_quality_gate_verdict(self, project_key: str) -> QualityGateVerdict:
        data = self._request(
            "GET", "/api/qualitygates/project_status", params={"projectKey": project_key}
        )
        raw_status = (data.get("projectStatus") or {}).get("status", "NONE")
        try:
            status = QualityGateStatus(raw_status)
        except ValueError:
            logger.warning(f"Unexpected quality gate status {raw_status!r} for {project_key}")
            status = QualityGateStatus.NONE
        return QualityGateVerdict(project_key=project_key, status=status)
