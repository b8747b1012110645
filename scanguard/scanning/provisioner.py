import logging

from scanguard.core.protocols import QualityServiceClient
from scanguard.entities import SonarProject
from scanguard.integrations.sonarqube.exceptions import SonarQubeProjectExistsError
from scanguard.scanning.exceptions import (
    SONARQUBE_API_FAILED,
    CollaboratorUnavailableError,
    is_not_found,
)
from scanguard.scanning.validation import build_project_name

logger = logging.getLogger(__name__)


class ProjectProvisioner:
    """
    Makes sure the scan target exists before anything is submitted to it.

    Any lookup failure leads to a create attempt. SonarQube rejects a duplicate
    key, so a create after a spurious lookup error cannot produce a second
    project; that rejection is treated as "already there".
    """

    def __init__(self, quality_client: QualityServiceClient, visibility: str = "private"):
        self.quality_client = quality_client
        self.visibility = visibility

    def ensure_project(self, project_key: str, owner: str, repo: str, branch: str) -> SonarProject:
        try:
            return self.quality_client.get_project(project_key)
        except Exception as exc:
            lookup_error = exc

        if is_not_found(lookup_error):
            logger.info(f"Project {project_key} not found, creating it")
        else:
            logger.warning(
                f"Lookup of project {project_key} failed ({lookup_error}); attempting to create it"
            )

        name = build_project_name(owner, repo, branch)
        try:
            return self.quality_client.create_project(project_key, name, self.visibility)
        except Exception as exc:
            if _is_key_taken(exc):
                logger.info(f"Project {project_key} already exists")
                return SonarProject(key=project_key, name=name, visibility=self.visibility)
            message = f"Failed to create project {project_key}: {exc}"
            if not is_not_found(lookup_error):
                message += f" (lookup had failed with: {lookup_error})"
            raise CollaboratorUnavailableError(message, code=SONARQUBE_API_FAILED) from exc


def _is_key_taken(exc: BaseException) -> bool:
    if isinstance(exc, SonarQubeProjectExistsError):
        return True
    return "already exist" in str(exc).lower()
