import logging
from typing import Dict

from scanguard.core.protocols import QualityServiceClient
from scanguard.entities import ScanCandidate, ScanSubmission
from scanguard.scanning.exceptions import SONARQUBE_API_FAILED, collaborator_unavailable

logger = logging.getLogger(__name__)

SHORT_LABEL_LENGTH = 7


def short_label(sha: str) -> str:
    return sha[:SHORT_LABEL_LENGTH]


def scan_properties(sha: str) -> Dict[str, str]:
    # The full SHA is what analyses are matched on when deduplicating
    return {
        "sonar.projectVersion": short_label(sha),
        "sonar.scm.revision": sha,
    }


class ScanSubmitter:
    def __init__(self, quality_client: QualityServiceClient):
        self.quality_client = quality_client

    def submit(self, project_key: str, candidate: ScanCandidate) -> ScanSubmission:
        properties = scan_properties(candidate.sha)
        logger.info(f"Submitting scan of {short_label(candidate.sha)} to {project_key}")
        try:
            return self.quality_client.submit_scan(project_key, candidate.branch, properties)
        except Exception as exc:
            raise collaborator_unavailable(
                exc, SONARQUBE_API_FAILED, f"Failed to submit scan of {candidate.sha}"
            ) from exc
