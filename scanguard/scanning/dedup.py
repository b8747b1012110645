import logging
from dataclasses import dataclass, field
from typing import List

from scanguard.core.protocols import QualityServiceClient
from scanguard.entities import ScanCandidate

logger = logging.getLogger(__name__)


@dataclass
class DedupResult:
    to_scan: List[ScanCandidate] = field(default_factory=list)
    skipped_count: int = 0
    # True when known analyses could not be fetched and nothing was filtered
    uncertain: bool = False


class ScanDeduplicator:
    """Drops candidates whose exact revision already has an analysis."""

    def __init__(self, quality_client: QualityServiceClient):
        self.quality_client = quality_client

    def deduplicate(self, project_key: str, candidates: List[ScanCandidate]) -> DedupResult:
        try:
            analyses = self.quality_client.get_known_analyses(project_key)
        except Exception as exc:
            # Fail open: every candidate counts as unscanned
            logger.warning(
                f"Could not fetch analyses of {project_key}, scanning all "
                f"{len(candidates)} candidates: {exc}"
            )
            return DedupResult(to_scan=list(candidates), skipped_count=0, uncertain=True)

        known_revisions = {a.revision for a in analyses if a.revision}
        to_scan = [c for c in candidates if c.sha not in known_revisions]
        skipped = len(candidates) - len(to_scan)
        if skipped:
            logger.info(f"{skipped} candidate(s) of {project_key} already analysed")
        return DedupResult(to_scan=to_scan, skipped_count=skipped)
