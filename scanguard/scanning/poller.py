import logging
from typing import Optional

from scanguard.core.cancellation import CancellationToken
from scanguard.core.protocols import QualityServiceClient
from scanguard.entities import AnalysisStatus, TaskStatus
from scanguard.scanning.exceptions import (
    SONARQUBE_API_FAILED,
    ProtocolViolationError,
    collaborator_unavailable,
)

logger = logging.getLogger(__name__)


class CompletionPoller:
    """
    Waits for a compute-engine task to reach a terminal status.

    There is no attempt ceiling: the wait is bounded only by the token's
    deadline and ``max_duration``. Stopping the wait never cancels the remote
    task.
    """

    def __init__(
        self,
        quality_client: QualityServiceClient,
        poll_interval: float = 5.0,
        max_duration: Optional[float] = None,
    ):
        self.quality_client = quality_client
        self.poll_interval = poll_interval
        self.max_duration = max_duration

    def wait_for_completion(
        self,
        task_id: str,
        cancel_token: Optional[CancellationToken] = None,
        max_duration: Optional[float] = None,
    ) -> TaskStatus:
        """
        Poll ``task_id`` until SUCCESS, FAILED or CANCELED and return that snapshot.

        Raises:
            ScanCancelledError: the token was cancelled before or during a wait.
            ScanDeadlineExceededError: the deadline passed before completion.
            ProtocolViolationError: SonarQube reported an unknown status.
            CollaboratorUnavailableError: the status could not be fetched.
        """
        limit = max_duration if max_duration is not None else self.max_duration
        token = (cancel_token or CancellationToken()).child(limit)

        waits = 0
        while True:
            token.raise_if_stopped()

            try:
                task = self.quality_client.get_scan_status(task_id)
            except Exception as exc:
                raise collaborator_unavailable(
                    exc, SONARQUBE_API_FAILED, f"Failed to fetch status of task {task_id}"
                ) from exc

            try:
                status = AnalysisStatus(task.status)
            except ValueError:
                raise ProtocolViolationError(
                    f"Task {task_id} reported unknown status {task.status!r}"
                ) from None

            if status.is_terminal:
                logger.info(f"Task {task_id} finished with {status.value} after {waits} wait(s)")
                return task

            logger.debug(f"Task {task_id} is {status.value}, waiting {self.poll_interval}s")
            token.wait(self.poll_interval)
            waits += 1
