import time
from collections.abc import Callable
from dataclasses import dataclass

from app.analysis.exceptions import ProcessingError, ProcessingTimeoutError
from app.inference.base import BaseInferenceClient
from app.inference.models import FileState, RemoteFile
from app.logging.logger import Log


@dataclass(frozen=True)
class PollingPolicy:
    """Fixed-interval polling limits for remote file processing."""

    max_attempts: int = 120
    interval_seconds: float = 2.0
    total_timeout_seconds: float = 240.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.interval_seconds < 0:
            raise ValueError(f"interval_seconds must be >= 0, got {self.interval_seconds}")
        if self.max_attempts * self.interval_seconds > self.total_timeout_seconds:
            raise ValueError(
                f"{self.max_attempts} attempts every {self.interval_seconds}s exceed "
                f"the {self.total_timeout_seconds}s timeout budget"
            )


class ReadinessPoller:
    """Blocks until an uploaded file becomes usable, fails, or times out."""

    def __init__(
        self,
        client: BaseInferenceClient,
        policy: PollingPolicy,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._policy = policy
        self._sleep = sleep

    def wait_until_active(self, name: str) -> RemoteFile:
        """Poll the file state until ACTIVE.

        Raises:
            ProcessingError: as soon as the vendor reports FAILED.
            ProcessingTimeoutError: after max_attempts queries without ACTIVE.
        """
        attempts = self._policy.max_attempts
        for attempt in range(1, attempts + 1):
            remote = self._client.get_file(name)
            if remote.state is FileState.ACTIVE:
                Log.info(f"File {name} is active after {attempt} poll(s)")
                return remote
            if remote.state is FileState.FAILED:
                raise ProcessingError(f"Vendor reported FAILED for {name}")
            Log.debug(f"File {name} still processing (poll {attempt}/{attempts})")
            if attempt < attempts:
                self._sleep(self._policy.interval_seconds)
        raise ProcessingTimeoutError(f"File {name} not active after {attempts} polls")
