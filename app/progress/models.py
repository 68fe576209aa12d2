from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum


class ProgressStage(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressState:
    """Advisory progress snapshot pushed to the UI."""

    stage: ProgressStage
    progress: float
    message: str
    estimated_seconds_remaining: float | None = None


ProgressSink = Callable[[ProgressState], None]


def discard_progress(state: ProgressState) -> None:
    _ = state
