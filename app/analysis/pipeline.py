import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from app.analysis.exceptions import AnalysisCancelledError
from app.analysis.models import AnalysisRequest, AnalysisResult, UploadStrategy
from app.inference.models import RemoteFile
from app.progress.estimator import DEFAULT_TICK_SECONDS, ProgressEstimator
from app.progress.models import ProgressSink, ProgressStage, ProgressState, discard_progress


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and one analysis."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise AnalysisCancelledError("Analysis cancelled by caller")


@dataclass(slots=True)
class PipelineContext:
    """Per-request state: inputs, created artifacts, cancellation and progress sink."""

    request: AnalysisRequest
    strategy: UploadStrategy
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    cancellation: CancellationToken = field(default_factory=CancellationToken)
    progress_sink: ProgressSink = discard_progress
    progress_tick_seconds: float = DEFAULT_TICK_SECONDS
    temp_path: Path | None = None
    remote_file: RemoteFile | None = None
    object_key: str | None = None
    file_uri: str = ""
    file_mime_type: str = ""
    result: AnalysisResult | None = None

    @property
    def media_size_bytes(self) -> int:
        if self.temp_path is not None and self.temp_path.exists():
            return self.temp_path.stat().st_size
        return self.request.size_bytes

    def report(
        self,
        stage: ProgressStage,
        progress: float,
        message: str,
        estimated_seconds_remaining: float | None = None,
    ) -> None:
        self.progress_sink(ProgressState(stage, progress, message, estimated_seconds_remaining))

    def track(self, stage: ProgressStage) -> ProgressEstimator:
        """Estimator for a stage, sized from the media being analyzed."""
        return ProgressEstimator.for_stage(
            self.progress_sink,
            stage,
            self.media_size_bytes,
            tick_seconds=self.progress_tick_seconds,
        )


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
