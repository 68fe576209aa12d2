"""Synthetic progress estimation for long-running remote calls.

The estimator never sees real bytes or vendor state. It advances linearly over
an estimated duration, stays at or below 95% of the stage range until the real
operation completes, then jumps to the stage's end value.
"""

import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from app.progress.models import ProgressSink, ProgressStage, ProgressState

CAP_RATIO = 0.95
DEFAULT_TICK_SECONDS = 0.2
_BYTES_PER_MB = 1024 * 1024


@dataclass(frozen=True)
class StageProfile:
    """Progress range and calibrated duration model for one stage."""

    start: float
    end: float
    base_seconds: float
    seconds_per_mb: float
    message: str


STAGE_PROFILES: dict[ProgressStage, StageProfile] = {
    ProgressStage.UPLOADING: StageProfile(0.0, 40.0, 2.0, 0.8, "Enviando vídeo..."),
    ProgressStage.PROCESSING: StageProfile(40.0, 70.0, 4.0, 0.5, "Processando vídeo..."),
    ProgressStage.ANALYZING: StageProfile(70.0, 100.0, 10.0, 0.6, "Analisando obstrução..."),
}


def estimate_stage_seconds(stage: ProgressStage, size_bytes: int) -> float:
    """Estimated duration of a stage for a file of the given size."""
    profile = STAGE_PROFILES[stage]
    return profile.base_seconds + profile.seconds_per_mb * (size_bytes / _BYTES_PER_MB)


def estimate_progress(start: float, end: float, duration: float, elapsed: float) -> float:
    """Linear progress between start and end, capped at 95% of the range."""
    if duration <= 0:
        fraction = 1.0
    else:
        fraction = min(max(elapsed, 0.0) / duration, 1.0)
    return start + fraction * CAP_RATIO * (end - start)


class ProgressEstimator:
    """Ticks synthetic progress into a sink on a background thread."""

    def __init__(
        self,
        sink: ProgressSink,
        *,
        stage: ProgressStage,
        start: float,
        end: float,
        duration_seconds: float,
        message: str = "",
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if end < start:
            raise ValueError(f"end ({end}) must not be below start ({start})")
        self._sink = sink
        self._stage = stage
        self._start = start
        self._end = end
        self._duration = duration_seconds
        self._message = message
        self._tick_seconds = tick_seconds
        self._clock = clock
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._started_at = 0.0
        self._last = start
        self._finished = False

    @classmethod
    def for_stage(
        cls,
        sink: ProgressSink,
        stage: ProgressStage,
        size_bytes: int,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> "ProgressEstimator":
        profile = STAGE_PROFILES[stage]
        return cls(
            sink,
            stage=stage,
            start=profile.start,
            end=profile.end,
            duration_seconds=estimate_stage_seconds(stage, size_bytes),
            message=profile.message,
            tick_seconds=tick_seconds,
            clock=clock,
        )

    @property
    def last_progress(self) -> float:
        return self._last

    def sample(self) -> ProgressState:
        """Current estimate without emitting it."""
        elapsed = self._clock() - self._started_at
        progress = max(
            self._last, estimate_progress(self._start, self._end, self._duration, elapsed)
        )
        return ProgressState(
            stage=self._stage,
            progress=progress,
            message=self._message,
            estimated_seconds_remaining=max(self._duration - elapsed, 0.0),
        )

    def start(self) -> None:
        self._started_at = self._clock()
        self._emit(self.sample())
        self._thread = threading.Thread(
            target=self._run, name=f"progress-{self._stage.value}", daemon=True
        )
        self._thread.start()

    def complete(self) -> None:
        """Stop ticking and jump to the stage's end value."""
        self._halt()
        with self._lock:
            if self._finished:
                return
            self._finished = True
            self._last = self._end
            self._sink(
                ProgressState(
                    stage=self._stage,
                    progress=self._end,
                    message=self._message,
                    estimated_seconds_remaining=0.0,
                )
            )

    def cancel(self) -> None:
        """Stop ticking without emitting anything further."""
        self._halt()
        with self._lock:
            self._finished = True

    @contextmanager
    def running(self) -> Iterator["ProgressEstimator"]:
        self.start()
        try:
            yield self
        except BaseException:
            self.cancel()
            raise
        self.complete()

    def _run(self) -> None:
        while not self._stop.wait(self._tick_seconds):
            self._emit(self.sample())

    def _emit(self, state: ProgressState) -> None:
        with self._lock:
            if self._finished:
                return
            self._last = state.progress
            self._sink(state)

    def _halt(self) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
