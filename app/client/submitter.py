"""Caller-side submission of a local video to the analysis service."""

import mimetypes
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import IO, Any

import httpx

from app.analysis.exceptions import (
    AnalysisCancelledError,
    AnalysisError,
    MalformedResponseError,
    UploadError,
    UpstreamError,
)
from app.analysis.models import AnalysisResponse, UploadStrategy
from app.analysis.pipeline import CancellationToken
from app.analysis.routing import select_upload_strategy
from app.analysis.validator import validate_and_build
from app.logging.logger import Log
from app.progress.estimator import (
    DEFAULT_TICK_SECONDS,
    ProgressEstimator,
    estimate_stage_seconds,
)
from app.progress.models import ProgressSink, ProgressStage, ProgressState, discard_progress

_REMOTE_STAGES = (ProgressStage.UPLOADING, ProgressStage.PROCESSING, ProgressStage.ANALYZING)


class _CancellableReader:
    """File wrapper that aborts the transfer as soon as the caller cancels."""

    def __init__(self, fh: IO[bytes], cancellation: CancellationToken) -> None:
        self._fh = fh
        self._cancellation = cancellation

    def read(self, size: int = -1) -> bytes:
        self._cancellation.raise_if_cancelled()
        return self._fh.read(size)

    def fileno(self) -> int:
        return self._fh.fileno()


class VideoSubmitter:
    """Routes a local file by size and drives the matching upload flow.

    Small files are posted inline to ``/analyze``. Larger ones get a signed URL
    from ``/gcs/sign-url``, are PUT straight to the object store, and are then
    analyzed through ``/gcs/analyze``.
    """

    def __init__(
        self,
        *,
        base_url: str,
        inline_threshold_bytes: int,
        uri_passthrough: bool = False,
        chunk_bytes: int = 8 * 1024 * 1024,
        timeout_seconds: float = 300.0,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._inline_threshold_bytes = inline_threshold_bytes
        self._uri_passthrough = uri_passthrough
        self._chunk_bytes = chunk_bytes
        self._tick_seconds = tick_seconds
        self._http = http_client or httpx.Client(
            base_url=base_url.rstrip("/"), timeout=timeout_seconds
        )

    def submit(
        self,
        path: Path,
        mime_type: str | None = None,
        *,
        cancellation: CancellationToken | None = None,
        progress_sink: ProgressSink | None = None,
    ) -> AnalysisResponse:
        """Upload and analyze a video, returning the service's tagged outcome."""
        sink = progress_sink or discard_progress
        token = cancellation or CancellationToken()
        mime_type = mime_type or mimetypes.guess_type(path.name)[0] or "video/mp4"
        size = path.stat().st_size
        strategy = select_upload_strategy(
            size,
            inline_threshold_bytes=self._inline_threshold_bytes,
            uri_passthrough=self._uri_passthrough,
        )
        Log.info(f"Submitting {path.name} ({size} bytes) via {strategy.value}")
        try:
            if strategy is UploadStrategy.INLINE:
                raw = self._submit_inline(path, mime_type, size, token, sink)
            else:
                raw = self._submit_via_storage(path, mime_type, size, token, sink)
            response = self._to_response(raw)
        except AnalysisCancelledError:
            Log.warning(f"Submission of {path.name} cancelled")
            sink(ProgressState(ProgressStage.IDLE, 0.0, "Análise cancelada"))
            return AnalysisResponse.failure(
                AnalysisCancelledError.default_user_message,
                status_code=AnalysisCancelledError.status_code,
            )
        except AnalysisError as exc:
            Log.error(f"Submission of {path.name} failed: {exc}")
            sink(ProgressState(ProgressStage.ERROR, 0.0, exc.user_message))
            return AnalysisResponse.failure(exc.user_message, status_code=exc.status_code)

        if response.success:
            sink(ProgressState(ProgressStage.COMPLETE, 100.0, "Análise concluída!", 0.0))
        else:
            sink(ProgressState(ProgressStage.ERROR, 0.0, response.error or ""))
        return response

    def _submit_inline(
        self,
        path: Path,
        mime_type: str,
        size: int,
        token: CancellationToken,
        sink: ProgressSink,
    ) -> httpx.Response:
        duration = sum(estimate_stage_seconds(stage, size) for stage in _REMOTE_STAGES)
        estimator = self._estimator(
            sink, ProgressStage.PROCESSING, 0.0, 100.0, duration, "Processando vídeo..."
        )
        with path.open("rb") as fh, estimator.running():
            reader = _CancellableReader(fh, token)
            response = self._send(
                UploadError,
                lambda: self._http.post(
                    "/analyze", files={"video": (path.name, reader, mime_type)}
                ),
            )
        return response

    def _submit_via_storage(
        self,
        path: Path,
        mime_type: str,
        size: int,
        token: CancellationToken,
        sink: ProgressSink,
    ) -> httpx.Response:
        signed = self._json(
            self._send(
                UpstreamError,
                lambda: self._http.post(
                    "/gcs/sign-url", json={"fileName": path.name, "contentType": mime_type}
                ),
            ),
            require_success=True,
        )
        signed_url = signed.get("signedUrl")
        object_key = signed.get("fileName")
        if not signed_url or not object_key:
            raise UpstreamError(
                f"Sign-url response without signedUrl or fileName: {signed}",
                user_message="Erro ao gerar URL de upload",
            )
        upload = ProgressEstimator.for_stage(
            sink, ProgressStage.UPLOADING, size, tick_seconds=self._tick_seconds
        )
        with upload.running():
            put = self._send(
                UploadError,
                lambda: self._http.put(
                    signed_url,
                    headers={"Content-Type": mime_type, "Content-Length": str(size)},
                    content=self._iter_chunks(path, token),
                ),
            )
        if not put.is_success:
            raise UploadError(
                f"Signed URL upload failed with HTTP {put.status_code}: {put.text[:500]}",
                user_message="Erro no upload do vídeo para o armazenamento",
            )
        token.raise_if_cancelled()

        duration = estimate_stage_seconds(ProgressStage.PROCESSING, size) + estimate_stage_seconds(
            ProgressStage.ANALYZING, size
        )
        analysis = self._estimator(
            sink, ProgressStage.ANALYZING, 40.0, 100.0, duration, "Analisando obstrução..."
        )
        with analysis.running():
            response = self._send(
                UpstreamError,
                lambda: self._http.post(
                    "/gcs/analyze",
                    json={
                        "fileName": object_key,
                        "mimeType": mime_type,
                        "sizeBytes": size,
                    },
                ),
            )
        return response

    def _estimator(
        self,
        sink: ProgressSink,
        stage: ProgressStage,
        start: float,
        end: float,
        duration: float,
        message: str,
    ) -> ProgressEstimator:
        return ProgressEstimator(
            sink,
            stage=stage,
            start=start,
            end=end,
            duration_seconds=duration,
            message=message,
            tick_seconds=self._tick_seconds,
        )

    def _iter_chunks(self, path: Path, token: CancellationToken) -> Iterator[bytes]:
        with path.open("rb") as fh:
            while chunk := fh.read(self._chunk_bytes):
                token.raise_if_cancelled()
                yield chunk

    @staticmethod
    def _send(
        error_cls: type[AnalysisError], call: Callable[[], httpx.Response]
    ) -> httpx.Response:
        try:
            return call()
        except httpx.HTTPError as exc:
            raise error_cls(f"Request to analysis service failed: {exc}") from exc

    @staticmethod
    def _json(response: httpx.Response, *, require_success: bool = False) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamError(
                f"Non-JSON response (HTTP {response.status_code}): {response.text[:200]}"
            ) from exc
        if not isinstance(body, dict):
            raise UpstreamError(f"Unexpected response body: {body!r}")
        if require_success and not response.is_success:
            raise UpstreamError(
                f"HTTP {response.status_code}: {body}",
                user_message=str(body.get("error") or "Erro ao gerar URL de upload"),
            )
        return body

    @classmethod
    def _to_response(cls, response: httpx.Response) -> AnalysisResponse:
        body = cls._json(response)
        if not body.get("success"):
            return AnalysisResponse.failure(
                str(body.get("error") or "Erro desconhecido"),
                status_code=response.status_code,
            )
        data = body.get("data")
        if not isinstance(data, dict):
            raise MalformedResponseError("Successful response without data")
        return AnalysisResponse.ok(validate_and_build(data))
