import mimetypes
import tempfile
import uuid
from collections.abc import Callable
from pathlib import Path

from app.analysis.exceptions import (
    ConfigurationError,
    InvalidRequestError,
    ObjectNotFoundError,
    SizeLimitError,
)
from app.analysis.invoker import AnalysisInvoker
from app.analysis.pipeline import PipelineContext, PipelineStep
from app.analysis.poller import ReadinessPoller
from app.config.settings import Settings
from app.inference.base import BaseInferenceClient
from app.logging.logger import Log
from app.progress.models import ProgressStage
from app.storage.base import BaseObjectStore

_DEFAULT_MIME_TYPE = "video/mp4"


def temp_file_path(temp_dir: Path | None, mime_type: str) -> Path:
    """Unique path for the single local copy of a request's media."""
    root = temp_dir if temp_dir is not None else Path(tempfile.gettempdir())
    extension = mimetypes.guess_extension(mime_type or _DEFAULT_MIME_TYPE) or ".mp4"
    return root / f"{uuid.uuid4()}{extension}"


class CheckConfigurationStep(PipelineStep):
    """Fails fast, before any network call, when credentials are missing."""

    def __init__(self, settings: Settings, *, require_storage: bool) -> None:
        self._settings = settings
        self._require_storage = require_storage

    def run(self, context: PipelineContext) -> PipelineContext:
        provider = self._settings.inference_provider.lower()
        if provider == "gemini" and not self._settings.google_api_key:
            raise ConfigurationError(
                "google_api_key is not configured",
                user_message=(
                    "API Key não configurada. Configure GOOGLE_API_KEY "
                    "nas variáveis de ambiente."
                ),
            )
        if self._require_storage and not (
            self._settings.gcs_service_account and self._settings.gcs_bucket_name
        ):
            raise ConfigurationError(
                "gcs_service_account and gcs_bucket_name are required",
                user_message="Configuração GCS incompleta",
            )
        return context


class CheckInlineSizeStep(PipelineStep):
    def __init__(self, max_bytes: int) -> None:
        self._max_bytes = max_bytes

    def run(self, context: PipelineContext) -> PipelineContext:
        payload = context.request.payload
        if not payload:
            raise InvalidRequestError(
                "Inline request without payload", user_message="Nenhum vídeo fornecido"
            )
        if len(payload) > self._max_bytes:
            limit_mb = self._max_bytes // (1024 * 1024)
            raise SizeLimitError(
                f"Payload of {len(payload)} bytes exceeds the {self._max_bytes} byte cap",
                user_message=f"Arquivo muito grande. Máximo permitido: {limit_mb}MB",
            )
        return context


class WriteTempFileStep(PipelineStep):
    def __init__(self, temp_dir: Path | None = None) -> None:
        self._temp_dir = temp_dir

    def run(self, context: PipelineContext) -> PipelineContext:
        payload = context.request.payload or b""
        path = temp_file_path(self._temp_dir, context.request.mime_type)
        context.temp_path = path
        path.write_bytes(payload)
        Log.info(f"[{context.request_id}] Saved {len(payload)} bytes to {path}")
        return context


class DownloadObjectStep(PipelineStep):
    """Fetches a caller-uploaded storage object into a local temp file."""

    def __init__(
        self,
        store_provider: Callable[[], BaseObjectStore],
        temp_dir: Path | None = None,
    ) -> None:
        self._store_provider = store_provider
        self._temp_dir = temp_dir

    def run(self, context: PipelineContext) -> PipelineContext:
        key = context.request.object_key or ""
        context.object_key = key
        store = self._store_provider()
        if not store.exists(key):
            raise ObjectNotFoundError(f"Object {key} not found in bucket {store.bucket_name}")
        path = temp_file_path(self._temp_dir, context.request.mime_type)
        context.temp_path = path
        store.download_to(key, path)
        return context


class UseStorageUriStep(PipelineStep):
    """Points inference directly at the storage object, without a vendor copy."""

    def __init__(self, store_provider: Callable[[], BaseObjectStore]) -> None:
        self._store_provider = store_provider

    def run(self, context: PipelineContext) -> PipelineContext:
        key = context.request.object_key or ""
        context.object_key = key
        store = self._store_provider()
        if not store.exists(key):
            raise ObjectNotFoundError(f"Object {key} not found in bucket {store.bucket_name}")
        context.file_uri = store.uri(key)
        context.file_mime_type = context.request.mime_type or _DEFAULT_MIME_TYPE
        Log.info(f"[{context.request_id}] Analyzing {context.file_uri} in place")
        return context


class UploadToVendorStep(PipelineStep):
    def __init__(self, client: BaseInferenceClient) -> None:
        self._client = client

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.temp_path is None:
            raise ValueError("PipelineContext.temp_path must be set before vendor upload")
        with context.track(ProgressStage.UPLOADING).running():
            remote = self._client.upload_file(
                context.temp_path,
                mime_type=context.request.mime_type or _DEFAULT_MIME_TYPE,
                display_name=context.request.display_name or context.temp_path.name,
                should_abort=context.cancellation.is_cancelled,
            )
        context.remote_file = remote
        context.file_uri = remote.uri
        context.file_mime_type = remote.mime_type or context.request.mime_type
        Log.info(f"[{context.request_id}] Uploaded to vendor as {remote.name}")
        return context


class WaitForActiveStep(PipelineStep):
    def __init__(self, poller: ReadinessPoller) -> None:
        self._poller = poller

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.remote_file is None:
            raise ValueError("PipelineContext.remote_file must be set before polling")
        with context.track(ProgressStage.PROCESSING).running():
            remote = self._poller.wait_until_active(context.remote_file.name)
        context.remote_file = remote
        context.file_uri = remote.uri or context.file_uri
        return context


class AnalyzeStep(PipelineStep):
    def __init__(self, invoker: AnalysisInvoker) -> None:
        self._invoker = invoker

    def run(self, context: PipelineContext) -> PipelineContext:
        if not context.file_uri:
            raise ValueError("PipelineContext.file_uri must be set before analysis")
        with context.track(ProgressStage.ANALYZING).running():
            context.result = self._invoker.analyze(context.file_uri, context.file_mime_type)
        return context
