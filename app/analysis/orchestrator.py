import functools
from pathlib import Path

from app.analysis.cleanup import CleanupCoordinator
from app.analysis.exceptions import AnalysisCancelledError, AnalysisError
from app.analysis.invoker import AnalysisInvoker
from app.analysis.models import AnalysisRequest, AnalysisResponse, UploadStrategy
from app.analysis.pipeline import CancellationToken, PipelineContext, PipelineStep
from app.analysis.poller import PollingPolicy, ReadinessPoller
from app.analysis.prompt_loader import (
    load_response_schema,
    load_system_instruction,
    load_user_prompt,
)
from app.analysis.routing import resolve_request_strategy
from app.analysis.steps import (
    AnalyzeStep,
    CheckConfigurationStep,
    CheckInlineSizeStep,
    DownloadObjectStep,
    UploadToVendorStep,
    UseStorageUriStep,
    WaitForActiveStep,
    WriteTempFileStep,
)
from app.config.settings import Settings
from app.inference.factory import InferenceClientFactory
from app.logging.logger import Log
from app.progress.estimator import DEFAULT_TICK_SECONDS
from app.progress.models import ProgressSink, ProgressStage, discard_progress
from app.storage.factory import ObjectStoreFactory

_UNKNOWN_ERROR_MESSAGE = "Erro desconhecido durante a análise"


class AnalysisOrchestrator:
    """Runs one analysis end to end and always cleans up.

    Pipeline: check config -> stage media -> upload -> wait active -> analyze,
    followed by cleanup on every path. The step list is chosen by upload strategy.
    """

    def __init__(
        self,
        *,
        pipelines: dict[UploadStrategy, list[PipelineStep]],
        cleanup: CleanupCoordinator,
        uri_passthrough: bool = False,
        progress_tick_seconds: float = DEFAULT_TICK_SECONDS,
    ) -> None:
        self._pipelines = pipelines
        self._cleanup = cleanup
        self._uri_passthrough = uri_passthrough
        self._progress_tick_seconds = progress_tick_seconds

    def analyze(
        self,
        request: AnalysisRequest,
        *,
        cancellation: CancellationToken | None = None,
        progress_sink: ProgressSink | None = None,
    ) -> AnalysisResponse:
        """Run the pipeline for a request and return a tagged outcome.

        Never raises for pipeline failures; the error is logged and returned
        as a single human-readable string.
        """
        sink = progress_sink or discard_progress
        try:
            strategy = resolve_request_strategy(request, uri_passthrough=self._uri_passthrough)
        except AnalysisError as exc:
            Log.error(f"Rejected analysis request: {exc}")
            return AnalysisResponse.failure(exc.user_message, status_code=exc.status_code)

        context = PipelineContext(
            request=request,
            strategy=strategy,
            cancellation=cancellation or CancellationToken(),
            progress_sink=sink,
            progress_tick_seconds=self._progress_tick_seconds,
        )
        Log.info(
            f"[{context.request_id}] Starting {strategy.value} analysis of "
            f"{request.display_name or request.object_key or 'inline payload'} "
            f"({request.size_bytes} bytes)"
        )
        try:
            for step in self._pipelines[strategy]:
                context.cancellation.raise_if_cancelled()
                context = step.run(context)
            if context.result is None:
                raise ValueError("Pipeline finished without a result")
        except AnalysisCancelledError:
            Log.warning(f"[{context.request_id}] Analysis cancelled")
            context.report(ProgressStage.IDLE, 0.0, "Análise cancelada")
            return AnalysisResponse.failure(
                AnalysisCancelledError.default_user_message,
                status_code=AnalysisCancelledError.status_code,
            )
        except AnalysisError as exc:
            Log.error(f"[{context.request_id}] Analysis failed ({type(exc).__name__}): {exc}")
            context.report(ProgressStage.ERROR, 0.0, exc.user_message)
            return AnalysisResponse.failure(exc.user_message, status_code=exc.status_code)
        except Exception:
            Log.exception(f"[{context.request_id}] Unexpected analysis failure")
            context.report(ProgressStage.ERROR, 0.0, _UNKNOWN_ERROR_MESSAGE)
            return AnalysisResponse.failure(_UNKNOWN_ERROR_MESSAGE)
        finally:
            self._cleanup.cleanup(context)

        Log.info(f"[{context.request_id}] Analysis completed successfully")
        context.report(ProgressStage.COMPLETE, 100.0, "Análise concluída!", 0.0)
        return AnalysisResponse.ok(context.result)


def build_orchestrator(settings: Settings, temp_dir: Path | None = None) -> AnalysisOrchestrator:
    """Build an AnalysisOrchestrator with all required adapters."""
    client = InferenceClientFactory.create(settings)
    store_provider = functools.cache(lambda: ObjectStoreFactory.create(settings))
    if temp_dir is None and settings.temp_dir:
        temp_dir = Path(settings.temp_dir)

    poller = ReadinessPoller(
        client,
        PollingPolicy(
            max_attempts=settings.poll_max_attempts,
            interval_seconds=settings.poll_interval_seconds,
            total_timeout_seconds=settings.poll_total_timeout_seconds,
        ),
    )
    invoker = AnalysisInvoker(
        client=client,
        model=settings.gemini_model_name,
        system_instruction=load_system_instruction(),
        prompt=load_user_prompt(),
        response_schema=load_response_schema(),
        temperature=settings.analysis_temperature,
    )

    upload = UploadToVendorStep(client)
    wait = WaitForActiveStep(poller)
    analyze = AnalyzeStep(invoker)
    pipelines: dict[UploadStrategy, list[PipelineStep]] = {
        UploadStrategy.INLINE: [
            CheckConfigurationStep(settings, require_storage=False),
            CheckInlineSizeStep(settings.max_inline_upload_bytes),
            WriteTempFileStep(temp_dir),
            upload,
            wait,
            analyze,
        ],
        UploadStrategy.SIGNED_URL: [
            CheckConfigurationStep(settings, require_storage=True),
            DownloadObjectStep(store_provider, temp_dir),
            upload,
            wait,
            analyze,
        ],
        UploadStrategy.URI_PASSTHROUGH: [
            CheckConfigurationStep(settings, require_storage=True),
            UseStorageUriStep(store_provider),
            analyze,
        ],
    }
    return AnalysisOrchestrator(
        pipelines=pipelines,
        cleanup=CleanupCoordinator(client, store_provider),
        uri_passthrough=settings.storage_uri_passthrough,
        progress_tick_seconds=settings.progress_tick_seconds,
    )
