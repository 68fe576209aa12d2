"""HTTP API for video analysis."""

import functools
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, UploadFile
from fastapi.responses import JSONResponse

from app.analysis.exceptions import AnalysisError
from app.analysis.models import AnalysisRequest, AnalysisResponse
from app.analysis.orchestrator import AnalysisOrchestrator, build_orchestrator
from app.api.schemas import (
    ErrorResponse,
    SignUrlRequest,
    SignUrlResponse,
    StorageAnalyzeRequest,
)
from app.config.settings import Settings
from app.logging.logger import Log
from app.storage.factory import ObjectStoreFactory
from app.storage.signed_upload import SignedUploadIssuer


def create_app(
    settings: Settings,
    orchestrator: AnalysisOrchestrator | None = None,
    issuer: SignedUploadIssuer | None = None,
) -> FastAPI:
    """Build the FastAPI application around one orchestrator and issuer."""
    orchestrator = orchestrator or build_orchestrator(settings)
    issuer = issuer or SignedUploadIssuer(
        functools.cache(lambda: ObjectStoreFactory.create(settings)),
        expiry_minutes=settings.signed_url_expiry_minutes,
    )
    max_inline_mb = settings.max_inline_upload_bytes // (1024 * 1024)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        Log.info(f"DISE analysis service started (env={settings.app_env})")
        Log.info(
            f"Inference provider: {settings.inference_provider} "
            f"({settings.gemini_model_name}), inline cap {max_inline_mb}MB"
        )
        yield
        Log.info("DISE analysis service stopped")

    app = FastAPI(
        title="DISE Analysis Service",
        description="Airway obstruction analysis of drug-induced sleep endoscopy videos",
        version="1.0.0",
        lifespan=lifespan,
    )

    def _respond(response: AnalysisResponse) -> JSONResponse:
        return JSONResponse(response.to_dict(), status_code=response.status_code)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "service": "dise-analysis"}

    @app.post("/analyze")
    def analyze(video: UploadFile | None = File(default=None)) -> JSONResponse:
        """Analyze a video sent inline as multipart field ``video``."""
        if video is None:
            return _respond(AnalysisResponse.failure("Nenhum vídeo fornecido", status_code=400))
        if video.size is not None and video.size > settings.max_inline_upload_bytes:
            Log.warning(f"Rejected inline upload of {video.size} bytes")
            return _respond(
                AnalysisResponse.failure(
                    f"Arquivo muito grande. Máximo permitido: {max_inline_mb}MB",
                    status_code=413,
                )
            )
        payload = video.file.read()
        Log.info(
            f"Received {video.filename} "
            f"({len(payload) / (1024 * 1024):.2f} MB, {video.content_type})"
        )
        request = AnalysisRequest.inline(
            payload,
            mime_type=video.content_type or "video/mp4",
            display_name=video.filename or "",
        )
        return _respond(orchestrator.analyze(request))

    @app.post("/gcs/sign-url", response_model=SignUrlResponse)
    def sign_url(body: SignUrlRequest) -> JSONResponse:
        """Issue a signed URL for uploading a large video directly to storage."""
        try:
            signed = issuer.issue(body.file_name, body.content_type)
        except AnalysisError as exc:
            Log.error(f"Signed URL issuance failed: {exc}")
            return JSONResponse(
                ErrorResponse(error=exc.user_message).model_dump(), status_code=exc.status_code
            )
        payload = SignUrlResponse(
            signed_url=signed.signed_url,
            file_name=signed.object_key,
            bucket_name=signed.bucket_name,
            gcs_uri=signed.gcs_uri,
        )
        return JSONResponse(payload.model_dump(by_alias=True))

    @app.post("/gcs/analyze")
    def analyze_from_storage(body: StorageAnalyzeRequest) -> JSONResponse:
        """Analyze a video previously uploaded through a signed URL."""
        if not body.file_name:
            return _respond(AnalysisResponse.failure("fileName é obrigatório", status_code=400))
        request = AnalysisRequest.from_storage(
            body.file_name, mime_type=body.mime_type or "video/mp4", size_bytes=body.size_bytes
        )
        return _respond(orchestrator.analyze(request))

    return app
