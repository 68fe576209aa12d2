from collections.abc import Callable, Iterator
from pathlib import Path

import httpx

from app.analysis.exceptions import (
    AnalysisCancelledError,
    AnalysisError,
    ConfigurationError,
    UploadError,
    UpstreamError,
)
from app.inference.base import BaseInferenceClient
from app.inference.models import Candidate, FileState, InferenceResponse, RemoteFile
from app.logging.logger import Log

_API_VERSION = "v1beta"


class GeminiClientAdapter(BaseInferenceClient):
    """Inference client built on the Gemini REST API (File API + generateContent)."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str = "https://generativelanguage.googleapis.com",
        chunk_bytes: int = 8 * 1024 * 1024,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._chunk_bytes = chunk_bytes
        self._http = http_client or httpx.Client(
            base_url=base_url,
            timeout=timeout_seconds,
            headers={"x-goog-api-key": api_key},
        )

    def upload_file(
        self,
        path: Path,
        *,
        mime_type: str,
        display_name: str,
        should_abort: Callable[[], bool] | None = None,
    ) -> RemoteFile:
        size = path.stat().st_size
        try:
            start = self._http.post(
                f"/upload/{_API_VERSION}/files",
                headers={
                    "X-Goog-Upload-Protocol": "resumable",
                    "X-Goog-Upload-Command": "start",
                    "X-Goog-Upload-Header-Content-Length": str(size),
                    "X-Goog-Upload-Header-Content-Type": mime_type,
                },
                json={"file": {"display_name": display_name}},
            )
        except httpx.HTTPError as exc:
            raise UploadError(f"Gemini upload start failed: {exc}") from exc
        self._raise_for_status(start, "upload start", UploadError)

        upload_url = start.headers.get("x-goog-upload-url")
        if not upload_url:
            raise UploadError("Gemini did not return a resumable upload URL")

        try:
            response = self._http.post(
                upload_url,
                headers={
                    "Content-Length": str(size),
                    "X-Goog-Upload-Offset": "0",
                    "X-Goog-Upload-Command": "upload, finalize",
                },
                content=self._iter_chunks(path, should_abort),
            )
        except httpx.HTTPError as exc:
            raise UploadError(f"Gemini upload failed: {exc}") from exc
        self._raise_for_status(response, "upload", UploadError)

        remote = self._to_remote_file(response.json().get("file") or {})
        Log.info(f"Uploaded {size} bytes to Gemini as {remote.name}")
        return remote

    def get_file(self, name: str) -> RemoteFile:
        try:
            response = self._http.get(f"/{_API_VERSION}/{name}")
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Gemini file lookup failed: {exc}") from exc
        self._raise_for_status(response, "file lookup", UpstreamError)
        return self._to_remote_file(response.json())

    def delete_file(self, name: str) -> None:
        try:
            response = self._http.delete(f"/{_API_VERSION}/{name}")
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Gemini file delete failed: {exc}") from exc
        self._raise_for_status(response, "file delete", UpstreamError)

    def generate_content(
        self,
        *,
        model: str,
        temperature: float,
        system_instruction: str,
        prompt: str,
        file_uri: str,
        mime_type: str,
        response_schema: dict[str, object] | None,
    ) -> InferenceResponse:
        generation_config: dict[str, object] = {"temperature": temperature}
        if response_schema is not None:
            generation_config["responseMimeType"] = "application/json"
            generation_config["responseSchema"] = response_schema
        body: dict[str, object] = {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"fileData": {"mimeType": mime_type, "fileUri": file_uri}},
                        {"text": prompt},
                    ],
                }
            ],
            "generationConfig": generation_config,
        }
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}

        try:
            response = self._http.post(
                f"/{_API_VERSION}/models/{model}:generateContent", json=body
            )
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Gemini generateContent failed: {exc}") from exc
        self._raise_for_status(response, "generateContent", UpstreamError)
        return self._to_inference_response(response.json())

    def _iter_chunks(
        self, path: Path, should_abort: Callable[[], bool] | None
    ) -> Iterator[bytes]:
        with path.open("rb") as fh:
            while chunk := fh.read(self._chunk_bytes):
                if should_abort is not None and should_abort():
                    raise AnalysisCancelledError("Upload aborted by caller")
                yield chunk

    @staticmethod
    def _raise_for_status(
        response: httpx.Response,
        action: str,
        error_cls: type[AnalysisError],
    ) -> None:
        if response.is_success:
            return
        status = response.status_code
        detail = f"Gemini {action} failed with HTTP {status}: {response.text[:500]}"
        if status == 401:
            raise ConfigurationError(
                detail,
                user_message="API Key inválida. Configure uma chave válida do Google AI.",
            )
        if status == 403:
            raise error_cls(
                detail,
                user_message=(
                    "Acesso negado. Verifique se a API Key do Google está válida "
                    "e tem permissões."
                ),
            )
        if status == 429 or "quota" in response.text.lower():
            raise error_cls(
                detail,
                user_message="Limite de uso da API atingido. Aguarde alguns minutos.",
            )
        raise error_cls(detail, user_message="Erro na comunicação com o Google AI")

    @staticmethod
    def _to_remote_file(data: dict[str, object]) -> RemoteFile:
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise UpstreamError(f"Gemini returned a file without a name: {data}")
        state = data.get("state")
        return RemoteFile(
            name=name,
            uri=str(data.get("uri") or ""),
            mime_type=str(data.get("mimeType") or ""),
            state=FileState.from_vendor(state if isinstance(state, str) else None),
        )

    @staticmethod
    def _to_inference_response(data: dict[str, object]) -> InferenceResponse:
        feedback = data.get("promptFeedback")
        block_reason = feedback.get("blockReason") if isinstance(feedback, dict) else None

        candidates: list[Candidate] = []
        raw_candidates = data.get("candidates")
        for raw in raw_candidates if isinstance(raw_candidates, list) else []:
            if not isinstance(raw, dict):
                continue
            content = raw.get("content")
            parts = content.get("parts") if isinstance(content, dict) else None
            parts = parts if isinstance(parts, list) else []
            text = "".join(
                str(part.get("text", "")) for part in parts if isinstance(part, dict)
            )
            candidates.append(Candidate(text=text, finish_reason=raw.get("finishReason")))
        return InferenceResponse(candidates=candidates, block_reason=block_reason)
