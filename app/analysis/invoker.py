"""AI-powered airway obstruction analysis over an uploaded video."""

import json
from typing import Any

from app.analysis.exceptions import ContentRejectedError, MalformedResponseError
from app.analysis.models import AnalysisResult
from app.analysis.response_text import strip_code_fence
from app.analysis.validator import validate_and_build
from app.inference.base import BaseInferenceClient
from app.inference.models import InferenceResponse
from app.logging.logger import Log

REJECTED_FINISH_REASONS = frozenset(
    {"SAFETY", "OTHER", "RECITATION", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII"}
)


class AnalysisInvoker:
    """Submits a file reference plus the fixed instruction and parses the report."""

    def __init__(
        self,
        *,
        client: BaseInferenceClient,
        model: str,
        system_instruction: str,
        prompt: str,
        response_schema: dict[str, object] | None,
        temperature: float = 0.2,
    ) -> None:
        self._client = client
        self._model = model
        self._system_instruction = system_instruction
        self._prompt = prompt
        self._response_schema = response_schema
        self._temperature = max(0.0, min(1.0, temperature))

    def analyze(self, file_uri: str, mime_type: str) -> AnalysisResult:
        """Run one inference call. Never retried.

        Raises:
            ContentRejectedError: no candidate, or the content was blocked.
            MalformedResponseError: the text is not a valid analysis result.
            UpstreamError: the vendor call itself failed.
        """
        Log.info(f"Requesting analysis from {self._model} for {file_uri}")
        response = self._client.generate_content(
            model=self._model,
            temperature=self._temperature,
            system_instruction=self._system_instruction,
            prompt=self._prompt,
            file_uri=file_uri,
            mime_type=mime_type,
            response_schema=self._response_schema,
        )
        text = self._accepted_text(response)
        Log.debug(f"AI raw response:\n{text}")

        result = validate_and_build(self._parse_json(text))
        Log.info(
            f"Analysis complete: nadir at {result.nadir_level.value} "
            f"({result.max_obstruction}%), confidence {result.nivel_confianca}%"
        )
        return result

    @staticmethod
    def _accepted_text(response: InferenceResponse) -> str:
        if response.block_reason:
            raise ContentRejectedError(f"Prompt blocked by vendor: {response.block_reason}")
        if not response.candidates:
            raise ContentRejectedError("Vendor returned no candidates")
        candidate = response.candidates[0]
        if candidate.finish_reason in REJECTED_FINISH_REASONS:
            raise ContentRejectedError(
                f"Candidate filtered by vendor: finishReason={candidate.finish_reason}"
            )
        return candidate.text

    @staticmethod
    def _parse_json(raw: str) -> dict[str, Any]:
        cleaned = strip_code_fence(raw)
        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise MalformedResponseError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise MalformedResponseError("JSON response must be an object")
        return parsed
