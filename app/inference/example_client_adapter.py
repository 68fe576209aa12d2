"""Example inference client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseInferenceClient and register the provider in InferenceClientFactory.
"""

import json
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import ClassVar

from app.inference.base import BaseInferenceClient
from app.inference.models import Candidate, FileState, InferenceResponse, RemoteFile


class ExampleClientAdapter(BaseInferenceClient):
    """Example adapter that accepts any file and returns a fixed valid report.

    No network calls. Files are ACTIVE as soon as they are uploaded. Useful for
    local development, tests, and as a template for real provider adapters.
    """

    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {
        "velo_palato": {
            "obstrucao_percentual": 0,
            "padrao_colapso": "Ausente",
            "descricao": "Sem colapso observado.",
        },
        "orofaringe": {
            "obstrucao_percentual": 0,
            "padrao_colapso": "Ausente",
            "descricao": "Sem colapso observado.",
        },
        "epiglote_base_lingua": {
            "obstrucao_percentual": 0,
            "padrao_colapso": "Ausente",
            "descricao": "Sem colapso observado.",
        },
        "nivel_confianca": 0,
        "analise_clinica": "Resposta de exemplo, nenhuma análise real foi feita.",
    }

    def __init__(self) -> None:
        self._files: dict[str, RemoteFile] = {}

    def upload_file(
        self,
        path: Path,
        *,
        mime_type: str,
        display_name: str,
        should_abort: Callable[[], bool] | None = None,
    ) -> RemoteFile:
        _ = path, display_name, should_abort
        name = f"files/{uuid.uuid4().hex[:12]}"
        remote = RemoteFile(
            name=name,
            uri=f"example://{name}",
            mime_type=mime_type,
            state=FileState.ACTIVE,
        )
        self._files[name] = remote
        return remote

    def get_file(self, name: str) -> RemoteFile:
        return self._files.get(
            name,
            RemoteFile(name=name, uri=f"example://{name}", mime_type="", state=FileState.ACTIVE),
        )

    def delete_file(self, name: str) -> None:
        self._files.pop(name, None)

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
        _ = model, temperature, system_instruction, prompt, file_uri, mime_type, response_schema
        return InferenceResponse(
            candidates=[Candidate(text=json.dumps(self.DEFAULT_RESPONSE), finish_reason="STOP")]
        )
