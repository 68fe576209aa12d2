import json
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from app.config.settings import Settings
from app.inference.base import BaseInferenceClient
from app.inference.models import Candidate, FileState, InferenceResponse, RemoteFile


def build_result_payload(
    velo: int = 10,
    oro: int = 20,
    epi: int = 15,
    confidence: int = 90,
) -> dict[str, Any]:
    """Valid analysis JSON as the model is asked to return it."""
    return {
        "velo_palato": {
            "obstrucao_percentual": velo,
            "padrao_colapso": "Anteroposterior",
            "descricao": "Colapso discreto do palato mole.",
        },
        "orofaringe": {
            "obstrucao_percentual": oro,
            "padrao_colapso": "Lateral",
            "descricao": "Paredes laterais com colapso parcial.",
        },
        "epiglote_base_lingua": {
            "obstrucao_percentual": epi,
            "padrao_colapso": "Ausente",
            "descricao": "Base da língua sem obstrução relevante.",
        },
        "nivel_confianca": confidence,
        "analise_clinica": "Obstrução leve multinível.",
    }


def make_response(text: str, finish_reason: str | None = "STOP") -> InferenceResponse:
    return InferenceResponse(candidates=[Candidate(text=text, finish_reason=finish_reason)])


def make_remote_file(state: FileState = FileState.PENDING, name: str = "files/abc") -> RemoteFile:
    return RemoteFile(
        name=name,
        uri=f"https://generativelanguage.googleapis.com/v1beta/{name}",
        mime_type="video/mp4",
        state=state,
    )


@pytest.fixture()
def result_payload() -> dict[str, Any]:
    return build_result_payload()


@pytest.fixture()
def result_json(result_payload: dict[str, Any]) -> str:
    return json.dumps(result_payload)


@pytest.fixture()
def mock_client(result_json: str) -> MagicMock:
    """Inference client that uploads, goes ACTIVE on the first poll and answers validly."""
    client = MagicMock(spec=BaseInferenceClient)
    client.upload_file.return_value = make_remote_file(FileState.PENDING)
    client.get_file.return_value = make_remote_file(FileState.ACTIVE)
    client.generate_content.return_value = make_response(result_json)
    return client


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        inference_provider="gemini",
        google_api_key="test-key",
        gcs_service_account='{"project_id": "p"}',
        gcs_bucket_name="dise-videos",
        temp_dir=str(tmp_path),
        poll_interval_seconds=0.0,
        progress_tick_seconds=0.01,
    )


@pytest.fixture()
def video_file(tmp_path: Path) -> Callable[[int], Path]:
    """Factory writing a fake video of the requested size under tmp_path."""

    def _make(size: int) -> Path:
        path = tmp_path / "input" / f"exame-{size}.mp4"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\x00" * size)
        return path

    return _make


@pytest.fixture()
def build_payload() -> Callable[..., dict[str, Any]]:
    return build_result_payload


@pytest.fixture()
def inference_response() -> Callable[..., InferenceResponse]:
    return make_response


@pytest.fixture()
def remote_file() -> Callable[..., RemoteFile]:
    return make_remote_file
