from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from app.analysis.exceptions import ProcessingError
from app.analysis.models import AnalysisRequest
from app.analysis.orchestrator import AnalysisOrchestrator, build_orchestrator
from app.analysis.pipeline import CancellationToken
from app.config.settings import Settings
from app.inference.models import FileState, InferenceResponse, RemoteFile
from app.progress.models import ProgressStage, ProgressState
from app.storage.base import BaseObjectStore

MB = 1024 * 1024
GENERIC_REJECTION = "Vídeo não aceito pelo sistema de análise. Tente outro vídeo."

Builder = Callable[..., AnalysisOrchestrator]


@pytest.fixture()
def store() -> MagicMock:
    store = MagicMock(spec=BaseObjectStore)
    store.bucket_name = "dise-videos"
    store.exists.return_value = True
    store.download_to.side_effect = lambda key, destination: destination.write_bytes(b"\x00" * 2048)
    store.uri.side_effect = lambda key: f"gs://dise-videos/{key}"
    return store


@pytest.fixture()
def make_orchestrator(
    settings: Settings, mock_client: MagicMock, store: MagicMock
) -> Iterator[Builder]:
    with (
        patch("app.analysis.orchestrator.InferenceClientFactory") as client_factory,
        patch("app.analysis.orchestrator.ObjectStoreFactory") as store_factory,
    ):
        client_factory.create.return_value = mock_client
        store_factory.create.return_value = store

        def _build(**overrides: Any) -> AnalysisOrchestrator:
            return build_orchestrator(settings.model_copy(update=overrides))

        yield _build


def _inline(size: int = 2 * MB) -> AnalysisRequest:
    return AnalysisRequest.inline(b"\x00" * size, "video/mp4", "exame.mp4")


def _stored(key: str = "uploads/k-exame.mp4") -> AnalysisRequest:
    return AnalysisRequest.from_storage(key, "video/mp4", 2048)


class TestInlineAnalysis:
    def test_success_end_to_end(
        self, make_orchestrator: Builder, mock_client: MagicMock, tmp_path: Path
    ) -> None:
        states: list[ProgressState] = []

        response = make_orchestrator().analyze(_inline(), progress_sink=states.append)

        assert response.success is True
        assert response.status_code == 200
        assert response.data is not None
        assert response.data.velo_palato.obstrucao_percentual == 10
        assert response.data.orofaringe.obstrucao_percentual == 20
        assert response.data.epiglote_base_lingua.obstrucao_percentual == 15
        assert response.data.nivel_confianca == 90
        assert list(tmp_path.iterdir()) == []
        mock_client.delete_file.assert_called_once_with("files/abc")

    def test_progress_walks_through_stages(self, make_orchestrator: Builder) -> None:
        states: list[ProgressState] = []

        make_orchestrator().analyze(_inline(), progress_sink=states.append)

        stages = [s.stage for s in states]
        assert stages.index(ProgressStage.UPLOADING) < stages.index(ProgressStage.PROCESSING)
        assert stages.index(ProgressStage.PROCESSING) < stages.index(ProgressStage.ANALYZING)
        assert states[-1] == ProgressState(
            ProgressStage.COMPLETE, 100.0, "Análise concluída!", 0.0
        )
        values = [s.progress for s in states]
        assert values == sorted(values)

    def test_uploads_single_local_copy(
        self, make_orchestrator: Builder, mock_client: MagicMock, tmp_path: Path
    ) -> None:
        make_orchestrator().analyze(_inline())

        uploaded_path = mock_client.upload_file.call_args.args[0]
        assert uploaded_path.parent == tmp_path
        assert mock_client.upload_file.call_args.kwargs["mime_type"] == "video/mp4"

    def test_processing_failure_skips_inference(
        self,
        make_orchestrator: Builder,
        mock_client: MagicMock,
        remote_file: Callable[..., RemoteFile],
        tmp_path: Path,
    ) -> None:
        mock_client.get_file.return_value = remote_file(FileState.FAILED)
        states: list[ProgressState] = []

        response = make_orchestrator().analyze(_inline(), progress_sink=states.append)

        assert response.success is False
        assert response.error == ProcessingError.default_user_message
        mock_client.generate_content.assert_not_called()
        mock_client.delete_file.assert_called_once_with("files/abc")
        assert list(tmp_path.iterdir()) == []
        assert states[-1].stage is ProgressStage.ERROR

    def test_processing_timeout(
        self,
        make_orchestrator: Builder,
        mock_client: MagicMock,
        remote_file: Callable[..., RemoteFile],
    ) -> None:
        mock_client.get_file.return_value = remote_file(FileState.PENDING)

        response = make_orchestrator(poll_max_attempts=3).analyze(_inline())

        assert response.status_code == 504
        assert mock_client.get_file.call_count == 3

    def test_safety_filter_returns_generic_message(
        self,
        make_orchestrator: Builder,
        mock_client: MagicMock,
        result_json: str,
        inference_response: Callable[..., InferenceResponse],
    ) -> None:
        mock_client.generate_content.return_value = inference_response(result_json, "SAFETY")

        response = make_orchestrator().analyze(_inline())

        assert response.error == GENERIC_REJECTION
        assert response.status_code == 422

    def test_oversized_payload_rejected_before_upload(
        self, make_orchestrator: Builder, mock_client: MagicMock, tmp_path: Path
    ) -> None:
        response = make_orchestrator(max_inline_upload_bytes=1 * MB).analyze(_inline(MB + 1))

        assert response.status_code == 413
        assert response.error == "Arquivo muito grande. Máximo permitido: 1MB"
        mock_client.upload_file.assert_not_called()
        assert list(tmp_path.iterdir()) == []

    def test_missing_api_key_fails_before_any_call(
        self, make_orchestrator: Builder, mock_client: MagicMock
    ) -> None:
        response = make_orchestrator(google_api_key="").analyze(_inline())

        assert response.success is False
        assert response.status_code == 500
        assert response.error is not None
        assert response.error.startswith("API Key não configurada")
        assert mock_client.mock_calls == []

    def test_unexpected_exception_is_reported(
        self, make_orchestrator: Builder, mock_client: MagicMock, tmp_path: Path
    ) -> None:
        mock_client.generate_content.side_effect = RuntimeError("boom")

        response = make_orchestrator().analyze(_inline())

        assert response.error == "Erro desconhecido durante a análise"
        assert response.status_code == 500
        assert list(tmp_path.iterdir()) == []

    def test_empty_request(self, make_orchestrator: Builder) -> None:
        request = AnalysisRequest(mime_type="video/mp4", size_bytes=0)

        response = make_orchestrator().analyze(request)

        assert response.status_code == 400
        assert response.error == "Nenhum vídeo fornecido"


class TestCancellation:
    def test_cancelled_before_start(
        self, make_orchestrator: Builder, mock_client: MagicMock
    ) -> None:
        token = CancellationToken()
        token.cancel()
        states: list[ProgressState] = []

        response = make_orchestrator().analyze(
            _inline(), cancellation=token, progress_sink=states.append
        )

        assert response.status_code == 499
        assert response.error == "Análise cancelada"
        mock_client.upload_file.assert_not_called()
        assert states[-1].stage is ProgressStage.IDLE

    def test_cancelled_during_upload_cleans_remote_file(
        self,
        make_orchestrator: Builder,
        mock_client: MagicMock,
        remote_file: Callable[..., RemoteFile],
        tmp_path: Path,
    ) -> None:
        token = CancellationToken()

        def _upload(*args: object, **kwargs: object) -> RemoteFile:
            token.cancel()
            return remote_file(FileState.PENDING)

        mock_client.upload_file.side_effect = _upload

        response = make_orchestrator().analyze(_inline(), cancellation=token)

        assert response.status_code == 499
        mock_client.get_file.assert_not_called()
        mock_client.generate_content.assert_not_called()
        mock_client.delete_file.assert_called_once_with("files/abc")
        assert list(tmp_path.iterdir()) == []


class TestStorageAnalysis:
    def test_signed_url_flow(
        self,
        make_orchestrator: Builder,
        mock_client: MagicMock,
        store: MagicMock,
        tmp_path: Path,
    ) -> None:
        response = make_orchestrator().analyze(_stored())

        assert response.success is True
        store.download_to.assert_called_once()
        assert store.download_to.call_args.args[0] == "uploads/k-exame.mp4"
        mock_client.upload_file.assert_called_once()
        store.delete.assert_called_once_with("uploads/k-exame.mp4")
        mock_client.delete_file.assert_called_once_with("files/abc")
        assert list(tmp_path.iterdir()) == []

    def test_missing_object(
        self, make_orchestrator: Builder, mock_client: MagicMock, store: MagicMock
    ) -> None:
        store.exists.return_value = False

        response = make_orchestrator().analyze(_stored())

        assert response.status_code == 404
        assert response.error == "Arquivo não encontrado no GCS"
        mock_client.upload_file.assert_not_called()

    def test_incomplete_storage_config(
        self, make_orchestrator: Builder, store: MagicMock
    ) -> None:
        response = make_orchestrator(gcs_bucket_name="").analyze(_stored())

        assert response.status_code == 500
        assert response.error == "Configuração GCS incompleta"
        store.exists.assert_not_called()

    def test_uri_passthrough_skips_vendor_copy(
        self, make_orchestrator: Builder, mock_client: MagicMock, store: MagicMock
    ) -> None:
        response = make_orchestrator(storage_uri_passthrough=True).analyze(_stored())

        assert response.success is True
        mock_client.upload_file.assert_not_called()
        mock_client.get_file.assert_not_called()
        kwargs = mock_client.generate_content.call_args.kwargs
        assert kwargs["file_uri"] == "gs://dise-videos/uploads/k-exame.mp4"
        assert kwargs["mime_type"] == "video/mp4"
        store.delete.assert_called_once_with("uploads/k-exame.mp4")
