from pathlib import Path
from unittest.mock import MagicMock

import pytest

from app.analysis.invoker import AnalysisInvoker
from app.analysis.models import AnalysisRequest, UploadStrategy
from app.analysis.pipeline import PipelineContext
from app.analysis.poller import PollingPolicy, ReadinessPoller
from app.analysis.steps import (
    AnalyzeStep,
    UploadToVendorStep,
    WaitForActiveStep,
    WriteTempFileStep,
)
from app.inference.models import FileState
from app.progress.models import ProgressStage, ProgressState


@pytest.fixture()
def states() -> list[ProgressState]:
    return []


@pytest.fixture()
def context(states: list[ProgressState]) -> PipelineContext:
    return PipelineContext(
        request=AnalysisRequest.inline(b"0123456789", "video/mp4", "exame.mp4"),
        strategy=UploadStrategy.INLINE,
        progress_sink=states.append,
        progress_tick_seconds=60.0,
    )


class TestUploadToVendorStep:
    def test_uploads_temp_file_and_completes_stage(
        self,
        context: PipelineContext,
        mock_client: MagicMock,
        states: list[ProgressState],
        tmp_path: Path,
    ) -> None:
        WriteTempFileStep(tmp_path).run(context)

        UploadToVendorStep(mock_client).run(context)

        mock_client.upload_file.assert_called_once()
        assert mock_client.upload_file.call_args.args[0] == context.temp_path
        assert context.remote_file is not None
        assert context.remote_file.name == "files/abc"
        assert context.file_uri.endswith("files/abc")
        assert states[0].stage is ProgressStage.UPLOADING
        assert states[-1].progress == 40.0

    def test_requires_temp_file(self, context: PipelineContext, mock_client: MagicMock) -> None:
        with pytest.raises(ValueError, match="temp_path"):
            UploadToVendorStep(mock_client).run(context)


class TestWaitForActiveStep:
    def test_polls_until_active(
        self, context: PipelineContext, mock_client: MagicMock, states: list[ProgressState]
    ) -> None:
        context.remote_file = mock_client.upload_file.return_value
        poller = ReadinessPoller(mock_client, PollingPolicy(), sleep=MagicMock())

        WaitForActiveStep(poller).run(context)

        mock_client.get_file.assert_called_once_with("files/abc")
        assert context.remote_file.state is FileState.ACTIVE
        assert states[-1].stage is ProgressStage.PROCESSING
        assert states[-1].progress == 70.0


class TestAnalyzeStep:
    def test_stores_result(
        self, context: PipelineContext, mock_client: MagicMock, states: list[ProgressState]
    ) -> None:
        context.file_uri = "https://generativelanguage.googleapis.com/v1beta/files/abc"
        context.file_mime_type = "video/mp4"
        invoker = AnalysisInvoker(
            client=mock_client,
            model="gemini-2.5-pro",
            system_instruction="Você é um especialista.",
            prompt="Analise.",
            response_schema=None,
        )

        AnalyzeStep(invoker).run(context)

        assert context.result is not None
        assert context.result.orofaringe.obstrucao_percentual == 20
        assert states[-1].stage is ProgressStage.ANALYZING
        assert states[-1].progress == 100.0
