import pytest

from app.analysis.exceptions import InvalidRequestError
from app.analysis.models import AnalysisRequest, UploadStrategy
from app.analysis.routing import resolve_request_strategy, select_upload_strategy

THRESHOLD = 4 * 1024 * 1024


class TestSelectUploadStrategy:
    def test_small_file_goes_inline(self) -> None:
        strategy = select_upload_strategy(1024, inline_threshold_bytes=THRESHOLD)
        assert strategy is UploadStrategy.INLINE

    def test_threshold_value_is_inline(self) -> None:
        strategy = select_upload_strategy(THRESHOLD, inline_threshold_bytes=THRESHOLD)
        assert strategy is UploadStrategy.INLINE

    def test_one_byte_over_threshold_uses_signed_url(self) -> None:
        strategy = select_upload_strategy(THRESHOLD + 1, inline_threshold_bytes=THRESHOLD)
        assert strategy is UploadStrategy.SIGNED_URL

    def test_large_file_uses_passthrough_when_enabled(self) -> None:
        strategy = select_upload_strategy(
            THRESHOLD + 1, inline_threshold_bytes=THRESHOLD, uri_passthrough=True
        )
        assert strategy is UploadStrategy.URI_PASSTHROUGH

    def test_passthrough_never_applies_to_small_files(self) -> None:
        strategy = select_upload_strategy(
            10, inline_threshold_bytes=THRESHOLD, uri_passthrough=True
        )
        assert strategy is UploadStrategy.INLINE


class TestResolveRequestStrategy:
    def test_inline_payload(self) -> None:
        request = AnalysisRequest.inline(b"video", "video/mp4")
        assert resolve_request_strategy(request, uri_passthrough=True) is UploadStrategy.INLINE

    def test_object_key_uses_signed_url(self) -> None:
        request = AnalysisRequest.from_storage("uploads/x.mp4", "video/mp4")
        assert resolve_request_strategy(request, uri_passthrough=False) is UploadStrategy.SIGNED_URL

    def test_object_key_uses_passthrough_when_enabled(self) -> None:
        request = AnalysisRequest.from_storage("uploads/x.mp4", "video/mp4")
        strategy = resolve_request_strategy(request, uri_passthrough=True)
        assert strategy is UploadStrategy.URI_PASSTHROUGH

    def test_empty_request_is_rejected(self) -> None:
        request = AnalysisRequest(mime_type="video/mp4", size_bytes=0)
        with pytest.raises(InvalidRequestError, match="neither"):
            resolve_request_strategy(request, uri_passthrough=False)

    def test_both_payload_and_key_is_rejected(self) -> None:
        request = AnalysisRequest(
            mime_type="video/mp4", size_bytes=1, payload=b"x", object_key="uploads/x.mp4"
        )
        with pytest.raises(InvalidRequestError, match="both"):
            resolve_request_strategy(request, uri_passthrough=False)
