from app.analysis.exceptions import InvalidRequestError
from app.analysis.models import AnalysisRequest, UploadStrategy


def select_upload_strategy(
    size_bytes: int,
    *,
    inline_threshold_bytes: int,
    uri_passthrough: bool = False,
) -> UploadStrategy:
    """Pick the upload path for a file of the given size.

    Files up to and including the threshold go inline; larger ones go through
    the object store.
    """
    if size_bytes <= inline_threshold_bytes:
        return UploadStrategy.INLINE
    if uri_passthrough:
        return UploadStrategy.URI_PASSTHROUGH
    return UploadStrategy.SIGNED_URL


def resolve_request_strategy(request: AnalysisRequest, *, uri_passthrough: bool) -> UploadStrategy:
    """Strategy for a request already received by the server."""
    if request.payload is not None and request.object_key is not None:
        raise InvalidRequestError("Request carries both an inline payload and an object key")
    if request.payload is not None:
        return UploadStrategy.INLINE
    if request.object_key:
        return UploadStrategy.URI_PASSTHROUGH if uri_passthrough else UploadStrategy.SIGNED_URL
    raise InvalidRequestError(
        "Request carries neither a payload nor an object key",
        user_message="Nenhum vídeo fornecido",
    )
