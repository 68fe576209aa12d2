import re
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta

from app.analysis.exceptions import InvalidRequestError
from app.logging.logger import Log
from app.storage.base import BaseObjectStore

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.-]")


def sanitize_object_name(name: str) -> str:
    """Replace every character outside [A-Za-z0-9.-] with an underscore."""
    return _UNSAFE_CHARS.sub("_", name)


def build_object_key(file_name: str, prefix: str = "uploads", token: str | None = None) -> str:
    """Build a collision-resistant key: {prefix}/{random id}-{sanitized name}"""
    return f"{prefix}/{token or uuid.uuid4()}-{sanitize_object_name(file_name)}"


@dataclass(frozen=True)
class SignedUpload:
    """Everything a client needs to upload directly to the object store."""

    signed_url: str
    object_key: str
    bucket_name: str
    gcs_uri: str


class SignedUploadIssuer:
    """Issues time-limited write URLs for large-file uploads."""

    def __init__(
        self,
        store_provider: Callable[[], BaseObjectStore],
        expiry_minutes: int = 15,
    ) -> None:
        self._store_provider = store_provider
        self._expires_in = timedelta(minutes=expiry_minutes)

    def issue(self, file_name: str, content_type: str) -> SignedUpload:
        """Create an object key and sign a PUT URL for it.

        Raises:
            InvalidRequestError: if file_name or content_type is empty.
            ConfigurationError: if storage credentials are absent.
            UpstreamError: if the store cannot sign the URL.
        """
        if not file_name or not content_type:
            raise InvalidRequestError(
                "fileName and contentType are required",
                user_message="fileName e contentType são obrigatórios",
            )
        store = self._store_provider()
        object_key = build_object_key(file_name)
        signed_url = store.generate_upload_url(object_key, content_type, self._expires_in)
        Log.info(f"Signed upload URL issued for {object_key}")
        return SignedUpload(
            signed_url=signed_url,
            object_key=object_key,
            bucket_name=store.bucket_name,
            gcs_uri=store.uri(object_key),
        )
