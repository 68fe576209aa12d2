from datetime import timedelta
from pathlib import Path

from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage

from app.analysis.exceptions import UpstreamError
from app.logging.logger import Log
from app.storage.base import BaseObjectStore

# requests' connection errors derive from OSError
_STORE_ERRORS = (api_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError, OSError)


class GcsObjectStore(BaseObjectStore):
    """Object store backed by a Google Cloud Storage bucket."""

    def __init__(self, *, client: storage.Client, bucket_name: str) -> None:
        self._client = client
        self._bucket_name = bucket_name
        self._bucket = client.bucket(bucket_name)

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    def generate_upload_url(self, key: str, content_type: str, expires_in: timedelta) -> str:
        try:
            url: str = self._bucket.blob(key).generate_signed_url(
                version="v4",
                expiration=expires_in,
                method="PUT",
                content_type=content_type,
            )
        except _STORE_ERRORS as exc:
            raise UpstreamError(
                f"GCS signed URL generation failed for {key}: {exc}",
                user_message="Erro ao gerar URL de upload",
            ) from exc
        return url

    def exists(self, key: str) -> bool:
        try:
            return bool(self._bucket.blob(key).exists())
        except _STORE_ERRORS as exc:
            raise UpstreamError(f"GCS existence check failed for {key}: {exc}") from exc

    def download_to(self, key: str, destination: Path) -> None:
        try:
            self._bucket.blob(key).download_to_filename(str(destination))
        except api_exceptions.NotFound as exc:
            raise UpstreamError(f"GCS object {key} vanished before download: {exc}") from exc
        except _STORE_ERRORS as exc:
            raise UpstreamError(f"GCS download failed for {key}: {exc}") from exc
        Log.info(f"Downloaded gs://{self._bucket_name}/{key} to {destination}")

    def delete(self, key: str) -> None:
        try:
            self._bucket.blob(key).delete()
        except _STORE_ERRORS as exc:
            raise UpstreamError(f"GCS delete failed for {key}: {exc}") from exc
