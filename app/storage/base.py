from abc import ABC, abstractmethod
from datetime import timedelta
from pathlib import Path


class BaseObjectStore(ABC):
    """Contract for blob stores that can issue signed upload URLs."""

    URI_SCHEME = "gs://"

    @property
    @abstractmethod
    def bucket_name(self) -> str:
        """Name of the bucket objects live in."""

    @abstractmethod
    def generate_upload_url(self, key: str, content_type: str, expires_in: timedelta) -> str:
        """Return a time-limited URL a client can PUT the object to.

        Raises:
            UpstreamError: if the store cannot sign the URL.
        """

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Return whether the object exists."""

    @abstractmethod
    def download_to(self, key: str, destination: Path) -> None:
        """Download the object into a local file."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete the object."""

    def uri(self, key: str) -> str:
        return f"{self.URI_SCHEME}{self.bucket_name}/{key.lstrip('/')}"
