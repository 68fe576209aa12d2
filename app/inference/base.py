from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from app.inference.models import InferenceResponse, RemoteFile


class BaseInferenceClient(ABC):
    """Contract for provider-specific generative-AI clients."""

    @abstractmethod
    def upload_file(
        self,
        path: Path,
        *,
        mime_type: str,
        display_name: str,
        should_abort: Callable[[], bool] | None = None,
    ) -> RemoteFile:
        """Upload a local file to the vendor's file-ingestion endpoint.

        Blocks until the vendor acknowledges receipt. ``should_abort`` is polled
        between chunks so the transfer can be interrupted.

        Raises:
            UploadError: on any transport failure.
            AnalysisCancelledError: if ``should_abort`` returns True mid-transfer.
        """

    @abstractmethod
    def get_file(self, name: str) -> RemoteFile:
        """Fetch the current state of an uploaded file.

        Raises:
            UpstreamError: if the vendor cannot be queried.
        """

    @abstractmethod
    def delete_file(self, name: str) -> None:
        """Delete an uploaded file."""

    @abstractmethod
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
        """Run one inference over a file reference plus a text prompt.

        Raises:
            UpstreamError: on network or API failure.
        """
