from typing import ClassVar

from app.config.settings import Settings
from app.inference.base import BaseInferenceClient
from app.inference.example_client_adapter import ExampleClientAdapter
from app.inference.gemini_client_adapter import GeminiClientAdapter


class InferenceClientFactory:
    """Creates the configured inference client adapter."""

    PROVIDERS: ClassVar[tuple[str, ...]] = ("example", "gemini")

    @classmethod
    def create(cls, settings: Settings) -> BaseInferenceClient:
        """Create a configured inference client from application settings.

        Credentials are not checked here; a missing key surfaces at request time.

        Raises:
            ValueError: if the provider name is unknown.
        """
        provider = settings.inference_provider.lower()
        if provider == "example":
            return ExampleClientAdapter()
        if provider == "gemini":
            return GeminiClientAdapter(
                api_key=settings.google_api_key,
                timeout_seconds=settings.gemini_timeout_seconds,
                base_url=settings.gemini_base_url,
                chunk_bytes=settings.upload_chunk_bytes,
            )
        raise ValueError(
            f"Unknown inference provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
