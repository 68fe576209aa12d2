import json

from google.auth import exceptions as auth_exceptions
from google.cloud import storage

from app.analysis.exceptions import ConfigurationError
from app.config.settings import Settings
from app.storage.base import BaseObjectStore
from app.storage.gcs_store import GcsObjectStore

_INCOMPLETE_CONFIG_MESSAGE = "Configuração GCS incompleta"


class ObjectStoreFactory:
    """Creates the object store from the service-account settings."""

    @classmethod
    def create(cls, settings: Settings) -> BaseObjectStore:
        """Build a GCS-backed store.

        No network call is made here; credentials are only parsed.

        Raises:
            ConfigurationError: if credentials or bucket name are absent or invalid.
        """
        if not settings.gcs_service_account or not settings.gcs_bucket_name:
            raise ConfigurationError(
                "gcs_service_account and gcs_bucket_name are required",
                user_message=_INCOMPLETE_CONFIG_MESSAGE,
            )
        info = cls._parse_credentials(settings.gcs_service_account)
        try:
            client = storage.Client.from_service_account_info(
                info, project=info.get("project_id")
            )
        except (ValueError, auth_exceptions.GoogleAuthError) as exc:
            raise ConfigurationError(
                f"Invalid GCS service account credentials: {exc}",
                user_message="Erro na configuração do servidor",
            ) from exc
        return GcsObjectStore(client=client, bucket_name=settings.gcs_bucket_name)

    @staticmethod
    def _parse_credentials(raw: str) -> dict[str, str]:
        try:
            info = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(
                f"gcs_service_account is not valid JSON: {exc}",
                user_message="Erro na configuração do servidor",
            ) from exc
        if not isinstance(info, dict):
            raise ConfigurationError(
                "gcs_service_account must be a JSON object",
                user_message="Erro na configuração do servidor",
            )
        return info
