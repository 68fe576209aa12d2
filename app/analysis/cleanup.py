from collections.abc import Callable

from app.analysis.pipeline import PipelineContext
from app.inference.base import BaseInferenceClient
from app.logging.logger import Log
from app.storage.base import BaseObjectStore


class CleanupCoordinator:
    """Deletes every artifact a request created, whatever the outcome.

    Failures are logged and swallowed: the vendor expires files on its own and
    a leftover object must never change the reported result.
    """

    def __init__(
        self,
        client: BaseInferenceClient,
        store_provider: Callable[[], BaseObjectStore],
    ) -> None:
        self._client = client
        self._store_provider = store_provider

    def cleanup(self, context: PipelineContext) -> None:
        self._remove_temp_file(context)
        self._delete_remote_file(context)
        self._delete_storage_object(context)

    @staticmethod
    def _remove_temp_file(context: PipelineContext) -> None:
        if context.temp_path is None:
            return
        try:
            context.temp_path.unlink(missing_ok=True)
            Log.info(f"[{context.request_id}] Temporary file removed")
        except OSError as exc:
            Log.warning(f"[{context.request_id}] Could not remove {context.temp_path}: {exc}")

    def _delete_remote_file(self, context: PipelineContext) -> None:
        if context.remote_file is None:
            return
        try:
            self._client.delete_file(context.remote_file.name)
            Log.info(f"[{context.request_id}] Vendor file {context.remote_file.name} removed")
        except Exception as exc:
            Log.warning(
                f"[{context.request_id}] Could not delete vendor file "
                f"{context.remote_file.name}: {exc}"
            )

    def _delete_storage_object(self, context: PipelineContext) -> None:
        if not context.object_key:
            return
        try:
            self._store_provider().delete(context.object_key)
            Log.info(f"[{context.request_id}] Storage object {context.object_key} removed")
        except Exception as exc:
            Log.warning(
                f"[{context.request_id}] Could not delete storage object "
                f"{context.object_key}: {exc}"
            )
