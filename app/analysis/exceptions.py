from typing import ClassVar


class AnalysisError(Exception):
    """Base exception for all analysis pipeline errors.

    ``str(exc)`` carries diagnostic detail for the logs; ``user_message`` is the
    single human-readable string returned to the caller.
    """

    default_user_message: ClassVar[str] = "Erro durante a análise"
    status_code: ClassVar[int] = 500

    def __init__(self, message: str = "", *, user_message: str | None = None) -> None:
        super().__init__(message or self.default_user_message)
        self._user_message = user_message

    @property
    def user_message(self) -> str:
        return self._user_message or self.default_user_message


class ConfigurationError(AnalysisError):
    """Raised when credentials or required settings are missing or invalid."""

    default_user_message = "Erro na configuração do servidor"


class InvalidRequestError(AnalysisError):
    """Raised when the inbound request lacks required fields."""

    default_user_message = "Requisição inválida"
    status_code = 400


class SizeLimitError(AnalysisError):
    """Raised when the inline payload exceeds the configured hard cap."""

    default_user_message = "Arquivo muito grande"
    status_code = 413


class UploadError(AnalysisError):
    """Raised on a transport failure while sending media. Never retried."""

    default_user_message = "Erro no upload do vídeo"
    status_code = 502


class UpstreamError(AnalysisError):
    """Raised when the vendor or the object store cannot be reached or refuses."""

    default_user_message = "Erro na comunicação com o serviço de análise"
    status_code = 502


class ObjectNotFoundError(UpstreamError):
    """Raised when a storage object referenced by the request does not exist."""

    default_user_message = "Arquivo não encontrado no GCS"
    status_code = 404


class ProcessingError(AnalysisError):
    """Raised when the vendor reports that media processing failed."""

    default_user_message = "Falha no processamento do vídeo pelo Google AI"


class ProcessingTimeoutError(AnalysisError, TimeoutError):
    """Raised when the readiness poll exhausts its attempts."""

    default_user_message = "Timeout aguardando processamento do vídeo"
    status_code = 504


class ContentRejectedError(AnalysisError):
    """Raised when the vendor returns no candidate or blocks the content.

    The vendor reason code is kept in ``str(exc)`` for logging only; the
    user message is always the generic one.
    """

    default_user_message = "Vídeo não aceito pelo sistema de análise. Tente outro vídeo."
    status_code = 422

    @property
    def user_message(self) -> str:
        return self.default_user_message


class MalformedResponseError(AnalysisError):
    """Raised when the structured response cannot be parsed or validated."""

    default_user_message = "Resposta da análise em formato inválido"
    status_code = 502


class AnalysisCancelledError(AnalysisError):
    """Raised when the caller cancels an in-flight submission."""

    default_user_message = "Análise cancelada"
    status_code = 499
