import logging
import sys

# Client libraries that log every request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "google.auth", "google.resumable_media", "urllib3")


class Log:
    """Centralized logging for the analysis service, its CLI and its HTTP clients."""

    _logger: logging.Logger = logging.getLogger("dise")
    _handler: logging.Handler | None = None

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Configure the service logger and quiet third-party request logs.

        Client libraries stay at WARNING unless the service runs at DEBUG.
        """
        level = log_level.upper()
        cls._logger.setLevel(level)
        if cls._handler is None:
            cls._handler = logging.StreamHandler(sys.stdout)
            cls._handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
            )
        if cls._handler not in cls._logger.handlers:
            cls._logger.addHandler(cls._handler)
        cls._logger.propagate = False

        library_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(library_level)

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        cls._logger.info(message, extra=kwargs)

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        cls._logger.error(message, extra=kwargs)

    @classmethod
    def exception(cls, message: str, **kwargs: object) -> None:
        """Log at ERROR with the traceback of the exception being handled."""
        cls._logger.exception(message, extra=kwargs)

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        cls._logger.warning(message, extra=kwargs)

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        cls._logger.debug(message, extra=kwargs)
