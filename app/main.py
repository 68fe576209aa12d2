import uvicorn

from app.api.server import create_app
from app.config.settings import Settings
from app.logging.logger import Log


def main() -> None:
    """Entry point: load settings -> build dependencies -> serve HTTP API."""
    settings = Settings()
    Log.configure(settings.log_level)
    app = create_app(settings)
    uvicorn.run(
        app,
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
