import uvicorn

from todo_app.config import get_settings
from todo_app.logging_config import configure_logging
from todo_app.main import create_app


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    app = create_app(settings=settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
