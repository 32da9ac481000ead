"""Main entry point for the logscope API."""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from logscope.api import create_fastapi_app
from logscope.app import Application
from logscope.config import Settings
from logscope.logging_config import setup_logging


def main():
    """Run the application."""
    project_root = Path(__file__).resolve().parent
    load_dotenv(project_root / ".env")

    settings = Settings.from_env()
    setup_logging(settings.log_level)

    app = create_fastapi_app(Application(settings=settings))

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="info",
        log_config=None,
    )


if __name__ == "__main__":
    main()
