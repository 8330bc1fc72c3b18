"""
HTTP Entrypoint for Finance Tracker

Serves the REST API with uvicorn:

    python app/main.py
    uvicorn app.main:app --port 5000

Host, port and CORS origins come from the SERVER_* settings; the
storage backend from STORAGE_BACKEND.
"""

import uvicorn

from finance_tracker.api import create_app
from finance_tracker.config import get_settings


app = create_app()


def main():
    settings = get_settings()
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.app.log_level.lower(),
    )


if __name__ == "__main__":
    main()
