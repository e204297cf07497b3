"""Entry point for the Zoom Event Platform API.

Launches the FastAPI application with Uvicorn.  Intended to be executed
from the project root, for example under Docker or a process manager
where you only specify a single Python file to run.

Configuration such as the Zoom credentials, database path and secret
key is read from environment variables (see
``zoom_event_platform/app/core/config.py``).

Usage:
    python run.py
"""
import asyncio
import os

from uvicorn import Config, Server

from zoom_event_platform.app.main import app


async def main() -> None:
    """Serve the API.

    Host and port are read from the environment variables ``HOST`` and
    ``PORT``.  Defaults are ``0.0.0.0`` and ``5000``.
    """
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "5000"))
    config = Config(app=app, host=host, port=port, reload=False, log_level="info")
    server = Server(config)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
