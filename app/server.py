"""
Server entry point.

Runs the API with uvicorn on the port from the PORT environment variable.
"""
import uvicorn

from app.config import settings
from app.logging_config import get_logger

logger = get_logger(component="server")


def main():
    """Start the HTTP server."""
    logger.info(
        "server_starting",
        url=f"http://localhost:{settings.PORT}",
        health=f"http://localhost:{settings.PORT}/health",
        export=f"GET http://localhost:{settings.PORT}/api/journey-export",
        required_headers=["email", "password"],
    )
    uvicorn.run("app.main:app", host=settings.HOST, port=settings.PORT, access_log=False)


if __name__ == "__main__":
    main()
