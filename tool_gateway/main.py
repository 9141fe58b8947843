"""Main application entry point for the Tool Invocation Gateway."""

import logging

import uvicorn

from .action_plane.gateway import build_gateway
from .core.config import settings
from .interfaces.http import GatewayApp

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# One gateway per process; routes and built-in tools share it
gateway = build_gateway(settings)
gateway_app = GatewayApp(gateway, settings)
app = gateway_app.app


def run() -> None:
    """Run the HTTP server."""
    logger.info(f"Starting tool gateway on {settings.http_host}:{settings.http_port}")
    uvicorn.run(
        app,
        host=settings.http_host,
        port=settings.http_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
