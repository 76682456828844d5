import logging
import sys

import structlog
from dotenv import load_dotenv
from fastmcp import FastMCP
from starlette.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from agents.discovery import DiscoveryAgent
from middleware.auth import AuthMiddleware
from middleware.logging import LoggingMiddleware
from middleware.rate_limit import RateLimitMiddleware
from config.settings import settings
from feeds.catalog import FEEDS

load_dotenv()

logging.basicConfig(format="%(message)s", stream=sys.stderr, level=settings.LOG_LEVEL)

# Configure structured logging for production
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer() if settings.is_production
        else structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


def create_mcp(client=None) -> FastMCP:
    """Build the MCP server with middleware and the discovery tools"""

    mcp = FastMCP("Travel Discovery MCP Server")

    # First added = outermost layer
    mcp.add_middleware(LoggingMiddleware())
    mcp.add_middleware(RateLimitMiddleware())
    mcp.add_middleware(AuthMiddleware())

    DiscoveryAgent(mcp, client=client)

    @mcp.custom_route("/health", methods=["GET"])
    async def health_check(request):
        return JSONResponse({
            "status": "healthy",
            "service": "travel-discovery-mcp-server",
            "environment": settings.ENVIRONMENT,
            "version": "1.0.0",
            "feeds": list(FEEDS),
            "middleware": ["logging", "rate_limit", "auth"]
        })

    return mcp


def create_app():
    """Create the ASGI app for the HTTP transport"""

    mcp = create_mcp()
    app = mcp.http_app(stateless_http=True)

    if settings.is_development:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS.split(","),
            allow_credentials=True,
            allow_methods=settings.CORS_METHODS.split(","),
            allow_headers=settings.CORS_HEADERS.split(","),
        )

    logger.info("MCP server created", feeds_count=len(FEEDS), **settings.server_info)

    return app


# ASGI app for `uvicorn app:app`
app = create_app()


if __name__ == "__main__":
    if "--stdio" in sys.argv or settings.TRANSPORT_MODE == "stdio":
        create_mcp().run(transport="stdio")
    else:
        create_mcp().run(transport="http", host="0.0.0.0", port=settings.PORT or 8000)
