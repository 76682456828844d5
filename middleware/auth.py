import structlog
from fastmcp.server.middleware import Middleware, MiddlewareContext
from fastmcp.server.dependencies import get_http_headers
from fastmcp.exceptions import ToolError
from config.strings import PROTECTED_TOOL_ERRORS_MESSAGE
from feeds.catalog import FEEDS

logger = structlog.get_logger()


class AuthMiddleware(Middleware):
    """Require a bearer token before opening feeds that need a signed-in user"""

    PROTECTED_FEEDS = {name for name, feed in FEEDS.items() if feed.requires_auth}

    async def on_call_tool(self, context: MiddlewareContext, call_next):
        """Check authentication when a protected feed is opened"""

        tool_name = context.message.name
        arguments = context.message.arguments or {}
        feed = str(arguments.get("feed", "")).strip().lower()

        if tool_name != "open_feed" or feed not in self.PROTECTED_FEEDS:
            return await call_next(context)

        # Prefer header-based auth if provided; otherwise check arguments
        access_token = None
        headers = get_http_headers(include_all=True) or {}
        auth_header = {str(k).lower(): v for k, v in headers.items()}.get("authorization")
        if isinstance(auth_header, str) and auth_header.lower().startswith("bearer "):
            access_token = auth_header

        if not access_token:
            arg_token = arguments.get("access_token")
            if isinstance(arg_token, str) and arg_token.strip():
                access_token = arg_token.strip()

        if not access_token or not access_token.lower().startswith("bearer "):
            logger.warning("Protected feed opened without valid token", feed=feed)
            raise ToolError(PROTECTED_TOOL_ERRORS_MESSAGE)

        # The backend validates the token itself; pass it on to the feed
        if context.message.arguments is not None:
            context.message.arguments["access_token"] = access_token
        logger.info("Token provided for protected feed", feed=feed)
        return await call_next(context)
