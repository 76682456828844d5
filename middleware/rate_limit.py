import time
import structlog
from typing import DefaultDict
from collections import defaultdict
from fastmcp.server.middleware import Middleware, MiddlewareContext
from mcp import McpError
from mcp.types import ErrorData
from config.settings import settings

logger = structlog.get_logger()

WINDOW_SECONDS = 60


class RateLimitMiddleware(Middleware):
    """Per-tool sliding-window rate limiting"""

    def __init__(self, rate_limits=None, default_rate_limit=None):
        # Simple in-memory rate limiting (one process)
        self.request_counts: DefaultDict[str, list] = defaultdict(list)
        self._last_sweep = time.time()

        # Requests per minute
        self.rate_limits = rate_limits or {
            'open_feed': 60,
            'search_feed': 30,
            'toggle_feed_mode': 30,
            'clear_feed_search': 30,
            'load_more': 60,
            'retry_feed': 20,
            'set_feed_radius': 120,
            'select_item': 240,
            'get_feed': 240,
        }

        self.default_rate_limit = default_rate_limit or max(settings.RATE_LIMIT_PER_MINUTE, 1)

    async def on_call_tool(self, context: MiddlewareContext, call_next):
        tool_name = context.message.name
        rate_key = self._get_rate_limit_key(context)

        self._sweep()
        if self._is_rate_limited(tool_name, rate_key):
            logger.warning(
                "Rate limit exceeded",
                tool_name=tool_name,
                rate_key=rate_key[:20] + "..." if len(rate_key) > 20 else rate_key
            )
            raise McpError(
                ErrorData(
                    code=-32000,
                    message=f"Rate limit exceeded for {tool_name}. Please try again later."
                )
            )

        self._record_request(rate_key)

        result = await call_next(context)

        if tool_name == 'close_feed':
            session_id = (context.message.arguments or {}).get('session_id')
            if session_id:
                self._forget_session(session_id)

        return result

    def _get_rate_limit_key(self, context: MiddlewareContext) -> str:
        tool_name = context.message.name
        arguments = getattr(context.message, 'arguments', None) or {}

        # Feed tools are limited per session
        session_id = arguments.get('session_id')
        if session_id:
            return f"{tool_name}:{session_id}"

        access_token = arguments.get('access_token')
        if access_token:
            token_id = access_token[-8:] if len(access_token) > 8 else access_token
            return f"{tool_name}:{token_id}"

        feed = str(arguments.get('feed') or '').strip().lower()
        if feed:
            return f"{tool_name}:{feed}:anonymous"

        return f"{tool_name}:anonymous"

    def _is_rate_limited(self, tool_name: str, rate_key: str) -> bool:
        rate_limit = self.rate_limits.get(tool_name, self.default_rate_limit)
        current_time = time.time()

        recent = [
            req_time for req_time in self.request_counts.get(rate_key, [])
            if current_time - req_time < WINDOW_SECONDS
        ]
        if recent:
            self.request_counts[rate_key] = recent
        else:
            self.request_counts.pop(rate_key, None)

        return len(recent) >= rate_limit

    def _record_request(self, rate_key: str) -> None:
        self.request_counts[rate_key].append(time.time())

    def _sweep(self) -> None:
        """Drop buckets with no request inside the window, at most once a window"""
        current_time = time.time()
        if current_time - self._last_sweep < WINDOW_SECONDS:
            return
        self._last_sweep = current_time

        stale = [
            key for key, times in self.request_counts.items()
            if not times or current_time - times[-1] >= WINDOW_SECONDS
        ]
        for key in stale:
            del self.request_counts[key]

    def _forget_session(self, session_id: str) -> None:
        suffix = f":{session_id}"
        for key in [k for k in self.request_counts if k.endswith(suffix)]:
            del self.request_counts[key]
