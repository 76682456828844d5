import structlog
import time
from typing import Dict, Any
from fastmcp.server.middleware import Middleware, MiddlewareContext
from utils.helper import mask_token

logger = structlog.get_logger()

# snapshot fields worth a log line once a feed tool returns
OUTCOME_FIELDS = ("success", "phase", "mode", "total_count", "has_more", "error")


class LoggingMiddleware(Middleware):
    """Time every tool call and log it with its feed/session context.

    Tokens are masked and coordinates coarsened before anything is logged.
    """

    async def on_call_tool(self, context: MiddlewareContext, call_next):
        started = time.perf_counter()
        arguments = context.message.arguments or {}

        log = logger.bind(
            tool_name=context.message.name,
            session_id=arguments.get('session_id'),
            feed=arguments.get('feed'),
        )
        log.info(
            "Tool call started",
            source=context.source,
            arguments=self._sanitize_arguments(arguments),
            has_auth_token=bool(arguments.get('access_token')),
        )

        try:
            result = await call_next(context)
        except Exception as e:
            log.error(
                "Tool call failed",
                error=str(e),
                error_type=type(e).__name__,
                elapsed_ms=self._elapsed_ms(started),
            )
            raise

        log.info(
            "Tool call completed",
            elapsed_ms=self._elapsed_ms(started),
            **self._outcome(result),
        )
        return result

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 2)

    @staticmethod
    def _outcome(result) -> Dict[str, Any]:
        payload = getattr(result, 'structured_content', None)
        if not isinstance(payload, dict):
            return {}
        return {key: payload[key] for key in OUTCOME_FIELDS if key in payload}

    def _sanitize_arguments(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """Mask tokens and coarsen coordinates to ~1 km"""

        safe_args = dict(arguments)

        token = safe_args.get('access_token')
        if token:
            safe_args['access_token'] = mask_token(str(token))

        for field in ('latitude', 'longitude'):
            value = safe_args.get(field)
            if isinstance(value, (int, float)):
                safe_args[field] = round(value, 2)

        return safe_args
