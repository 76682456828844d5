import httpx
import structlog
from typing import Dict, Any, Optional
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from config.settings import settings
from discovery.errors import BackendError

logger = structlog.get_logger()


class APIClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.transport = transport
        self.headers = {
            "Content-Type": "application/json",
            "User-Agent": "Travel-Discovery-MCP/1.0",
        }
        if settings.API_KEY:
            self.headers["X-API-Key"] = settings.API_KEY

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(settings.MAX_RETRIES),
        wait=wait_exponential(multiplier=settings.RETRY_DELAY, min=1, max=10),
        reraise=True,
    )
    async def request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Make HTTP request to the backend API, retrying transport failures"""

        request_headers = {**self.headers, **(headers or {})}
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        logger.info(
            "Making API request",
            method=method,
            url=url,
            has_data=data is not None,
            has_auth="Authorization" in request_headers,
        )

        async with httpx.AsyncClient(
            timeout=settings.REQUEST_TIMEOUT, transport=self.transport
        ) as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    json=data,
                    params=params,
                    headers=request_headers,
                )
                response.raise_for_status()

                result = response.json()
                logger.info(
                    "API request successful",
                    status_code=response.status_code,
                    endpoint=endpoint,
                )
                return result

            except httpx.HTTPStatusError as e:
                logger.error(
                    "API request failed",
                    status_code=e.response.status_code,
                    error=str(e),
                    endpoint=endpoint,
                    response_text=e.response.text[:500],
                )
                raise BackendError(
                    _error_message(e.response), status_code=e.response.status_code
                ) from e
            except Exception as e:
                logger.error(
                    "API request error",
                    error=str(e),
                    error_type=type(e).__name__,
                    endpoint=endpoint,
                )
                raise


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"Backend responded with HTTP {response.status_code}"


def unwrap_api_response(result: Any) -> Any:
    """Return the ``data`` of a ``{statusCode, data, message, success}`` envelope."""
    if not isinstance(result, dict) or "data" not in result:
        return result

    status_code = result.get("statusCode")
    if result.get("success") is False or (
        isinstance(status_code, int) and status_code >= 400
    ):
        raise BackendError(
            result.get("message") or "Backend request was not successful",
            status_code=status_code,
        )
    return result["data"]


# Global client instance
api_client = APIClient()
