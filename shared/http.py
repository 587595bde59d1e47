"""
Generic JSON request helper for the PredictX REST backend.

ApiClient sends JSON bodies, parses JSON responses, unwraps the optional
``{"data": ...}`` envelope and converts non-2xx responses into ApiError.
It knows nothing about authentication; see modules.auth.client for that.
"""

import logging
import random
import time
import uuid
from typing import Any, Optional

import httpx

from .config import get_settings
from .exceptions import ApiError, NetworkError

logger = logging.getLogger(__name__)


def create_idempotency_key() -> str:
    """Return a unique key for the Idempotency-Key header."""
    try:
        return str(uuid.uuid4())
    except NotImplementedError:
        # No OS randomness source available
        return f"idem-{int(time.time() * 1000)}-{random.getrandbits(52):x}"


def unwrap_envelope(payload: Any) -> Any:
    """Return ``payload["data"]`` when present, otherwise the payload itself."""
    if isinstance(payload, dict) and payload.get("data") is not None:
        return payload["data"]
    return payload


def _parse_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class ApiClient:
    """
    Thin async wrapper around httpx for the backend's JSON API.

    The underlying httpx.AsyncClient can be injected (tests pass one
    built on httpx.MockTransport); otherwise one is created from settings.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.request_timeout,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        headers: Optional[dict[str, str]] = None,
        idempotency_key: Optional[str] = None,
    ) -> Any:
        """
        Issue one request and return the unwrapped JSON body.

        Args:
            path: Path relative to the base URL (e.g. "/users/me")
            method: HTTP method
            body: JSON-serializable body; strings are sent as-is
            headers: Extra headers, merged over the JSON content type
            idempotency_key: Sent as the Idempotency-Key header when given

        Returns:
            Parsed response body, unwrapped from a ``data`` envelope

        Raises:
            ApiError: The server answered with a non-2xx status
            NetworkError: The request could not be completed
        """
        url = f"{self._base_url}{path}"
        request_headers = {"Content-Type": "application/json", **(headers or {})}
        if idempotency_key:
            request_headers["Idempotency-Key"] = idempotency_key

        kwargs: dict[str, Any] = {"headers": request_headers}
        if body is not None:
            if isinstance(body, str):
                kwargs["content"] = body
            else:
                kwargs["json"] = body

        logger.debug(f"{method} {path}")
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise NetworkError(f"Request to {path} failed: {e}") from e

        payload = _parse_body(response)
        if not response.is_success:
            logger.debug(f"{method} {path} -> {response.status_code}")
            raise ApiError.from_response(response.status_code, payload)

        return unwrap_envelope(payload)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
