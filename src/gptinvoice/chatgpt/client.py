from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from ..errors import PortalApiError


logger = logging.getLogger(__name__)
T = TypeVar("T")

CHATGPT_API_BASE = "https://chatgpt.com/backend-api"
CUSTOMER_PORTAL_PATH = "/payments/customer_portal"

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
    "Referer": "https://chatgpt.com/",
    "Origin": "https://chatgpt.com",
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
}


@dataclass(frozen=True)
class TokenVerification:
    valid: bool
    error: Optional[str] = None


class ChatGptClient:
    """
    Minimal client for the ChatGPT backend API:
    - check whether an access token is still accepted
    - resolve the billing (customer) portal URL for the account
    """

    def __init__(
        self,
        *,
        base_url: str = CHATGPT_API_BASE,
        timeout_s: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout_s)
        self._transport = transport

    def _client(self, token: str) -> httpx.AsyncClient:
        headers = dict(DEFAULT_HEADERS)
        headers["Authorization"] = f"Bearer {token}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _get_customer_portal(self, token: str) -> httpx.Response:
        async with self._client(token) as client:
            return await client.get(CUSTOMER_PORTAL_PATH)

    async def _call_with_retry(self, op: str, fn: Callable[[], Awaitable[T]]) -> T:
        """
        Retry transport-level failures (DNS, connect, read timeouts) a couple of times.
        HTTP error statuses are returned to the caller untouched.
        """
        attempts = 3
        base_delay_s = 0.25
        max_delay_s = 2.0

        for attempt in range(1, attempts + 1):
            try:
                return await fn()
            except httpx.TransportError as e:
                if attempt >= attempts:
                    raise
                delay = min(base_delay_s * (2 ** (attempt - 1)), max_delay_s)
                logger.warning(
                    "ChatGPT %s failed (attempt %d/%d); retrying in %.2fs. (%s)",
                    op,
                    attempt,
                    attempts,
                    delay,
                    e,
                )
                await asyncio.sleep(delay)

        raise RuntimeError(f"ChatGPT {op} failed after {attempts} attempts")

    async def verify_access_token(self, token: str) -> TokenVerification:
        try:
            resp = await self._get_customer_portal(token)
        except httpx.HTTPError as e:
            return TokenVerification(valid=False, error=f"Network error: {e}")

        if resp.is_success:
            return TokenVerification(valid=True)
        if resp.status_code in (401, 403):
            return TokenVerification(valid=False, error="Access token is invalid or expired")
        return TokenVerification(valid=False, error=f"Unexpected response: HTTP {resp.status_code}")

    async def get_customer_portal_url(self, token: str) -> str:
        try:
            resp = await self._call_with_retry("customer_portal", lambda: self._get_customer_portal(token))
        except httpx.HTTPError as e:
            raise PortalApiError(f"Failed to fetch customer portal: {e}") from e

        if not resp.is_success:
            raise PortalApiError(f"Failed to fetch customer portal: HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise PortalApiError("Customer portal response was not valid JSON") from e

        url = data.get("url") if isinstance(data, dict) else None
        if not url:
            raise PortalApiError("Customer portal URL not found in response")
        return str(url)
