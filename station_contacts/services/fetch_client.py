import asyncio
import logging
from typing import Literal

import httpx
from pydantic import BaseModel

from station_contacts.exceptions.custom import FetchError

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 5
_MAX_BODY = 5 * 1024 * 1024  # 5 MB

# Some station sites reject requests that do not look like a browser
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Upgrade-Insecure-Requests": "1",
}

# Timeouts and dropped/reset connections; DNS and refused connections are not
_TRANSIENT_ERRORS = (
    httpx.TimeoutException,
    httpx.ReadError,
    httpx.WriteError,
    httpx.RemoteProtocolError,
)

RetryOn = Literal["transport", "any"]


class RetryPolicy(BaseModel):
    max_retries: int = 2
    delay: float = 3.0  # seconds, fixed before every retry
    retry_on: RetryOn = "any"

    def should_retry(self, error: FetchError, retries_done: int) -> bool:
        if retries_done >= self.max_retries:
            return False
        return self.retry_on == "any" or error.transient


class Document(BaseModel):
    url: str
    final_url: str  # after redirects; base for relative links
    status_code: int
    html: str


class FetchFailure(BaseModel):
    url: str
    message: str
    attempts: int


def _describe(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


class FetchClient:
    """Single-page GET with a per-attempt timeout and a fixed-delay retry policy.

    `fetch` never raises: exhausted retries come back as a FetchFailure.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float,
        retry: RetryPolicy | None = None,
        accept_redirect_status: bool = False,
    ):
        self._client = client
        self._timeout = timeout
        self._retry = retry or RetryPolicy(max_retries=0)
        self._accept_redirect_status = accept_redirect_status

    async def fetch(self, url: str) -> Document | FetchFailure:
        retries = 0
        while True:
            try:
                return await self._fetch_once(url)
            except FetchError as exc:
                if not self._retry.should_retry(exc, retries):
                    logger.warning(
                        "Failed to fetch %s after %d attempt(s): %s",
                        url, retries + 1, exc.message,
                    )
                    return FetchFailure(url=url, message=exc.message, attempts=retries + 1)
                retries += 1
                logger.info(
                    "Retry %d/%d for %s in %.1fs: %s",
                    retries, self._retry.max_retries, url, self._retry.delay, exc.message,
                )
                await asyncio.sleep(self._retry.delay)

    def _status_ok(self, status_code: int) -> bool:
        if 200 <= status_code < 300:
            return True
        return self._accept_redirect_status and 300 <= status_code < 400

    async def _fetch_once(self, url: str) -> Document:
        try:
            resp = await self._client.get(
                url,
                follow_redirects=True,
                timeout=self._timeout,
                headers=BROWSER_HEADERS,
            )
        except _TRANSIENT_ERRORS as exc:
            raise FetchError(_describe(exc), transient=True) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchError(_describe(exc)) from exc

        if not self._status_ok(resp.status_code):
            raise FetchError(
                f"Request failed with status code {resp.status_code}",
                status_code=resp.status_code,
            )

        content_type = resp.headers.get("content-type", "")
        if content_type and "html" not in content_type:
            raise FetchError(f"Unsupported content type: {content_type}")

        if len(resp.content) > _MAX_BODY:
            raise FetchError(f"Page too large ({len(resp.content)} bytes)")

        return Document(
            url=url,
            final_url=str(resp.url),
            status_code=resp.status_code,
            html=resp.text,
        )
