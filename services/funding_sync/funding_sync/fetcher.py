"""HTTP fetcher for the funding source page."""

from __future__ import annotations

import threading
from typing import Optional

import httpx

from .errors import NetworkError
from .logging import get_logger

logger = get_logger(__name__)

BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Cache-Control": "no-cache",
}


class SourceFetcher:
    """Retrieves the raw source document. One attempt per call, no retries."""

    def __init__(
        self,
        timeout: float,
        user_agent: str,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self._client = httpx.Client(
            timeout=timeout,
            headers={"User-Agent": user_agent, **BROWSER_HEADERS},
            follow_redirects=True,
            transport=transport,
        )
        self._lock = threading.Lock()

    def close(self) -> None:
        with self._lock:
            self._client.close()

    def fetch(self, url: str) -> str:
        logger.info("fetch_start", url=url, timeout=self.timeout)
        try:
            with self._lock:
                response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("fetch_failed", url=url, error=str(exc))
            raise NetworkError(f"Failed to fetch {url}: {exc}") from exc

        body = response.text
        logger.info("fetch_done", url=url, status=response.status_code, bytes=len(body))
        return body
