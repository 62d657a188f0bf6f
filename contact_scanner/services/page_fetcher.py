import logging

import httpx

from contact_scanner.schemas.scan import FetchResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_MAX_BODY = 2 * 1024 * 1024  # 2 MB

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Cache-Control": "no-cache",
}


def _describe(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


class PageFetcher:
    def __init__(
        self,
        client: httpx.AsyncClient,
        user_agent: str | None = None,
        max_body: int = DEFAULT_MAX_BODY,
    ):
        self._client = client
        self._headers = dict(BROWSER_HEADERS)
        if user_agent:
            self._headers["User-Agent"] = user_agent
        self._max_body = max_body

    async def fetch(self, url: str, timeout: float = DEFAULT_TIMEOUT) -> FetchResult:
        """Fetch one page. Best-effort: failures are encoded in the result, never raised."""
        try:
            resp = await self._client.get(
                url,
                follow_redirects=True,
                timeout=timeout,
                headers=self._headers,
            )
        except httpx.TimeoutException:
            logger.debug("Timed out fetching %s", url)
            return FetchResult(ok=False, error_reason="Timeout")
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Failed to fetch %s: %s", url, exc)
            return FetchResult(ok=False, error_reason=_describe(exc))
        except Exception as exc:
            logger.warning("Unexpected error fetching %s", url, exc_info=True)
            return FetchResult(ok=False, error_reason=_describe(exc))

        if not resp.is_success:
            logger.debug("Got HTTP %d for %s", resp.status_code, url)
            return FetchResult(ok=False, error_reason=f"HTTP {resp.status_code}")

        if len(resp.content) > self._max_body:
            logger.debug("Skipping oversized page %s (%d bytes)", url, len(resp.content))
            return FetchResult(ok=False, error_reason="Response too large")

        return FetchResult(html=resp.text, ok=True)
