"""
HTML Fetch Adapter for the CreatureRealm extraction toolkit.
Single-shot GETs; retry policy is the caller's concern.
"""
from typing import Optional

import httpx

from creaturerealm.config import config
from creaturerealm.utils.logger import LayerLogger


class HtmlFetcher:
    """
    Fetches raw page markup over HTTP.
    Non-success statuses surface as `httpx.HTTPStatusError`.
    """

    def __init__(
        self,
        timeout: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout if timeout is not None else config.REQUEST_TIMEOUT
        self.transport = transport
        self.logger = LayerLogger("fetcher")

    async def fetch_html(self, url: str) -> str:
        """
        Fetch a page and return its body text.

        Args:
            url: Absolute page URL

        Returns:
            Response body decoded as text

        Raises:
            httpx.HTTPError: on transport failure or non-2xx status
        """
        self.logger.log_action("fetch_html", "started", url=url)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                response = await client.get(url, headers=self._get_headers())
                response.raise_for_status()
                html = response.text

            self.logger.log_action(
                "fetch_html",
                "completed",
                url=url,
                status_code=response.status_code,
                content_length=len(html),
            )
            return html

        except httpx.HTTPError as e:
            self.logger.log_error(
                f"Failed to fetch URL: {str(e)}",
                error_type="http_error",
                url=url,
            )
            raise

    def _get_headers(self) -> dict:
        """Get request headers mimicking a browser."""
        return {
            "User-Agent": config.USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": f"{config.SITE_LOCALE};q=0.9,en;q=0.5",
        }
