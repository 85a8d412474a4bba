import logging
from typing import Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.config import settings

logger = logging.getLogger("pageroute.app_shell")


class AppShellClient:
    """
    Fetches the client application's HTML shell for ``inject`` pass-through.

    Transport errors are retried once; any remaining failure returns None so
    the caller can fall back to an empty pass-through.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.APP_SHELL_URL
        self.timeout = timeout if timeout is not None else settings.APP_SHELL_TIMEOUT
        self._transport = transport

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=1),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _get(self) -> str:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(self.url, headers={"Accept": "text/html"})
            response.raise_for_status()
            return response.text

    async def fetch_shell(self) -> Optional[str]:
        try:
            return await self._get()
        except httpx.TimeoutException:
            logger.warning("App shell fetch timed out after %.1fs: %s", self.timeout, self.url)
        except httpx.HTTPError as e:
            logger.warning("App shell unavailable (%s): %s", self.url, e)
        return None
