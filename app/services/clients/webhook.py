import httpx
import logging
from typing import Any, Dict, Optional
from app.core.config import settings

logger = logging.getLogger(__name__)

class WebhookSender:
    """
    Best-effort outbound notifications.

    Delivery failures are logged and swallowed; they never fail the
    request that triggered them.
    """

    def __init__(self, timeout: int = None, http_client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout or settings.WEBHOOK_TIMEOUT
        self._http = http_client or httpx.AsyncClient(timeout=self.timeout)

    async def close(self) -> None:
        await self._http.aclose()

    async def send(self, url: Optional[str], payload: Dict[str, Any]) -> bool:
        """
        POST ``payload`` as JSON to ``url``.

        Returns:
            True if the receiver answered 2xx, False otherwise (including
            when no URL is configured)
        """
        if not url:
            logger.debug("Webhook URL not configured, skipping notification")
            return False
        try:
            response = await self._http.post(url, json=payload)
            response.raise_for_status()
            logger.info(f"Webhook delivered to {url}")
            return True
        except httpx.HTTPStatusError as e:
            logger.error(f"Webhook failed ({e.response.status_code}) for {url}")
        except Exception as e:
            logger.error(f"Webhook error for {url}: {str(e)}")
        return False
