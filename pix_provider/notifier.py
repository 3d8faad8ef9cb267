import asyncio
import logging
from typing import Optional, Set
import httpx
from pix_provider.errors import NotificationError

logger = logging.getLogger("pix_provider")


class WebhookNotifier:
    """Fire-and-forget webhook delivery.

    One POST per event, no retry and no queue. Failures are logged and never
    reach the caller; ``dispatch`` detaches delivery from the triggering
    request entirely.
    """

    def __init__(self, url: Optional[str], timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self.transport = transport
        self._tasks: Set[asyncio.Task] = set()

    async def notify(self, event: str, data: dict) -> bool:
        if not self.url:
            logger.debug(f"Webhook URL not configured. Skipping {event}.")
            return False

        body = {"event": event, "data": data}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=body)
            if not response.is_success:
                raise NotificationError(f"Webhook returned HTTP {response.status_code}")
        except (httpx.HTTPError, httpx.InvalidURL, NotificationError) as e:
            logger.error(f"Webhook error for {event}: {e}")
            return False

        logger.info(f"Webhook delivered: {event}")
        return True

    def dispatch(self, event: str, data: dict) -> asyncio.Task:
        task = asyncio.create_task(self.notify(event, data))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks))
