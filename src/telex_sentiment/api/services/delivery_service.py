"""Out-of-band delivery of moderated messages to the caller's target_url."""
import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

_TIMEOUT = 5.0  # seconds; the request deadline usually cuts in first
ACCEPTED_STATUSES = frozenset({200, 202})


@dataclass
class DeliveryResult:
    """Outcome of a single delivery attempt."""

    success: bool
    status_code: int = 0
    error: str = ""
    duration_ms: int = 0


class DeliveryClient:
    """Posts ``{channel_id, message}`` to a webhook URL over a shared httpx client."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client or httpx.AsyncClient(
            timeout=_TIMEOUT,
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
        )

    async def deliver(self, target_url: str, channel_id: Optional[str], message: str) -> DeliveryResult:
        start = time.monotonic()
        payload = {"channel_id": channel_id, "message": message}
        try:
            r = await self._client.post(
                target_url,
                json=payload,
                headers={"Accept": "application/json", "Content-Type": "application/json"},
            )
        except httpx.TimeoutException:
            logger.error("Delivery to %s timed out", target_url)
            return DeliveryResult(False, error="Delivery timed out", duration_ms=_since(start))
        except httpx.HTTPError as exc:
            logger.error("Delivery to %s failed: %s", target_url, exc)
            return DeliveryResult(False, error=str(exc), duration_ms=_since(start))

        if r.status_code not in ACCEPTED_STATUSES:
            logger.error("Delivery to %s rejected with HTTP %d", target_url, r.status_code)
            return DeliveryResult(
                False,
                status_code=r.status_code,
                error=f"Unexpected status {r.status_code}: {r.text[:500]}",
                duration_ms=_since(start),
            )
        return DeliveryResult(True, status_code=r.status_code, duration_ms=_since(start))

    async def aclose(self) -> None:
        await self._client.aclose()


def _since(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
