"""Push delivery through the messaging gateway's HTTP API."""

from __future__ import annotations

import logging

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from redwing.core.config import TransportConfig
from redwing.core.exceptions import DeliveryError
from redwing.core.logging_config import sanitize_phone, truncate_message

logger = logging.getLogger(__name__)


class HttpPushTransport:
    """INotificationTransport over ``POST {base_url}/messages``.

    Transient ``httpx.HTTPError`` failures (including non-2xx responses) are
    retried with exponential backoff; the last failure surfaces as
    ``DeliveryError``. The gateway dedupes nothing, so a retry after a lost
    response may deliver twice.
    """

    def __init__(
        self,
        config: TransportConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        wait_multiplier: float = 1.0,
    ) -> None:
        self._config = config or TransportConfig()
        self._client = client
        self._wait_multiplier = wait_multiplier
        self.base_url = self._config.base_url.rstrip("/")
        self.headers = {"Content-Type": "application/json"}
        if self._config.api_token:
            self.headers["Authorization"] = f"Bearer {self._config.api_token}"

    async def send_push(self, school_id: str, target: str, text: str) -> None:
        payload = {"school_id": school_id, "to": target, "text": text}
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max(1, self._config.max_attempts)),
                wait=wait_exponential(multiplier=self._wait_multiplier, min=0, max=10),
                retry=retry_if_exception_type(httpx.HTTPError),
                reraise=True,
            ):
                with attempt:
                    await self._post(payload)
        except httpx.HTTPError as exc:
            logger.error(
                "Push delivery failed after %d attempts: %s", self._config.max_attempts, exc,
                extra={"school_id": school_id, "target": sanitize_phone(target)},
            )
            raise DeliveryError(target, str(exc)) from exc

        logger.info(
            "Push delivered: %s", truncate_message(text, 80),
            extra={"school_id": school_id, "target": sanitize_phone(target)},
        )

    async def _post(self, payload: dict[str, str]) -> None:
        url = f"{self.base_url}/messages"
        if self._client is not None:
            response = await self._client.post(url, json=payload, headers=self.headers, timeout=self._config.timeout)
            response.raise_for_status()
            return
        async with httpx.AsyncClient() as client:
            response = await client.post(url, json=payload, headers=self.headers, timeout=self._config.timeout)
            response.raise_for_status()
