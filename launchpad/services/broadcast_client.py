"""Client for the transaction broadcast service."""

import logging
from dataclasses import dataclass

import httpx

from launchpad.config import settings
from launchpad.errors import BroadcastError

logger = logging.getLogger(__name__)


@dataclass
class BroadcastResult:
    success: bool
    signature: str | None = None


class BroadcastClient:
    """Submits a fully signed transaction and reports success."""

    def __init__(
        self,
        url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self.url = url or settings.broadcast_url
        self.timeout = timeout or settings.http_timeout_seconds
        self._client = client

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout, connect=10.0))
        return self._client

    async def submit(self, signed_transaction_b64: str) -> BroadcastResult:
        """Submit the transaction. Raises ``BroadcastError`` with the remote reason verbatim."""
        client = self._ensure_client()
        try:
            response = await client.post(
                self.url, json={"signedTransactionBase64": signed_transaction_b64}
            )
        except httpx.RequestError as e:
            raise BroadcastError(f"Broadcast request failed: {e}", context={"url": self.url}) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 400 or not isinstance(body, dict):
            reason = body.get("error") if isinstance(body, dict) else None
            raise BroadcastError(
                str(reason) if reason else f"Broadcast service returned HTTP {response.status_code}",
                context={"status": response.status_code},
            )
        if body.get("error"):
            raise BroadcastError(str(body["error"]))
        if not body.get("success"):
            raise BroadcastError("Broadcast service reported failure", context={"response": body})

        signature = body.get("signature")
        logger.info(f"Transaction broadcast{f': {signature}' if signature else ''}")
        return BroadcastResult(success=True, signature=signature)

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
        self._client = None
