"""Client for the asset upload service.

The upload service stores the token logo and metadata, then builds the
unsigned pool-creation transaction for the prospective mint.
"""

import logging
from dataclasses import dataclass

import httpx

from launchpad.config import settings
from launchpad.errors import UploadError

logger = logging.getLogger(__name__)


@dataclass
class UploadRequest:
    logo_base64: str
    mint_identity: str
    token_name: str
    token_symbol: str
    user_wallet: str
    website: str | None = None
    twitter: str | None = None

    def to_payload(self) -> dict:
        payload = {
            "logoBase64": self.logo_base64,
            "mintIdentity": self.mint_identity,
            "tokenName": self.token_name,
            "tokenSymbol": self.token_symbol,
            "userWallet": self.user_wallet,
        }
        if self.website:
            payload["website"] = self.website
        if self.twitter:
            payload["twitter"] = self.twitter
        return payload


class AssetUploadClient:
    """POSTs metadata and logo, returns the unsigned transaction (base64)."""

    def __init__(
        self,
        url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self.url = url or settings.upload_url
        self.timeout = timeout or settings.http_timeout_seconds
        self._client = client

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout, connect=10.0))
        return self._client

    async def upload(self, request: UploadRequest) -> str:
        client = self._ensure_client()
        try:
            response = await client.post(self.url, json=request.to_payload())
        except httpx.RequestError as e:
            raise UploadError(f"Upload request failed: {e}", context={"url": self.url}) from e

        body = _json_or_none(response)
        if response.status_code >= 400:
            reason = body.get("error") if isinstance(body, dict) else None
            raise UploadError(
                str(reason) if reason else f"Upload service returned HTTP {response.status_code}",
                context={"status": response.status_code},
            )
        if not isinstance(body, dict):
            raise UploadError("Upload service returned a non-JSON response")
        if body.get("error"):
            raise UploadError(str(body["error"]))

        unsigned = body.get("unsignedTransactionBase64")
        if not unsigned or not isinstance(unsigned, str):
            raise UploadError("Upload response is missing unsignedTransactionBase64")

        logger.info(f"Uploaded assets for mint {request.mint_identity}")
        return unsigned

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
        self._client = None


def _json_or_none(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return None
