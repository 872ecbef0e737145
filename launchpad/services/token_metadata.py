"""Token metadata lookups against the Jupiter data API."""

import logging

import httpx

from launchpad.config import settings
from launchpad.errors import MetadataEnrichmentError
from launchpad.schemas.pool_record import TokenMetadata

logger = logging.getLogger(__name__)


class TokenMetadataClient:
    """Fetches name, symbol, icon and social links for a mint."""

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self.base_url = (base_url or settings.token_api_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self._client = client

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout, connect=5.0))
        return self._client

    async def get_token(self, mint: str) -> TokenMetadata | None:
        """Metadata for ``mint``, or None when the API knows no pool for it.

        Raises ``MetadataEnrichmentError`` on transport, HTTP or parse failures.
        """
        client = self._ensure_client()
        try:
            response = await client.get(f"{self.base_url}/v1/pools", params={"assetIds": mint})
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise MetadataEnrichmentError(f"Token lookup failed: {e}", mint=mint) from e

        pools = body.get("pools") if isinstance(body, dict) else None
        if not pools:
            return None
        asset = pools[0].get("baseAsset")
        if not asset:
            return None
        try:
            return TokenMetadata(
                name=asset["name"],
                symbol=asset["symbol"],
                icon=asset.get("icon"),
                decimals=asset["decimals"],
                website=asset.get("website"),
                twitter=asset.get("twitter"),
                telegram=asset.get("telegram"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MetadataEnrichmentError(f"Unexpected token payload: {e}", mint=mint) from e

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
        self._client = None
