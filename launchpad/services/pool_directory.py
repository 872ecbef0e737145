"""Read side: DBC pools created by an address, with token metadata.

Pools come from ``getProgramAccounts`` on the Dynamic Bonding Curve program,
filtered on the creator field. Each pool is then enriched with token metadata
on a best-effort basis: lookups run concurrently, and a failed lookup leaves
that pool without ``token_info`` instead of failing the listing.
"""

import asyncio
import logging

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import MemcmpOpts
from solders.pubkey import Pubkey

from launchpad.config import settings
from launchpad.errors import InvalidAddress, MetadataEnrichmentError
from launchpad.schemas.pool_record import (
    PoolAccount,
    PoolMetrics,
    PoolRecord,
    TokenMetadata,
    VolatilityTracker,
)
from launchpad.services.token_metadata import TokenMetadataClient
from launchpad.utils.constants import (
    DBC_PROGRAM_ID,
    POOL_CREATOR_OFFSET,
    VIRTUAL_POOL_DISCRIMINATOR,
    VIRTUAL_POOL_SIZE,
)

logger = logging.getLogger(__name__)


class PoolDirectoryReader:
    def __init__(
        self,
        rpc_url: str | None = None,
        metadata_client: TokenMetadataClient | None = None,
        rpc: AsyncClient | None = None,
    ):
        self.rpc_url = rpc_url or settings.rpc_url
        self.metadata_client = metadata_client or TokenMetadataClient()
        self._rpc = rpc

    def _ensure_rpc(self) -> AsyncClient:
        if self._rpc is None:
            self._rpc = AsyncClient(self.rpc_url, commitment=Confirmed)
        return self._rpc

    async def list_pools_by_creator(self, creator_address: str) -> list[PoolRecord]:
        """All pools whose creator is ``creator_address``, in RPC order."""
        try:
            creator = Pubkey.from_string(creator_address)
        except ValueError as e:
            raise InvalidAddress(
                "Invalid creator address format. Must be a valid Solana public key.",
                context={"creator": creator_address},
            ) from e

        logger.info(f"Fetching pools for creator: {creator_address}")
        resp = await self._ensure_rpc().get_program_accounts(
            Pubkey.from_string(DBC_PROGRAM_ID),
            commitment=Confirmed,
            encoding="base64",
            filters=[MemcmpOpts(offset=POOL_CREATOR_OFFSET, bytes=str(creator))],
        )

        records = []
        for keyed in resp.value:
            data = bytes(keyed.account.data)
            # Config accounts of the same program can match the creator offset
            if not data.startswith(VIRTUAL_POOL_DISCRIMINATOR):
                continue
            try:
                account = decode_virtual_pool(data)
            except ValueError as e:
                logger.warning(f"Skipping undecodable pool {keyed.pubkey}: {e}")
                continue
            records.append(PoolRecord(public_key=str(keyed.pubkey), account=account))

        logger.info(f"Found {len(records)} pools for creator {creator_address}")
        return await self._enrich(records)

    async def _enrich(self, records: list[PoolRecord]) -> list[PoolRecord]:
        results = await asyncio.gather(
            *(self._lookup(record.account.base_mint) for record in records)
        )
        for record, result in zip(records, results):
            if isinstance(result, MetadataEnrichmentError):
                logger.warning(f"Failed to get token info for mint {result.mint}: {result.message}")
                continue
            record.token_info = result
        return records

    async def _lookup(self, mint: str) -> TokenMetadata | MetadataEnrichmentError | None:
        try:
            return await self.metadata_client.get_token(mint)
        except MetadataEnrichmentError as e:
            return e
        except Exception as e:
            return MetadataEnrichmentError(str(e), mint=mint)

    async def close(self):
        if self._rpc is not None:
            await self._rpc.close()
        self._rpc = None
        await self.metadata_client.close()


class _Cursor:
    """Little-endian reader over Anchor account bytes."""

    def __init__(self, data: bytes, offset: int = 0):
        self.data = data
        self.offset = offset

    def take(self, size: int) -> bytes:
        end = self.offset + size
        if end > len(self.data):
            raise ValueError(f"account data too short: need {end} bytes, have {len(self.data)}")
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk

    def uint(self, size: int) -> int:
        return int.from_bytes(self.take(size), "little")

    def u8(self) -> int:
        return self.uint(1)

    def u64(self) -> str:
        return str(self.uint(8))

    def u128(self) -> str:
        return str(self.uint(16))

    def pubkey(self) -> str:
        return str(Pubkey.from_bytes(self.take(32)))


def decode_virtual_pool(data: bytes) -> PoolAccount:
    """Decode a VirtualPool account (discriminator included)."""
    if len(data) < VIRTUAL_POOL_SIZE:
        raise ValueError(f"account data too short: {len(data)} < {VIRTUAL_POOL_SIZE}")
    c = _Cursor(data, offset=len(VIRTUAL_POOL_DISCRIMINATOR))

    volatility_tracker = VolatilityTracker(
        last_update_timestamp=c.u64(),
        padding=list(c.take(8)),
        sqrt_price_reference=c.u128(),
        volatility_accumulator=c.u128(),
        volatility_reference=c.u128(),
    )
    fields = dict(
        volatility_tracker=volatility_tracker,
        config=c.pubkey(),
        creator=c.pubkey(),
        base_mint=c.pubkey(),
        base_vault=c.pubkey(),
        quote_vault=c.pubkey(),
        base_reserve=c.u64(),
        quote_reserve=c.u64(),
        protocol_base_fee=c.u64(),
        protocol_quote_fee=c.u64(),
        partner_base_fee=c.u64(),
        partner_quote_fee=c.u64(),
        sqrt_price=c.u128(),
        activation_point=c.u64(),
        pool_type=c.u8(),
        is_migrated=c.u8(),
        is_partner_withdraw_surplus=c.u8(),
        is_protocol_withdraw_surplus=c.u8(),
        migration_progress=c.u8(),
        is_withdraw_leftover=c.u8(),
        is_creator_withdraw_surplus=c.u8(),
        migration_fee_withdraw_status=c.u8(),
    )
    fields["metrics"] = PoolMetrics(
        total_protocol_base_fee=c.u64(),
        total_protocol_quote_fee=c.u64(),
        total_trading_base_fee=c.u64(),
        total_trading_quote_fee=c.u64(),
    )
    fields["finish_curve_timestamp"] = c.u64()
    fields["creator_base_fee"] = c.u64()
    fields["creator_quote_fee"] = c.u64()
    fields["padding1"] = [c.u64() for _ in range(7)]
    return PoolAccount(**fields)
