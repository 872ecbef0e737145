"""Pydantic schemas for on-chain pool records and token metadata."""

from launchpad.schemas.base import CamelModel


class VolatilityTracker(CamelModel):
    last_update_timestamp: str
    padding: list[int]
    sqrt_price_reference: str
    volatility_accumulator: str
    volatility_reference: str


class PoolMetrics(CamelModel):
    total_protocol_base_fee: str
    total_protocol_quote_fee: str
    total_trading_base_fee: str
    total_trading_quote_fee: str


class PoolAccount(CamelModel):
    """Decoded DBC VirtualPool account. Wide integers are decimal strings."""

    volatility_tracker: VolatilityTracker
    config: str
    creator: str
    base_mint: str
    base_vault: str
    quote_vault: str
    base_reserve: str
    quote_reserve: str
    protocol_base_fee: str
    protocol_quote_fee: str
    partner_base_fee: str
    partner_quote_fee: str
    sqrt_price: str
    activation_point: str
    pool_type: int
    is_migrated: int
    is_partner_withdraw_surplus: int
    is_protocol_withdraw_surplus: int
    migration_progress: int
    is_withdraw_leftover: int
    is_creator_withdraw_surplus: int
    migration_fee_withdraw_status: int
    metrics: PoolMetrics
    finish_curve_timestamp: str
    creator_base_fee: str
    creator_quote_fee: str
    padding1: list[str]


class TokenMetadata(CamelModel):
    name: str
    symbol: str
    icon: str | None = None
    decimals: int
    website: str | None = None
    twitter: str | None = None
    telegram: str | None = None


class PoolRecord(CamelModel):
    public_key: str
    account: PoolAccount
    token_info: TokenMetadata | None = None


class PoolsByCreatorResponse(CamelModel):
    success: bool = True
    creator: str
    pool_count: int
    pools: list[PoolRecord]
