"""Pydantic schemas for the pool creation API."""

import base64
import binascii
import re
from datetime import datetime

from pydantic import ConfigDict, Field, HttpUrl, TypeAdapter, field_validator
from pydantic import ValidationError as SchemaValidationError
from pydantic.alias_generators import to_camel
from solders.pubkey import Pubkey

from launchpad.config import settings
from launchpad.schemas.base import CamelModel
from launchpad.utils.constants import TOKEN_NAME_MIN_LENGTH, TOKEN_SYMBOL_MAX_LENGTH

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?;base64,(?P<data>.*)$", re.DOTALL)
_URL_ADAPTER = TypeAdapter(HttpUrl)


def decode_logo(value: str) -> bytes:
    """Decode a logo given as a ``data:image/...;base64,`` URL or bare base64."""
    match = _DATA_URL_RE.match(value)
    if match:
        mime = match.group("mime")
        if mime and not mime.startswith("image/"):
            raise ValueError("must be an image")
        value = match.group("data")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("must be base64-encoded image data") from e


class PoolCreateRequest(CamelModel):
    token_name: str
    token_symbol: str
    token_logo: str | None = Field(default=None, validate_default=True)
    website: str | None = None
    twitter: str | None = None
    user_wallet: str | None = None  # None when no wallet is connected

    @field_validator("token_name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        text = value.strip()
        if len(text) < TOKEN_NAME_MIN_LENGTH:
            raise ValueError(f"Token name must be at least {TOKEN_NAME_MIN_LENGTH} characters")
        return text

    @field_validator("token_symbol")
    @classmethod
    def _validate_symbol(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("Token symbol is required")
        if len(text) > TOKEN_SYMBOL_MAX_LENGTH:
            raise ValueError(f"Token symbol must be at most {TOKEN_SYMBOL_MAX_LENGTH} characters")
        return text

    @field_validator("token_logo")
    @classmethod
    def _validate_logo(cls, value: str | None) -> str:
        if not value or not value.strip():
            raise ValueError("Token logo is required")
        data = decode_logo(value.strip())
        if not data:
            raise ValueError("Token logo is required")
        if len(data) > settings.max_logo_bytes:
            raise ValueError(f"Token logo must be at most {settings.max_logo_bytes} bytes")
        return value.strip()

    @field_validator("website", "twitter")
    @classmethod
    def _validate_optional_url(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        url = value.strip()
        try:
            _URL_ADAPTER.validate_python(url)
        except SchemaValidationError:
            raise ValueError("Please enter a valid URL")
        return url

    @field_validator("user_wallet")
    @classmethod
    def _validate_wallet(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        try:
            Pubkey.from_string(value.strip())
        except ValueError:
            raise ValueError("must be a valid Solana public key")
        return value.strip()


class PoolCreationStarted(CamelModel):
    request_id: str
    state: str
    mint: str
    transaction: str  # base64, co-signed, awaiting the wallet signature
    expires_at: datetime


class SubmitSignedRequest(CamelModel):
    signed_transaction: str


class PoolCreationResult(CamelModel):
    request_id: str
    state: str
    mint: str
    signature: str | None = None
    retired: bool


class SigningSessionRead(CamelModel):
    id: str
    state: str
    mint: str
    user_wallet: str
    token_name: str
    token_symbol: str
    signature: str | None = None
    failure_reason: str | None = None
    retired: bool
    created_at: datetime
    expires_at: datetime

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )
