"""Pydantic schemas for the credential pool API."""

from launchpad.schemas.base import CamelModel


class CredentialSelection(CamelModel):
    secret: list[int]  # 64-byte secret key
    identifier: str


class RetireRequest(CamelModel):
    identifier: str | None = None


class RetireResponse(CamelModel):
    success: bool
    message: str


class CredentialPools(CamelModel):
    available: list[str]
    consumed: list[str]
    available_count: int
    consumed_count: int
