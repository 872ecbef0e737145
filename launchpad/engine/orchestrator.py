"""Pool creation orchestration.

One run moves through:
validating → credential_acquired → uploaded → co_signed → user_signed →
broadcast → retired, or ends in failed(reason) from any earlier state.

``begin`` runs everything up to the pool keypair's signature and persists a
``SigningSession``, because the next step waits on a person approving the
transaction in their wallet. ``complete`` picks the session up again with the
wallet-signed transaction, broadcasts it and retires the keypair. ``run`` does
both in one call for callers that hold a ``WalletSigner`` in-process.

Any failure before a successful broadcast releases the keypair claim, so the
keypair stays in the available pool and can be picked again. Retirement
failures after a successful broadcast are logged and do not fail the run.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import ValidationError as SchemaValidationError
from solders.pubkey import Pubkey
from solders.transaction import Transaction
from sqlalchemy import update
from sqlmodel import Session, select

from launchpad import database
from launchpad.config import settings
from launchpad.errors import (
    LaunchpadError,
    SerializationError,
    SessionNotFound,
    UserRejected,
    ValidationError,
)
from launchpad.models.signing_session import CreationState, SigningSession
from launchpad.schemas.pool import PoolCreateRequest
from launchpad.services.broadcast_client import BroadcastClient
from launchpad.services.claims import ClaimLedger
from launchpad.services.credential_store import CredentialStore
from launchpad.services.transactions import (
    check_user_signed,
    co_sign,
    decode_transaction,
    encode_transaction,
)
from launchpad.services.upload_client import AssetUploadClient, UploadRequest
from launchpad.services.wallet import WalletSigner

logger = logging.getLogger(__name__)

_sessions = SigningSession.__table__


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PendingCreation:
    """A co-signed transaction waiting for the user's wallet."""

    request_id: str
    credential_id: str
    mint: str
    transaction: str
    expires_at: datetime
    state: CreationState = CreationState.CO_SIGNED


@dataclass
class CreationResult:
    request_id: str
    mint: str
    state: CreationState
    retired: bool
    signature: str | None = None
    transaction: str = ""
    signers: list[str] = field(default_factory=list)  # in signing order


class PoolCreationOrchestrator:
    def __init__(
        self,
        store: CredentialStore,
        claims: ClaimLedger,
        upload_client: AssetUploadClient,
        broadcast_client: BroadcastClient,
        engine=None,
        session_ttl_seconds: int | None = None,
    ):
        self.store = store
        self.claims = claims
        self.upload_client = upload_client
        self.broadcast_client = broadcast_client
        self.engine = engine if engine is not None else database.engine
        ttl = session_ttl_seconds if session_ttl_seconds is not None else settings.session_ttl_seconds
        self.session_ttl = timedelta(seconds=ttl)

    # ------------------------------------------------------------------
    # Steps 1-4: validate, claim, upload, co-sign
    # ------------------------------------------------------------------

    def validate(self, request: PoolCreateRequest | dict[str, Any]) -> PoolCreateRequest:
        """Check the input before any side effect."""
        if isinstance(request, PoolCreateRequest):
            data = request
        else:
            try:
                data = PoolCreateRequest.model_validate(request)
            except SchemaValidationError as e:
                raise ValidationError(
                    _format_errors(e), context={"errors": e.errors(include_url=False)}
                ) from e
        if not data.user_wallet:
            raise UserRejected("Wallet not connected")
        return data

    async def begin(self, request: PoolCreateRequest | dict[str, Any]) -> PendingCreation:
        request_id = uuid.uuid4().hex
        state = CreationState.VALIDATING
        try:
            data = self.validate(request)
        except LaunchpadError as e:
            self._log_failure(request_id, state, e)
            raise
        user_wallet = Pubkey.from_string(data.user_wallet)

        handle = None
        try:
            handle = self.claims.claim_any(request_id)
            state = self._transition(request_id, CreationState.CREDENTIAL_ACQUIRED)
            credential = self.store.load(handle.identifier)
            mint = str(credential.pubkey)

            unsigned = await self.upload_client.upload(UploadRequest(
                logo_base64=data.token_logo,
                mint_identity=mint,
                token_name=data.token_name,
                token_symbol=data.token_symbol,
                user_wallet=data.user_wallet,
                website=data.website,
                twitter=data.twitter,
            ))
            state = self._transition(request_id, CreationState.UPLOADED)

            tx = decode_transaction(unsigned)
            co_sign(tx, credential.keypair, user_wallet)
            state = self._transition(request_id, CreationState.CO_SIGNED)

            pending = PendingCreation(
                request_id=request_id,
                credential_id=handle.identifier,
                mint=mint,
                transaction=encode_transaction(tx),
                expires_at=_now() + self.session_ttl,
            )
            self._save_session(pending, data)
        except Exception as e:
            self._log_failure(request_id, state, e)
            if handle is not None:
                self.claims.release(handle.identifier, request_id)
            raise

        logger.info(f"[{request_id}] Awaiting wallet signature from {data.user_wallet} for mint {mint}")
        return pending

    # ------------------------------------------------------------------
    # Steps 5-7: user signature, broadcast, retire
    # ------------------------------------------------------------------

    async def complete(self, request_id: str, signed_transaction: str) -> CreationResult:
        """Resume a session with the wallet-signed transaction and broadcast it."""
        session = self._take_pending(request_id, CreationState.USER_SIGNED)
        credential = Pubkey.from_string(session.mint)
        user_wallet = Pubkey.from_string(session.user_wallet)

        try:
            co_signed = decode_transaction(session.transaction)
            signed = decode_transaction(signed_transaction)
            check_user_signed(co_signed, signed, credential, user_wallet)
        except LaunchpadError as e:
            self._fail(session, CreationState.USER_SIGNED, e)
            raise
        self._transition(request_id, CreationState.USER_SIGNED)

        return await self._broadcast_and_retire(session, signed)

    def reject(self, request_id: str, reason: str = "User rejected the request") -> None:
        """The user declined in their wallet. Ends the session and frees the keypair."""
        session = self._take_pending(request_id, CreationState.FAILED, failure_reason=reason)
        self._log_failure(request_id, CreationState.CO_SIGNED, UserRejected(reason))
        self.claims.release(session.credential_id, request_id)

    async def run(
        self,
        request: PoolCreateRequest | dict[str, Any],
        wallet: WalletSigner | None,
    ) -> CreationResult:
        """Full creation in one call with an in-process wallet."""
        if wallet is None:
            raise UserRejected("Wallet not connected")
        if isinstance(request, dict):
            request = {k: v for k, v in request.items() if k not in ("user_wallet", "userWallet")}
            request["user_wallet"] = str(wallet.public_key)
        else:
            request = request.model_copy(update={"user_wallet": str(wallet.public_key)})

        pending = await self.begin(request)
        try:
            signed = await wallet.sign_transaction(decode_transaction(pending.transaction))
        except UserRejected as e:
            self.reject(pending.request_id, e.message)
            raise
        except Exception as e:
            self.reject(pending.request_id, f"Wallet signing failed: {e}")
            raise UserRejected(f"Wallet signing failed: {e}") from e

        return await self.complete(pending.request_id, encode_transaction(signed))

    async def _broadcast_and_retire(self, session: SigningSession, signed: Transaction) -> CreationResult:
        request_id = session.id
        encoded = encode_transaction(signed)
        try:
            broadcast = await self.broadcast_client.submit(encoded)
        except Exception as e:
            self._fail(session, CreationState.USER_SIGNED, e)
            raise
        self._transition(request_id, CreationState.BROADCAST)
        self._update_session(request_id, state=CreationState.BROADCAST.value, signature=broadcast.signature)
        logger.info(f"[{request_id}] Pool created for mint {session.mint}")

        retired = True
        try:
            self.claims.retire(session.credential_id, request_id)
        except Exception as e:
            retired = False
            logger.error(
                f"[{request_id}] Pool created but keypair {session.credential_id} was not retired: {e}"
            )

        state = CreationState.RETIRED if retired else CreationState.BROADCAST
        if retired:
            self._transition(request_id, state)
        self._update_session(request_id, state=state.value, retired=retired)

        return CreationResult(
            request_id=request_id,
            mint=session.mint,
            state=state,
            retired=retired,
            signature=broadcast.signature,
            transaction=encoded,
            signers=[session.mint, session.user_wallet],
        )

    # ------------------------------------------------------------------
    # Session persistence
    # ------------------------------------------------------------------

    def get_session(self, request_id: str) -> SigningSession | None:
        with Session(self.engine) as db:
            return db.get(SigningSession, request_id)

    def expire_sessions(self) -> int:
        """Fail pending sessions past their expiry and release their keypairs."""
        with Session(self.engine) as db:
            stale = db.exec(
                select(SigningSession).where(
                    SigningSession.state == CreationState.CO_SIGNED.value,
                    SigningSession.expires_at < _now(),
                )
            ).all()

        expired = 0
        for session in stale:
            if not self._cas_state(
                session.id,
                CreationState.CO_SIGNED,
                CreationState.FAILED,
                failure_reason="Signing session expired",
            ):
                continue
            self.claims.release(session.credential_id, session.id)
            logger.info(f"[{session.id}] Signing session expired, keypair {session.credential_id} released")
            expired += 1
        return expired

    def _save_session(self, pending: PendingCreation, data: PoolCreateRequest):
        with Session(self.engine) as db:
            db.add(SigningSession(
                id=pending.request_id,
                credential_id=pending.credential_id,
                mint=pending.mint,
                user_wallet=data.user_wallet,
                token_name=data.token_name,
                token_symbol=data.token_symbol,
                state=CreationState.CO_SIGNED.value,
                transaction=pending.transaction,
                expires_at=pending.expires_at,
            ))
            db.commit()

    def _take_pending(self, request_id: str, new_state: CreationState, **values) -> SigningSession:
        """Move a live co-signed session on, exactly once."""
        session = self.get_session(request_id)
        if session is None or not self._cas_state(
            request_id, CreationState.CO_SIGNED, new_state, live_only=True, **values
        ):
            raise SessionNotFound(f"No pending pool creation for request {request_id}")
        return session

    def _cas_state(
        self,
        request_id: str,
        expected: CreationState,
        new_state: CreationState,
        live_only: bool = False,
        **values,
    ) -> bool:
        conditions = [_sessions.c.id == request_id, _sessions.c.state == expected.value]
        if live_only:
            conditions.append(_sessions.c.expires_at > _now())
        with self.engine.begin() as conn:
            result = conn.execute(
                update(_sessions)
                .where(*conditions)
                .values(state=new_state.value, updated_at=_now(), **values)
            )
        return result.rowcount == 1

    def _update_session(self, request_id: str, **values):
        with self.engine.begin() as conn:
            conn.execute(
                update(_sessions)
                .where(_sessions.c.id == request_id)
                .values(updated_at=_now(), **values)
            )

    def _fail(self, session: SigningSession, state: CreationState, error: Exception):
        self._log_failure(session.id, state, error)
        reason = error.message if isinstance(error, LaunchpadError) else str(error)
        self._update_session(session.id, state=CreationState.FAILED.value, failure_reason=reason)
        self.claims.release(session.credential_id, session.id)

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    @staticmethod
    def _transition(request_id: str, state: CreationState) -> CreationState:
        logger.info(f"[{request_id}] -> {state.value}")
        return state

    @staticmethod
    def _log_failure(request_id: str, state: CreationState, error: Exception):
        name = type(error).__name__
        if isinstance(error, (UserRejected, ValidationError)):
            logger.info(f"[{request_id}] {state.value} -> failed ({name}): {error}")
        elif isinstance(error, SerializationError):
            logger.error(f"[{request_id}] {state.value} -> failed ({name}): {error}", exc_info=True)
        else:
            logger.error(f"[{request_id}] {state.value} -> failed ({name}): {error}")


def _format_errors(error: SchemaValidationError) -> str:
    messages = []
    for item in error.errors(include_url=False):
        field_name = ".".join(str(part) for part in item["loc"])
        message = item["msg"].removeprefix("Value error, ")
        messages.append(f"{field_name}: {message}")
    return "; ".join(messages)
