"""Atomic credential reservation on top of the directory pools.

Each credential has a claim row that moves free -> claimed(owner, deadline) ->
retired. Every transition is a conditional UPDATE, so only one request can hold
a credential even when several processes share the database. Claims whose
deadline has passed count as free again, and ``recycle_expired`` resets them
explicitly.
"""

import logging
import random
from datetime import datetime, timedelta, timezone

from sqlalchemy import and_, insert, or_, select, update
from sqlalchemy.exc import IntegrityError

from launchpad import database
from launchpad.config import settings
from launchpad.errors import ClaimNotHeld, NoCredentialAvailable, NotFound
from launchpad.models.credential_claim import ClaimState, CredentialClaim
from launchpad.services.credential_store import CredentialHandle, CredentialStore

logger = logging.getLogger(__name__)

_claims = CredentialClaim.__table__


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ClaimLedger:
    """Exclusive, expiring claims over a ``CredentialStore``."""

    def __init__(
        self,
        store: CredentialStore,
        engine=None,
        claim_ttl_seconds: int | None = None,
    ):
        self.store = store
        self.engine = engine if engine is not None else database.engine
        ttl = claim_ttl_seconds if claim_ttl_seconds is not None else settings.claim_ttl_seconds
        self.claim_ttl = timedelta(seconds=ttl)

    def claim_any(self, owner: str) -> CredentialHandle:
        """Atomically reserve one available credential for ``owner``."""
        handles = self.store.list_available()
        random.shuffle(handles)

        now = _now()
        deadline = now + self.claim_ttl
        for handle in handles:
            if self._try_claim(handle.identifier, owner, now, deadline):
                logger.info(f"[{owner}] Claimed keypair {handle.identifier} until {deadline.isoformat()}")
                return handle

        raise NoCredentialAvailable(
            "No keypairs available",
            context={"available": len(handles)},
        )

    def release(self, identifier: str, owner: str) -> bool:
        """Return a claimed credential to the free state. False if not held."""
        with self.engine.begin() as conn:
            result = conn.execute(
                update(_claims)
                .where(
                    _claims.c.identifier == identifier,
                    _claims.c.state == ClaimState.CLAIMED.value,
                    _claims.c.owner == owner,
                )
                .values(state=ClaimState.FREE.value, owner=None, deadline=None, updated_at=_now())
            )
        released = result.rowcount == 1
        if released:
            logger.info(f"[{owner}] Released keypair {identifier}")
        return released

    def retire(self, identifier: str, owner: str) -> None:
        """Mark a held credential retired, then move its file to the consumed pool.

        The ledger transition happens first; once retired the credential can
        never be claimed again even if the file move below fails.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                update(_claims)
                .where(
                    _claims.c.identifier == identifier,
                    _claims.c.state == ClaimState.CLAIMED.value,
                    _claims.c.owner == owner,
                )
                .values(state=ClaimState.RETIRED.value, updated_at=_now())
            )
        if result.rowcount != 1:
            raise ClaimNotHeld(
                f"Claim on {identifier} is not held by {owner}",
                context={"identifier": identifier, "owner": owner},
            )
        try:
            self.store.consume(identifier)
        except NotFound:
            # Already moved through the directory-only retire endpoint
            if not self.store.is_consumed(identifier):
                raise
            logger.warning(f"[{owner}] Keypair {identifier} was already in the consumed pool")
        logger.info(f"[{owner}] Retired keypair {identifier}")

    def state_of(self, identifier: str) -> ClaimState:
        """Current claim state. Never-claimed credentials are free."""
        with self.engine.connect() as conn:
            row = conn.execute(
                select(_claims.c.state).where(_claims.c.identifier == identifier)
            ).first()
        return ClaimState(row.state) if row else ClaimState.FREE

    def recycle_expired(self) -> int:
        """Free every claim whose deadline has passed."""
        with self.engine.begin() as conn:
            result = conn.execute(
                update(_claims)
                .where(
                    _claims.c.state == ClaimState.CLAIMED.value,
                    _claims.c.deadline < _now(),
                )
                .values(state=ClaimState.FREE.value, owner=None, deadline=None, updated_at=_now())
            )
        if result.rowcount:
            logger.info(f"Recycled {result.rowcount} expired keypair claims")
        return result.rowcount

    def reconcile_retired(self) -> int:
        """Retry the file move for retired credentials left in the available pool."""
        with self.engine.connect() as conn:
            retired = conn.execute(
                select(_claims.c.identifier).where(_claims.c.state == ClaimState.RETIRED.value)
            ).scalars().all()

        moved = 0
        for identifier in retired:
            if not self.store.is_available(identifier):
                continue
            try:
                self.store.consume(identifier)
                moved += 1
            except NotFound:
                continue
            except Exception as e:
                logger.error(f"Reconcile: failed to move retired keypair {identifier}: {e}")
        if moved:
            logger.info(f"Reconcile: moved {moved} retired keypairs to consumed pool")
        return moved

    def _try_claim(self, identifier: str, owner: str, now: datetime, deadline: datetime) -> bool:
        claimable = or_(
            _claims.c.state == ClaimState.FREE.value,
            and_(_claims.c.state == ClaimState.CLAIMED.value, _claims.c.deadline < now),
        )
        with self.engine.begin() as conn:
            result = conn.execute(
                update(_claims)
                .where(_claims.c.identifier == identifier, claimable)
                .values(state=ClaimState.CLAIMED.value, owner=owner, deadline=deadline, updated_at=now)
            )
            if result.rowcount == 1:
                return True

        # First time this credential is seen: the primary key makes the insert the CAS
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    insert(_claims).values(
                        identifier=identifier,
                        state=ClaimState.CLAIMED.value,
                        owner=owner,
                        deadline=deadline,
                        updated_at=now,
                    )
                )
        except IntegrityError:
            return False
        return True
