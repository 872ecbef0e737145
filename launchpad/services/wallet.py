"""User wallet signers for in-process pool creation."""

import logging
from typing import Protocol

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction

logger = logging.getLogger(__name__)


class WalletSigner(Protocol):
    """Anything that can add the user's signature to a transaction.

    ``sign_transaction`` raises ``UserRejected`` when the user declines.
    """

    @property
    def public_key(self) -> Pubkey: ...

    async def sign_transaction(self, tx: Transaction) -> Transaction: ...


class KeypairWallet:
    """A wallet backed by a local keypair, e.g. a Solana CLI keypair file."""

    def __init__(self, keypair: Keypair):
        self._keypair = keypair

    @property
    def public_key(self) -> Pubkey:
        return self._keypair.pubkey()

    async def sign_transaction(self, tx: Transaction) -> Transaction:
        signed = Transaction.from_bytes(bytes(tx))
        signed.partial_sign([self._keypair], signed.message.recent_blockhash)
        logger.debug(f"Wallet {self.public_key} signed transaction")
        return signed
