"""Pool-creation transaction decoding, co-signing and signature checks.

A pool-creation transaction names exactly two required signers: the pool
keypair (the new mint) and the user's wallet. The pool keypair signs first,
on the server; the wallet signs second, on the client.
"""

import base64
import binascii
import logging

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from launchpad.errors import SerializationError, UserRejected

logger = logging.getLogger(__name__)

REQUIRED_SIGNERS = 2


def decode_transaction(encoded: str) -> Transaction:
    """Decode a base64 wire transaction."""
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise SerializationError(f"Transaction is not valid base64: {e}") from e
    try:
        tx = Transaction.from_bytes(raw)
    except Exception as e:
        raise SerializationError(f"Malformed transaction bytes: {e}") from e
    if len(tx.signatures) != tx.message.header.num_required_signatures:
        raise SerializationError(
            "Signature count does not match required signers",
            context={
                "signatures": len(tx.signatures),
                "required": tx.message.header.num_required_signatures,
            },
        )
    return tx


def encode_transaction(tx: Transaction) -> str:
    return base64.b64encode(bytes(tx)).decode("ascii")


def required_signers(tx: Transaction) -> list[Pubkey]:
    header = tx.message.header
    return list(tx.message.account_keys[: header.num_required_signatures])


def signature_for(tx: Transaction, signer: Pubkey) -> Signature | None:
    """The signature in ``signer``'s slot, or None if it is still empty."""
    signers = required_signers(tx)
    if signer not in signers:
        raise SerializationError(f"{signer} is not a required signer")
    signature = tx.signatures[signers.index(signer)]
    if signature == Signature.default():
        return None
    return signature


def is_signed_by(tx: Transaction, signer: Pubkey) -> bool:
    signature = signature_for(tx, signer)
    return signature is not None and signature.verify(signer, bytes(tx.message))


def co_sign(tx: Transaction, keypair: Keypair, user_wallet: Pubkey) -> Transaction:
    """Apply the pool keypair's signature, before any wallet signature.

    The transaction must name exactly the pool keypair and ``user_wallet`` as
    its required signers.
    """
    signers = required_signers(tx)
    credential = keypair.pubkey()
    if len(signers) != REQUIRED_SIGNERS or set(signers) != {credential, user_wallet}:
        raise SerializationError(
            "Transaction must require exactly the pool keypair and the user wallet as signers",
            context={"signers": [str(s) for s in signers]},
        )
    if signature_for(tx, user_wallet) is not None:
        raise SerializationError("Transaction was signed by the user wallet before the pool keypair")

    tx.partial_sign([keypair], tx.message.recent_blockhash)
    logger.debug(f"Pool keypair {credential} signed for wallet {user_wallet}")
    return tx


def check_user_signed(
    co_signed: Transaction,
    signed: Transaction,
    credential: Pubkey,
    user_wallet: Pubkey,
) -> None:
    """Validate a wallet-signed transaction against the co-signed one.

    The message must be unchanged and the pool keypair's signature must still
    verify. A missing wallet signature means the user did not sign.
    """
    if signed.message != co_signed.message:
        raise SerializationError("Signed transaction message differs from the co-signed transaction")
    if not is_signed_by(signed, credential):
        raise SerializationError("Pool keypair signature is missing or invalid")

    user_signature = signature_for(signed, user_wallet)
    if user_signature is None:
        raise UserRejected("Transaction was not signed by the user wallet")
    if not user_signature.verify(user_wallet, bytes(signed.message)):
        raise SerializationError("User wallet signature does not verify")
