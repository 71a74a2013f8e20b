import base64
import binascii

import base58
from solders.keypair import Keypair
from solders.message import to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from mcp.server.fastmcp.utilities.logging import get_logger

from .errors import ConfigurationError, InvalidTransaction

logger = get_logger(__name__)


class SigningWallet:
    """Owns the swap keypair. Read-only after construction, safe to share between tool calls."""

    def __init__(self, keypair: Keypair):
        self._keypair = keypair

    @classmethod
    def from_base58(cls, private_key: str) -> "SigningWallet":
        """Loads a wallet from a base58 secret that decodes to exactly 64 bytes.

        The key material never appears in exceptions or logs.
        """
        try:
            key_bytes = base58.b58decode(private_key.strip())
        except ValueError:
            raise ConfigurationError("PRIVATE_KEY is not valid base58") from None
        if len(key_bytes) != 64:
            raise ConfigurationError(
                f"PRIVATE_KEY decoded to {len(key_bytes)} bytes, expected 64"
            )
        try:
            keypair = Keypair.from_bytes(key_bytes)
        except ValueError:
            raise ConfigurationError("PRIVATE_KEY is not a valid ed25519 keypair") from None
        return cls(keypair)

    @property
    def pubkey(self) -> Pubkey:
        return self._keypair.pubkey()

    @property
    def address(self) -> str:
        return str(self._keypair.pubkey())

    def sign_message(self, message: bytes) -> Signature:
        return self._keypair.sign_message(message)

    def __repr__(self) -> str:
        return f"SigningWallet({self.address})"


def sign_transaction(transaction_b64: str, wallet: SigningWallet) -> str:
    """Adds the wallet's signature to a base64 VersionedTransaction.

    Only the wallet's own signer slot changes; the message and every other
    signature are carried over untouched. Returns the signed transaction as base64.
    """
    try:
        raw = base64.b64decode(transaction_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidTransaction(f"Transaction is not valid base64: {e}") from e

    try:
        tx = VersionedTransaction.from_bytes(raw)
    except Exception as e:
        raise InvalidTransaction(f"Could not deserialize transaction: {e}") from e

    message = tx.message
    num_signers = message.header.num_required_signatures
    signer_keys = list(message.account_keys[:num_signers])
    try:
        slot = signer_keys.index(wallet.pubkey)
    except ValueError:
        raise InvalidTransaction(
            f"Wallet {wallet.address} is not a required signer of this transaction"
        ) from None

    signatures = list(tx.signatures)
    # Unsigned payloads may omit trailing slots; pad them with the empty signature.
    while len(signatures) < num_signers:
        signatures.append(Signature.default())
    signatures[slot] = wallet.sign_message(to_bytes_versioned(message))

    signed = VersionedTransaction.populate(message, signatures)
    logger.debug(f"Signed transaction in signer slot {slot} of {num_signers}")
    return base64.b64encode(bytes(signed)).decode("ascii")
