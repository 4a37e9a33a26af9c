"""
Ethereum wallet signature helpers.

Verification follows EIP-191 ``personal_sign``: the message is prefixed with
``"\\x19Ethereum Signed Message:\\n" + len(message)``, hashed with keccak256 and
the signer's address is recovered from the secp256k1 signature.
"""
import logging

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import is_hex_address
from hexbytes import HexBytes
from web3 import Web3

logger = logging.getLogger(__name__)


def is_valid_address(address: str | None) -> bool:
    """True for a 0x-prefixed, 40 hex digit address in any letter case."""
    if not address or not isinstance(address, str):
        return False
    value = address.strip()
    return value[:2] in ("0x", "0X") and is_hex_address(value)


def normalize_address(address: str) -> str:
    """
    Canonical storage form of a wallet address.

    Valid addresses go through checksum validation (``Web3.is_address`` rejects
    mixed-case input with a bad checksum) and are stored lower-case. Anything
    else falls back to trimmed lower-case so comparisons stay case-insensitive.
    """
    value = (address or "").strip()
    if Web3.is_address(value):
        return Web3.to_checksum_address(value).lower()
    return value.lower()


def recover_address(message: str, signature: str) -> str:
    """Returns the checksummed address that signed ``message``. Raises on malformed input."""
    signable = encode_defunct(text=message)
    return Account.recover_message(signable, signature=HexBytes(signature.strip()))


def verify_signature(message: str, signature: str, claimed_address: str) -> bool:
    """
    Checks that ``signature`` over ``message`` was produced by ``claimed_address``.

    Never raises: malformed signatures or recovery failures return False.
    """
    if not message or not signature or not claimed_address:
        return False
    try:
        recovered = recover_address(message, signature)
    except Exception as e:
        logger.debug(f"Signature recovery failed: {type(e).__name__}: {e}")
        return False

    matches = normalize_address(recovered) == normalize_address(claimed_address)
    if not matches:
        logger.info(f"Recovered signer {recovered} does not match claimed address {claimed_address}")
    return matches
