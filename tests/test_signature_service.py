import pytest
from eth_account import Account
from hexbytes import HexBytes

from walletauth.client import LocalAccountWallet
from walletauth.services.signature_service import (
    is_valid_address,
    normalize_address,
    recover_address,
    verify_signature,
)

MESSAGE = "Sign this message to authenticate: auth-abc123XYZ"


def flip_bit(data: bytes, bit: int) -> bytes:
    mutated = bytearray(data)
    mutated[bit // 8] ^= 1 << (bit % 8)
    return bytes(mutated)


def test_verify_accepts_signature_from_claimed_address(wallet):
    address = wallet.get_active_address()
    signature = wallet.sign_personal_message(MESSAGE, address)

    assert verify_signature(MESSAGE, signature, address) is True
    assert recover_address(MESSAGE, signature) == address


def test_verify_is_case_insensitive_on_claimed_address(wallet):
    address = wallet.get_active_address()
    signature = wallet.sign_personal_message(MESSAGE, address)

    assert verify_signature(MESSAGE, signature, address.lower()) is True
    assert verify_signature(MESSAGE, signature, "0x" + address[2:].upper()) is True


def test_verify_accepts_signature_without_0x_prefix(wallet):
    address = wallet.get_active_address()
    signature = wallet.sign_personal_message(MESSAGE, address)

    assert verify_signature(MESSAGE, signature[2:], address) is True


def test_verify_rejects_other_address(wallet, other_wallet):
    address = wallet.get_active_address()
    signature = wallet.sign_personal_message(MESSAGE, address)

    assert verify_signature(MESSAGE, signature, other_wallet.get_active_address()) is False


@pytest.mark.parametrize("bit", [0, 7, 100, 255, 256, 300, 511, 512])
def test_verify_rejects_single_bit_signature_mutation(wallet, bit):
    address = wallet.get_active_address()
    signature = bytes(HexBytes(wallet.sign_personal_message(MESSAGE, address)))

    mutated = "0x" + flip_bit(signature, bit).hex()

    assert verify_signature(MESSAGE, mutated, address) is False


@pytest.mark.parametrize("bit", [0, 9, 140, len(MESSAGE) * 8 - 2])
def test_verify_rejects_single_bit_message_mutation(wallet, bit):
    address = wallet.get_active_address()
    signature = wallet.sign_personal_message(MESSAGE, address)

    mutated = flip_bit(MESSAGE.encode(), bit).decode()

    assert mutated != MESSAGE
    assert verify_signature(mutated, signature, address) is False


@pytest.mark.parametrize("signature", ["", "0x", "0x1234", "not-hex", "0x" + "00" * 65])
def test_verify_never_raises_on_malformed_signature(wallet, signature):
    assert verify_signature(MESSAGE, signature, wallet.get_active_address()) is False


def test_normalize_address_mixed_case_spellings_match():
    address = Account.create().address
    spellings = [address, address.lower(), "0x" + address[2:].upper(), f"  {address}  "]

    normalized = {normalize_address(s) for s in spellings}

    assert normalized == {address.lower()}


def test_normalize_address_bad_checksum_falls_back_to_lower_case():
    address = Account.create().address
    # Every letter in the wrong case, so the checksum no longer validates
    swapped = "0x" + address[2:].swapcase()

    assert normalize_address(swapped) == address.lower()
    assert normalize_address("  Not-An-Address ") == "not-an-address"


@pytest.mark.parametrize("address,expected", [
    ("0x" + "ab" * 20, True),
    ("0x" + "AB" * 20, True),
    ("0x" + "ab" * 19, False),
    ("ab" * 20, False),
    ("", False),
    (None, False),
])
def test_is_valid_address(address, expected):
    assert is_valid_address(address) is expected


def test_local_wallet_refuses_foreign_address(wallet, other_wallet):
    from walletauth.client import WalletError

    with pytest.raises(WalletError):
        wallet.sign_personal_message(MESSAGE, other_wallet.get_active_address())
