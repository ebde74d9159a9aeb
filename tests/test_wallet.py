import pytest
from conftest import MNEMONIC

from gevulot_sdk import address as addr
from gevulot_sdk.errors import InvalidMnemonic, KeyDerivationError
from gevulot_sdk.utils import bech32
from gevulot_sdk.wallet import (KeyHandle, create_mnemonic, derive,
                                mnemonic_to_seed, validate_mnemonic,
                                verify_signature)
from gevulot_sdk.wallet.mnemonic import SECP256K1_N, parse_path

# Address of the same phrase under the Cosmos hub prefix (m/44'/118'/0'/0/0).
COSMOS_ADDRESS = "cosmos19rl4cm2hmr8afy4kldpxz3fka4jguq0auqdal4"


# ---------- Mnemonic ----------


def test_create_and_validate_roundtrip():
    for n in (12, 24):
        phrase = create_mnemonic(n)
        assert len(phrase.split()) == n
        assert validate_mnemonic(phrase)


def test_create_rejects_odd_lengths():
    with pytest.raises(ValueError):
        create_mnemonic(13)


@pytest.mark.parametrize(
    "phrase",
    [
        " ".join(["abandon"] * 12),  # bad checksum
        " ".join(["abandon"] * 11),  # bad length
        " ".join(["abandon"] * 11 + ["notaword"]),
        "",
    ],
)
def test_invalid_phrases(phrase):
    assert not validate_mnemonic(phrase)
    with pytest.raises(InvalidMnemonic):
        mnemonic_to_seed(phrase)
    with pytest.raises(InvalidMnemonic):
        derive(phrase)


def test_seed_matches_bip39_vector():
    # BIP-39 reference vector (passphrase "TREZOR")
    seed = mnemonic_to_seed(MNEMONIC, "TREZOR")
    assert seed.hex().startswith("c55257c360c07c72029aebc1b53c05ed0362ada38ead3e3e9efa3708e5349553")


def test_extra_whitespace_is_tolerated():
    assert mnemonic_to_seed("  " + MNEMONIC.replace(" ", "   ") + "\n") == mnemonic_to_seed(MNEMONIC)


@pytest.mark.parametrize("path", ["44'/118'/0'/0/0", "m/44'/x/0", "m/2147483648"])
def test_bad_paths(path):
    with pytest.raises(KeyDerivationError):
        parse_path(path)


def test_hardened_markers_are_equivalent():
    assert parse_path("m/44'/118'/0'/0/0") == parse_path("m/44h/118H/0'/0/0")


# ---------- Keys & addresses ----------


def test_known_phrase_derives_the_known_account(key):
    _, cosmos_payload = bech32.decode_bytes(COSMOS_ADDRESS, expected_hrp="cosmos")
    hrp, payload = addr.decode(key.address())
    assert hrp == "gvlt"
    assert payload == cosmos_payload
    assert key.address().startswith("gvlt1")
    assert len(key.public_key) == 33 and key.public_key[0] in (2, 3)


def test_derivation_is_deterministic_and_passphrase_sensitive():
    a = derive(MNEMONIC)
    b = derive(MNEMONIC)
    c = derive(MNEMONIC, "extra words")
    d = derive(MNEMONIC, path="m/44'/118'/0'/0/1")
    assert a.address() == b.address()
    assert len({a.address(), c.address(), d.address()}) == 3


def test_custom_prefix():
    k = KeyHandle.from_mnemonic(MNEMONIC, hrp="cosmos")
    assert k.address() == COSMOS_ADDRESS


def test_generate_returns_the_phrase_it_used():
    k, phrase = KeyHandle.generate(num_words=12)
    assert derive(phrase).address() == k.address()


def test_repr_does_not_leak_key_material(key):
    r = repr(key)
    assert key.address() in r
    assert "_key" not in r


# ---------- Signing ----------


def test_signatures_are_deterministic_low_s_and_verify(key):
    msg = b"gevulot sign doc"
    sig = key.sign(msg)
    assert sig == key.sign(msg)
    assert len(sig) == 64
    s = int.from_bytes(sig[32:], "big")
    assert s <= SECP256K1_N // 2
    assert key.verify(msg, sig)
    assert verify_signature(key.public_key, msg, sig)


def test_low_s_holds_across_many_messages(key):
    for i in range(64):
        sig = key.sign(i.to_bytes(4, "big"))
        assert int.from_bytes(sig[32:], "big") <= SECP256K1_N // 2


def test_verify_rejects_tampering(key):
    sig = key.sign(b"hello")
    assert not verify_signature(key.public_key, b"hellO", sig)
    assert not verify_signature(key.public_key, b"hello", sig[:-1])
    bad = bytes([sig[0] ^ 1]) + sig[1:]
    assert not verify_signature(key.public_key, b"hello", bad)
    other = derive(MNEMONIC, path="m/44'/118'/0'/0/1")
    assert not verify_signature(other.public_key, b"hello", sig)
    assert not verify_signature(b"\x05" + b"\x00" * 32, b"hello", sig)


def test_private_key_hex_import():
    k = KeyHandle.from_private_key_hex("0x" + "01" * 32)
    assert addr.validate(k.address(), expected_hrp="gvlt")
    with pytest.raises(KeyDerivationError):
        KeyHandle.from_private_key_hex("zz")
    with pytest.raises(KeyDerivationError):
        KeyHandle.from_private_key_hex("00" * 32)
    with pytest.raises(KeyDerivationError):
        KeyHandle.from_private_key_hex("01" * 31)
