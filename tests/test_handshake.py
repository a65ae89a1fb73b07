"""Tests for the Phantom key exchange and payload encryption."""

import base58
import pytest
from nacl.public import PrivateKey

from swapconnect.errors import DecryptionFailed, InvalidWalletResponse
from swapconnect.wallet.handshake import (
    decode_base58,
    decrypt_payload,
    derive_shared_secret,
    encode_base58,
    encrypt_payload,
    generate_keypair,
    public_key_base58,
)


@pytest.fixture
def key_pairs():
    """Dapp and wallet key pairs plus the secret each side derives."""
    dapp = generate_keypair()
    wallet = PrivateKey.generate()
    dapp_secret = derive_shared_secret(dapp, public_key_base58(wallet))
    wallet_secret = derive_shared_secret(wallet, public_key_base58(dapp))
    return dapp, wallet, dapp_secret, wallet_secret


class TestSharedSecret:
    """Tests for the X25519 key agreement."""

    def test_both_sides_derive_same_secret(self, key_pairs):
        _, _, dapp_secret, wallet_secret = key_pairs

        assert dapp_secret == wallet_secret
        assert len(dapp_secret) == 32

    def test_public_key_is_base58(self):
        keypair = generate_keypair()

        assert base58.b58decode(public_key_base58(keypair)) == bytes(keypair.public_key)

    def test_wrong_key_length(self):
        with pytest.raises(InvalidWalletResponse):
            derive_shared_secret(generate_keypair(), encode_base58(b"short"))

    def test_invalid_base58(self):
        with pytest.raises(InvalidWalletResponse):
            derive_shared_secret(generate_keypair(), "0OIl")


class TestPayloadEncryption:
    """Tests for payload sealing and opening."""

    def test_round_trip(self, key_pairs):
        _, _, dapp_secret, wallet_secret = key_pairs
        payload = {"public_key": "Wallet111", "session": "token"}

        encrypted = encrypt_payload(payload, wallet_secret)

        assert decrypt_payload(encrypted.data, encrypted.nonce, dapp_secret) == payload

    def test_fresh_nonce_per_message(self, key_pairs):
        _, _, secret, _ = key_pairs

        first = encrypt_payload({"a": 1}, secret)
        second = encrypt_payload({"a": 1}, secret)

        assert first.nonce != second.nonce
        assert len(decode_base58(first.nonce, "nonce")) == 24

    def test_wrong_secret_fails_authentication(self, key_pairs):
        _, _, secret, _ = key_pairs
        other_secret = derive_shared_secret(
            generate_keypair(), public_key_base58(PrivateKey.generate())
        )
        encrypted = encrypt_payload({"a": 1}, secret)

        with pytest.raises(DecryptionFailed):
            decrypt_payload(encrypted.data, encrypted.nonce, other_secret)

    def test_tampered_ciphertext(self, key_pairs):
        _, _, secret, _ = key_pairs
        encrypted = encrypt_payload({"transaction": "abc"}, secret)
        raw = bytearray(base58.b58decode(encrypted.data))
        raw[-1] ^= 0x01

        with pytest.raises(DecryptionFailed):
            decrypt_payload(encode_base58(bytes(raw)), encrypted.nonce, secret)

    def test_wrong_nonce_length(self, key_pairs):
        _, _, secret, _ = key_pairs
        encrypted = encrypt_payload({"a": 1}, secret)

        with pytest.raises(InvalidWalletResponse):
            decrypt_payload(encrypted.data, encode_base58(b"\x01" * 12), secret)

    def test_non_object_payload(self, key_pairs):
        from nacl.secret import SecretBox
        from nacl.utils import random

        _, _, secret, _ = key_pairs
        nonce = random(24)
        ciphertext = SecretBox(secret).encrypt(b"[1, 2]", nonce).ciphertext

        with pytest.raises(InvalidWalletResponse):
            decrypt_payload(encode_base58(ciphertext), encode_base58(nonce), secret)

    def test_missing_field(self, key_pairs):
        _, _, secret, _ = key_pairs

        with pytest.raises(InvalidWalletResponse):
            decrypt_payload("", encode_base58(b"\x00" * 24), secret)
