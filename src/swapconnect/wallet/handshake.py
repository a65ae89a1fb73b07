"""Phantom deep-link handshake: X25519 box key exchange and payload crypto.

Keys, nonces and ciphertexts travel as base58 text. Payloads are UTF-8
JSON sealed with XSalsa20-Poly1305 under the shared secret, with a fresh
random nonce per message.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

import base58
from nacl.exceptions import CryptoError
from nacl.public import Box, PrivateKey, PublicKey
from nacl.secret import SecretBox
from nacl.utils import random

from swapconnect.errors import DecryptionFailed, InvalidWalletResponse

logger = logging.getLogger(__name__)

NONCE_SIZE = SecretBox.NONCE_SIZE  # 24
KEY_SIZE = SecretBox.KEY_SIZE  # 32


@dataclass(frozen=True)
class EncryptedPayload:
    nonce: str  # base58
    data: str  # base58


def encode_base58(raw: bytes) -> str:
    return base58.b58encode(raw).decode("ascii")


def decode_base58(value: str, label: str) -> bytes:
    """Decode a base58 field from the wallet.

    Raises:
        InvalidWalletResponse: If the value is missing or not base58
    """
    if not value:
        raise InvalidWalletResponse(f"Phantom field {label} is missing")
    try:
        return base58.b58decode(value)
    except ValueError as e:
        raise InvalidWalletResponse(f"Phantom field {label} is not valid base58") from e


def generate_keypair() -> PrivateKey:
    """Fresh dapp encryption key pair, one per session."""
    return PrivateKey.generate()


def public_key_base58(keypair: PrivateKey) -> str:
    return encode_base58(bytes(keypair.public_key))


def derive_shared_secret(dapp_secret: PrivateKey, wallet_public_key: str) -> bytes:
    """Derive the box shared key from our secret and the wallet's public key.

    Raises:
        InvalidWalletResponse: If the wallet key is not a 32-byte base58 key
    """
    raw = decode_base58(wallet_public_key, "phantom_encryption_public_key")
    if len(raw) != PublicKey.SIZE:
        raise InvalidWalletResponse("Phantom encryption public key has a wrong length")
    return Box(dapp_secret, PublicKey(raw)).shared_key()


def encrypt_payload(payload: dict[str, Any], shared_secret: bytes) -> EncryptedPayload:
    """Encrypt a JSON payload for the wallet."""
    nonce = random(NONCE_SIZE)
    message = json.dumps(payload).encode("utf-8")
    ciphertext = SecretBox(shared_secret).encrypt(message, nonce).ciphertext
    return EncryptedPayload(nonce=encode_base58(nonce), data=encode_base58(ciphertext))


def decrypt_payload(data: str, nonce: str, shared_secret: bytes) -> dict[str, Any]:
    """Decrypt and parse a wallet payload.

    Raises:
        DecryptionFailed: If the ciphertext does not authenticate
        InvalidWalletResponse: If fields are not base58 or the plaintext
            is not a JSON object
    """
    raw_nonce = decode_base58(nonce, "nonce")
    raw_data = decode_base58(data, "data")
    if len(raw_nonce) != NONCE_SIZE:
        raise InvalidWalletResponse("Phantom nonce has a wrong length")

    try:
        plaintext = SecretBox(shared_secret).decrypt(raw_data, raw_nonce)
    except (CryptoError, ValueError) as e:
        logger.warning("Phantom payload failed authentication")
        raise DecryptionFailed("Phantom payload could not be decrypted") from e

    try:
        decoded = json.loads(plaintext.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidWalletResponse("Phantom payload is not valid JSON") from e

    if not isinstance(decoded, dict):
        raise InvalidWalletResponse("Phantom payload is not a JSON object")
    return decoded
