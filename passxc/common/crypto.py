"""Key material: keypairs, nonces and their base64 wire encoding.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from nacl.public import Box, PrivateKey, PublicKey
from nacl.utils import random as nacl_random

from passxc.common.exceptions import InvalidKeyEncoding, ProtocolError

KEY_SIZE = PublicKey.SIZE
NONCE_SIZE = Box.NONCE_SIZE


@dataclass(frozen=True)
class KeyPair:
    """Curve25519 keypair, generated fresh for every session."""

    private_key: PrivateKey
    public_key: PublicKey

    @classmethod
    def generate(cls) -> KeyPair:
        private_key = PrivateKey.generate()
        return cls(private_key=private_key, public_key=private_key.public_key)

    @property
    def public_key_b64(self) -> str:
        return encode_b64(bytes(self.public_key))


def generate_keypair() -> KeyPair:
    """Random private key and its public key (base-point scalar multiplication)."""
    return KeyPair.generate()


def generate_nonce() -> bytes:
    """Full-width random nonce from the OS CSPRNG."""
    return nacl_random(NONCE_SIZE)


def generate_identity_key() -> bytes:
    """Random 32-byte identity key for a new association."""
    return nacl_random(KEY_SIZE)


def encode_b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def decode_b64(value: str, expected_length: int, what: str = "key") -> bytes:
    """Decode standard base64, rejecting bad alphabet, padding or length."""
    try:
        raw = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError, TypeError) as err:
        msg = f"Invalid base64 {what}: {err}"
        raise InvalidKeyEncoding(msg) from err
    if len(raw) != expected_length:
        msg = f"Invalid {what} length: got {len(raw)} bytes, want {expected_length}"
        raise InvalidKeyEncoding(msg)
    return raw


def decode_key(value: str) -> bytes:
    return decode_b64(value, KEY_SIZE, "key")


def decode_nonce(value: str) -> bytes:
    return decode_b64(value, NONCE_SIZE, "nonce")


def decode_public_key(value: str) -> PublicKey:
    return PublicKey(decode_key(value))


@dataclass(frozen=True)
class SealedMessage:
    """Nonce and ciphertext of one boxed message.

    On the wire the two travel as separate base64 fields (`nonce` and
    `message`); the ciphertext includes the authenticator.
    """

    nonce: bytes
    ciphertext: bytes

    def __post_init__(self) -> None:
        if len(self.nonce) != NONCE_SIZE:
            msg = f"Invalid nonce length: got {len(self.nonce)} bytes, want {NONCE_SIZE}"
            raise InvalidKeyEncoding(msg)

    def to_wire(self) -> tuple[str, str]:
        """Return (nonce_b64, message_b64)."""
        return encode_b64(self.nonce), encode_b64(self.ciphertext)

    @classmethod
    def from_wire(cls, nonce_b64: str, message_b64: str) -> SealedMessage:
        nonce = decode_nonce(nonce_b64)
        try:
            ciphertext = base64.b64decode(message_b64, validate=True)
        except (binascii.Error, ValueError, TypeError) as err:
            msg = f"Invalid base64 message: {err}"
            raise ProtocolError(msg) from err
        return cls(nonce=nonce, ciphertext=ciphertext)
