"""
Secure channel: NaCl box seal/open between this client and the daemon.
"""

from __future__ import annotations

from nacl.exceptions import CryptoError
from nacl.public import Box, PrivateKey, PublicKey

from passxc.common.crypto import (
    KeyPair,
    SealedMessage,
    decode_public_key,
    generate_nonce,
)
from passxc.common.exceptions import DecryptionFailed, NoPeerKey, ProtocolError


def seal(
    plaintext: bytes,
    peer_public_key: PublicKey | None,
    own_private_key: PrivateKey,
) -> SealedMessage:
    """Encrypt and authenticate plaintext under a fresh random nonce."""
    if peer_public_key is None:
        msg = "Peer public key not established"
        raise NoPeerKey(msg)
    nonce = generate_nonce()
    encrypted = Box(own_private_key, peer_public_key).encrypt(plaintext, nonce)
    return SealedMessage(nonce=encrypted.nonce, ciphertext=encrypted.ciphertext)


def open_sealed(
    sealed: SealedMessage,
    peer_public_key: PublicKey | None,
    own_private_key: PrivateKey,
) -> bytes:
    """Verify and decrypt; never returns partial plaintext."""
    if peer_public_key is None:
        msg = "Peer public key not established"
        raise NoPeerKey(msg)
    try:
        return Box(own_private_key, peer_public_key).decrypt(
            sealed.ciphertext, sealed.nonce
        )
    except (CryptoError, ValueError) as err:
        msg = "Message authentication failed"
        raise DecryptionFailed(msg) from err


class SecureChannel:
    """Holds this session's keypair and the daemon's public key."""

    def __init__(self, keypair: KeyPair | None = None):
        self.keypair = keypair or KeyPair.generate()
        self._peer_key: PublicKey | None = None

    @property
    def public_key_b64(self) -> str:
        return self.keypair.public_key_b64

    @property
    def peer_key(self) -> PublicKey | None:
        return self._peer_key

    def set_peer_key(self, peer_key: PublicKey | str) -> None:
        """Record the daemon's public key; allowed once per session."""
        if self._peer_key is not None:
            msg = "Peer public key already established for this session"
            raise ProtocolError(msg)
        if isinstance(peer_key, str):
            peer_key = decode_public_key(peer_key)
        self._peer_key = peer_key

    def seal(self, plaintext: bytes) -> SealedMessage:
        return seal(plaintext, self._peer_key, self.keypair.private_key)

    def open(self, sealed: SealedMessage) -> bytes:
        return open_sealed(sealed, self._peer_key, self.keypair.private_key)
