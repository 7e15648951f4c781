"""Domain layer: Core session entities.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from passxc.common.crypto import KEY_SIZE, decode_key, encode_b64
from passxc.common.exceptions import InvalidKeyEncoding
from passxc.common.models import Profile


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    KEYS_EXCHANGED = "keys-exchanged"
    ASSOCIATED = "associated"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class AssociationIdentity:
    """Daemon-assigned name plus the long-term identity key."""

    name: str
    key: bytes

    def __post_init__(self) -> None:
        if len(self.key) != KEY_SIZE:
            msg = f"Identity key must be {KEY_SIZE} bytes, got {len(self.key)}"
            raise InvalidKeyEncoding(msg)

    @property
    def key_b64(self) -> str:
        return encode_b64(self.key)

    @classmethod
    def from_profile(cls, profile: Profile) -> AssociationIdentity:
        return cls(name=profile.name, key=decode_key(profile.key))

    def to_profile(self) -> Profile:
        return Profile(name=self.name, key=self.key_b64)

    def __repr__(self) -> str:
        return f"AssociationIdentity(name={self.name!r}, key=<redacted>)"
