"""
Custom exceptions for the passxc client.
"""

from __future__ import annotations


class PassXCError(Exception):
    """Base exception for all client failures."""


class ConnectError(PassXCError):
    """The daemon socket could not be reached."""


class TransportError(PassXCError):
    """Send or receive failed on an open connection."""


class TransportTimeout(TransportError):
    """The daemon did not answer within the read timeout."""


class ProtocolError(PassXCError):
    """Malformed or unexpected message shape."""


class InvalidKeyEncoding(ProtocolError):
    """A key or nonce was not valid base64 of the expected length."""


class HandshakeFailed(PassXCError):
    """No peer public key was obtained from change-public-keys."""


class NoPeerKey(PassXCError):
    """Seal/open attempted before the peer public key was set."""


class DecryptionFailed(PassXCError):
    """Authenticated decryption rejected the message."""


class DaemonError(PassXCError):
    """The daemon answered with a non-empty error field."""

    def __init__(self, message: str, error_code: int | None = None) -> None:
        super().__init__(message)
        self.error_code = error_code


class AssociationFailed(PassXCError):
    """The daemon rejected the association or answered malformed data."""


class AssociationStale(PassXCError):
    """The persisted identity was rejected by test-associate."""

    def __init__(self, message: str, profile_name: str) -> None:
        super().__init__(message)
        self.profile_name = profile_name


class SessionStateError(PassXCError):
    """Operation is not allowed in the current session state."""


class StoreError(PassXCError):
    """Base class for profile store failures."""


class StoreNotFound(StoreError):
    """The profile store file does not exist."""


class CorruptStore(StoreError):
    """The profile store file exists but cannot be parsed."""


class StoreIOFailure(StoreError):
    """Reading or writing the profile store file failed."""


class ProfileNotFound(StoreError):
    """No profile with the requested name."""


class NoDefaultProfile(ProfileNotFound):
    """No default set, or the default names a missing profile."""
