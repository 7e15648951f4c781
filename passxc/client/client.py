"""
Session protocol client for the password-manager daemon.
"""

from __future__ import annotations

import itertools
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from passxc.client.channel import SecureChannel
from passxc.client.domain.entities import AssociationIdentity, SessionState
from passxc.client.session_handler import SessionHandler
from passxc.common.config import Config, Verbosity
from passxc.common.crypto import encode_b64, generate_identity_key, generate_nonce
from passxc.common.decorators import requires_state
from passxc.common.exceptions import (
    AssociationFailed,
    AssociationStale,
    DaemonError,
    DecryptionFailed,
    HandshakeFailed,
    InvalidKeyEncoding,
    NoDefaultProfile,
    PassXCError,
    ProtocolError,
    SessionStateError,
    TransportError,
)
from passxc.common.models import (
    Action,
    AssociateResponse,
    EntriesResponse,
    Entry,
    ErrorCode,
    Message,
    MessageKeys,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from passxc.client.infrastructure.profile_store import ProfileStore
    from passxc.common.crypto import KeyPair
    from passxc.common.interfaces import ITransport

logger = logging.getLogger(__name__)

_session_numbers = itertools.count(1)


class SessionLogger(logging.LoggerAdapter):
    """Module logger filtered at one session's verbosity, tagged with its number."""

    def __init__(self, base: logging.Logger, session: int, level: int):
        super().__init__(base, {"session": session})
        self.session_level = level

    def isEnabledFor(self, level: int) -> bool:  # noqa: N802
        return level >= self.session_level and self.logger.isEnabledFor(level)

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        return f"[session {self.extra['session']}] {msg}", kwargs


class BrowserClient:
    """One encrypted, associated session with the daemon.

    States run Disconnected -> KeysExchanged -> Associated -> Ready, with
    Failed reachable from any of them. A stored identity skips associate and
    is validated by test_associate; a rejected identity raises
    AssociationStale and drops the session back to KeysExchanged so the
    caller can associate again on the same connection.
    """

    def __init__(
        self,
        transport: ITransport,
        store: ProfileStore | None = None,
        identity: AssociationIdentity | None = None,
        verbosity: Verbosity = Verbosity.NORMAL,
        client_id: str | None = None,
        keypair: KeyPair | None = None,
        client_id_prefix: str | None = None,
    ):
        prefix = client_id_prefix or Config().CLIENT_ID_PREFIX
        self.client_id = client_id or prefix + encode_b64(generate_nonce())
        self.transport = transport
        self.store = store
        self.identity = identity
        self.verbosity = verbosity
        self.state = SessionState.DISCONNECTED
        self._closed = False

        self.logger = SessionLogger(
            logger, next(_session_numbers), verbosity.log_level
        )

        self.channel = SecureChannel(keypair)
        self.handler = SessionHandler(
            transport, self.channel, self.client_id, self.logger
        )

    @classmethod
    def from_store(
        cls,
        transport: ITransport,
        store: ProfileStore,
        profile: str | None = None,
        **kwargs: Any,
    ) -> BrowserClient:
        """Build a session using the named (or default) stored profile."""
        identity = None
        if profile:
            identity = store.extract_profile(profile)
        else:
            try:
                identity = store.extract_default_profile()
            except NoDefaultProfile as err:
                logger.info("%s, a new association will be requested", err)
        return cls(transport, store=store, identity=identity, **kwargs)

    @property
    def associated_profile(self) -> tuple[str, str] | None:
        """(name, base64 key) of the current identity, if any."""
        if self.identity is None:
            return None
        return self.identity.name, self.identity.key_b64

    @contextmanager
    def _fail_on(self, *errors: type[Exception]) -> Iterator[None]:
        try:
            yield
        except errors:
            self.state = SessionState.FAILED
            raise

    @requires_state(SessionState.DISCONNECTED)
    def connect(self) -> None:
        """Open the transport and exchange public keys."""
        if self._closed:
            msg = "Session already closed, create a new client"
            raise SessionStateError(msg)
        with self._fail_on(PassXCError):
            self.transport.connect()
            self._change_public_keys()
        self.state = SessionState.KEYS_EXCHANGED
        self.logger.info("Public keys exchanged")

    def _change_public_keys(self) -> None:
        response = self.handler.send_message(
            Message(
                action=Action.CHANGE_PUBLIC_KEYS,
                public_key=self.channel.public_key_b64,
            )
        )
        if response.failed or not response.public_key:
            msg = f"change-public-keys failed: {response.error or 'no public key'}"
            raise HandshakeFailed(msg)
        try:
            self.channel.set_peer_key(response.public_key)
        except InvalidKeyEncoding as err:
            msg = f"change-public-keys returned an invalid key: {err}"
            raise HandshakeFailed(msg) from err

    @requires_state(SessionState.KEYS_EXCHANGED)
    def establish_identity(self) -> AssociationIdentity:
        """Use the stored identity, or associate when there is none."""
        if self.identity is None:
            return self.associate()
        self.logger.info("Using stored profile %s", self.identity.name)
        self.state = SessionState.ASSOCIATED
        return self.identity

    @requires_state(SessionState.KEYS_EXCHANGED)
    def associate(self) -> AssociationIdentity:
        """Register a fresh identity key and persist it as the default."""
        id_key = generate_identity_key()
        msg = Message(
            action=Action.ASSOCIATE,
            key=self.channel.public_key_b64,
            id_key=encode_b64(id_key),
        )
        with self._fail_on(PassXCError):
            try:
                payload = self.handler.send_encrypted_message(msg)
                data = AssociateResponse.model_validate(payload)
            except (DaemonError, ProtocolError, ValidationError) as err:
                msg_text = f"Association failed: {err}"
                raise AssociationFailed(msg_text) from err
            if not data.id:
                msg_text = "Association failed: daemon returned an empty id"
                raise AssociationFailed(msg_text)

            self.identity = AssociationIdentity(name=data.id, key=id_key)
            self._persist_identity(self.identity)

        self.state = SessionState.ASSOCIATED
        self.logger.info("Associated as %s", self.identity.name)
        return self.identity

    def _persist_identity(self, identity: AssociationIdentity) -> None:
        if self.store is None:
            return
        self.store.add_profile(identity.to_profile())
        self.store.default_profile = identity.name
        self.store.commit()
        self.logger.info("Profile %s saved as default", identity.name)

    @requires_state(SessionState.ASSOCIATED)
    def test_associate(self) -> None:
        """Validate the identity; AssociationStale when the daemon rejects it."""
        identity = self.identity
        assert identity is not None
        msg = Message(
            action=Action.TEST_ASSOCIATE,
            id=identity.name,
            key=identity.key_b64,
        )
        try:
            with self._fail_on(TransportError, ProtocolError):
                self.handler.send_encrypted_message(msg)
        except DaemonError as err:
            if err.error_code == ErrorCode.DATABASE_NOT_OPENED:
                # Locked database says nothing about the identity
                raise
            self._mark_stale()
            msg_text = f"Profile {identity.name} was rejected: {err}"
            raise AssociationStale(msg_text, identity.name) from err
        except DecryptionFailed as err:
            self._mark_stale()
            msg_text = f"Profile {identity.name} was rejected: {err}"
            raise AssociationStale(msg_text, identity.name) from err

        self.state = SessionState.READY
        self.logger.info("Association %s verified", identity.name)

    def _mark_stale(self) -> None:
        self.identity = None
        self.state = SessionState.KEYS_EXCHANGED

    def open(self) -> BrowserClient:
        """Run connect, establish_identity and test_associate in order."""
        self.connect()
        self.establish_identity()
        self.test_associate()
        return self

    def _identity_keys(self) -> list[MessageKeys]:
        assert self.identity is not None
        return [MessageKeys(id=self.identity.name, key=self.identity.key_b64)]

    def _request(self, msg: Message) -> dict[str, Any]:
        with self._fail_on(TransportError, ProtocolError, DecryptionFailed):
            return self.handler.send_encrypted_message(msg)

    @requires_state(SessionState.READY)
    def get_logins(self, url: str = "") -> list[Entry]:
        """Credentials matching url; an empty list when nothing matches."""
        msg = Message(action=Action.GET_LOGINS, url=url, keys=self._identity_keys())
        try:
            payload = self._request(msg)
        except DaemonError as err:
            if err.error_code == ErrorCode.NO_LOGINS_FOUND:
                return []
            raise
        with self._fail_on(ProtocolError):
            try:
                data = EntriesResponse.model_validate(payload)
            except ValidationError as err:
                msg_text = f"Malformed get-logins response: {err}"
                raise ProtocolError(msg_text) from err
        self.logger.debug("%d entries for %r", len(data.entries), url)
        return data.entries

    @requires_state(SessionState.READY)
    def generate_password(self) -> dict[str, Any]:
        """Ask the daemon for a password; returns its payload unchanged."""
        msg = Message(action=Action.GENERATE_PASSWORD, keys=self._identity_keys())
        return self._request(msg)

    @requires_state(SessionState.READY)
    def get_database_hash(self) -> str:
        payload = self._request(Message(action=Action.GET_DATABASE_HASH))
        database_hash = payload.get("hash")
        if not isinstance(database_hash, str):
            self.state = SessionState.FAILED
            msg = "get-databasehash response carries no hash"
            raise ProtocolError(msg)
        return database_hash

    @requires_state(SessionState.READY)
    def lock_database(self) -> None:
        self._request(Message(action=Action.LOCK_DATABASE))
        self.logger.info("Database locked")

    def close(self) -> None:
        """Release the transport; safe to call in any state."""
        try:
            self.transport.close()
        finally:
            self._closed = True
            if self.state is not SessionState.FAILED:
                self.state = SessionState.DISCONNECTED

    def __enter__(self) -> BrowserClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
