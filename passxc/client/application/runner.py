"""
Application layer: Runs one session from handshake to request.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, TypeVar

from passxc.client.client import BrowserClient
from passxc.common.exceptions import AssociationStale, ProfileNotFound

if TYPE_CHECKING:
    from passxc.client.infrastructure.config_loader import ConfigLoader
    from passxc.client.infrastructure.profile_store import ProfileStore
    from passxc.common.interfaces import ITransport

T = TypeVar("T")


class Runner:
    """Application service that opens a ready session and runs one operation.

    On AssociationStale the stale profile is dropped from the store and a new
    association is made on the same connection, unless recover_stale is off.
    """

    def __init__(
        self,
        loader: ConfigLoader,
        store: ProfileStore | None = None,
        transport: ITransport | None = None,
    ):
        self.loader = loader
        self.store = store
        self.transport = transport
        self.logger = logging.getLogger(__name__)

    def build_client(self) -> BrowserClient:
        store = self.store or self.loader.load_store()
        transport = self.transport or self.loader.build_transport()
        return BrowserClient.from_store(
            transport,
            store,
            profile=self.loader.profile,
            verbosity=self.loader.verbosity,
            client_id_prefix=self.loader.client_id_prefix,
        )

    def open_session(self, client: BrowserClient) -> BrowserClient:
        """Drive client to Ready, applying the stale-profile policy."""
        client.connect()
        client.establish_identity()
        try:
            client.test_associate()
        except AssociationStale as err:
            if not self.loader.recover_stale:
                raise
            self.logger.warning("%s, re-associating", err)
            self.drop_profile(client, err.profile_name)
            client.associate()
            client.test_associate()
        return client

    def drop_profile(self, client: BrowserClient, name: str) -> None:
        if client.store is None:
            return
        try:
            client.store.remove_profile(name)
        except ProfileNotFound:
            self.logger.debug("Profile %s already absent from store", name)
            return
        client.store.commit()
        self.logger.info("Removed stale profile %s", name)

    def run(self, operation: Callable[[BrowserClient], T]) -> T:
        """Open a session, run operation on it, always close the transport."""
        with self.build_client() as client:
            self.open_session(client)
            return operation(client)
