"""Infrastructure layer: Configuration loading and collaborator construction.
"""

from __future__ import annotations

import logging
from pathlib import Path

from passxc.client.infrastructure.profile_store import ProfileStore
from passxc.client.infrastructure.transport import UnixSocketTransport
from passxc.common import Configurable
from passxc.common.config import Config, Verbosity
from passxc.common.models import ClientConfig

logger = logging.getLogger(__name__)


class ConfigLoader(Configurable):
    """Merges ClientConfig overrides over Config defaults."""

    socket_path: Path
    storage_path: Path
    read_timeout: float
    recv_buffer_size: int
    max_message_size: int
    client_id_prefix: str
    verbosity: Verbosity

    def __init__(self, client_config: ClientConfig | None = None):
        self.config: Config = Config()
        client_config = client_config or ClientConfig()

        self.apply_overrides(
            client_config.model_dump(),
            self.config,
            [
                "socket_path",
                "storage_path",
                "read_timeout",
                "recv_buffer_size",
                "max_message_size",
                "client_id_prefix",
                "verbosity",
            ],
        )
        self.socket_path = Path(self.socket_path)
        self.storage_path = Path(self.storage_path)
        self.verbosity = Verbosity(self.verbosity)
        self.profile: str | None = client_config.profile
        self.recover_stale: bool = (
            client_config.recover_stale
            if client_config.recover_stale is not None
            else True
        )

    def load_store(self) -> ProfileStore:
        """Load the profile store, empty when the file does not exist yet."""
        return ProfileStore.load_or_create(self.storage_path)

    def build_transport(self) -> UnixSocketTransport:
        logger.debug("Using daemon socket %s", self.socket_path)
        return UnixSocketTransport(
            self.socket_path,
            timeout=self.read_timeout,
            recv_buffer_size=self.recv_buffer_size,
            max_message_size=self.max_message_size,
        )
