# passxc: password-manager browser-protocol client

from passxc.client.client import BrowserClient
from passxc.client.infrastructure.profile_store import ProfileStore
from passxc.common.config import Verbosity

__all__ = [
    "BrowserClient",
    "ProfileStore",
    "Verbosity",
]
