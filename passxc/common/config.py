"""
Configuration settings for the passxc client.
"""

from __future__ import annotations

import logging
import os
import tempfile
from enum import IntEnum
from pathlib import Path

SOCKET_NAME = "org.keepassxc.KeePassXC.BrowserServer"
SANDBOX_SOCKET_DIR = Path("app") / "org.keepassxc.KeePassXC"
STORAGE_FILE_NAME = "passxc.json"


class Verbosity(IntEnum):
    """Per-session logging verbosity."""

    QUIET = 0
    NORMAL = 1
    DEBUG = 2

    @property
    def log_level(self) -> int:
        return {
            Verbosity.QUIET: logging.WARNING,
            Verbosity.NORMAL: logging.INFO,
            Verbosity.DEBUG: logging.DEBUG,
        }[self]


class Config:
    """Central configuration class for all client settings."""

    def __init__(self) -> None:
        # Transport settings
        self.READ_TIMEOUT: float = float(os.getenv("PASSXC_READ_TIMEOUT", "30"))
        self.RECV_BUFFER_SIZE: int = 4096
        self.MAX_MESSAGE_SIZE: int = 1024 * 1024  # 1MB, bound on one response

        # Protocol settings
        self.CLIENT_ID_PREFIX: str = "passxc"

        # File paths
        self.RUNTIME_DIR: Path = Path(
            os.getenv("XDG_RUNTIME_DIR") or tempfile.gettempdir()
        )
        self.CONFIG_DIR: Path = Path(
            os.getenv("XDG_CONFIG_HOME") or Path.home() / ".config"
        )
        self.SOCKET_PATH: Path = self._resolve_socket_path()
        self.STORAGE_PATH: Path = Path(
            os.getenv("PASSXC_STORAGE_PATH", str(self.CONFIG_DIR / STORAGE_FILE_NAME))
        )

        # Logging
        self.LOG_LEVEL: int = logging.INFO
        self.VERBOSITY: Verbosity = Verbosity.NORMAL

    def socket_candidates(self) -> list[Path]:
        """Daemon socket locations, sandboxed install first."""
        return [
            self.RUNTIME_DIR / SANDBOX_SOCKET_DIR / SOCKET_NAME,
            self.RUNTIME_DIR / SOCKET_NAME,
        ]

    def _resolve_socket_path(self) -> Path:
        override = os.getenv("PASSXC_SOCKET_PATH")
        if override:
            return Path(override)
        candidates = self.socket_candidates()
        for candidate in candidates:
            if candidate.exists():
                return candidate
        return candidates[-1]
