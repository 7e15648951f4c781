"""
Interfaces and protocols for dependency injection.
"""

from __future__ import annotations

from typing import Protocol


class ITransport(Protocol):
    """Reliable, ordered byte stream to the daemon."""

    def connect(self) -> None: ...

    def send(self, data: bytes) -> None: ...

    def receive(self) -> bytes: ...

    def close(self) -> None: ...
