"""Infrastructure layer: Unix domain socket transport to the daemon.
"""

from __future__ import annotations

import json
import logging
import socket
from pathlib import Path

from passxc.common.exceptions import (
    ConnectError,
    ProtocolError,
    TransportError,
    TransportTimeout,
)

logger = logging.getLogger(__name__)


class UnixSocketTransport:
    """Blocking stream socket; one JSON document per response.

    The daemon writes each response as one JSON object without framing, so
    receive() reads until the buffer holds a complete document.
    """

    def __init__(
        self,
        socket_path: Path | str,
        timeout: float | None = 30.0,
        recv_buffer_size: int = 4096,
        max_message_size: int = 1024 * 1024,
    ):
        self.socket_path = str(socket_path)
        self.timeout = timeout
        self.recv_buffer_size = recv_buffer_size
        self.max_message_size = max_message_size
        self._sock: socket.socket | None = None
        self._decoder = json.JSONDecoder()

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def connect(self) -> None:
        if self._sock is not None:
            msg = "Transport already connected"
            raise TransportError(msg)
        logger.debug("connect to socket %s", self.socket_path)
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(self.timeout)
        try:
            sock.connect(self.socket_path)
        except OSError as err:
            sock.close()
            msg = f"Cannot connect to {self.socket_path}: {err}"
            raise ConnectError(msg) from err
        self._sock = sock

    def send(self, data: bytes) -> None:
        sock = self._require_socket()
        try:
            sock.sendall(data)
        except socket.timeout as err:
            msg = "Timed out writing to daemon"
            raise TransportTimeout(msg) from err
        except OSError as err:
            msg = f"Socket write error: {err}"
            raise TransportError(msg) from err

    def receive(self) -> bytes:
        sock = self._require_socket()
        buf = bytearray()
        while True:
            try:
                chunk = sock.recv(self.recv_buffer_size)
            except socket.timeout as err:
                msg = f"No response from daemon within {self.timeout}s"
                raise TransportTimeout(msg) from err
            except OSError as err:
                msg = f"Socket read error: {err}"
                raise TransportError(msg) from err
            if not chunk:
                msg = f"Connection closed by daemon (read {len(buf)} bytes)"
                raise TransportError(msg)
            buf.extend(chunk)
            if len(buf) > self.max_message_size:
                msg = f"Response exceeds {self.max_message_size} bytes"
                raise ProtocolError(msg)
            stripped = buf.lstrip()
            if stripped and not stripped.startswith(b"{"):
                msg = "Response is not a JSON object"
                raise ProtocolError(msg)
            if self._is_complete(buf):
                return bytes(buf)

    def close(self) -> None:
        if self._sock is None:
            return
        logger.debug("close socket %s", self.socket_path)
        try:
            self._sock.close()
        finally:
            self._sock = None

    def __enter__(self) -> UnixSocketTransport:
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            msg = "Transport is not connected"
            raise TransportError(msg)
        return self._sock

    def _is_complete(self, buf: bytearray) -> bool:
        try:
            self._decoder.raw_decode(buf.decode("utf-8", errors="replace").lstrip())
        except json.JSONDecodeError:
            return False
        try:
            buf.decode("utf-8")
        except UnicodeDecodeError as err:
            msg = f"Response is not valid UTF-8: {err}"
            raise ProtocolError(msg) from err
        return True
