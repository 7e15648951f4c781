"""Shared fixtures: a fake daemon speaking the browser protocol."""

from __future__ import annotations

import base64
import json
import logging
import socket
import threading
from pathlib import Path
from typing import Any

import pytest
from nacl.public import Box, PrivateKey, PublicKey
from nacl.utils import random as nacl_random

from passxc.client.infrastructure.profile_store import ProfileStore


def b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode()


class FakeDaemon:
    """Daemon side of the protocol, driven one request at a time."""

    def __init__(self) -> None:
        self.private_key = PrivateKey.generate()
        self.client_public_key: PublicKey | None = None
        self.identities: dict[str, str] = {}
        self.logins: dict[str, list[dict[str, Any]]] = {}
        self.next_id = "client1"
        self.reject_association = False
        self.database_locked = False
        self.tamper_responses = False
        self.requests: list[dict[str, Any]] = []
        self.decrypted_requests: list[dict[str, Any]] = []

    @property
    def public_key_b64(self) -> str:
        return b64(bytes(self.private_key.public_key))

    def actions(self) -> list[str]:
        return [r["action"] for r in self.requests]

    def handle(self, raw: bytes) -> bytes:
        request = json.loads(raw)
        self.requests.append(request)
        action = request["action"]
        if action == "change-public-keys":
            self.client_public_key = PublicKey(base64.b64decode(request["publicKey"]))
            return self._reply(
                {
                    "action": action,
                    "publicKey": self.public_key_b64,
                    "nonce": request["nonce"],
                    "success": "true",
                }
            )

        assert self.client_public_key is not None
        box = Box(self.private_key, self.client_public_key)
        payload = json.loads(
            box.decrypt(
                base64.b64decode(request["message"]),
                base64.b64decode(request["nonce"]),
            )
        )
        self.decrypted_requests.append(payload)
        result = self._dispatch(action, payload)
        if "error" in result:
            return self._reply({"action": action, **result})

        encrypted = box.encrypt(json.dumps(result).encode(), nacl_random(Box.NONCE_SIZE))
        ciphertext = encrypted.ciphertext
        if self.tamper_responses:
            ciphertext = bytes([ciphertext[0] ^ 0x01]) + ciphertext[1:]
        return self._reply(
            {
                "action": action,
                "message": b64(ciphertext),
                "nonce": b64(encrypted.nonce),
            }
        )

    def _dispatch(self, action: str, payload: dict[str, Any]) -> dict[str, Any]:
        if self.database_locked:
            return {"error": "Database not opened", "errorCode": "1"}
        if action == "associate":
            if self.reject_association:
                return {"error": "Action cancelled or denied", "errorCode": "6"}
            self.identities[self.next_id] = payload["idKey"]
            return {"id": self.next_id, "hash": "dbhash", "success": "true", "version": "2.7.9"}
        if action == "test-associate":
            if self.identities.get(payload["id"]) != payload["key"]:
                return {"error": "Encryption key is not recognized", "errorCode": "10"}
            return {"id": payload["id"], "hash": "dbhash", "success": "true"}
        if action == "get-logins":
            key = payload["keys"][0]
            if self.identities.get(key["id"]) != key["key"]:
                return {"error": "Encryption key is not recognized", "errorCode": "10"}
            entries = self.logins.get(payload["url"])
            if entries is None:
                return {"error": "No logins found", "errorCode": "15"}
            return {"count": len(entries), "entries": entries, "success": "true"}
        if action == "generate-password":
            return {"entries": [{"login": 22, "password": "s3cr3t-generated"}], "success": "true"}
        if action == "get-databasehash":
            return {"hash": "dbhash", "success": "true"}
        if action == "lock-database":
            return {"success": "true"}
        return {"error": "Incorrect action", "errorCode": "12"}

    @staticmethod
    def _reply(response: dict[str, Any]) -> bytes:
        return json.dumps(response).encode()


class FakeTransport:
    """In-memory transport delivering requests straight to a FakeDaemon."""

    def __init__(self, daemon: FakeDaemon) -> None:
        self.daemon = daemon
        self.connected = False
        self.closed = False
        self.fail_connect = False
        self._pending: bytes | None = None

    def connect(self) -> None:
        from passxc.common.exceptions import ConnectError  # noqa: PLC0415

        if self.fail_connect:
            msg = "daemon unreachable"
            raise ConnectError(msg)
        self.connected = True

    def send(self, data: bytes) -> None:
        self._pending = self.daemon.handle(data)

    def receive(self) -> bytes:
        from passxc.common.exceptions import TransportError  # noqa: PLC0415

        if self._pending is None:
            msg = "connection closed"
            raise TransportError(msg)
        response, self._pending = self._pending, None
        return response

    def close(self) -> None:
        self.connected = False
        self.closed = True


class DaemonSocketServer:
    """Serves a FakeDaemon on a Unix socket from a background thread."""

    def __init__(self, daemon: FakeDaemon, socket_path: Path) -> None:
        self.daemon = daemon
        self.socket_path = socket_path
        self._server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self._server.bind(str(socket_path))
        self._server.listen(1)
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _serve(self) -> None:
        decoder = json.JSONDecoder()
        while True:
            try:
                conn, _ = self._server.accept()
            except OSError:
                return
            with conn:
                buf = b""
                while True:
                    chunk = conn.recv(4096)
                    if not chunk:
                        break
                    buf += chunk
                    try:
                        decoder.raw_decode(buf.decode())
                    except ValueError:
                        continue
                    conn.sendall(self.daemon.handle(buf))
                    buf = b""

    def stop(self) -> None:
        self._server.close()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers the CLI attaches, so no test logs to a closed stream."""
    yield
    package_logger = logging.getLogger("passxc")
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def daemon() -> FakeDaemon:
    return FakeDaemon()


@pytest.fixture
def transport(daemon: FakeDaemon) -> FakeTransport:
    return FakeTransport(daemon)


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "config" / "passxc.json"


@pytest.fixture
def store(store_path: Path) -> ProfileStore:
    return ProfileStore(store_path)


@pytest.fixture
def socket_server(daemon: FakeDaemon, tmp_path: Path):
    server = DaemonSocketServer(daemon, tmp_path / "daemon.sock")
    server.start()
    yield server
    server.stop()


@pytest.fixture
def make_transport(daemon: FakeDaemon):
    """Factory for extra transports to the same daemon (a second run)."""
    return lambda: FakeTransport(daemon)
