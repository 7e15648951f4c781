"""
Request framing for the daemon session.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from passxc.common.crypto import SealedMessage, encode_b64, generate_nonce
from passxc.common.exceptions import DaemonError, ProtocolError
from passxc.common.models import Message, ServerResponse

if TYPE_CHECKING:
    from passxc.client.channel import SecureChannel
    from passxc.common.interfaces import ITransport


class SessionHandler:
    """Sends one request and blocks for its response.

    Only one request is ever in flight, so a response belongs to the last
    request sent.
    """

    def __init__(
        self,
        transport: ITransport,
        channel: SecureChannel,
        client_id: str,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self.transport = transport
        self.channel = channel
        self.client_id = client_id
        self.logger = logger or logging.getLogger(__name__)

    def send_message(self, msg: Message) -> ServerResponse:
        """Send a message in the clear and parse the response envelope."""
        if msg.nonce is None:
            msg.nonce = encode_b64(generate_nonce())
        msg.client_id = self.client_id

        content = json.dumps(msg.to_wire()).encode()
        self.logger.debug("send message %s", content.decode())
        self.transport.send(content)

        raw = self.transport.receive()
        self.logger.debug("raw response: %s", raw.decode(errors="replace"))
        try:
            return ServerResponse.model_validate_json(raw)
        except ValidationError as err:
            msg_text = f"Malformed response to {msg.action.value}: {err}"
            raise ProtocolError(msg_text) from err

    def send_encrypted_message(self, msg: Message) -> dict[str, Any]:
        """Seal msg, send it, and return the opened response payload."""
        plaintext = json.dumps(msg.to_wire())
        self.logger.debug("send request: %s", plaintext)
        nonce_b64, message_b64 = self.channel.seal(plaintext.encode()).to_wire()

        response = self.send_message(
            Message(action=msg.action, message=message_b64, nonce=nonce_b64)
        )
        if response.failed:
            raise DaemonError(response.error or "", response.error_code)
        if not response.message or not response.nonce:
            msg_text = f"Response to {msg.action.value} carries no sealed message"
            raise ProtocolError(msg_text)

        sealed = SealedMessage.from_wire(response.nonce, response.message)
        decrypted = self.channel.open(sealed)
        self.logger.debug("decrypted response: %s", decrypted.decode(errors="replace"))
        try:
            payload = json.loads(decrypted)
        except (UnicodeDecodeError, json.JSONDecodeError) as err:
            msg_text = f"Decrypted {msg.action.value} response is not JSON"
            raise ProtocolError(msg_text) from err
        if not isinstance(payload, dict):
            msg_text = f"Decrypted {msg.action.value} response is not an object"
            raise ProtocolError(msg_text)
        return payload
