import json
import logging
from typing import Any, Optional, Union

from websockets.frames import Frame, Opcode

from phoenix_session_client.exceptions import MessageErrorKind, PHXMessageError
from phoenix_session_client.phx_messages import (
    BinaryMessage,
    CloseMessage,
    JsonMessage,
    Message,
    PhoenixMessage,
    PingMessage,
    PongMessage,
)
from phoenix_session_client.utils import parse_event

PHOENIX_VERSION = "2.0.0"

InboundFrame = Union[str, bytes, Frame]

_MARKER_MESSAGES = {
    Opcode.BINARY: BinaryMessage,
    Opcode.CLOSE: CloseMessage,
    Opcode.PING: PingMessage,
    Opcode.PONG: PongMessage,
}


class PHXProtocolHandler:
    """Encodes and decodes Phoenix Channels v2 envelopes.

    The wire format is a JSON array ``[join_ref, message_ref, topic, event, payload]``.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.protocol_version = PHOENIX_VERSION
        self.logger = logger or logging.getLogger(f"{__name__}.ProtocolHandler")

    def parse_message(self, raw_message: Union[str, bytes]) -> PhoenixMessage:
        self.logger.debug(f'Parsing raw message: {raw_message!r}')

        try:
            parsed_data = json.loads(raw_message)
            self.logger.debug(f'Decoded data: {parsed_data}')

            if not isinstance(parsed_data, list):
                raise ValueError(f"Protocol v{self.protocol_version} expects array format, got {type(parsed_data).__name__}")
            if len(parsed_data) != 5:
                raise ValueError(f"Protocol v{self.protocol_version} expects 5-element array, got {len(parsed_data)}")

            join_ref, message_ref, topic, event, payload = parsed_data
            if not isinstance(topic, str):
                raise ValueError(f"Topic must be a string, got {type(topic).__name__}")
            if not isinstance(event, str):
                raise ValueError(f"Event must be a string, got {type(event).__name__}")

            return PhoenixMessage(
                join_ref=self._parse_ref(join_ref, 'join_ref'),
                message_ref=self._parse_ref(message_ref, 'message_ref'),
                topic=topic,
                event=parse_event(event),
                payload=payload,
            )

        except (TypeError, ValueError) as e:
            self.logger.error(f'Failed to parse message {raw_message!r}: {e}')
            raise PHXMessageError(f'Invalid message format: {e}', MessageErrorKind.JSON) from e

    @staticmethod
    def _parse_ref(value: Any, name: str) -> Optional[int]:
        if value is None:
            return None
        # Phoenix servers send refs as decimal strings
        if isinstance(value, str) and value.isascii() and value.isdigit():
            return int(value)
        if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
            return value
        raise ValueError(f"{name} must be an unsigned integer or null, got {value!r}")

    def serialize_message(self, message: PhoenixMessage) -> str:
        self.logger.debug(f'Serializing message: {message}')

        try:
            message_array = [
                message.join_ref,
                message.message_ref,
                message.topic,
                str(message.event),
                message.payload,
            ]
            serialized = json.dumps(message_array)
        except (TypeError, ValueError) as e:
            self.logger.error(f'Failed to serialize message {message}: {e}')
            raise PHXMessageError(f'Cannot serialize message: {e}', MessageErrorKind.JSON) from e

        self.logger.debug(f'Serialized to: {serialized}')
        return serialized

    def decode_frame(self, frame: InboundFrame) -> Message:
        """Map one transport frame to a :data:`Message`.

        Text frames are parsed as envelopes; binary and control frames become
        payload-less markers.
        """
        if isinstance(frame, Frame):
            if frame.opcode is Opcode.TEXT:
                return JsonMessage(self.parse_message(frame.data))
            if frame.opcode in _MARKER_MESSAGES:
                return _MARKER_MESSAGES[frame.opcode]()
            raise PHXMessageError(f'Unexpected {frame.opcode.name} frame', MessageErrorKind.TRANSPORT)

        if isinstance(frame, str):
            return JsonMessage(self.parse_message(frame))
        if isinstance(frame, (bytes, bytearray, memoryview)):
            return BinaryMessage()

        raise PHXMessageError(f'Unsupported frame type: {type(frame).__name__}', MessageErrorKind.TRANSPORT)
