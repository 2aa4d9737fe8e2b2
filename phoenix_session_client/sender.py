import logging
from typing import Any, Optional

from phoenix_session_client.exceptions import PHXJoinError, PHXMessageError
from phoenix_session_client.phx_messages import HEARTBEAT_TOPIC, ChannelEvent, PHXEvent, PhoenixMessage
from phoenix_session_client.protocol_handler import PHXProtocolHandler
from phoenix_session_client.transport import TransportWriter
from phoenix_session_client.utils import make_message, parse_event


class PHXSender:
    """Encodes join, heartbeat and application envelopes for one connection.

    The sender is the sole owner of the connection's ``join_ref`` and
    ``message_ref`` counters. Both start at 0 and only ever increase:
    ``join_ref`` on joins, ``message_ref`` on every outbound envelope.
    Each operation returns the counter value after the increment.
    """

    def __init__(
        self,
        writer: TransportWriter,
        logger: Optional[logging.Logger] = None,
        protocol_handler: Optional[PHXProtocolHandler] = None,
    ):
        self.writer = writer
        self.logger = logger or logging.getLogger(__name__)
        self._protocol_handler = protocol_handler or PHXProtocolHandler()
        self.join_ref = 0
        self.message_ref = 0

    async def join(self, channel: str) -> int:
        topic_join_message = make_message(
            event=PHXEvent.join,
            topic=channel,
            message_ref=self.message_ref,
            join_ref=self.join_ref,
        )

        try:
            text_message = self._protocol_handler.serialize_message(topic_join_message)
            self.logger.debug(f'join(): {text_message}')
            self.join_ref += 1
            await self._actually_send(text_message)
        except PHXMessageError as e:
            raise PHXJoinError.from_message_error(e) from e

        return self.join_ref

    async def heartbeat(self) -> int:
        heartbeat_message = make_message(
            event=PHXEvent.heartbeat,
            topic=HEARTBEAT_TOPIC,
            message_ref=self.message_ref,
        )

        text_message = self._protocol_handler.serialize_message(heartbeat_message)
        self.logger.debug(f'heartbeat(): {text_message}')
        return await self._actually_send(text_message)

    async def send(self, topic: str, event: ChannelEvent, payload: Any) -> int:
        message = PhoenixMessage(
            join_ref=None,
            message_ref=self.message_ref,
            topic=topic,
            event=parse_event(event),
            payload=payload,
        )

        text_message = self._protocol_handler.serialize_message(message)
        self.logger.debug(f'send(): {text_message}')
        return await self._actually_send(text_message)

    async def _actually_send(self, text_message: str) -> int:
        self.message_ref += 1
        await self.writer.write(text_message)
        return self.message_ref
