from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, NewType, Optional, Union


Event = NewType('Event', str)
ChannelEvent = Union['PHXEvent', Event]
Message = Union['JsonMessage', 'BinaryMessage', 'CloseMessage', 'PingMessage', 'PongMessage']

HEARTBEAT_TOPIC = 'phoenix'


@unique
class PHXEvent(Enum):
    """Phoenix Channels admin events"""
    close = 'phx_close'
    error = 'phx_error'
    join = 'phx_join'
    reply = 'phx_reply'
    leave = 'phx_leave'
    heartbeat = 'heartbeat'

    # hack for typing
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class PhoenixMessage:
    """Decoded ``[join_ref, message_ref, topic, event, payload]`` envelope."""
    join_ref: Optional[int]
    message_ref: Optional[int]
    topic: str
    event: ChannelEvent
    payload: Any

    @property
    def subtopic(self) -> Optional[str]:
        if ':' not in self.topic:
            return None

        _, subtopic = self.topic.split(':', 1)
        return subtopic


@dataclass(frozen=True)
class JsonMessage:
    phx_message: PhoenixMessage


@dataclass(frozen=True)
class BinaryMessage:
    pass


@dataclass(frozen=True)
class CloseMessage:
    pass


@dataclass(frozen=True)
class PingMessage:
    pass


@dataclass(frozen=True)
class PongMessage:
    pass
