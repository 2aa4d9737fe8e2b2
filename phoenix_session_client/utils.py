import logging
from typing import Any, Optional

from phoenix_session_client.phx_messages import ChannelEvent, Event, PHXEvent, PhoenixMessage


def parse_event(event: ChannelEvent) -> ChannelEvent:
    if isinstance(event, PHXEvent):
        return event
    try:
        return PHXEvent(event)
    except ValueError:
        return Event(event)


def make_message(
    event: ChannelEvent,
    topic: str,
    message_ref: Optional[int] = None,
    payload: Optional[Any] = None,
    join_ref: Optional[int] = None,
) -> PhoenixMessage:
    if payload is None:
        payload = {}

    return PhoenixMessage(
        join_ref=join_ref,
        message_ref=message_ref,
        topic=topic,
        event=parse_event(event),
        payload=payload,
    )


def setup_logging(level: int = logging.INFO) -> None:
    """
    Configure clean logging with timestamps for the Phoenix session client.

    Args:
        level: Logging level (default: logging.INFO for production, use logging.DEBUG for development)

    Example:
        >>> from phoenix_session_client.utils import setup_logging
        >>> import logging
        >>> setup_logging(logging.INFO)
    """
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
