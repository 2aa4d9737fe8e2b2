"""
Phoenix Session Client

A Python client for the Phoenix Channels socket protocol.
"""

from phoenix_session_client.client import PHXChannelsClient
from phoenix_session_client.config import ClientSettings
from phoenix_session_client.connector import build_socket_url, connect_socket
from phoenix_session_client.exceptions import (
    ConnectErrorKind,
    MessageErrorKind,
    PHXClientError,
    PHXConnectionError,
    PHXJoinError,
    PHXMessageError,
    PHXSenderUnavailableError,
)
from phoenix_session_client.phx_messages import (
    BinaryMessage,
    CloseMessage,
    JsonMessage,
    PHXEvent,
    PhoenixMessage,
    PingMessage,
    PongMessage,
)
from phoenix_session_client.protocol_handler import PHXProtocolHandler
from phoenix_session_client.receiver import PHXReceiver
from phoenix_session_client.sender import PHXSender
from phoenix_session_client.transport import TransportMode
from phoenix_session_client.utils import setup_logging

__version__ = "0.1.0"
__author__ = "Phoenix Session Client"

__all__ = [
    "PHXChannelsClient",
    "PHXProtocolHandler",
    "PHXSender",
    "PHXReceiver",
    "ClientSettings",
    "TransportMode",
    "build_socket_url",
    "connect_socket",
    "setup_logging",
    "PHXEvent",
    "PhoenixMessage",
    "JsonMessage",
    "BinaryMessage",
    "CloseMessage",
    "PingMessage",
    "PongMessage",
    "ConnectErrorKind",
    "MessageErrorKind",
    "PHXClientError",
    "PHXConnectionError",
    "PHXJoinError",
    "PHXMessageError",
    "PHXSenderUnavailableError",
]
