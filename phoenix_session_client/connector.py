import asyncio
import logging
from typing import Iterable, Mapping, Optional, Tuple, Union
from urllib.parse import quote

from websockets import connect
from websockets.exceptions import InvalidURI, WebSocketException

from phoenix_session_client.exceptions import ConnectErrorKind, PHXConnectionError
from phoenix_session_client.protocol_handler import PHOENIX_VERSION, PHXProtocolHandler
from phoenix_session_client.receiver import PHXReceiver
from phoenix_session_client.sender import PHXSender
from phoenix_session_client.transport import TransportMode, make_writer

ConnectionParams = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


def param_pairs(params: Optional[ConnectionParams]) -> Iterable[Tuple[str, str]]:
    if params is None:
        return ()
    if isinstance(params, Mapping):
        return params.items()
    return params


def build_socket_url(base_url: str, params: Optional[ConnectionParams] = None, vsn: str = PHOENIX_VERSION) -> str:
    """Build the Phoenix socket endpoint for ``base_url``.

    Phoenix serves websockets on ``<base>/websocket`` and expects the protocol
    version in ``vsn``; connection params follow in the given order.

    >>> build_socket_url("ws://localhost:4000/socket", [("token", "abc123")])
    'ws://localhost:4000/socket/websocket?vsn=2.0.0&token=abc123'
    """
    query = ''.join(
        f'&{quote(str(key), safe="")}={quote(str(value), safe="")}'
        for key, value in param_pairs(params)
    )
    return f'{base_url.rstrip("/")}/websocket?vsn={quote(vsn, safe="")}{query}'


async def connect_socket(
    base_url: str,
    params: Optional[ConnectionParams] = None,
    logger: Optional[logging.Logger] = None,
    transport_mode: TransportMode = TransportMode.QUEUED,
) -> Tuple[PHXSender, PHXReceiver]:
    """Open a Phoenix socket and start its outbound and inbound pumps.

    Returns the connection's sender and receiver. Raises
    :class:`PHXConnectionError` when the endpoint is malformed (``PARSE``), the
    websocket handshake fails (``TRANSPORT``) or the socket cannot be opened (``IO``).
    """
    logger = logger or logging.getLogger(__name__)
    channel_socket_url = build_socket_url(base_url, params)
    logger.debug(f'Connecting to {channel_socket_url}')

    try:
        connection = await connect(channel_socket_url)
    except InvalidURI as e:
        logger.error(f'Invalid Phoenix socket address {channel_socket_url}: {e}')
        raise PHXConnectionError(f'Invalid address {channel_socket_url}: {e}', ConnectErrorKind.PARSE) from e
    except WebSocketException as e:
        logger.error(f'Failed to connect to Phoenix WebSocket server: {e}')
        raise PHXConnectionError(f'Failed to connect to {channel_socket_url}: {e}', ConnectErrorKind.TRANSPORT) from e
    except (OSError, asyncio.TimeoutError) as e:
        logger.error(f'Failed to open socket to Phoenix WebSocket server: {e}')
        raise PHXConnectionError(f'Failed to connect to {channel_socket_url}: {e}', ConnectErrorKind.IO) from e

    logger.info('Connected to Phoenix WebSocket server')

    protocol_handler = PHXProtocolHandler(logger.getChild('protocol'))
    writer = make_writer(transport_mode, connection, logger.getChild('transport'))
    writer.start()
    receiver = PHXReceiver(connection, logger.getChild('receiver'), protocol_handler)
    receiver.start()
    sender = PHXSender(writer, logger.getChild('sender'), protocol_handler)

    return sender, receiver
