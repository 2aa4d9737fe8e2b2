import asyncio
import logging
import signal
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from websockets import ClientConnection
from websockets.exceptions import ConnectionClosed

from phoenix_session_client.connector import ConnectionParams, build_socket_url, connect_socket, param_pairs
from phoenix_session_client.exceptions import PHXConnectionError, PHXSenderUnavailableError
from phoenix_session_client.heartbeat import HEARTBEAT_INTERVAL, HeartbeatScheduler
from phoenix_session_client.phx_messages import ChannelEvent
from phoenix_session_client.receiver import PHXReceiver
from phoenix_session_client.sender import PHXSender
from phoenix_session_client.transport import TransportMode


@dataclass
class SenderRequest:
    """One sender operation waiting for the sender worker"""
    operation: Callable[..., Awaitable[int]]
    args: Tuple[Any, ...]
    result: 'asyncio.Future[int]'


class PHXChannelsClient:
    """Phoenix Channels session over a single websocket.

    The connection's :class:`PHXSender` is owned by one worker task. ``join``,
    ``send`` and the periodic heartbeat are queued to that worker and run one
    at a time, in the order they were submitted; each caller awaits its own
    result. Inbound messages are read from :attr:`receiver`.

    Example::

        async with PHXChannelsClient("ws://localhost:4000/socket", [("token", "abc")]) as client:
            await client.join("room:lobby")
            await client.send("room:lobby", "new_msg", {"body": "hi"})
            async for message in client.receiver:
                ...
    """

    def __init__(
        self,
        websocket_url: str,
        params: Optional[ConnectionParams] = None,
        *,
        logger: Optional[logging.Logger] = None,
        heartbeat_interval: float = HEARTBEAT_INTERVAL,
        transport_mode: TransportMode = TransportMode.QUEUED,
    ):
        self.logger = logger or logging.getLogger(__name__)

        self.websocket_url = websocket_url
        self.params = list(param_pairs(params))
        self.channel_socket_url = build_socket_url(websocket_url, self.params)
        self.transport_mode = transport_mode

        self.connection: Optional[ClientConnection] = None
        self._sender: Optional[PHXSender] = None
        self._receiver: Optional[PHXReceiver] = None
        self._requests: Optional[asyncio.Queue[SenderRequest]] = None
        self._sender_task: Optional[asyncio.Task[None]] = None
        self._heartbeat = HeartbeatScheduler(self.heartbeat, heartbeat_interval, self.logger.getChild('heartbeat'))

    @classmethod
    async def connect(
        cls,
        websocket_url: str,
        params: Optional[ConnectionParams] = None,
        **kwargs: Any,
    ) -> Tuple['PHXChannelsClient', PHXReceiver]:
        """Connect a new client and return it together with its receiver."""
        client = cls(websocket_url, params, **kwargs)
        await client.open()
        return client, client.receiver

    async def __aenter__(self) -> 'PHXChannelsClient':
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]] = None,
        exc_value: Optional[BaseException] = None,
        traceback: Optional[TracebackType] = None,
    ) -> None:
        await self.shutdown('Client context exiting')

    async def open(self) -> None:
        if self._sender_task is not None:
            raise PHXConnectionError('Client is already connected')

        self.logger.debug(f'Creating client for {self.websocket_url}')
        sender, receiver = await connect_socket(
            self.websocket_url,
            self.params,
            logger=self.logger,
            transport_mode=self.transport_mode,
        )
        self._sender = sender
        self._receiver = receiver
        self.connection = receiver.connection

        self._requests = asyncio.Queue()
        self._sender_task = asyncio.get_running_loop().create_task(self._run_sender(sender))
        self._heartbeat.start()

    @property
    def receiver(self) -> PHXReceiver:
        if self._receiver is None:
            raise PHXConnectionError("Client is not connected. Use 'async with' context manager.")
        return self._receiver

    @property
    def heartbeat_scheduler(self) -> HeartbeatScheduler:
        return self._heartbeat

    async def _run_sender(self, sender: PHXSender) -> None:
        current: Optional[SenderRequest] = None
        try:
            while True:
                current = await self._requests.get()
                if current.result.done():
                    # the caller gave up waiting
                    continue

                try:
                    result = await current.operation(sender, *current.args)
                except Exception as e:
                    if not current.result.done():
                        current.result.set_exception(e)
                else:
                    if not current.result.done():
                        current.result.set_result(result)
                current = None
        finally:
            self._fail_pending_requests(current)

    def _fail_pending_requests(self, current: Optional[SenderRequest]) -> None:
        pending = [current] if current is not None else []
        while self._requests is not None and not self._requests.empty():
            pending.append(self._requests.get_nowait())

        for request in pending:
            if not request.result.done():
                request.result.set_exception(PHXSenderUnavailableError('Sender worker stopped before handling the request'))

    async def _submit(self, operation: Callable[..., Awaitable[int]], *args: Any) -> int:
        if self._sender_task is None or self._sender_task.done():
            raise PHXSenderUnavailableError('Sender worker is not running')

        request = SenderRequest(operation, args, asyncio.get_running_loop().create_future())
        self._requests.put_nowait(request)
        return await request.result

    async def join(self, channel: str) -> int:
        """Send ``phx_join`` for ``channel`` and return the new join ref."""
        return await self._submit(PHXSender.join, channel)

    async def send(self, topic: str, event: ChannelEvent, payload: Any) -> int:
        """Publish ``event`` on ``topic`` and return the new message ref."""
        return await self._submit(PHXSender.send, topic, event, payload)

    async def heartbeat(self) -> int:
        return await self._submit(PHXSender.heartbeat)

    async def shutdown(
        self,
        reason: str,
    ) -> None:
        """
        Gracefully shutdown the client connection.

        This method will:
        1. Stop the heartbeat loop
        2. Stop the sender worker, failing any queued requests
        3. Stop the outbound and inbound pumps
        4. Close the WebSocket connection

        The inbound pump is stopped before the close handshake, and frames
        still arriving are discarded so that an unread receiver cannot stall
        the handshake.

        Args:
            reason: Human-readable reason for shutdown (for logging)

        Note: This method is automatically called by __aexit__ when using
        the async context manager. You can also call it explicitly.
        """
        self.logger.info(f'Shutting down client: {reason}')

        await self._heartbeat.stop()

        if self._sender_task and not self._sender_task.done():
            self._sender_task.cancel()
            try:
                await self._sender_task
            except asyncio.CancelledError:
                pass

        if self._sender:
            await self._sender.writer.close()

        if self._receiver:
            await self._receiver.close()

        if self.connection:
            discard_task = asyncio.create_task(self._discard_inbound(self.connection))
            await self.connection.close()
            await discard_task
            self.connection = None
            self.logger.info('Connection closed')

    async def _discard_inbound(self, connection: ClientConnection) -> None:
        # websockets stops reading the socket while unread frames pile up, so
        # the close frame is only seen once those frames are consumed
        try:
            async for _ in connection:
                pass
        except ConnectionClosed:
            pass

    async def run_forever(self) -> None:
        """
        Run until the connection closes or Ctrl+C is pressed.

        Signal handlers for SIGINT (Ctrl+C) and SIGTERM are registered while
        this method runs. Messages are not consumed here; iterate
        :attr:`receiver` from another task.

        Raises:
            PHXConnectionError: If client is not connected
        """
        if self._receiver is None or self._receiver.pump_task is None:
            raise PHXConnectionError("Client is not connected. Use 'async with' context manager.")

        shutdown_event = asyncio.Event()
        loop = asyncio.get_running_loop()

        def signal_handler():
            shutdown_event.set()

        loop.add_signal_handler(signal.SIGINT, signal_handler)
        loop.add_signal_handler(signal.SIGTERM, signal_handler)

        shutdown_wait_task = asyncio.create_task(shutdown_event.wait())
        try:
            await asyncio.wait(
                [self._receiver.pump_task, shutdown_wait_task],
                return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            shutdown_wait_task.cancel()
            loop.remove_signal_handler(signal.SIGINT)
            loop.remove_signal_handler(signal.SIGTERM)
