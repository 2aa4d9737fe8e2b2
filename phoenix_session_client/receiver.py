import asyncio
import logging
from typing import AsyncIterator, Optional

from websockets import ClientConnection
from websockets.exceptions import ConnectionClosedError

from phoenix_session_client.exceptions import MessageErrorKind, PHXMessageError
from phoenix_session_client.phx_messages import CloseMessage, Message
from phoenix_session_client.protocol_handler import PHXProtocolHandler

INBOUND_QUEUE_SIZE = 10


class PHXReceiver:
    """Async iterator over the decoded messages of one connection.

    An inbound pump task decodes websocket frames into a bounded queue.
    Iterating consumes the queue, so messages are delivered at most once.
    A close frame from the server, whatever its code, yields a single
    :class:`CloseMessage` and ends the iteration. If the pump fails
    (malformed frame, connection lost without a close frame), the
    iterator re-raises its :class:`PHXMessageError` after the messages
    already queued have been delivered.
    """

    def __init__(
        self,
        connection: ClientConnection,
        logger: Optional[logging.Logger] = None,
        protocol_handler: Optional[PHXProtocolHandler] = None,
        maxsize: int = INBOUND_QUEUE_SIZE,
    ):
        self.connection = connection
        self.logger = logger or logging.getLogger(__name__)
        self._protocol_handler = protocol_handler or PHXProtocolHandler()
        self.queue: asyncio.Queue[Message] = asyncio.Queue(maxsize=maxsize)
        self.pump_task: Optional[asyncio.Task[None]] = None

    def start(self) -> None:
        if self.pump_task is None:
            self.pump_task = asyncio.get_running_loop().create_task(self._pump())

    async def _pump(self) -> None:
        self.logger.debug('Starting websocket message loop')
        try:
            async for socket_message in self.connection:
                message = self._protocol_handler.decode_frame(socket_message)
                self.logger.debug(f'Processing message - {message=}')
                await self.queue.put(message)
        except ConnectionClosedError as e:
            if e.rcvd is None:
                self.logger.error(f'Connection closed abnormally: {e}')
                raise PHXMessageError(f'Connection closed abnormally: {e}', MessageErrorKind.TRANSPORT) from e
            # the server sent a close frame with an application or error code
            self.logger.info(f'Connection closed by server with code {e.rcvd.code}')
        except PHXMessageError as e:
            self.logger.error(f'Inbound pump stopped: {e}')
            raise
        else:
            self.logger.info('Connection closed by server')

        await self.queue.put(CloseMessage())

    @property
    def closed(self) -> bool:
        return self.pump_task is not None and self.pump_task.done() and self.queue.empty()

    def __aiter__(self) -> AsyncIterator[Message]:
        return self

    async def __anext__(self) -> Message:
        if self.pump_task is None:
            raise StopAsyncIteration

        if not self.queue.empty():
            return self.queue.get_nowait()

        if not self.pump_task.done():
            get_task = asyncio.ensure_future(self.queue.get())
            try:
                await asyncio.wait({get_task, self.pump_task}, return_when=asyncio.FIRST_COMPLETED)
            except asyncio.CancelledError:
                get_task.cancel()
                raise

            if get_task.done():
                return get_task.result()
            get_task.cancel()

            if not self.queue.empty():
                return self.queue.get_nowait()

        if not self.pump_task.cancelled() and self.pump_task.exception() is not None:
            raise self.pump_task.exception()
        raise StopAsyncIteration

    async def close(self) -> None:
        if self.pump_task is None:
            return
        if not self.pump_task.done():
            self.pump_task.cancel()
        try:
            await self.pump_task
        except asyncio.CancelledError:
            pass
        except PHXMessageError as e:
            self.logger.warning(f'Inbound pump had failed: {e}')
