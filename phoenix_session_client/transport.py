import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from websockets import ClientConnection
from websockets.exceptions import ConnectionClosed, WebSocketException

from phoenix_session_client.exceptions import MessageErrorKind, PHXMessageError

OUTBOUND_QUEUE_SIZE = 10


class TransportMode(Enum):
    """How the sender hands text frames to the websocket"""
    QUEUED = "queued"
    DIRECT = "direct"


class TransportWriter(ABC):
    """Outbound half of a connection: accepts serialized text frames."""

    def start(self) -> None:
        pass

    @abstractmethod
    async def write(self, text: str) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...


class QueuedTransportWriter(TransportWriter):
    """Forwards frames through a bounded queue drained by one outbound pump task.

    ``write`` waits while the queue is full.
    """

    def __init__(self, connection: ClientConnection, logger: Optional[logging.Logger] = None, maxsize: int = OUTBOUND_QUEUE_SIZE):
        self.connection = connection
        self.logger = logger or logging.getLogger(__name__)
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize=maxsize)
        self.pump_task: Optional[asyncio.Task[None]] = None

    def start(self) -> None:
        if self.pump_task is None:
            self.pump_task = asyncio.get_running_loop().create_task(self._pump())

    async def _pump(self) -> None:
        self.logger.debug('Starting outbound pump')
        while True:
            text = await self.queue.get()
            try:
                await self.connection.send(text)
            except ConnectionClosed as e:
                self.logger.error(f'Outbound pump stopped, connection closed: {e}')
                raise PHXMessageError(f'Connection closed while sending: {e}', MessageErrorKind.TRANSPORT) from e
            except WebSocketException as e:
                self.logger.error(f'Outbound pump stopped, transport error: {e}')
                raise PHXMessageError(f'Transport error while sending: {e}', MessageErrorKind.TRANSPORT) from e
            finally:
                self.queue.task_done()

    def _pump_stopped_error(self) -> PHXMessageError:
        reason = 'closed'
        if self.pump_task is not None and not self.pump_task.cancelled() and self.pump_task.exception() is not None:
            reason = f'failed: {self.pump_task.exception()}'
        return PHXMessageError(f'Outbound queue is {reason}', MessageErrorKind.SEND)

    async def write(self, text: str) -> None:
        if self.pump_task is None or self.pump_task.done():
            raise self._pump_stopped_error()

        if not self.queue.full():
            self.queue.put_nowait(text)
            return

        put_task = asyncio.ensure_future(self.queue.put(text))
        try:
            await asyncio.wait({put_task, self.pump_task}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            put_task.cancel()
            raise

        if not put_task.done():
            put_task.cancel()
            raise self._pump_stopped_error()

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
            self.logger.warning(f'Outbound pump had failed: {e}')


class DirectTransportWriter(TransportWriter):
    """Sends each frame inline on the caller's task."""

    def __init__(self, connection: ClientConnection, logger: Optional[logging.Logger] = None):
        self.connection = connection
        self.logger = logger or logging.getLogger(__name__)
        self.closed = False

    async def write(self, text: str) -> None:
        if self.closed:
            raise PHXMessageError('Writer is closed', MessageErrorKind.SEND)
        try:
            await self.connection.send(text)
        except ConnectionClosed as e:
            raise PHXMessageError(f'Connection closed: {e}', MessageErrorKind.SEND) from e
        except WebSocketException as e:
            raise PHXMessageError(f'Transport error: {e}', MessageErrorKind.TRANSPORT) from e

    async def close(self) -> None:
        self.closed = True


def make_writer(mode: TransportMode, connection: ClientConnection, logger: Optional[logging.Logger] = None) -> TransportWriter:
    if mode == TransportMode.QUEUED:
        return QueuedTransportWriter(connection, logger)
    return DirectTransportWriter(connection, logger)
