import asyncio
import logging
from typing import Awaitable, Callable, Optional

from phoenix_session_client.exceptions import PHXClientError

HEARTBEAT_INTERVAL = 2.0


class HeartbeatScheduler:
    """Calls ``beat`` every ``interval`` seconds on a background task.

    The first heartbeat is sent one interval after :meth:`start`. A failed
    heartbeat ends the loop; :meth:`stop` cancels the task and reports such
    a failure.
    """

    def __init__(
        self,
        beat: Callable[[], Awaitable[int]],
        interval: float = HEARTBEAT_INTERVAL,
        logger: Optional[logging.Logger] = None,
    ):
        self._beat = beat
        self.interval = interval
        self.logger = logger or logging.getLogger(__name__)
        self.heartbeat_task: Optional[asyncio.Task[None]] = None

    @property
    def is_running(self) -> bool:
        return self.heartbeat_task is not None and not self.heartbeat_task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self.heartbeat_task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                message_ref = await self._beat()
            except PHXClientError as e:
                self.logger.error(f'Heartbeat failed, stopping heartbeat loop: {e}')
                raise
            self.logger.debug(f'Heartbeat sent with ref {message_ref}')

    async def stop(self) -> None:
        if self.heartbeat_task is None:
            return
        if not self.heartbeat_task.done():
            self.heartbeat_task.cancel()
        try:
            await self.heartbeat_task
        except asyncio.CancelledError:
            pass
        except PHXClientError as e:
            self.logger.warning(f'Heartbeat loop had stopped with an error: {e}')
