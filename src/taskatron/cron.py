import asyncio
import logging
from datetime import datetime, tzinfo
from typing import Callable, Optional, Union
from zoneinfo import ZoneInfo

import tzlocal
from croniter import croniter

from taskatron.errors import InvalidCronExpressionError

logger = logging.getLogger(__name__)


def resolve_timezone(timezone: Optional[Union[str, tzinfo]] = None) -> tzinfo:
    if timezone is None:
        return tzlocal.get_localzone()
    if isinstance(timezone, str):
        return ZoneInfo(timezone)
    return timezone


class CronBinding:
    """
    Invokes a callback at the instants described by a cron expression.

    Five-field expressions and six-field expressions with seconds first
    (``"*/5 * * * * *"``) are accepted. The binding runs as an asyncio task on
    the loop that is running when it is created, and starts immediately.
    """

    def __init__(
        self,
        expression: str,
        callback: Callable[[], object],
        timezone: Optional[Union[str, tzinfo]] = None,
    ):
        self.timezone: tzinfo = resolve_timezone(timezone)
        self.expression: str = expression
        self.callback: Callable[[], object] = callback
        self._next_fire_time: Optional[datetime] = None
        self._loop_task: Optional[asyncio.Task] = None

        # validate before anything is started
        self._next_after(datetime.now(self.timezone))
        self.resume()

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def next_fire_time(self) -> Optional[datetime]:
        if not self.is_running:
            return None
        return self._next_fire_time

    def stop(self) -> None:
        """
        Pause the binding. Later firings are skipped until resume() is called.
        """
        if self._loop_task is not None:
            self._loop_task.cancel()
            self._loop_task = None
        self._next_fire_time = None

    def resume(self) -> None:
        """
        Start (or restart) firing from now. No-op if already running.
        """
        if self.is_running:
            return
        loop = asyncio.get_running_loop()
        self._loop_task = loop.create_task(self._run())

    async def aclose(self) -> None:
        loop_task = self._loop_task
        self.stop()
        if loop_task is not None:
            try:
                await loop_task
            except asyncio.CancelledError:
                pass

    def _next_after(self, start: datetime) -> datetime:
        try:
            cron = croniter(self.expression, start, second_at_beginning=True)
            return cron.get_next(datetime)
        except (ValueError, KeyError) as e:
            raise InvalidCronExpressionError(self.expression) from e

    async def _run(self) -> None:
        last_fire: Optional[datetime] = None
        while True:
            now = datetime.now(self.timezone)
            start = max(now, last_fire) if last_fire else now
            self._next_fire_time = self._next_after(start)
            delay = (self._next_fire_time - datetime.now(self.timezone)).total_seconds()
            if delay > 0:
                await asyncio.sleep(delay)
            last_fire = self._next_fire_time
            try:
                self.callback()
            except Exception:
                logger.exception("Error in cron callback for expression '%s'", self.expression)
