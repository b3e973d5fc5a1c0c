import asyncio
from datetime import datetime
from typing import List
from zoneinfo import ZoneInfo

import pytest

from taskatron.cron import CronBinding, resolve_timezone
from taskatron.errors import InvalidCronExpressionError


@pytest.mark.parametrize("expression", ["not a cron", "61 * * * *", "* * * *", ""])
def test_invalid_expression(expression: str) -> None:
    with pytest.raises(InvalidCronExpressionError):
        CronBinding(expression, lambda: None)


def test_requires_running_loop() -> None:
    with pytest.raises(RuntimeError):
        CronBinding("* * * * *", lambda: None)


def test_resolve_timezone() -> None:
    assert resolve_timezone("Europe/Berlin") == ZoneInfo("Europe/Berlin")
    utc = ZoneInfo("UTC")
    assert resolve_timezone(utc) is utc
    assert resolve_timezone(None) is not None


@pytest.mark.asyncio
async def test_fires_every_second() -> None:
    fired: List[datetime] = []
    binding = CronBinding("* * * * * *", lambda: fired.append(datetime.now()), timezone="UTC")

    await asyncio.sleep(2.5)
    await binding.aclose()

    assert 2 <= len(fired) <= 3
    assert not binding.is_running


@pytest.mark.asyncio
async def test_next_fire_time() -> None:
    binding = CronBinding("0 0 1 1 *", lambda: None, timezone="UTC")
    await asyncio.sleep(0)

    next_time = binding.next_fire_time()
    assert next_time is not None
    assert next_time > datetime.now(ZoneInfo("UTC"))
    assert (next_time.month, next_time.day, next_time.hour, next_time.minute) == (1, 1, 0, 0)

    binding.stop()
    assert binding.next_fire_time() is None


@pytest.mark.asyncio
async def test_stop_and_resume() -> None:
    fired: List[int] = []
    binding = CronBinding("* * * * * *", lambda: fired.append(1))

    binding.stop()
    await asyncio.sleep(1.5)
    assert fired == []
    assert not binding.is_running

    binding.resume()
    binding.resume()
    assert binding.is_running
    await asyncio.sleep(1.5)
    await binding.aclose()

    assert 1 <= len(fired) <= 2


@pytest.mark.asyncio
async def test_callback_error_keeps_binding_alive() -> None:
    calls: List[int] = []

    def callback() -> None:
        calls.append(1)
        raise RuntimeError("callback failed")

    binding = CronBinding("* * * * * *", callback)
    await asyncio.sleep(2.5)

    assert len(calls) >= 2
    assert binding.is_running
    await binding.aclose()
