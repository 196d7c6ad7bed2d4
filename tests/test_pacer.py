from __future__ import annotations

import pytest

from conftest import SleepRecorder
from core.services.pacer import Pacer


def test_slow_previous_item_hits_the_floor() -> None:
    assert Pacer(8).delay_for(15_000) == 4


@pytest.mark.parametrize(
    "cost_ms,expected",
    [(0, 8), (999, 8), (1_000, 7), (2_500, 6), (4_000, 4), (7_999, 4), (60_000, 4)],
)
def test_cost_is_truncated_to_whole_seconds(cost_ms: int, expected: int) -> None:
    assert Pacer(8).delay_for(cost_ms) == expected


@pytest.mark.parametrize("waiting", [0, 2, 4, 8, 10, 30])
def test_delay_stays_within_half_and_full_spacing(waiting: int) -> None:
    pacer = Pacer(waiting)
    for cost_ms in range(0, waiting * 1000 + 1, 250):
        delay = pacer.delay_for(cost_ms)
        assert waiting / 2 <= delay <= waiting


@pytest.mark.asyncio
async def test_wait_sleeps_for_the_delay() -> None:
    sleeper = SleepRecorder()
    pacer = Pacer(8, sleep=sleeper)

    assert await pacer.wait(3_200) == 5
    assert sleeper.calls == [5]


@pytest.mark.asyncio
async def test_zero_spacing_does_not_sleep() -> None:
    sleeper = SleepRecorder()

    assert await Pacer(0, sleep=sleeper).wait(0) == 0
    assert sleeper.calls == []


def test_negative_spacing_is_rejected() -> None:
    with pytest.raises(ValueError):
        Pacer(-1)


@pytest.mark.parametrize(
    "waiting,cost_ms,expected",
    [(1, 1_000, 0), (3, 5_000, 1), (9, 9_000, 4), (9, 4_000, 5), (9, 0, 9)],
)
def test_odd_spacing_floor_rounds_down(waiting: int, cost_ms: int, expected: int) -> None:
    assert Pacer(waiting).delay_for(cost_ms) == expected


@pytest.mark.parametrize("waiting", [1, 3, 7, 9, 15])
def test_odd_spacing_stays_within_rounded_half_and_full_spacing(waiting: int) -> None:
    pacer = Pacer(waiting)
    for cost_ms in range(0, waiting * 2000 + 1, 250):
        delay = pacer.delay_for(cost_ms)
        assert waiting // 2 <= delay <= waiting
