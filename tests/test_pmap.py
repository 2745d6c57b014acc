from __future__ import annotations

import threading
import time

import pytest

from bank_bill_parser.pmap import p_map_settled


def test_results_keep_input_order():
    def slow_square(x: int) -> int:
        time.sleep(0.01 * (5 - x))
        return x * x

    got = p_map_settled(range(5), slow_square, concurrency=3)
    assert [s.value for s in got] == [0, 1, 4, 9, 16]
    assert all(s.ok for s in got)


def test_failures_are_captured_without_cancelling_siblings():
    def maybe_fail(x: int) -> int:
        if x == 1:
            raise ValueError("boom")
        return x

    got = p_map_settled([0, 1, 2], maybe_fail, concurrency=2)
    assert [s.ok for s in got] == [True, False, True]
    assert isinstance(got[1].error, ValueError)
    assert got[2].value == 2


def test_concurrency_bound_is_respected():
    lock = threading.Lock()
    running = 0
    peak = 0

    def track(_: int) -> None:
        nonlocal running, peak
        with lock:
            running += 1
            peak = max(peak, running)
        time.sleep(0.01)
        with lock:
            running -= 1

    p_map_settled(range(10), track, concurrency=2)
    assert peak <= 2


def test_base_exceptions_propagate():
    def interrupt(_: int) -> None:
        raise KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        p_map_settled([1], interrupt, concurrency=1)


@pytest.mark.parametrize("concurrency", [0, -1, True])
def test_invalid_concurrency(concurrency):
    with pytest.raises(ValueError, match="concurrency"):
        p_map_settled([1], lambda x: x, concurrency=concurrency)


def test_empty_iterable():
    assert p_map_settled([], lambda x: x, concurrency=4) == []
