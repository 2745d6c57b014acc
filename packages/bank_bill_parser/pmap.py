"""Bounded-concurrency map over a thread pool that never fails fast.

``p_map_settled`` keeps a fixed-size window of mapper calls in flight on a
``ThreadPoolExecutor`` and records each call's outcome as a :class:`Settled`
value (result or exception), similar to ``Promise.allSettled``. A failing call
never cancels or hides its siblings; callers decide what to do with failures.

Used by the record parser to read several bank exports at once, where one
broken file must not prevent the others from being parsed.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Generic, TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")


@dataclass(frozen=True, slots=True)
class Settled(Generic[OutT]):
    """Outcome of one mapper call: exactly one of ``value``/``error`` is set."""

    value: OutT | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def p_map_settled(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
) -> list[Settled[OutT]]:
    """Map ``iterable`` through ``mapper`` with at most ``concurrency`` calls
    running at once.

    The returned list has one :class:`Settled` per input item, in input order.
    Exceptions raised by ``mapper`` (subclasses of ``Exception``) are captured
    in ``Settled.error``; everything else propagates.
    """

    if not isinstance(concurrency, int) or isinstance(concurrency, bool) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    it = enumerate(iterable)
    results: dict[int, Settled[OutT]] = {}
    future_to_idx: dict[Future, int] = {}
    submitted = 0

    def _submit(pool: ThreadPoolExecutor) -> Future | None:
        nonlocal submitted
        try:
            idx, item = next(it)
        except StopIteration:
            return None
        fut = pool.submit(mapper, item)
        future_to_idx[fut] = idx
        submitted += 1
        return fut

    with ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="bbp-parse") as pool:
        active: set[Future] = set()
        for _ in range(concurrency):
            fut = _submit(pool)
            if fut is None:
                break
            active.add(fut)

        while active:
            done, active = wait(active, return_when=FIRST_COMPLETED)
            for fut in done:
                idx = future_to_idx.pop(fut)
                exc = fut.exception()
                if exc is None:
                    results[idx] = Settled(value=fut.result())
                elif isinstance(exc, Exception):
                    results[idx] = Settled(error=exc)
                else:
                    raise exc

            # Top up the window: one new submission per completion.
            for _ in range(len(done)):
                fut = _submit(pool)
                if fut is None:
                    break
                active.add(fut)

    return [results[i] for i in range(submitted)]


__all__ = ["Settled", "p_map_settled"]
