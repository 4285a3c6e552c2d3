"""Capability ports injected into the reconciler.

The reconciler owns none of these. Each is a plain callable so lambdas,
functions and adapter objects all qualify. Async implementations are accepted
by ``reconcile_async``; the synchronous ``reconcile`` requires sync ones.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import AsyncIterable, Awaitable, Callable, Iterable
from typing import Protocol, runtime_checkable

type Candidates[S] = Iterable[S] | AsyncIterable[S]


@runtime_checkable
class ConsistencyOracle[S, D](Protocol):
    """Judge whether ``source`` and ``destination`` correspond."""

    def __call__(self, source: S, destination: D, /) -> bool | Awaitable[bool]: ...


@runtime_checkable
class DiffMetric[S](Protocol):
    """Non-negative distance between two source-domain values; ``diff(x, x) == 0``."""

    def __call__(self, left: S, right: S, /) -> float | Awaitable[float]: ...


@runtime_checkable
class CandidateGenerator[S, D](Protocol):
    """Propose replacement sources given the old pair and the new destination."""

    def __call__(
        self,
        source: S,
        destination: D,
        new_destination: D,
        /,
    ) -> Candidates[S] | Awaitable[Candidates[S]]: ...


def swap_oracle[S, D](oracle: Callable[[S, D], object]) -> Callable[[D, S], object]:
    """Return ``oracle`` with its arguments flipped.

    Used to repair the destination after a source change: the destination then
    plays the role of the reconciled side.
    """

    @functools.wraps(oracle)
    def swapped(destination: D, source: S, /) -> object:
        return oracle(source, destination)

    return swapped


def run_in_thread[**P, T](func: Callable[P, T]) -> Callable[P, Awaitable[T]]:
    """Wrap a blocking capability so concurrent evaluation does not stall the loop."""

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        return await asyncio.to_thread(func, *args, **kwargs)

    return wrapper
