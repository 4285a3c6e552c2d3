"""Minimal-drift reconciliation.

Given a consistent pair ``(source, destination)`` and an edited
``new_destination``, pick the generated candidate that is consistent with the
new destination and closest to the old source. The engine owns no oracle,
metric or generator; all three are injected per call.

Two entry points share the same semantics:

- ``reconcile`` evaluates candidates one after another and requires
  synchronous capabilities.
- ``reconcile_async`` evaluates candidates concurrently (bounded by
  ``concurrency``) and accepts sync or async capabilities.

Both stop with ``ReconciliationCancelledError`` when a deadline or a caller
cancellation fires; partial evaluations are discarded.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import time
from collections.abc import AsyncIterable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from mindrift.domain.ports.capabilities import swap_oracle

from .contracts import CandidateEvaluation, Reconciliation
from .errors import (
    CapabilityFailureError,
    DiffFailureError,
    EmptyCandidateSetError,
    GeneratorFailureError,
    OracleFailureError,
    ReconciliationCancelledError,
    ReconciliationError,
)
from .select import PlannedCandidate, plan_candidates, select_minimal, validate_distance

if TYPE_CHECKING:
    import threading
    from collections.abc import Awaitable, Coroutine, Sequence

    from mindrift.domain.ports.capabilities import (
        CandidateGenerator,
        ConsistencyOracle,
        DiffMetric,
    )

log = getLogger(__name__)

DEFAULT_CONCURRENCY = 4


def reconcile[S, D](
    source: S,
    destination: D,
    new_destination: D,
    *,
    oracle: ConsistencyOracle[S, D],
    metric: DiffMetric[S],
    generator: CandidateGenerator[S, D],
    tolerance: float | None = None,
    max_candidates: int | None = None,
    include_source: bool = True,
    timeout: float | None = None,
    cancel: threading.Event | None = None,
) -> Reconciliation[S]:
    """Return the consistent candidate with minimal diff to ``source``.

    With ``include_source`` the current source is judged after the generated
    candidates, so a still-consistent source wins even when every generated
    candidate is inconsistent. ``NoConsistentCandidateError`` is then raised
    only when the source is inconsistent too. Pass ``include_source=False`` to
    choose among generated candidates alone.
    """

    _validate_options(tolerance=tolerance, max_candidates=max_candidates)
    if new_destination == destination:
        log.debug("Destination unchanged; keeping source as-is")
        return Reconciliation(source=source, diff=0.0, tolerance=tolerance)

    deadline = None if timeout is None else time.monotonic() + timeout

    def checkpoint() -> None:
        if cancel is not None and cancel.is_set():
            raise ReconciliationCancelledError("Reconciliation cancelled by caller")
        if deadline is not None and time.monotonic() > deadline:
            raise ReconciliationCancelledError(
                f"Reconciliation exceeded deadline of {timeout} seconds"
            )

    checkpoint()
    candidates = _collect_candidates(
        generator, source, destination, new_destination, limit=max_candidates
    )
    planned = _plan(candidates, source, include_source=include_source)

    evaluations: list[CandidateEvaluation[S]] = []
    for index, candidate, is_source in planned:
        checkpoint()
        consistent = _as_verdict(_call_oracle(oracle, candidate, new_destination, index))
        diff: float | None = None
        if consistent:
            if is_source:
                diff = 0.0
            else:
                diff = _as_distance(_call_metric(metric, candidate, source, index), index)
        evaluations.append(_evaluation(index, candidate, consistent, diff, is_source))
    checkpoint()

    return _select(evaluations, tolerance=tolerance)


async def reconcile_async[S, D](
    source: S,
    destination: D,
    new_destination: D,
    *,
    oracle: ConsistencyOracle[S, D],
    metric: DiffMetric[S],
    generator: CandidateGenerator[S, D],
    tolerance: float | None = None,
    max_candidates: int | None = None,
    include_source: bool = True,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float | None = None,
    cancel: asyncio.Event | None = None,
) -> Reconciliation[S]:
    """Concurrent variant of ``reconcile``.

    Oracle calls run as tasks bounded by ``concurrency``. Selection uses the
    generation index of each candidate, so the result does not depend on which
    oracle call finishes first. An outer task cancellation propagates as
    ``asyncio.CancelledError``; ``timeout`` and ``cancel`` surface as
    ``ReconciliationCancelledError``.
    """

    _validate_options(tolerance=tolerance, max_candidates=max_candidates)
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")
    if new_destination == destination:
        log.debug("Destination unchanged; keeping source as-is")
        return Reconciliation(source=source, diff=0.0, tolerance=tolerance)
    if cancel is not None and cancel.is_set():
        raise ReconciliationCancelledError("Reconciliation cancelled by caller")

    async def run() -> Reconciliation[S]:
        candidates = await _collect_candidates_async(
            generator, source, destination, new_destination, limit=max_candidates
        )
        planned = _plan(candidates, source, include_source=include_source)
        evaluations = await _evaluate_concurrently(
            planned,
            source=source,
            new_destination=new_destination,
            oracle=oracle,
            metric=metric,
            concurrency=concurrency,
        )
        return _select(evaluations, tolerance=tolerance)

    try:
        async with asyncio.timeout(timeout):
            return await _run_cancellable(run(), cancel)
    except TimeoutError as exc:
        log.warning("Reconciliation exceeded deadline of %s seconds", timeout)
        raise ReconciliationCancelledError(
            f"Reconciliation exceeded deadline of {timeout} seconds"
        ) from exc


def reconcile_chain[S, D](
    source: S,
    destinations: Sequence[D],
    *,
    oracle: ConsistencyOracle[S, D],
    metric: DiffMetric[S],
    generator: CandidateGenerator[S, D],
    **options: object,
) -> list[Reconciliation[S]]:
    """Apply successive destination edits ``d0 -> d1 -> d2 ...``.

    ``source`` must be consistent with ``destinations[0]``. Each step feeds the
    previous result back in as the new source.
    """

    results: list[Reconciliation[S]] = []
    current = source
    for previous, new in itertools.pairwise(destinations):
        result = reconcile(
            current,
            previous,
            new,
            oracle=oracle,
            metric=metric,
            generator=generator,
            **options,  # type: ignore[arg-type]
        )
        results.append(result)
        current = result.source
    return results


@dataclass
class Reconciler[S, D]:
    """Capabilities and options bundled for repeated reconciliation."""

    oracle: ConsistencyOracle[S, D]
    metric: DiffMetric[S]
    generator: CandidateGenerator[S, D]
    tolerance: float | None = None
    max_candidates: int | None = None
    include_source: bool = True
    concurrency: int = DEFAULT_CONCURRENCY
    timeout: float | None = None

    def reconcile(
        self,
        source: S,
        destination: D,
        new_destination: D,
        *,
        cancel: threading.Event | None = None,
    ) -> Reconciliation[S]:
        return reconcile(
            source,
            destination,
            new_destination,
            oracle=self.oracle,
            metric=self.metric,
            generator=self.generator,
            tolerance=self.tolerance,
            max_candidates=self.max_candidates,
            include_source=self.include_source,
            timeout=self.timeout,
            cancel=cancel,
        )

    async def reconcile_async(
        self,
        source: S,
        destination: D,
        new_destination: D,
        *,
        cancel: asyncio.Event | None = None,
    ) -> Reconciliation[S]:
        return await reconcile_async(
            source,
            destination,
            new_destination,
            oracle=self.oracle,
            metric=self.metric,
            generator=self.generator,
            tolerance=self.tolerance,
            max_candidates=self.max_candidates,
            include_source=self.include_source,
            concurrency=self.concurrency,
            timeout=self.timeout,
            cancel=cancel,
        )

    def reversed(
        self,
        *,
        metric: DiffMetric[D],
        generator: CandidateGenerator[D, S],
    ) -> Reconciler[D, S]:
        """Reconciler that repairs the destination after a source edit."""

        return Reconciler(
            oracle=swap_oracle(self.oracle),  # type: ignore[arg-type]
            metric=metric,
            generator=generator,
            tolerance=self.tolerance,
            max_candidates=self.max_candidates,
            include_source=self.include_source,
            concurrency=self.concurrency,
            timeout=self.timeout,
        )


def _validate_options(*, tolerance: float | None, max_candidates: int | None) -> None:
    if tolerance is not None and not tolerance >= 0:
        raise ValueError("tolerance must be non-negative")
    if max_candidates is not None and max_candidates < 1:
        raise ValueError("max_candidates must be at least 1")


def _plan[S](
    candidates: Sequence[S],
    source: S,
    *,
    include_source: bool,
) -> list[PlannedCandidate[S]]:
    if not candidates:
        log.warning("Candidate generator produced no candidates")
        raise EmptyCandidateSetError
    planned = plan_candidates(candidates, source, include_source=include_source)
    log.debug(
        "Evaluating %s candidates (%s generated)",
        len(planned),
        len(candidates),
    )
    return planned


def _select[S](
    evaluations: Sequence[CandidateEvaluation[S]],
    *,
    tolerance: float | None,
) -> Reconciliation[S]:
    try:
        result = select_minimal(evaluations, tolerance=tolerance)
    except ReconciliationError:
        log.warning("No consistent candidate among %s evaluated", len(evaluations))
        raise
    log.info(
        "Reconciled: diff=%.4f, unchanged=%s, consistent=%s/%s",
        result.diff,
        result.unchanged,
        result.consistent_count,
        len(evaluations),
    )
    if result.within_tolerance is False:
        log.warning("Minimal diff %.4f exceeds tolerance %.4f", result.diff, tolerance)
    return result


def _evaluation[S](
    index: int | None,
    candidate: S,
    consistent: bool,
    diff: float | None,
    is_source: bool,
) -> CandidateEvaluation[S]:
    log.debug(
        "Candidate %s: consistent=%s diff=%s source=%s",
        "source" if index is None else index,
        consistent,
        diff,
        is_source,
    )
    return CandidateEvaluation(
        index=index,
        candidate=candidate,
        consistent=consistent,
        diff=diff,
        is_source=is_source,
    )


def _collect_candidates[S, D](
    generator: CandidateGenerator[S, D],
    source: S,
    destination: D,
    new_destination: D,
    *,
    limit: int | None,
) -> list[S]:
    try:
        produced = generator(source, destination, new_destination)
    except Exception as exc:
        raise GeneratorFailureError(f"Candidate generator failed: {exc}") from exc
    if inspect.isawaitable(produced) or isinstance(produced, AsyncIterable):
        _discard(produced)
        raise TypeError("Asynchronous candidate generators require reconcile_async")
    try:
        return list(itertools.islice(produced, limit))
    except Exception as exc:
        raise GeneratorFailureError(f"Candidate generator failed: {exc}") from exc


async def _collect_candidates_async[S, D](
    generator: CandidateGenerator[S, D],
    source: S,
    destination: D,
    new_destination: D,
    *,
    limit: int | None,
) -> list[S]:
    try:
        produced = generator(source, destination, new_destination)
        if inspect.isawaitable(produced):
            produced = await produced
        if not isinstance(produced, AsyncIterable):
            return list(itertools.islice(produced, limit))
        candidates: list[S] = []
        async for candidate in produced:
            candidates.append(candidate)
            if limit is not None and len(candidates) >= limit:
                break
    except Exception as exc:
        raise GeneratorFailureError(f"Candidate generator failed: {exc}") from exc
    return candidates


def _call_oracle[S, D](
    oracle: ConsistencyOracle[S, D],
    candidate: S,
    new_destination: D,
    index: int | None,
) -> object:
    try:
        return oracle(candidate, new_destination)
    except Exception as exc:
        raise OracleFailureError(
            f"Consistency oracle failed for candidate {index}: {exc}", index=index
        ) from exc


def _call_metric[S](metric: DiffMetric[S], candidate: S, source: S, index: int | None) -> object:
    try:
        return metric(candidate, source)
    except Exception as exc:
        raise DiffFailureError(
            f"Diff metric failed for candidate {index}: {exc}", index=index
        ) from exc


def _as_verdict(value: object) -> bool:
    if inspect.isawaitable(value):
        _discard(value)
        raise TypeError("Asynchronous oracles require reconcile_async")
    return bool(value)


def _as_distance(value: object, index: int | None) -> float:
    if inspect.isawaitable(value):
        _discard(value)
        raise TypeError("Asynchronous diff metrics require reconcile_async")
    return validate_distance(value, index=index)


async def _evaluate_concurrently[S, D](
    planned: Sequence[PlannedCandidate[S]],
    *,
    source: S,
    new_destination: D,
    oracle: ConsistencyOracle[S, D],
    metric: DiffMetric[S],
    concurrency: int,
) -> list[CandidateEvaluation[S]]:
    semaphore = asyncio.Semaphore(concurrency)

    async def evaluate(
        index: int | None,
        candidate: S,
        is_source: bool,
    ) -> CandidateEvaluation[S]:
        async with semaphore:
            verdict = _call_oracle(oracle, candidate, new_destination, index)
            if inspect.isawaitable(verdict):
                verdict = await _await_capability(
                    verdict, OracleFailureError, "Consistency oracle", index
                )
            consistent = bool(verdict)
            diff: float | None = None
            if consistent and is_source:
                diff = 0.0
            elif consistent:
                distance = _call_metric(metric, candidate, source, index)
                if inspect.isawaitable(distance):
                    distance = await _await_capability(
                        distance, DiffFailureError, "Diff metric", index
                    )
                diff = validate_distance(distance, index=index)
        return _evaluation(index, candidate, consistent, diff, is_source)

    tasks = [
        asyncio.ensure_future(evaluate(index, candidate, is_source))
        for index, candidate, is_source in planned
    ]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        raise


async def _await_capability(
    awaitable: Awaitable[object],
    error_type: type[CapabilityFailureError],
    label: str,
    index: int | None,
) -> object:
    try:
        return await awaitable
    except Exception as exc:
        raise error_type(f"{label} failed for candidate {index}: {exc}", index=index) from exc


async def _run_cancellable[T](
    work: Coroutine[object, object, T],
    cancel: asyncio.Event | None,
) -> T:
    task = asyncio.ensure_future(work)
    if cancel is None:
        return await task

    watcher = asyncio.ensure_future(cancel.wait())
    try:
        done, _pending = await asyncio.wait(
            {task, watcher},
            return_when=asyncio.FIRST_COMPLETED,
        )
    finally:
        for pending in (task, watcher):
            if not pending.done():
                pending.cancel()
        await asyncio.gather(task, watcher, return_exceptions=True)

    if task in done:
        return task.result()
    log.warning("Reconciliation cancelled by caller; discarding partial results")
    raise ReconciliationCancelledError("Reconciliation cancelled by caller")


def _discard(value: object) -> None:
    close = getattr(value, "close", None)
    if inspect.iscoroutine(value) and callable(close):
        close()
