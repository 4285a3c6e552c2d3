from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest

from mindrift.domain.ports import run_in_thread
from mindrift.domain.reconciliation import (
    DiffFailureError,
    EmptyCandidateSetError,
    OracleFailureError,
    ReconciliationCancelledError,
    Reconciler,
    reconcile_async,
)
from tests.helpers.capabilities import DelayedOracle, ListGenerator, TableMetric, TableOracle


def test_selection_ignores_completion_order() -> None:
    oracle = DelayedOracle(
        consistent={"a", "b", "c"},
        delays={"a": 0.05, "b": 0.03, "c": 0.0, "s0": 0.08},
    )

    result = asyncio.run(
        reconcile_async(
            "s0",
            "d0",
            "d1",
            oracle=oracle,
            metric=TableMetric({"a": 0.2, "b": 0.2, "c": 0.4}),
            generator=ListGenerator(["a", "b", "c"]),
        )
    )

    assert oracle.finished == ["c", "b", "a", "s0"]
    assert result.source == "a"
    assert [e.candidate for e in result.evaluations] == ["a", "b", "c", "s0"]


def test_concurrency_is_bounded() -> None:
    in_flight = 0
    peak = 0

    async def oracle(source: str, destination: str, /) -> bool:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return source == "c3"

    result = asyncio.run(
        reconcile_async(
            "s0",
            "d0",
            "d1",
            oracle=oracle,
            metric=TableMetric({"c3": 0.5}),
            generator=ListGenerator([f"c{i}" for i in range(6)]),
            concurrency=2,
        )
    )

    assert result.source == "c3"
    assert peak == 2


def test_async_generator_and_metric_are_supported() -> None:
    async def generator(
        source: str, destination: str, new_destination: str, /
    ) -> AsyncIterator[str]:
        for candidate in ("a", "b", "c", "d"):
            yield candidate

    async def metric(left: str, right: str, /) -> float:
        return {"a": 0.9, "b": 0.1, "c": 0.05, "d": 0.0}[left]

    result = asyncio.run(
        reconcile_async(
            "s0",
            "d0",
            "d1",
            oracle=TableOracle({("a", "d1"), ("b", "d1"), ("c", "d1"), ("d", "d1")}),
            metric=metric,
            generator=generator,
            max_candidates=2,
        )
    )

    assert result.source == "b"
    assert result.generated == 2


def test_awaitable_generator_result_is_awaited() -> None:
    async def generator(source: str, destination: str, new_destination: str, /) -> list[str]:
        return []

    with pytest.raises(EmptyCandidateSetError):
        asyncio.run(
            reconcile_async(
                "s0",
                "d0",
                "d1",
                oracle=TableOracle(set()),
                metric=TableMetric({}),
                generator=generator,
            )
        )


def test_blocking_capabilities_can_run_in_threads() -> None:
    oracle = TableOracle({("a", "d1")})

    result = asyncio.run(
        reconcile_async(
            "s0",
            "d0",
            "d1",
            oracle=run_in_thread(oracle),
            metric=run_in_thread(TableMetric({"a": 0.3})),
            generator=ListGenerator(["a"]),
        )
    )

    assert result.source == "a"
    assert len(oracle.calls) == 2


def test_async_oracle_failure_is_wrapped() -> None:
    async def oracle(source: str, destination: str, /) -> bool:
        if source == "b":
            raise TimeoutError("judge timed out")
        return False

    with pytest.raises(OracleFailureError) as excinfo:
        asyncio.run(
            reconcile_async(
                "s0",
                "d0",
                "d1",
                oracle=oracle,
                metric=TableMetric({}),
                generator=ListGenerator(["a", "b"]),
            )
        )

    assert excinfo.value.index == 1
    assert isinstance(excinfo.value.__cause__, TimeoutError)


def test_async_metric_failure_is_wrapped() -> None:
    async def metric(left: str, right: str, /) -> float:
        raise ArithmeticError("overflow")

    with pytest.raises(DiffFailureError):
        asyncio.run(
            reconcile_async(
                "s0",
                "d0",
                "d1",
                oracle=TableOracle({("a", "d1")}),
                metric=metric,
                generator=ListGenerator(["a"]),
            )
        )


def test_cancel_event_discards_partial_results() -> None:
    async def scenario() -> None:
        cancel = asyncio.Event()

        async def oracle(source: str, destination: str, /) -> bool:
            if source == "a":
                cancel.set()
                return True
            await asyncio.sleep(10)
            return True

        await reconcile_async(
            "s0",
            "d0",
            "d1",
            oracle=oracle,
            metric=TableMetric({"a": 0.1, "b": 0.2}),
            generator=ListGenerator(["a", "b"]),
            cancel=cancel,
        )

    with pytest.raises(ReconciliationCancelledError):
        asyncio.run(scenario())


def test_preset_cancel_skips_generation() -> None:
    async def scenario() -> None:
        cancel = asyncio.Event()
        cancel.set()
        await reconcile_async(
            "s0",
            "d0",
            "d1",
            oracle=TableOracle(set()),
            metric=TableMetric({}),
            generator=generator,
            cancel=cancel,
        )

    generator = ListGenerator(["a"])

    with pytest.raises(ReconciliationCancelledError):
        asyncio.run(scenario())
    assert generator.calls == 0


def test_deadline_raises_cancelled() -> None:
    oracle = DelayedOracle(consistent={"a"}, delays={"a": 5.0, "s0": 5.0})

    with pytest.raises(ReconciliationCancelledError):
        asyncio.run(
            reconcile_async(
                "s0",
                "d0",
                "d1",
                oracle=oracle,
                metric=TableMetric({"a": 0.1}),
                generator=ListGenerator(["a"]),
                timeout=0.05,
            )
        )

    assert oracle.finished == []


def test_invalid_concurrency_is_rejected() -> None:
    with pytest.raises(ValueError, match="concurrency"):
        asyncio.run(
            reconcile_async(
                "s0",
                "d0",
                "d1",
                oracle=TableOracle(set()),
                metric=TableMetric({}),
                generator=ListGenerator(["a"]),
                concurrency=0,
            )
        )


def test_reconciler_async_matches_sync_selection() -> None:
    reconciler = Reconciler(
        oracle=TableOracle({("a", "d1"), ("b", "d1")}),
        metric=TableMetric({"a": 0.4, "b": 0.1}),
        generator=ListGenerator(["a", "b"]),
        concurrency=1,
    )

    sync_result = reconciler.reconcile("s0", "d0", "d1")
    async_result = asyncio.run(reconciler.reconcile_async("s0", "d0", "d1"))

    assert sync_result.source == async_result.source == "b"
    assert sync_result.diff == async_result.diff
