"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from mindrift.adapters.llm import ChatClient, LlmCandidateGenerator, LlmConsistencyOracle
from mindrift.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyPairUnitOfWork,
    is_started,
    startup,
)
from mindrift.adapters.text import METRICS
from mindrift.config import get_llm_config, get_reconcile_config
from mindrift.domain.model import Side
from mindrift.domain.pair_sync import (
    PairChangeResult,
    ReconcilerFactory,
    apply_change,
    check_pair_consistency,
    edit_pair,
    get_pair,
    list_pairs,
    pair_history,
    remove_pair,
    track_pair,
)
from mindrift.domain.ports.unit_of_work import PairUnitOfWork
from mindrift.domain.reconciliation import Reconciler

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mindrift.config import LlmConfig, ReconcileConfig
    from mindrift.domain.model import ReconciliationRecord, TrackedPair
    from mindrift.domain.reconciliation import Reconciliation

UnitOfWorkFactory = Callable[[], PairUnitOfWork]
ChatClientFactory = Callable[["LlmConfig"], ChatClient]

DEFAULT_METRIC = "chars"

log = getLogger(__name__)


def build_reconciler(
    chat: ChatClient,
    *,
    source_label: str,
    destination_label: str,
    llm_config: LlmConfig,
    reconcile_config: ReconcileConfig,
    metric: str = DEFAULT_METRIC,
) -> Reconciler[str, str]:
    """Reconciler that repairs the source after the destination changed."""

    return Reconciler(
        oracle=LlmConsistencyOracle(
            chat,
            source_label=source_label,
            destination_label=destination_label,
        ),
        metric=_metric(metric),
        generator=LlmCandidateGenerator(
            chat,
            source_label=source_label,
            destination_label=destination_label,
            count=llm_config.candidates,
        ),
        tolerance=reconcile_config.tolerance,
        max_candidates=reconcile_config.max_candidates,
        include_source=reconcile_config.include_source,
        concurrency=reconcile_config.concurrency,
        timeout=reconcile_config.timeout_seconds,
    )


def pair_reconciler_factory(
    chat: ChatClient,
    *,
    llm_config: LlmConfig,
    reconcile_config: ReconcileConfig,
    metric: str = DEFAULT_METRIC,
) -> ReconcilerFactory:
    """Return a factory choosing the reconcile direction from the edited side."""

    def reconciler_for(pair: TrackedPair, side: Side) -> Reconciler[str, str]:
        source_label = pair.source.domain or "source"
        destination_label = pair.destination.domain or "destination"
        forward = build_reconciler(
            chat,
            source_label=source_label,
            destination_label=destination_label,
            llm_config=llm_config,
            reconcile_config=reconcile_config,
            metric=metric,
        )
        if side is Side.DESTINATION:
            return forward
        return forward.reversed(
            metric=_metric(metric),
            generator=LlmCandidateGenerator(
                chat,
                source_label=destination_label,
                destination_label=source_label,
                count=llm_config.candidates,
            ),
        )

    return reconciler_for


def reconcile_texts(
    source: str,
    destination: str,
    new_destination: str,
    *,
    source_label: str = "source",
    destination_label: str = "destination",
    metric: str = DEFAULT_METRIC,
    tolerance: float | None = None,
    llm_config: LlmConfig | None = None,
    reconcile_config: ReconcileConfig | None = None,
    chat_factory: ChatClientFactory = ChatClient,
    cancel: asyncio.Event | None = None,
) -> Reconciliation[str]:
    """One-shot reconciliation of a source against an edited destination."""

    effective_llm = llm_config or get_llm_config()
    effective_options = reconcile_config or get_reconcile_config()
    log.info(
        "Reconciling %s against edited %s with model %s",
        source_label,
        destination_label,
        effective_llm.model,
    )

    async def run() -> Reconciliation[str]:
        async with chat_factory(effective_llm) as chat:
            reconciler = build_reconciler(
                chat,
                source_label=source_label,
                destination_label=destination_label,
                llm_config=effective_llm,
                reconcile_config=effective_options,
                metric=metric,
            )
            if tolerance is not None:
                reconciler.tolerance = tolerance
            return await reconciler.reconcile_async(
                source, destination, new_destination, cancel=cancel
            )

    return asyncio.run(run())


def track(
    *,
    name: str,
    source: str,
    destination: str,
    source_domain: str | None = None,
    destination_domain: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> TrackedPair:
    return track_pair(
        unit_of_work_factory=_unit_of_work(unit_of_work_factory),
        name=name,
        source=source,
        destination=destination,
        source_domain=source_domain,
        destination_domain=destination_domain,
    )


def change_destination(
    *,
    name: str,
    payload: str,
    expected_revision: int | None = None,
    metric: str = DEFAULT_METRIC,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    llm_config: LlmConfig | None = None,
    reconcile_config: ReconcileConfig | None = None,
    chat_factory: ChatClientFactory = ChatClient,
    cancel: asyncio.Event | None = None,
) -> PairChangeResult:
    """Edit the destination of a tracked pair and repair its source."""

    return _change(
        Side.DESTINATION,
        name=name,
        payload=payload,
        expected_revision=expected_revision,
        metric=metric,
        unit_of_work_factory=unit_of_work_factory,
        llm_config=llm_config,
        reconcile_config=reconcile_config,
        chat_factory=chat_factory,
        cancel=cancel,
    )


def change_source(
    *,
    name: str,
    payload: str,
    expected_revision: int | None = None,
    metric: str = DEFAULT_METRIC,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    llm_config: LlmConfig | None = None,
    reconcile_config: ReconcileConfig | None = None,
    chat_factory: ChatClientFactory = ChatClient,
    cancel: asyncio.Event | None = None,
) -> PairChangeResult:
    """Edit the source of a tracked pair and repair its destination."""

    return _change(
        Side.SOURCE,
        name=name,
        payload=payload,
        expected_revision=expected_revision,
        metric=metric,
        unit_of_work_factory=unit_of_work_factory,
        llm_config=llm_config,
        reconcile_config=reconcile_config,
        chat_factory=chat_factory,
        cancel=cancel,
    )


def edit(
    *,
    name: str,
    side: Side,
    payload: str,
    expected_revision: int | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> TrackedPair:
    """Edit one side of a pair and leave the other side as it is."""

    return edit_pair(
        unit_of_work_factory=_unit_of_work(unit_of_work_factory),
        name=name,
        side=side,
        payload=payload,
        expected_revision=expected_revision,
    )


def check(
    *,
    name: str,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    llm_config: LlmConfig | None = None,
    chat_factory: ChatClientFactory = ChatClient,
) -> bool:
    """Return whether a pair is consistent, judging it with the model on a cache miss."""

    effective_uow = _unit_of_work(unit_of_work_factory)
    pair = get_pair(unit_of_work_factory=effective_uow, name=name)
    if pair.consistent is not None:
        return pair.consistent
    effective_llm = llm_config or get_llm_config()

    async def run() -> bool:
        async with chat_factory(effective_llm) as chat:
            return await check_pair_consistency(
                unit_of_work_factory=effective_uow,
                name=name,
                oracle=LlmConsistencyOracle(
                    chat,
                    source_label=pair.source.domain or "source",
                    destination_label=pair.destination.domain or "destination",
                ),
            )

    consistent = asyncio.run(run())
    log.info("Pair %s judged %s", name, "consistent" if consistent else "inconsistent")
    return consistent


def show(*, name: str, unit_of_work_factory: UnitOfWorkFactory | None = None) -> TrackedPair:
    return get_pair(unit_of_work_factory=_unit_of_work(unit_of_work_factory), name=name)


def list_tracked(*, unit_of_work_factory: UnitOfWorkFactory | None = None) -> list[TrackedPair]:
    return list_pairs(unit_of_work_factory=_unit_of_work(unit_of_work_factory))


def remove(*, name: str, unit_of_work_factory: UnitOfWorkFactory | None = None) -> None:
    remove_pair(unit_of_work_factory=_unit_of_work(unit_of_work_factory), name=name)


def history(
    *,
    name: str,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Sequence[ReconciliationRecord]:
    return pair_history(unit_of_work_factory=_unit_of_work(unit_of_work_factory), name=name)


def _change(
    side: Side,
    *,
    name: str,
    payload: str,
    expected_revision: int | None,
    metric: str,
    unit_of_work_factory: UnitOfWorkFactory | None,
    llm_config: LlmConfig | None,
    reconcile_config: ReconcileConfig | None,
    chat_factory: ChatClientFactory,
    cancel: asyncio.Event | None,
) -> PairChangeResult:
    effective_uow = _unit_of_work(unit_of_work_factory)
    effective_llm = llm_config or get_llm_config()
    effective_options = reconcile_config or get_reconcile_config()

    async def run() -> PairChangeResult:
        async with chat_factory(effective_llm) as chat:
            return await apply_change(
                unit_of_work_factory=effective_uow,
                reconciler_for=pair_reconciler_factory(
                    chat,
                    llm_config=effective_llm,
                    reconcile_config=effective_options,
                    metric=metric,
                ),
                name=name,
                side=side,
                payload=payload,
                expected_revision=expected_revision,
                cancel=cancel,
            )

    result = asyncio.run(run())
    log.info(
        "Pair %s: %s (revision=%s, diff=%.4f, needs_review=%s)",
        result.name,
        result.outcome,
        result.revision,
        result.diff,
        result.needs_review,
    )
    return result


def _metric(name: str) -> Callable[[str, str], float]:
    try:
        return METRICS[name]
    except KeyError as exc:
        raise ValueError(f"Unknown diff metric {name!r}; choose from {sorted(METRICS)}") from exc


def _unit_of_work(factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if factory is not None:
        return factory
    if not is_started():
        startup()
    return SqlAlchemyPairUnitOfWork
