"""Domain services for keeping tracked pairs in sync.

Editing one side of a pair re-reconciles the other side through the injected
reconciler. Every attempt that touches the pair is written to the history; a
failed attempt leaves the pair at its last consistent state.

Changes are assumed to arrive from a single writer. ``expected_revision`` lets
callers detect that the pair moved on since they read it.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from mindrift.domain.model import (
    Element,
    ReconciliationOutcome,
    ReconciliationRecord,
    Side,
    TrackedPair,
)
from mindrift.domain.reconciliation import ReconciliationError

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Awaitable, Callable, Sequence
    from uuid import UUID

    from mindrift.domain.ports.unit_of_work import PairUnitOfWork
    from mindrift.domain.reconciliation import Reconciler, Reconciliation

log = getLogger(__name__)

type ReconcilerFactory = Callable[[TrackedPair, Side], Reconciler[str, str]]
type PairOracle = Callable[[str, str], bool | Awaitable[bool]]


class PairNotFoundError(LookupError):
    """Raised when no tracked pair has the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No tracked pair named {name!r}")
        self.name = name


class DuplicatePairError(ValueError):
    """Raised when tracking a pair under a name that is already taken."""

    def __init__(self, name: str) -> None:
        super().__init__(f"A pair named {name!r} is already tracked")
        self.name = name


@dataclass(slots=True)
class PairChangeResult:
    """Outcome of editing one side of a tracked pair."""

    pair_id: UUID
    name: str
    changed_side: Side
    outcome: ReconciliationOutcome
    reconciled: str
    revision: int
    diff: float = 0.0
    needs_review: bool = False


def track_pair(
    *,
    unit_of_work_factory: Callable[[], PairUnitOfWork],
    name: str,
    source: str,
    destination: str,
    source_domain: str | None = None,
    destination_domain: str | None = None,
) -> TrackedPair:
    """Start tracking an aligned pair. Both sides are trusted to be consistent."""

    with unit_of_work_factory() as uow:
        pairs = uow.repositories.pairs
        if pairs.get_by_name(name) is not None:
            raise DuplicatePairError(name)
        pair = TrackedPair(
            name=name,
            source=Element(source, source_domain),
            destination=Element(destination, destination_domain),
        )
        pair.record_consistency(True)
        pairs.add(pair)
        uow.commit()
    log.info("Tracking pair %s (%s)", name, pair.id)
    return pair


def get_pair(*, unit_of_work_factory: Callable[[], PairUnitOfWork], name: str) -> TrackedPair:
    with unit_of_work_factory() as uow:
        return _require_pair(uow, name)


def list_pairs(*, unit_of_work_factory: Callable[[], PairUnitOfWork]) -> list[TrackedPair]:
    with unit_of_work_factory() as uow:
        return list(uow.repositories.pairs.list())


def remove_pair(*, unit_of_work_factory: Callable[[], PairUnitOfWork], name: str) -> None:
    """Stop tracking a pair and drop its history."""

    with unit_of_work_factory() as uow:
        pair = _require_pair(uow, name)
        uow.repositories.history.remove_for_pair(pair.id)
        uow.repositories.pairs.remove(pair)
        uow.commit()
    log.info("Removed pair %s", name)


def pair_history(
    *,
    unit_of_work_factory: Callable[[], PairUnitOfWork],
    name: str,
) -> Sequence[ReconciliationRecord]:
    with unit_of_work_factory() as uow:
        pair = _require_pair(uow, name)
        return list(uow.repositories.history.for_pair(pair.id))


def edit_pair(
    *,
    unit_of_work_factory: Callable[[], PairUnitOfWork],
    name: str,
    side: Side,
    payload: str,
    expected_revision: int | None = None,
) -> TrackedPair:
    """Edit one side without reconciling the other.

    The cached consistency verdict is dropped, so the next
    ``check_pair_consistency`` asks the oracle again.
    """

    with unit_of_work_factory() as uow:
        pair = _require_pair(uow, name)
        pair.check_revision(expected_revision)
        pair.update(side, payload)
        uow.commit()
    log.info("Pair %s: %s edited without reconciliation (revision=%s)", name, side, pair.revision)
    return pair


async def check_pair_consistency(
    *,
    unit_of_work_factory: Callable[[], PairUnitOfWork],
    name: str,
    oracle: PairOracle,
) -> bool:
    """Return the pair's consistency, asking ``oracle`` only when nothing is cached."""

    with unit_of_work_factory() as uow:
        pair = _require_pair(uow, name)
        if pair.consistent is not None:
            return pair.consistent
        verdict = oracle(pair.source.payload, pair.destination.payload)
        if inspect.isawaitable(verdict):
            verdict = await verdict
        pair.record_consistency(bool(verdict))
        uow.commit()
        return bool(verdict)


async def apply_change(
    *,
    unit_of_work_factory: Callable[[], PairUnitOfWork],
    reconciler_for: ReconcilerFactory,
    name: str,
    side: Side,
    payload: str,
    expected_revision: int | None = None,
    cancel: asyncio.Event | None = None,
) -> PairChangeResult:
    """Edit ``side`` of the pair and reconcile the other side with minimal drift.

    Raises ``ReconciliationError`` when no consistent counterpart can be found;
    the attempt is recorded and the stored pair is left untouched.
    """

    other = side.other
    with unit_of_work_factory() as uow:
        pair = _require_pair(uow, name)
        pair.check_revision(expected_revision)

        changed_from = pair.side(side).payload
        reconciled_from = pair.side(other).payload
        if payload == changed_from:
            log.info("Pair %s: %s unchanged, nothing to reconcile", name, side)
            return PairChangeResult(
                pair_id=pair.id,
                name=pair.name,
                changed_side=side,
                outcome=ReconciliationOutcome.UNCHANGED,
                reconciled=reconciled_from,
                revision=pair.revision,
            )

        reconciler = reconciler_for(pair, side)
        log.info("Pair %s: %s changed, reconciling %s", name, side, other)
        try:
            result = await reconciler.reconcile_async(
                reconciled_from,
                changed_from,
                payload,
                cancel=cancel,
            )
        except ReconciliationError as exc:
            log.warning("Pair %s: could not reconcile %s: %s", name, other, exc)
            uow.repositories.history.add(
                ReconciliationRecord(
                    pair_id=pair.id,
                    pair_revision=pair.revision,
                    changed_side=side,
                    outcome=ReconciliationOutcome.FAILED,
                    changed_from=changed_from,
                    changed_to=payload,
                    reconciled_from=reconciled_from,
                    error=str(exc),
                )
            )
            uow.commit()
            raise

        if side is Side.DESTINATION:
            pair.realign(source=result.source, destination=payload)
        else:
            pair.realign(source=payload, destination=result.source)

        record = _success_record(
            pair,
            side=side,
            result=result,
            changed_from=changed_from,
            changed_to=payload,
            reconciled_from=reconciled_from,
        )
        uow.repositories.history.add(record)
        uow.commit()

    if record.needs_review:
        log.warning(
            "Pair %s: minimal diff %.4f exceeds tolerance; flagged for review",
            name,
            result.diff,
        )
    return PairChangeResult(
        pair_id=pair.id,
        name=pair.name,
        changed_side=side,
        outcome=record.outcome,
        reconciled=result.source,
        revision=pair.revision,
        diff=result.diff,
        needs_review=record.needs_review,
    )


def _success_record(
    pair: TrackedPair,
    *,
    side: Side,
    result: Reconciliation[str],
    changed_from: str,
    changed_to: str,
    reconciled_from: str,
) -> ReconciliationRecord:
    outcome = (
        ReconciliationOutcome.UNCHANGED if result.unchanged else ReconciliationOutcome.RECONCILED
    )
    return ReconciliationRecord(
        pair_id=pair.id,
        pair_revision=pair.revision,
        changed_side=side,
        outcome=outcome,
        changed_from=changed_from,
        changed_to=changed_to,
        reconciled_from=reconciled_from,
        reconciled_to=result.source,
        diff=result.diff,
        evaluated=len(result.evaluations),
        consistent_candidates=result.consistent_count,
        needs_review=result.within_tolerance is False,
    )


def _require_pair(uow: PairUnitOfWork, name: str) -> TrackedPair:
    pair = uow.repositories.pairs.get_by_name(name)
    if pair is None:
        raise PairNotFoundError(name)
    return pair
