from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING

import httpx
import pytest

from mindrift import app
from mindrift.adapters.llm import ChatClient
from mindrift.domain.model import ReconciliationOutcome, Side
from mindrift.domain.reconciliation import NoConsistentCandidateError, ReconciliationCancelledError
from tests.helpers.llm import completion, make_client_factory

if TYPE_CHECKING:
    from collections.abc import Callable

    from mindrift.adapters.sqlalchemy.unit_of_work import SqlAlchemyPairUnitOfWork
    from mindrift.config import LlmConfig, ReconcileConfig

CONSISTENT = {
    ("Hello world", "Hallo Welt"),
    ("Hello, dear world", "Hallo, liebe Welt"),
    ("Goodbye world", "Auf Wiedersehen Welt"),
}


class FakeModel:
    """Answers generation prompts from a script and judges against ``CONSISTENT``."""

    def __init__(self, candidates: list[str]) -> None:
        self.candidates = candidates
        self.system_prompts: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        messages = json.loads(request.content)["messages"]
        system = messages[0]["content"]
        user = json.loads(messages[1]["content"])
        self.system_prompts.append(system)
        if "candidates" in system:
            return completion({"candidates": self.candidates})
        pair = (user["source"], user["destination"])
        return completion({"consistent": pair in CONSISTENT})

    def chat_factory(self) -> Callable[[LlmConfig], ChatClient]:
        def factory(config: LlmConfig) -> ChatClient:
            return ChatClient(config, client_factory=make_client_factory(self))

        return factory


def test_reconcile_texts_uses_llm_capabilities(
    llm_config: LlmConfig,
    reconcile_config: ReconcileConfig,
) -> None:
    model = FakeModel(["Hello dear world", "Hello, dear world"])

    result = app.reconcile_texts(
        "Hello world",
        "Hallo Welt",
        "Hallo, liebe Welt",
        source_label="English",
        destination_label="German",
        llm_config=llm_config,
        reconcile_config=reconcile_config,
        chat_factory=model.chat_factory(),
    )

    assert result.source == "Hello, dear world"
    assert result.consistent_count == 1
    assert "English" in model.system_prompts[0]


def test_reconcile_texts_rejects_unknown_metric(
    llm_config: LlmConfig,
    reconcile_config: ReconcileConfig,
) -> None:
    with pytest.raises(ValueError, match="metric"):
        app.reconcile_texts(
            "a",
            "b",
            "c",
            metric="bleu",
            llm_config=llm_config,
            reconcile_config=reconcile_config,
            chat_factory=FakeModel([]).chat_factory(),
        )


def test_pair_lifecycle(
    sqlite_unit_of_work: Callable[[], SqlAlchemyPairUnitOfWork],
    llm_config: LlmConfig,
    reconcile_config: ReconcileConfig,
) -> None:
    app.track(
        name="greeting",
        source="Hello world",
        destination="Hallo Welt",
        source_domain="English",
        destination_domain="German",
        unit_of_work_factory=sqlite_unit_of_work,
    )

    forward = FakeModel(["Hello, dear world"])
    changed = app.change_destination(
        name="greeting",
        payload="Hallo, liebe Welt",
        unit_of_work_factory=sqlite_unit_of_work,
        llm_config=llm_config,
        reconcile_config=reconcile_config,
        chat_factory=forward.chat_factory(),
    )
    assert changed.outcome is ReconciliationOutcome.RECONCILED
    assert changed.reconciled == "Hello, dear world"

    backward = FakeModel(["Auf Wiedersehen Welt"])
    changed = app.change_source(
        name="greeting",
        payload="Goodbye world",
        expected_revision=changed.revision,
        unit_of_work_factory=sqlite_unit_of_work,
        llm_config=llm_config,
        reconcile_config=reconcile_config,
        chat_factory=backward.chat_factory(),
    )
    assert changed.reconciled == "Auf Wiedersehen Welt"
    generation_prompt = next(p for p in backward.system_prompts if "candidates" in p)
    assert generation_prompt.index("German") < generation_prompt.index("English")

    pair = app.show(name="greeting", unit_of_work_factory=sqlite_unit_of_work)
    assert (pair.source.payload, pair.destination.payload) == (
        "Goodbye world",
        "Auf Wiedersehen Welt",
    )
    assert pair.revision == 3
    assert len(app.history(name="greeting", unit_of_work_factory=sqlite_unit_of_work)) == 2

    app.remove(name="greeting", unit_of_work_factory=sqlite_unit_of_work)
    assert app.list_tracked(unit_of_work_factory=sqlite_unit_of_work) == []


def test_failed_change_is_reported(
    sqlite_unit_of_work: Callable[[], SqlAlchemyPairUnitOfWork],
    llm_config: LlmConfig,
    reconcile_config: ReconcileConfig,
) -> None:
    app.track(
        name="greeting",
        source="Hello world",
        destination="Hallo Welt",
        unit_of_work_factory=sqlite_unit_of_work,
    )

    with pytest.raises(NoConsistentCandidateError):
        app.change_destination(
            name="greeting",
            payload="Servus Welt",
            unit_of_work_factory=sqlite_unit_of_work,
            llm_config=llm_config,
            reconcile_config=reconcile_config,
            chat_factory=FakeModel(["Hi world"]).chat_factory(),
        )

    records = app.history(name="greeting", unit_of_work_factory=sqlite_unit_of_work)
    assert [record.outcome for record in records] == [ReconciliationOutcome.FAILED]


def test_edit_then_check_judges_once(
    sqlite_unit_of_work: Callable[[], SqlAlchemyPairUnitOfWork],
    llm_config: LlmConfig,
) -> None:
    app.track(
        name="greeting",
        source="Hello world",
        destination="Hallo Welt",
        unit_of_work_factory=sqlite_unit_of_work,
    )
    assert app.check(name="greeting", unit_of_work_factory=sqlite_unit_of_work) is True

    edited = app.edit(
        name="greeting",
        side=Side.DESTINATION,
        payload="Servus Welt",
        unit_of_work_factory=sqlite_unit_of_work,
    )
    assert edited.consistent is None

    model = FakeModel([])
    for _ in range(2):
        consistent = app.check(
            name="greeting",
            unit_of_work_factory=sqlite_unit_of_work,
            llm_config=llm_config,
            chat_factory=model.chat_factory(),
        )
        assert consistent is False

    assert len(model.system_prompts) == 1
    assert app.history(name="greeting", unit_of_work_factory=sqlite_unit_of_work) == []


def test_cancelled_change_is_recorded_as_failure(
    sqlite_unit_of_work: Callable[[], SqlAlchemyPairUnitOfWork],
    llm_config: LlmConfig,
    reconcile_config: ReconcileConfig,
) -> None:
    app.track(
        name="greeting",
        source="Hello world",
        destination="Hallo Welt",
        unit_of_work_factory=sqlite_unit_of_work,
    )
    cancel = asyncio.Event()
    cancel.set()

    with pytest.raises(ReconciliationCancelledError):
        app.change_destination(
            name="greeting",
            payload="Hallo, liebe Welt",
            unit_of_work_factory=sqlite_unit_of_work,
            llm_config=llm_config,
            reconcile_config=reconcile_config,
            chat_factory=FakeModel(["Hello, dear world"]).chat_factory(),
            cancel=cancel,
        )

    pair = app.show(name="greeting", unit_of_work_factory=sqlite_unit_of_work)
    assert pair.destination.payload == "Hallo Welt"
    assert pair.revision == 1
    records = app.history(name="greeting", unit_of_work_factory=sqlite_unit_of_work)
    assert [record.outcome for record in records] == [ReconciliationOutcome.FAILED]
