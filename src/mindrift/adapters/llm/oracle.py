"""Consistency oracle backed by a chat model."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .prompts import build_judgment_messages
from .schema import ConsistencyVerdict

if TYPE_CHECKING:
    from .client import ChatClient

log = getLogger(__name__)


@dataclass(slots=True)
class LlmConsistencyOracle:
    """Yes/no correspondence judgment, sampled at temperature 0."""

    chat: ChatClient
    source_label: str = "source"
    destination_label: str = "destination"

    async def __call__(self, source: str, destination: str, /) -> bool:
        messages = build_judgment_messages(
            source,
            destination,
            source_label=self.source_label,
            destination_label=self.destination_label,
        )
        verdict = await self.chat.complete_model(messages, ConsistencyVerdict, temperature=0.0)
        if not verdict.consistent:
            log.debug("Model judged pair inconsistent: %s", verdict.reason)
        return verdict.consistent
