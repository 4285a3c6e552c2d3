"""Candidate generator backed by a chat model."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .prompts import build_generation_messages
from .schema import CandidateList

if TYPE_CHECKING:
    from .client import ChatClient

log = getLogger(__name__)


@dataclass(slots=True)
class LlmCandidateGenerator:
    """Ask the model to carry the destination delta over to the source.

    Labels name the artifact domains in the prompt (``"English"``,
    ``"Japanese"``, ``"Python code"``). To repair the destination after a
    source edit, build a second generator with the labels swapped.
    """

    chat: ChatClient
    source_label: str = "source"
    destination_label: str = "destination"
    count: int = 3

    async def __call__(self, source: str, destination: str, new_destination: str, /) -> list[str]:
        messages = build_generation_messages(
            source,
            destination,
            new_destination,
            source_label=self.source_label,
            destination_label=self.destination_label,
            count=self.count,
        )
        answer = await self.chat.complete_model(messages, CandidateList)
        candidates = answer.candidates[: self.count]
        log.debug("Model proposed %s candidates", len(candidates))
        return candidates
