"""Prompt builders for the language model capabilities.

The generation prompt asks for the destination-side delta to be carried over
to the source, not for a fresh translation. Retranslating wholesale is what
produces drift on the untouched parts.
"""

from __future__ import annotations

import json

from .schema import ChatMessage

GENERATION_SYSTEM_PROMPT = """\
You maintain two correlated artifacts: a {source_label} artifact (the source) \
and a {destination_label} artifact (the destination). They were consistent \
with each other. The destination has just been edited.

Update the source so that it is consistent with the edited destination while \
changing as little of the source as possible:
1. Identify exactly what changed between the old and the new destination.
2. Apply only the corresponding change to the old source.
3. Keep every unaffected word, sentence order, formatting and punctuation of \
the old source. Do not retranslate or rephrase parts that did not change.

Reply with a JSON object {{"candidates": [...]}} holding up to {count} \
alternative updated sources, the most conservative edit first."""

JUDGMENT_SYSTEM_PROMPT = """\
You check whether a {source_label} artifact (the source) and a \
{destination_label} artifact (the destination) correspond: they must carry \
the same meaning and details, with nothing added, dropped or contradicted. \
Style differences that do not change meaning are acceptable.

Reply with a JSON object {{"consistent": true|false, "reason": "..."}}."""


def build_generation_messages(
    source: str,
    destination: str,
    new_destination: str,
    *,
    source_label: str,
    destination_label: str,
    count: int,
) -> list[ChatMessage]:
    system = GENERATION_SYSTEM_PROMPT.format(
        source_label=source_label,
        destination_label=destination_label,
        count=count,
    )
    user = json.dumps(
        {
            "old_source": source,
            "old_destination": destination,
            "new_destination": new_destination,
        },
        ensure_ascii=False,
        indent=2,
    )
    return [
        ChatMessage(role="system", content=system),
        ChatMessage(role="user", content=user),
    ]


def build_judgment_messages(
    source: str,
    destination: str,
    *,
    source_label: str,
    destination_label: str,
) -> list[ChatMessage]:
    system = JUDGMENT_SYSTEM_PROMPT.format(
        source_label=source_label,
        destination_label=destination_label,
    )
    user = json.dumps(
        {"source": source, "destination": destination},
        ensure_ascii=False,
        indent=2,
    )
    return [
        ChatMessage(role="system", content=system),
        ChatMessage(role="user", content=user),
    ]
