"""Element value object: one side of a tracked pair."""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Element:
    """Opaque payload plus an optional domain tag.

    The payload is text: prose, code, or a reference to a binary artifact such
    as an image path. The tag names the domain (``"en"``, ``"ja"``,
    ``"python"``) and is used only for labelling, never for comparison logic.
    """

    payload: str
    domain: str | None = None

    def with_payload(self, payload: str) -> Element:
        return replace(self, payload=payload)

    def __composite_values__(self) -> tuple[str, str | None]:
        """For SQLAlchemy composite columns (adapter-side convenience)."""
        return (self.payload, self.domain)
