from __future__ import annotations

import enum
import uuid
from collections.abc import Iterable
from dataclasses import dataclass

UNKNOWN = "Unknown"


class QuestionKind(enum.Enum):
    PERSON = "person"
    LOCATION = "location"
    EVENT = "event"

    @property
    def prompt(self) -> str:
        return _PROMPTS[self]

    @property
    def spoken_prompt(self) -> str:
        return _SPOKEN_PROMPTS[self]

    def context_lines(self, record: MemoryRecord) -> list[str]:
        """The two fields the question is *not* asking about, for display."""
        lines = {
            QuestionKind.PERSON: f"Person: {record.person_name}",
            QuestionKind.LOCATION: f"Location: {record.location}",
            QuestionKind.EVENT: f"Event: {record.event}",
        }
        return [line for kind, line in lines.items() if kind is not self]


_PROMPTS = {
    QuestionKind.PERSON: "Who is in this photo?",
    QuestionKind.LOCATION: "Where was this photo taken?",
    QuestionKind.EVENT: "What was happening in this photo?",
}

_SPOKEN_PROMPTS = {
    QuestionKind.PERSON: "Do you remember who is in this picture?",
    QuestionKind.LOCATION: "Do you remember where this picture was taken?",
    QuestionKind.EVENT: "Do you remember what was happening in this picture?",
}


@dataclass(frozen=True)
class MemoryRecord:
    id: str
    person_name: str
    location: str
    event: str
    asset_url: str
    voice_id: str | None = None

    def value_for(self, kind: QuestionKind) -> str:
        if kind is QuestionKind.PERSON:
            return self.person_name
        if kind is QuestionKind.LOCATION:
            return self.location
        return self.event


def _clean(value) -> str:
    return str(value).strip() if value is not None else ""


def records_from_rows(rows: Iterable[dict]) -> list[MemoryRecord]:
    """Normalize raw memory rows into records.

    Rows without an image URL are dropped; blank descriptive fields become
    ``"Unknown"`` and a blank voice id becomes ``None``.
    """
    records: list[MemoryRecord] = []
    for row in rows:
        url = _clean(row.get("image_url"))
        if not url:
            continue
        voice = _clean(row.get("voice_id"))
        records.append(MemoryRecord(
            id=_clean(row.get("id")) or str(uuid.uuid4()),
            person_name=_clean(row.get("person_name")) or UNKNOWN,
            location=_clean(row.get("location")) or UNKNOWN,
            event=_clean(row.get("event")) or UNKNOWN,
            asset_url=url,
            voice_id=voice or None,
        ))
    return records
