"""Quiz session state machine.

One ``QuizState`` per process. Transitions are synchronous field updates
with no I/O; the orchestrator is the only caller and runs them on the
event loop that owns the session.
"""
from __future__ import annotations

import enum
import logging
import random
from collections.abc import Iterable

from recall_trainer.errors import EmptyDataset
from recall_trainer.models import MemoryRecord, QuestionKind
from recall_trainer.options import generate_options, pad_options

log = logging.getLogger("recall_trainer.quiz")

DEFAULT_SESSION_SIZE = 7


class SessionStatus(enum.Enum):
    NOT_LOADED = "not_loaded"
    ACTIVE = "active"
    COMPLETE = "complete"


class QuizState:
    def __init__(self, session_size: int = DEFAULT_SESSION_SIZE, rng: random.Random | None = None):
        self.session_size = session_size
        self.rng = rng or random.Random()
        self._pool: list[MemoryRecord] = []
        self.records: list[MemoryRecord] = []
        self.current_index = 0
        self.score = 0
        self.kind = QuestionKind.PERSON
        self.options: list[str] = []
        self.answered = False
        self.selected_option: str | None = None
        self.is_correct = False
        self.complete = False

    # ── Derived ───────────────────────────────────────────────────────────

    @property
    def has_data(self) -> bool:
        return bool(self.records)

    @property
    def total(self) -> int:
        return len(self.records)

    @property
    def status(self) -> SessionStatus:
        if not self.has_data:
            return SessionStatus.NOT_LOADED
        if self.complete:
            return SessionStatus.COMPLETE
        return SessionStatus.ACTIVE

    @property
    def current_record(self) -> MemoryRecord:
        return self.records[self.current_index]

    @property
    def correct_answer(self) -> str:
        return self.current_record.value_for(self.kind)

    @property
    def question_text(self) -> str:
        return self.kind.prompt

    @property
    def spoken_prompt(self) -> str:
        return self.kind.spoken_prompt

    @property
    def is_last(self) -> bool:
        return self.current_index == self.total - 1

    # ── Transitions ───────────────────────────────────────────────────────

    def load(self, records: Iterable[MemoryRecord]) -> None:
        """Draw the session subset and enter the first question."""
        eligible = [r for r in records if r.asset_url.strip()]
        if not eligible:
            raise EmptyDataset()
        self._pool = eligible
        self.records = self.rng.sample(eligible, min(self.session_size, len(eligible)))
        log.info("Loaded %d of %d memories", len(self.records), len(eligible))
        self._reset()

    def select(self, option: str) -> bool:
        if self.answered or not self.has_data or self.complete:
            return self.is_correct
        self.selected_option = option
        self.is_correct = option == self.correct_answer
        if self.is_correct:
            self.score += 1
        self.answered = True
        return self.is_correct

    def next(self) -> None:
        if not self.has_data or self.complete:
            return
        if self.is_last:
            self.complete = True
            log.info("Session complete: %d/%d", self.score, self.total)
            return
        self.current_index += 1
        self._clear_answer()
        self._regenerate()

    def restart(self, reshuffle: bool = False) -> None:
        if not self.has_data:
            return
        if reshuffle:
            self.records = self.rng.sample(self._pool, min(self.session_size, len(self._pool)))
        self._reset()

    # ── Internals ─────────────────────────────────────────────────────────

    def _reset(self) -> None:
        self.current_index = 0
        self.score = 0
        self.complete = False
        self._clear_answer()
        self._regenerate()

    def _clear_answer(self) -> None:
        self.answered = False
        self.selected_option = None
        self.is_correct = False

    def _regenerate(self) -> None:
        self.kind = self.rng.choice(list(QuestionKind))
        options = generate_options(self.kind, self.current_record, self.records, self.rng)
        self.options = pad_options(options)

    def to_dict(self) -> dict:
        snapshot = {
            "status": self.status.value,
            "score": self.score,
            "total": self.total,
            "current_index": self.current_index,
        }
        if self.status is SessionStatus.ACTIVE:
            record = self.current_record
            snapshot.update({
                "question_kind": self.kind.value,
                "question": self.question_text,
                "context": self.kind.context_lines(record),
                "options": list(self.options),
                "answered": self.answered,
                "selected_option": self.selected_option,
                "is_correct": self.is_correct,
                "correct_answer": self.correct_answer if self.answered else None,
                "is_last": self.is_last,
            })
        return snapshot
