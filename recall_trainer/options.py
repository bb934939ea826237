"""Multiple-choice option generation: one correct answer plus two decoys.

Fallback decoys are tried as "Not sure", "I don't remember", then "Unknown",
so a single-memory session shows the two explicit phrases.
"""
from __future__ import annotations

import random
from collections.abc import Sequence

from recall_trainer.models import UNKNOWN, MemoryRecord, QuestionKind

OPTION_COUNT = 3
DECOY_COUNT = OPTION_COUNT - 1

# "Unknown" goes last: it is also the placeholder for blank fields.
FALLBACK_DECOYS = ("Not sure", "I don't remember", UNKNOWN)


def _decoy_candidates(kind: QuestionKind, current: MemoryRecord, pool: Sequence[MemoryRecord]) -> list[str]:
    correct = current.value_for(kind)
    seen: dict[str, None] = {}
    for record in pool:
        if record.id == current.id:
            continue
        value = record.value_for(kind)
        if value and value != correct:
            seen.setdefault(value, None)
    return list(seen)


def generate_options(
    kind: QuestionKind,
    current: MemoryRecord,
    pool: Sequence[MemoryRecord],
    rng: random.Random | None = None,
) -> list[str]:
    """Build the shuffled answer choices for *current*.

    Decoys are sampled from the other records' values for the same field.
    When fewer than two distinct values exist the fixed fallback phrases
    fill in, so the result has at most three entries and may have fewer
    only if the fallbacks run out.
    """
    rng = rng or random.Random()
    correct = current.value_for(kind)

    candidates = _decoy_candidates(kind, current, pool)
    decoys = rng.sample(candidates, min(DECOY_COUNT, len(candidates)))

    for extra in FALLBACK_DECOYS:
        if len(decoys) >= DECOY_COUNT:
            break
        if extra != correct and extra not in decoys:
            decoys.append(extra)

    options = [correct] + decoys
    rng.shuffle(options)
    return options


def pad_options(options: list[str], size: int = OPTION_COUNT) -> list[str]:
    if len(options) >= size:
        return options[:size]
    return options + [UNKNOWN] * (size - len(options))
