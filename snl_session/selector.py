"""Weighted task selection balanced over recent draws."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from snl_session.config import DEFAULT_TYPE_WEIGHTS, RECENT_ID_WINDOW, RECENT_TYPE_WINDOW
from snl_session.rng import RandomSource
from snl_session.tasks import ERROR_CORRECTION, SPEAKING, TaskRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

SPICE = 1.4


@dataclass(frozen=True)
class DrawEvent:
    """One draw: the task shown and the die that came with it."""

    task: TaskRecord
    roll_value: int

    def to_dict(self) -> dict:
        return {"task": self.task.to_dict(), "roll_value": self.roll_value}


def weighted_pick(
    rng: RandomSource, items: Sequence[T], weight_fn: Callable[[T], float],
) -> T:
    """Pick one of *items* with probability proportional to its weight.

    Negative weights count as zero. If every weight is zero, picks
    uniformly by index. Consumes exactly one ``rng.next()``.
    """
    weights = [max(0.0, weight_fn(x) or 0.0) for x in items]
    total = sum(weights)
    if total <= 0:
        return items[int(rng.next() * len(items))]

    roll = rng.next() * total
    for item, w in zip(items, weights):
        roll -= w
        if roll <= 0:
            return item
    return items[-1]


def type_counts(history: Sequence[DrawEvent], window: int = RECENT_TYPE_WINDOW) -> dict[str, int]:
    counts: dict[str, int] = {}
    for event in history[:window]:
        counts[event.task.type] = counts.get(event.task.type, 0) + 1
    return counts


def task_weight(
    task: TaskRecord,
    counts: dict[str, int],
    roll_value: int,
    type_weights: dict[str, float] | None = None,
) -> float:
    """base(type) × 1/(1 + recent count) × dice spice."""
    weights = DEFAULT_TYPE_WEIGHTS if type_weights is None else type_weights
    base = weights.get(task.type, 1)
    penalty = 1 / (1 + counts.get(task.type, 0))
    if roll_value == 6 and task.type == SPEAKING:
        spice = SPICE
    elif roll_value == 1 and task.type == ERROR_CORRECTION:
        spice = SPICE
    else:
        spice = 1.0
    return base * penalty * spice


def candidate_tasks(
    pool: Sequence[TaskRecord], history: Sequence[DrawEvent], window: int = RECENT_ID_WINDOW,
) -> list[TaskRecord]:
    """Pool minus recently drawn ids; the whole pool if that leaves nothing."""
    recent_ids = {event.task.id for event in history[:window]}
    candidates = [t for t in pool if t.id not in recent_ids]
    return candidates or list(pool)


def select_task(
    pool: Sequence[TaskRecord],
    history: Sequence[DrawEvent],
    roll_value: int,
    rng: RandomSource,
    type_weights: dict[str, float] | None = None,
) -> TaskRecord | None:
    """Draw the next task for a roll of *roll_value*.

    Returns ``None`` for an empty pool without touching *rng*.
    """
    if not pool:
        return None

    counts = type_counts(history)
    candidates = candidate_tasks(pool, history)
    picked = weighted_pick(
        rng, candidates,
        lambda t: task_weight(t, counts, roll_value, type_weights),
    )
    logger.debug(
        "roll %d: picked %s (%s) from %d candidates",
        roll_value, picked.id, picked.type, len(candidates),
    )
    return picked
