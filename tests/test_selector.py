"""Tests for snl_session.selector (weighted pick + task selection)."""

import pytest

from snl_session.rng import Mulberry32
from snl_session.selector import (
    DrawEvent,
    candidate_tasks,
    select_task,
    task_weight,
    type_counts,
    weighted_pick,
)
from snl_session.tasks import ERROR_CORRECTION, SPEAKING, TRANSLATE_CA_EN, TaskRecord


class ScriptedRng:
    """Deterministic RNG for testing: returns a fixed list of values."""

    def __init__(self, values: list[float]):
        self.values = list(values)
        self.calls = 0

    def next(self) -> float:
        self.calls += 1
        return self.values.pop(0)


def _task(tid: str, ttype: str = SPEAKING) -> TaskRecord:
    return TaskRecord(id=tid, prompt=f"prompt {tid}", type=ttype)


def _history(*tasks: TaskRecord) -> list[DrawEvent]:
    return [DrawEvent(task=t, roll_value=3) for t in tasks]


# ── weighted_pick ────────────────────────────────────────────────────

@pytest.mark.parametrize("value,expected", [(0.0, "a"), (0.3, "b"), (0.6, "b"), (0.9, "c")])
def test_weighted_pick_walks_cumulative_weights(value, expected):
    weights = {"a": 1, "b": 2, "c": 1}
    assert weighted_pick(ScriptedRng([value]), ["a", "b", "c"], weights.get) == expected


def test_weighted_pick_zero_total_falls_back_to_index():
    assert weighted_pick(ScriptedRng([0.5]), ["a", "b", "c"], lambda x: 0) == "b"


def test_weighted_pick_clamps_negative_weights():
    weights = {"a": -5, "b": 1}
    assert weighted_pick(ScriptedRng([0.5]), ["a", "b"], weights.get) == "b"


def test_weighted_pick_consumes_one_value():
    rng = ScriptedRng([0.2, 0.7])
    weighted_pick(rng, ["a", "b"], lambda x: 1)
    assert rng.calls == 1


# ── weights ──────────────────────────────────────────────────────────

def test_base_weights():
    assert task_weight(_task("s"), {}, 3) == 3
    assert task_weight(_task("e", ERROR_CORRECTION), {}, 3) == 2
    assert task_weight(_task("t", TRANSLATE_CA_EN), {}, 3) == 2
    assert task_weight(_task("u", "role_play"), {}, 3) == 1


def test_dice_spice():
    assert task_weight(_task("s"), {}, 6) == pytest.approx(4.2)
    assert task_weight(_task("e", ERROR_CORRECTION), {}, 1) == pytest.approx(2.8)
    # Spice only matches its own type
    assert task_weight(_task("s"), {}, 1) == 3
    assert task_weight(_task("e", ERROR_CORRECTION), {}, 6) == 2


def test_penalty_decreases_with_repetition_but_never_hits_zero():
    weights = [task_weight(_task("s"), {SPEAKING: n}, 3) for n in range(5)]
    assert all(a > b for a, b in zip(weights, weights[1:]))
    assert all(w > 0 for w in weights)


def test_four_recent_speaking_weigh_less_than_unseen():
    history = _history(*(_task(f"h{i}") for i in range(4)))
    counts = type_counts(history)
    assert counts == {SPEAKING: 4}
    repeated = task_weight(_task("s"), counts, 3)
    assert repeated < task_weight(_task("s"), {}, 3)
    assert repeated < task_weight(_task("t", TRANSLATE_CA_EN), counts, 3)


def test_type_counts_only_look_at_four_most_recent():
    history = _history(
        _task("1", ERROR_CORRECTION), _task("2"), _task("3"), _task("4"),
        _task("5", TRANSLATE_CA_EN), _task("6", TRANSLATE_CA_EN),
    )
    assert type_counts(history) == {ERROR_CORRECTION: 1, SPEAKING: 3}


def test_custom_weight_table():
    weights = {SPEAKING: 10}
    assert task_weight(_task("s"), {}, 3, weights) == 10
    assert task_weight(_task("e", ERROR_CORRECTION), {}, 3, weights) == 1


# ── candidates ───────────────────────────────────────────────────────

def test_candidates_skip_ten_most_recent_ids():
    pool = [_task(str(i)) for i in range(12)]
    history = _history(*pool[:10])
    assert [t.id for t in candidate_tasks(pool, history)] == ["10", "11"]


def test_candidates_fall_back_to_pool():
    pool = [_task("a"), _task("b")]
    history = _history(*pool)
    assert candidate_tasks(pool, history) == pool


def test_candidates_only_ten_deep():
    pool = [_task(str(i)) for i in range(11)]
    history = _history(*reversed(pool))  # task "0" is 11th most recent
    assert [t.id for t in candidate_tasks(pool, history)] == ["0"]


# ── select_task ──────────────────────────────────────────────────────

def test_select_empty_pool_returns_none_without_consuming():
    rng = ScriptedRng([])
    assert select_task([], [], 3, rng) is None
    assert rng.calls == 0


def test_select_uses_one_draw():
    rng = ScriptedRng([0.0])
    picked = select_task([_task("a"), _task("b")], [], 3, rng)
    assert picked.id == "a"
    assert rng.calls == 1


def test_select_never_returns_task_outside_pool():
    pool = [_task("s1"), _task("e1", ERROR_CORRECTION), _task("t1", TRANSLATE_CA_EN)]
    rng = Mulberry32(99)
    history: list[DrawEvent] = []
    for i in range(500):
        picked = select_task(pool, history, 1 + i % 6, rng)
        assert picked in pool
        history = [DrawEvent(task=picked, roll_value=1 + i % 6), *history][:50]


def test_single_type_pool_never_starves():
    pool = [_task("only")]
    history = _history(*([pool[0]] * 10))
    rng = Mulberry32(5)
    for _ in range(50):
        assert select_task(pool, history, 6, rng) == pool[0]


def test_penalty_shifts_pick_towards_other_type():
    """With 4 recent speaking draws, the same rng value lands on error_correction."""
    pool = [_task("s"), _task("e", ERROR_CORRECTION)]
    # Unpenalised: weights 3, 2 → value 0.5 * 5 = 2.5 picks speaking
    assert select_task(pool, [], 3, ScriptedRng([0.5])).id == "s"
    # Penalised: weights 0.6, 2 → value 0.5 * 2.6 = 1.3 picks error_correction
    history = _history(*(_task(f"h{i}") for i in range(4)))
    assert select_task(pool, history, 3, ScriptedRng([0.5])).id == "e"


def test_zero_weight_table_falls_back_to_uniform():
    pool = [_task("a"), _task("b"), _task("c")]
    picked = select_task(pool, [], 3, ScriptedRng([0.7]), type_weights={SPEAKING: 0})
    assert picked.id == "c"
