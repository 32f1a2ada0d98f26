"""Tests for snl_session.snapshot (dump + tolerant restore)."""

import json

from snl_session.rng import Mulberry32
from snl_session.session import PendingRoll, SessionEngine
from snl_session.snapshot import dump_snapshot, engine_from_snapshot, restore_snapshot
from snl_session.tasks import TaskFilter, TaskRecord

TASKS = [
    TaskRecord(id="a", prompt="Say something", focus="Chat"),
    TaskRecord(id="b", prompt="Fix: she have", target="she has", type="error_correction", focus="Grammar"),
]


def _played_engine() -> SessionEngine:
    engine = SessionEngine(TASKS, Mulberry32(11), task_filter=TaskFilter(selected_levels=["B1"]))
    engine.task_filter = TaskFilter(pack="", selected_packs=["Chat", "Grammar"])
    engine.set_board_size(60)
    engine.set_player_count(3)
    engine.set_player_name(1, "Berta")
    for _ in range(4):
        engine.roll_and_draw()
        engine.apply_move(True)
    engine.roll_and_draw()
    engine.toggle_answer()
    return engine


# ── dump ─────────────────────────────────────────────────────────────

def test_dump_is_json_serialisable():
    snap = dump_snapshot(_played_engine())
    decoded = json.loads(json.dumps(snap))
    assert decoded["board_size"] == 60
    assert decoded["num_players"] == 3
    assert decoded["players"][1]["name"] == "Berta"
    assert decoded["pending_roll"]["task_id"] in {"a", "b"}
    assert len(decoded["history"]) == 5
    assert decoded["show_answer"] is True
    assert "saved_at" in decoded


def test_dump_restore_preserves_state():
    engine = _played_engine()
    raw = json.loads(json.dumps(dump_snapshot(engine)))
    snap = restore_snapshot(raw)

    assert snap.state.board_size == engine.state.board_size
    assert snap.state.players == engine.state.players
    assert snap.state.turn_index == engine.state.turn_index
    assert snap.state.pending_roll == engine.state.pending_roll
    assert snap.state.history == engine.state.history
    assert snap.state.dice == engine.state.dice
    assert snap.task_filter == engine.task_filter
    assert snap.show_answer is True


# ── tolerant restore ─────────────────────────────────────────────────

def test_restore_none_gives_defaults():
    snap = restore_snapshot(None)
    assert snap.state.board_size == 100
    assert [p.name for p in snap.state.players] == ["P1", "P2"]
    assert snap.state.pending_roll is None


def test_restore_non_dict_gives_defaults():
    assert restore_snapshot(["not", "a", "dict"]).state.board_size == 100
    assert restore_snapshot("garbage").state.players[0].name == "P1"


def test_missing_players_keeps_other_fields():
    snap = restore_snapshot({"board_size": 70, "dice": 4, "show_answer": True})
    assert snap.state.board_size == 70
    assert snap.state.dice == 4
    assert snap.show_answer is True
    assert [(p.name, p.position) for p in snap.state.players] == [("P1", 0), ("P2", 0)]


def test_missing_players_uses_num_players():
    snap = restore_snapshot({"num_players": 4})
    assert len(snap.state.players) == 4


def test_board_size_clamped():
    assert restore_snapshot({"board_size": 12}).state.board_size == 40
    assert restore_snapshot({"board_size": 1000}).state.board_size == 100


def test_wrongly_typed_fields_fall_back_individually():
    snap = restore_snapshot({
        "board_size": "eighty",
        "dice": 9,
        "turn_index": True,
        "players": [{"name": "Ona", "position": 12}, "bogus", {"name": 5, "position": "x"}],
        "pack": 3,
        "selected_packs": "Chat",
        "selected_levels": ["B1", 2],
        "show_answer": "yes",
        "pending_roll": {"roll_value": 7, "task_id": "a"},
        "history": "none",
    })
    assert snap.state.board_size == 100
    assert snap.state.dice == 1
    assert snap.state.turn_index == 0
    assert [(p.name, p.position) for p in snap.state.players] == [("Ona", 12), ("P2", 0), ("P3", 0)]
    assert snap.task_filter.pack == ""
    assert snap.task_filter.selected_packs == []
    assert snap.task_filter.selected_levels == ["B1"]
    assert snap.show_answer is False
    assert snap.state.pending_roll is None
    assert snap.state.history == []


def test_positions_clamped_to_board():
    snap = restore_snapshot({"board_size": 50, "players": [{"name": "A", "position": 80}]})
    assert snap.state.players[0].position == 50


def test_turn_index_out_of_range_resets():
    snap = restore_snapshot({"turn_index": 5, "players": [{"name": "A"}, {"name": "B"}]})
    assert snap.state.turn_index == 0


def test_bad_history_entries_are_dropped():
    snap = restore_snapshot({"history": [
        {"task": {"id": "a", "prompt": "Say something"}, "roll_value": 3},
        {"task": {"id": "x"}, "roll_value": 3},
        {"task": {"id": "a", "prompt": "p"}, "roll_value": 0},
        "junk",
    ]})
    assert len(snap.state.history) == 1
    assert snap.state.history[0].roll_value == 3


def test_valid_pending_roll_restored():
    snap = restore_snapshot({"pending_roll": {"roll_value": 2, "task_id": "b"}})
    assert snap.state.pending_roll == PendingRoll(roll_value=2, task_id="b")


def test_engine_from_snapshot_resumes_play():
    engine = _played_engine()
    raw = json.loads(json.dumps(dump_snapshot(engine)))
    resumed = engine_from_snapshot(raw, TASKS, Mulberry32(5))
    assert resumed.show_answer is True
    assert resumed.jumps == engine.jumps
    assert resumed.apply_move(False).ok
    assert resumed.roll_and_draw().ok
