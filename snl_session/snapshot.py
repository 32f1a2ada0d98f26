"""Save and restore a session as a plain JSON-able dict.

Restoring is tolerant: every field is read on its own, and a missing or
malformed field falls back to its default without affecting the others.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from snl_session.board import clamp, clamp_board_size
from snl_session.config import DEFAULT_BOARD_SIZE, HISTORY_CAPACITY, MAX_NAME_LENGTH, MAX_PLAYERS, MIN_PLAYERS
from snl_session.rng import RandomSource
from snl_session.selector import DrawEvent
from snl_session.session import PendingRoll, Player, SessionEngine, SessionState, default_name, default_players
from snl_session.tasks import TaskFilter, TaskRecord

logger = logging.getLogger(__name__)


@dataclass
class Snapshot:
    """Everything needed to pick a session back up."""

    state: SessionState = field(default_factory=SessionState)
    task_filter: TaskFilter = field(default_factory=TaskFilter)
    show_answer: bool = False


def dump_snapshot(engine: SessionEngine) -> dict[str, Any]:
    state = engine.state
    f = engine.task_filter
    pending = state.pending_roll
    return {
        "pack": f.pack,
        "selected_packs": list(f.selected_packs),
        "selected_levels": list(f.selected_levels),
        "board_size": state.board_size,
        "dice": state.dice,
        "turn_index": state.turn_index,
        "num_players": len(state.players),
        "players": [{"name": p.name, "position": p.position} for p in state.players],
        "pending_roll": (
            {"roll_value": pending.roll_value, "task_id": pending.task_id} if pending else None
        ),
        "history": [e.to_dict() for e in state.history],
        "show_answer": engine.show_answer,
        "saved_at": int(time.time() * 1000),
    }


# ── Field readers ────────────────────────────────────────────────────

def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _str_list(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [v for v in value if isinstance(v, str)]


def _read_players(value: Any, board_size: int) -> list[Player] | None:
    if not isinstance(value, list) or not value:
        return None
    players = []
    for i, raw in enumerate(value[:MAX_PLAYERS]):
        if not isinstance(raw, dict):
            players.append(Player(name=default_name(i)))
            continue
        name = raw.get("name")
        pos = raw.get("position")
        players.append(Player(
            name=name[:MAX_NAME_LENGTH] if isinstance(name, str) and name else default_name(i),
            position=clamp(pos, 0, board_size) if _is_int(pos) else 0,
        ))
    return players


def _read_pending(value: Any) -> PendingRoll | None:
    if not isinstance(value, dict):
        return None
    roll = value.get("roll_value")
    task_id = value.get("task_id")
    if not _is_int(roll) or not 1 <= roll <= 6 or not isinstance(task_id, str):
        return None
    return PendingRoll(roll_value=roll, task_id=task_id)


def _read_history(value: Any) -> list[DrawEvent] | None:
    if not isinstance(value, list):
        return None
    events = []
    for raw in value[:HISTORY_CAPACITY]:
        if not isinstance(raw, dict) or not isinstance(raw.get("task"), dict):
            continue
        roll = raw.get("roll_value")
        if not _is_int(roll) or not 1 <= roll <= 6:
            continue
        try:
            task = TaskRecord.from_dict(raw["task"])
        except ValueError:
            continue
        events.append(DrawEvent(task=task, roll_value=roll))
    return events


def restore_snapshot(raw: Any) -> Snapshot:
    """Rebuild a :class:`Snapshot` from whatever was stored.

    Never raises. ``raw`` may be ``None`` or not even a dict.
    """
    snap = Snapshot()
    if not isinstance(raw, dict):
        if raw is not None:
            logger.warning("ignoring snapshot of type %s", type(raw).__name__)
        return snap

    state = snap.state
    bad: list[str] = []

    def note(name: str) -> None:
        if name in raw:
            bad.append(name)

    # board_size first: positions are clamped against it
    if _is_int(raw.get("board_size")):
        state.board_size = clamp_board_size(raw["board_size"])
    else:
        state.board_size = DEFAULT_BOARD_SIZE
        note("board_size")

    f = snap.task_filter
    if isinstance(raw.get("pack"), str):
        f.pack = raw["pack"]
    else:
        note("pack")

    for key in ("selected_packs", "selected_levels"):
        values = _str_list(raw.get(key))
        if values is not None:
            setattr(f, key, values)
        else:
            note(key)

    if _is_int(raw.get("dice")) and 1 <= raw["dice"] <= 6:
        state.dice = raw["dice"]
    else:
        note("dice")

    players = _read_players(raw.get("players"), state.board_size)
    if players is not None:
        state.players = players
    else:
        note("players")
        count = raw.get("num_players")
        if _is_int(count):
            state.players = default_players(clamp(count, MIN_PLAYERS, MAX_PLAYERS))

    turn = raw.get("turn_index")
    if _is_int(turn) and 0 <= turn < len(state.players):
        state.turn_index = turn
    else:
        note("turn_index")

    state.pending_roll = _read_pending(raw.get("pending_roll"))
    if state.pending_roll is None and raw.get("pending_roll") is not None:
        note("pending_roll")

    history = _read_history(raw.get("history"))
    if history is not None:
        state.history = history
    else:
        note("history")

    if isinstance(raw.get("show_answer"), bool):
        snap.show_answer = raw["show_answer"]
    else:
        note("show_answer")

    if bad:
        logger.warning("snapshot fields reset to defaults: %s", ", ".join(bad))
    return snap


def engine_from_snapshot(
    raw: Any, tasks: list[TaskRecord], rng: RandomSource, **kwargs: Any,
) -> SessionEngine:
    """Build an engine around a restored snapshot."""
    snap = restore_snapshot(raw)
    engine = SessionEngine(tasks, rng, state=snap.state, task_filter=snap.task_filter, **kwargs)
    engine.show_answer = snap.show_answer
    return engine
