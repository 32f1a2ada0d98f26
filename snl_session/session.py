"""Session engine: rolls, task draws and moves for one shared board."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from typing import Protocol

from snl_session.board import MoveResult, apply_roll, build_jump_graph, clamp, clamp_board_size
from snl_session.config import (
    DEFAULT_BOARD_SIZE,
    DEFAULT_NUM_PLAYERS,
    HISTORY_CAPACITY,
    MAX_NAME_LENGTH,
    MAX_PLAYERS,
    MIN_PLAYERS,
)
from snl_session.rng import RandomSource, roll_die
from snl_session.selector import DrawEvent, select_task
from snl_session.tasks import TaskFilter, TaskRecord, filter_tasks, list_levels, list_packs

logger = logging.getLogger(__name__)


# ── State ────────────────────────────────────────────────────────────

@dataclass
class Player:
    name: str
    position: int = 0  # 0 = not yet on the board


def default_name(idx: int) -> str:
    return f"P{idx + 1}"


def default_players(n: int = DEFAULT_NUM_PLAYERS) -> list[Player]:
    return [Player(name=default_name(i)) for i in range(n)]


@dataclass(frozen=True)
class PendingRoll:
    """A roll whose outcome hasn't been applied yet."""

    roll_value: int
    task_id: str


@dataclass
class SessionState:
    """Everything that changes turn by turn."""

    players: list[Player] = field(default_factory=default_players)
    turn_index: int = 0
    pending_roll: PendingRoll | None = None
    history: list[DrawEvent] = field(default_factory=list)  # most recent first
    board_size: int = DEFAULT_BOARD_SIZE
    dice: int = 1

    @property
    def awaiting_outcome(self) -> bool:
        return self.pending_roll is not None

    @property
    def current_player(self) -> Player | None:
        if 0 <= self.turn_index < len(self.players):
            return self.players[self.turn_index]
        return None

    def copy(self) -> SessionState:
        return replace(
            self,
            players=[replace(p) for p in self.players],
            history=list(self.history),
        )


def winner_index(state: SessionState) -> int | None:
    for i, p in enumerate(state.players):
        if p.position == state.board_size:
            return i
    return None


# ── Results & observer ──────────────────────────────────────────────

@dataclass
class ActionResult:
    ok: bool = True
    message: str = ""
    roll_value: int | None = None
    task: TaskRecord | None = None
    move: MoveResult | None = None
    won: bool = False


@dataclass
class TurnEntry:
    """Record of one roll or one applied move."""

    action: str  # "roll" | "move"
    player: int
    position_before: int
    position_after: int
    roll_value: int | None = None
    task_id: str | None = None
    success: bool | None = None
    jump_dest: int | None = None
    bounced: bool = False
    won: bool = False


class SessionObserver(Protocol):
    """Receives structured events as a session is played."""

    def on_event(self, entry: TurnEntry) -> None: ...


@dataclass
class ListObserver:
    """Default observer, collects entries into a list."""

    entries: list[TurnEntry] = field(default_factory=list)

    def on_event(self, entry: TurnEntry) -> None:
        self.entries.append(entry)


# ── Move planning ────────────────────────────────────────────────────

@dataclass
class MovePlan:
    """The squares a pawn passes through for one pending outcome.

    Iterating yields one state snapshot per square, ending on the final
    resting square. It can be iterated any number of times; nothing is
    committed.
    """

    state: SessionState
    positions: tuple[int, ...]
    result: MoveResult | None = None

    @property
    def final_position(self) -> int:
        if self.positions:
            return self.positions[-1]
        return self.state.players[self.state.turn_index].position

    def __iter__(self) -> Iterator[SessionState]:
        for pos in self.positions:
            snap = self.state.copy()
            snap.players[snap.turn_index].position = pos
            yield snap


def plan_move(state: SessionState, success: bool, jumps: dict[int, int]) -> MovePlan | None:
    """Plan the pending outcome. ``None`` if there is nothing pending."""
    player = state.current_player
    if state.pending_roll is None or player is None:
        return None

    if not success:
        return MovePlan(state=state.copy(), positions=())

    result = apply_roll(player.position, state.pending_roll.roll_value, state.board_size, jumps)
    if result.bounced:
        return MovePlan(state=state.copy(), positions=(), result=result)

    steps = list(range(player.position + 1, result.landing + 1))
    if result.jump_dest is not None and result.jump_dest != result.landing:
        steps.append(result.jump_dest)
    return MovePlan(state=state.copy(), positions=tuple(steps), result=result)


# ── Engine ───────────────────────────────────────────────────────────

class SessionEngine:
    """Owns one SessionState and applies every transition to it.

    Operations never raise: a call that isn't allowed right now returns
    an ``ActionResult`` with ``ok=False`` and leaves the state untouched.
    """

    def __init__(
        self,
        tasks: list[TaskRecord],
        rng: RandomSource,
        state: SessionState | None = None,
        task_filter: TaskFilter | None = None,
        type_weights: dict[str, float] | None = None,
        observer: SessionObserver | None = None,
    ):
        self.tasks = list(tasks)
        self.rng = rng
        self.state = state or SessionState()
        self.task_filter = task_filter or TaskFilter()
        self.type_weights = type_weights
        self.observer = observer or ListObserver()
        self.show_answer = False
        self._jumps = build_jump_graph(self.state.board_size)
        self._in_flight = False

    # ── queries ──

    @property
    def jumps(self) -> dict[int, int]:
        return dict(self._jumps)

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def filtered_tasks(self) -> list[TaskRecord]:
        return filter_tasks(self.tasks, self.task_filter)

    def current_task(self) -> TaskRecord | None:
        if not self.state.history:
            return None
        return self.state.history[0].task

    def winner(self) -> int | None:
        return winner_index(self.state)

    def can_roll(self) -> bool:
        return self._roll_blocker() is None

    def _roll_blocker(self) -> str | None:
        if self._in_flight:
            return "A move is in progress."
        if self.state.pending_roll is not None:
            return "Apply the pending outcome first."
        if not self.state.players:
            return "No players."
        if self.winner() is not None:
            return "The game is over."
        if not self.filtered_tasks():
            return "No tasks match the current filters."
        return None

    # ── transitions ──

    def roll_and_draw(self) -> ActionResult:
        """Roll the die, then draw a task for that roll.

        Consumes the die's ``next()`` before the pick's, so a seeded
        session replays identically.
        """
        blocker = self._roll_blocker()
        if blocker is not None:
            return ActionResult(ok=False, message=blocker)

        state = self.state
        value = roll_die(self.rng)
        state.dice = value
        picked = select_task(
            self.filtered_tasks(), state.history, value, self.rng, self.type_weights,
        )
        if picked is None:
            return ActionResult(ok=False, message="No tasks match the current filters.")

        self.show_answer = False
        state.history = [DrawEvent(task=picked, roll_value=value), *state.history][:HISTORY_CAPACITY]
        state.pending_roll = PendingRoll(roll_value=value, task_id=picked.id)

        pos = state.players[state.turn_index].position
        self.observer.on_event(TurnEntry(
            action="roll",
            player=state.turn_index,
            position_before=pos,
            position_after=pos,
            roll_value=value,
            task_id=picked.id,
        ))
        logger.debug("player %d rolled %d, task %s", state.turn_index, value, picked.id)
        return ActionResult(ok=True, roll_value=value, task=picked, message=f"You rolled a {value}.")

    def apply_move(self, success: bool) -> ActionResult:
        """Resolve the pending roll: move on success, then pass the turn."""
        if self._in_flight:
            return ActionResult(ok=False, message="A move is already in progress.")
        plan = plan_move(self.state, success, self._jumps)
        if plan is None:
            return ActionResult(ok=False, message="Nothing to apply. Roll first.")

        self._in_flight = True
        try:
            return self._commit(plan, success)
        finally:
            self._in_flight = False

    def animate_move(self, success: bool) -> Iterator[SessionState]:
        """Like :meth:`apply_move`, but yields a snapshot per square first.

        The move is committed only once the iterator is exhausted; the
        engine rejects rolls and moves until then. Closing the iterator
        early abandons the move. The ``ActionResult`` is the generator's
        return value.
        """
        if self._in_flight:
            return ActionResult(ok=False, message="A move is already in progress.")
        plan = plan_move(self.state, success, self._jumps)
        if plan is None:
            return ActionResult(ok=False, message="Nothing to apply. Roll first.")

        self._in_flight = True
        try:
            yield from plan
            result = self._commit(plan, success)
        finally:
            self._in_flight = False
        return result

    def _commit(self, plan: MovePlan, success: bool) -> ActionResult:
        state = self.state
        pending = state.pending_roll
        idx = state.turn_index
        # A reset or settings change while the move was in flight voids it
        if (
            pending is None
            or pending is not plan.state.pending_roll
            or idx != plan.state.turn_index
            or len(state.players) != len(plan.state.players)
        ):
            logger.debug("discarding move planned for player %d", plan.state.turn_index)
            return ActionResult(ok=False, message="The session changed before the move finished.")
        before = state.players[idx].position

        state.players[idx].position = plan.final_position
        state.turn_index = (idx + 1) % len(state.players)
        state.pending_roll = None

        move = plan.result
        won = state.players[idx].position == state.board_size
        self.observer.on_event(TurnEntry(
            action="move",
            player=idx,
            position_before=before,
            position_after=state.players[idx].position,
            roll_value=pending.roll_value,
            task_id=pending.task_id,
            success=success,
            jump_dest=move.jump_dest if move else None,
            bounced=move.bounced if move else False,
            won=won,
        ))
        logger.debug(
            "player %d %s: %d -> %d", idx, "moved" if success else "stayed",
            before, state.players[idx].position,
        )

        if not success:
            message = "No move this time."
        elif move is not None and move.bounced:
            message = f"Overshoots {state.board_size}. You stay on {before}."
        elif won:
            message = f"{state.players[idx].name} wins!"
        elif move is not None and move.jump_dest is not None:
            kind = "Ladder" if move.jump_dest > move.landing else "Snake"
            message = f"{kind}! {move.landing} → {move.jump_dest}."
        else:
            message = f"Moved to {state.players[idx].position}."
        return ActionResult(ok=True, move=move, won=won, message=message)

    def reset_session(self) -> ActionResult:
        """Start over with the same players; rolls a fresh display die."""
        self._reset_positions()
        self.state.dice = roll_die(self.rng)
        return ActionResult(ok=True, message="New session.")

    def set_board_size(self, n: int) -> ActionResult:
        size = clamp_board_size(n)
        self.state.board_size = size
        self._jumps = build_jump_graph(size)
        self._reset_positions()
        return ActionResult(ok=True, message=f"Board size set to {size}.")

    def set_player_count(self, n: int) -> ActionResult:
        count = clamp(n, MIN_PLAYERS, MAX_PLAYERS)
        prev = self.state.players
        self.state.players = [
            Player(name=prev[i].name if i < len(prev) and prev[i].name else default_name(i))
            for i in range(count)
        ]
        self._reset_positions()
        return ActionResult(ok=True, message=f"{count} players.")

    def set_player_name(self, idx: int, name: str) -> ActionResult:
        if not 0 <= idx < len(self.state.players):
            return ActionResult(ok=False, message=f"No player {idx + 1}.")
        self.state.players[idx].name = (name or "")[:MAX_NAME_LENGTH]
        return ActionResult(ok=True)

    def _reset_positions(self) -> None:
        state = self.state
        state.history = []
        state.pending_roll = None
        state.turn_index = 0
        state.players = [
            Player(name=p.name or default_name(i), position=0)
            for i, p in enumerate(state.players)
        ]
        self.show_answer = False

    # ── tasks & filters ──

    def load_tasks(self, tasks: list[TaskRecord]) -> None:
        """Swap in a freshly loaded task bank.

        With no pack chosen yet, the first pack becomes the selection.
        """
        self.tasks = list(tasks)
        f = self.task_filter
        if not f.pack and not f.selected_packs:
            packs = list_packs(self.tasks)
            f.pack = packs[0].name if packs else "General"

    def toggle_pack(self, name: str) -> None:
        f = self.task_filter
        # Migrate from the single-pack selection
        if f.pack and not f.selected_packs:
            f.selected_packs = [f.pack]
            f.pack = ""
        if name in f.selected_packs:
            f.selected_packs = [p for p in f.selected_packs if p != name]
        else:
            f.selected_packs = [*f.selected_packs, name]

    def clear_packs(self) -> None:
        self.task_filter.selected_packs = []
        self.task_filter.pack = ""

    def select_all_packs(self) -> None:
        self.task_filter.selected_packs = [p.name for p in list_packs(self.tasks)]
        self.task_filter.pack = ""

    def toggle_level(self, level: str) -> None:
        levels = self.task_filter.selected_levels
        if level in levels:
            self.task_filter.selected_levels = [lv for lv in levels if lv != level]
        else:
            self.task_filter.selected_levels = [*levels, level]

    def clear_levels(self) -> None:
        self.task_filter.selected_levels = []

    def select_all_levels(self) -> None:
        self.task_filter.selected_levels = list_levels(self.tasks)

    def pack_label(self) -> str:
        return self.task_filter.label()

    def toggle_answer(self) -> bool:
        self.show_answer = not self.show_answer
        return self.show_answer
