"""CLI entry point: python -m snl_session {packs,jumps,board,play}."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable
from pathlib import Path

from snl_session.board import build_jump_graph, clamp_board_size, find_chains
from snl_session.chart import make_board_chart
from snl_session.config import DEFAULT_BOARD_SIZE, STORAGE_KEY, TASKS_CSV_URL
from snl_session.persistence import SnapshotStore
from snl_session.rng import Mulberry32, time_seed
from snl_session.session import SessionEngine
from snl_session.snapshot import dump_snapshot, engine_from_snapshot
from snl_session.tasks import (
    TaskFeedError,
    TaskRecord,
    fetch_tasks,
    list_levels,
    list_packs,
    load_tasks_file,
    type_label,
)

RESULTS_DIR = Path("results")
DB_PATH = RESULTS_DIR / "sessions.db"


def _load_tasks(args: argparse.Namespace) -> list[TaskRecord]:
    try:
        if args.csv:
            return load_tasks_file(args.csv)
        return fetch_tasks(args.url)
    except (TaskFeedError, OSError) as e:
        print(f"Could not load tasks: {e}", file=sys.stderr)
        sys.exit(1)


# ── packs ────────────────────────────────────────────────────────────

def cmd_packs(args: argparse.Namespace) -> None:
    """List language-point packs and levels in the task bank."""
    tasks = _load_tasks(args)
    if not tasks:
        print("No tasks found.", file=sys.stderr)
        sys.exit(1)

    print(f"\n{len(tasks)} tasks")
    print("=" * 40)
    for pack in list_packs(tasks):
        print(f"  {pack.name:30s} {pack.count:5d}")
    print(f"\nLevels: {', '.join(list_levels(tasks))}")


# ── jumps ────────────────────────────────────────────────────────────

def cmd_jumps(args: argparse.Namespace) -> None:
    """Print the snakes and ladders for one board size."""
    size = clamp_board_size(args.size)
    jumps = build_jump_graph(size)
    print(f"\nBoard {size}: {len(jumps)} jumps")
    print("=" * 40)
    for start, end in sorted(jumps.items()):
        kind = "ladder" if end > start else "snake"
        print(f"  {start:3d} → {end:3d}  {kind}")
    chains = find_chains(jumps)
    if chains:
        print(f"\nChained (resolved one hop only): {', '.join(f'{s}→{e}' for s, e in chains.items())}")


# ── board ────────────────────────────────────────────────────────────

def cmd_board(args: argparse.Namespace) -> None:
    """Render the board to a PNG."""
    size = clamp_board_size(args.size)
    out = args.output or f"board_{size}.png"
    make_board_chart(size, output_path=out)
    print(f"Board saved to {out}")


# ── play ─────────────────────────────────────────────────────────────

def _describe_turn(engine: SessionEngine) -> str:
    state = engine.state
    player = state.players[state.turn_index]
    where = "not yet on the board" if player.position == 0 else f"on {player.position} / {state.board_size}"
    return f"{player.name}'s turn ({where}). Pack: {engine.pack_label()}"


def run_session(
    engine: SessionEngine,
    input_fn: Callable[[str], str] | None = None,
    output: Callable[[str], None] | None = None,
    store: SnapshotStore | None = None,
    key: str = STORAGE_KEY,
) -> int | None:
    """Interactive turn loop. Returns the winner's index, or None on quit."""
    input_fn = input_fn or input
    output = output or print
    while True:
        winner = engine.winner()
        if winner is not None:
            output(f"{engine.state.players[winner].name} wins! 🎉")
            return winner

        output(_describe_turn(engine))
        if engine.state.pending_roll is None:
            choice = input_fn("[r]oll, [n]ew session, [q]uit: ").strip().lower()
            if choice == "q":
                return None
            if choice == "n":
                output(engine.reset_session().message)
            elif choice in ("r", ""):
                result = engine.roll_and_draw()
                output(result.message)
                if result.ok and result.task is not None:
                    output(f"[{type_label(result.task.type)}] {result.task.prompt}")
            else:
                continue
        else:
            choice = input_fn("Correct? [y]es, [n]o, [a]nswer, [q]uit: ").strip().lower()
            if choice == "q":
                return None
            if choice == "a":
                task = engine.current_task()
                if engine.toggle_answer() and task is not None:
                    output(f"Answer: {task.target or '(open answer)'}")
                continue
            if choice not in ("y", "n"):
                continue
            output(engine.apply_move(choice == "y").message)

        if store is not None:
            store.save(dump_snapshot(engine), key=key)


def cmd_play(args: argparse.Namespace) -> None:
    """Play a session in the terminal, resuming the saved one unless --new."""
    tasks = _load_tasks(args)
    rng = Mulberry32(args.seed if args.seed is not None else time_seed())

    store = SnapshotStore(args.db)
    raw = None if args.new else store.load(args.key)
    if raw is None:
        engine = SessionEngine(tasks, rng)
        engine.set_board_size(args.size)
        engine.set_player_count(args.players)
    else:
        engine = engine_from_snapshot(raw, tasks, rng)
    engine.load_tasks(tasks)

    if not engine.filtered_tasks():
        print("No tasks match the current filters.", file=sys.stderr)
    try:
        run_session(engine, store=store, key=args.key)
    finally:
        store.save(dump_snapshot(engine), key=args.key)
        store.close()


# ── main ─────────────────────────────────────────────────────────────

def _add_source_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--csv", help="Local task CSV (overrides --url)")
    p.add_argument("--url", default=TASKS_CSV_URL, help="Published task CSV URL")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="snl_session",
        description="Snakes & Ladders language-practice sessions",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    p_packs = sub.add_parser("packs", help="List packs and levels in the task bank")
    _add_source_args(p_packs)

    p_jumps = sub.add_parser("jumps", help="Print snakes and ladders for a board size")
    p_jumps.add_argument("--size", type=int, default=DEFAULT_BOARD_SIZE)

    p_board = sub.add_parser("board", help="Render the board to a PNG")
    p_board.add_argument("--size", type=int, default=DEFAULT_BOARD_SIZE)
    p_board.add_argument("--output", "-o", help="Output PNG path")

    p_play = sub.add_parser("play", help="Play in the terminal (resumes automatically)")
    _add_source_args(p_play)
    p_play.add_argument("--seed", type=int, help="RNG seed for a reproducible session")
    p_play.add_argument("--players", type=int, default=2, help="Number of players (1-6)")
    p_play.add_argument("--size", type=int, default=DEFAULT_BOARD_SIZE, help="Board size (40-100)")
    p_play.add_argument("--db", default=str(DB_PATH), help="Snapshot database path")
    p_play.add_argument("--key", default=STORAGE_KEY, help="Snapshot key")
    p_play.add_argument("--new", action="store_true", help="Ignore any saved session")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "packs":
        cmd_packs(args)
    elif args.command == "jumps":
        cmd_jumps(args)
    elif args.command == "board":
        cmd_board(args)
    elif args.command == "play":
        cmd_play(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
