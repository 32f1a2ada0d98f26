"""Board layout, jump graph scaling and movement rules."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from functools import lru_cache

from snl_session.config import BOARD_COLUMNS, MAX_BOARD_SIZE, MIN_BOARD_SIZE

logger = logging.getLogger(__name__)

# fmt: off
BASE_JUMPS_100: dict[int, int] = {
    # Ladders (go UP)
     4: 14,   9: 31,  20: 38,  28: 84,  40: 59,  63: 81,  71: 91,
    # Snakes (go DOWN)
    17:  7,  54: 34,  62: 19,  64: 60,  87: 24,  93: 73,  95: 75,  99: 78,
}
# fmt: on


def clamp(n: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, n))


def round_half_up(x: float) -> int:
    """Round .5 towards +inf (builtin round() would give 4 for 4.5)."""
    return math.floor(x + 0.5)


def clamp_board_size(n: int) -> int:
    return clamp(n, MIN_BOARD_SIZE, MAX_BOARD_SIZE)


# ── Jump graph ───────────────────────────────────────────────────────

@lru_cache(maxsize=None)
def _scaled_jumps(board_size: int) -> tuple[tuple[int, int], ...]:
    if board_size == 100:
        return tuple(BASE_JUMPS_100.items())

    scale = board_size / 100
    min_delta = max(3, round_half_up(6 * scale))
    out: list[tuple[int, int]] = []
    used_starts: set[int] = set()

    # Ascending start order: on a collision the lower base square keeps the slot
    for start, end in sorted(BASE_JUMPS_100.items()):
        ladder = end > start

        s = clamp(round_half_up(start * scale), 2, board_size - 2)
        e = round_half_up(end * scale)
        if ladder:
            e = clamp(max(e, s + min_delta), 2, board_size - 1)
        else:
            e = clamp(min(e, s - min_delta), 2, board_size - 1)

        # Never land exactly on the final square
        if e == board_size:
            e = board_size - 1

        if (
            not (math.isfinite(s) and math.isfinite(e))
            or s <= 1 or s >= board_size
            or e <= 1 or e >= board_size
            or e == s
            or s in used_starts
        ):
            logger.debug(
                "board %d: dropping %d->%d (scaled %d->%d)",
                board_size, start, end, s, e,
            )
            continue

        used_starts.add(s)
        out.append((s, e))

    return tuple(out)


def build_jump_graph(board_size: int) -> dict[int, int]:
    """Jumps (start → end) for *board_size*, scaled from the 100-square layout.

    Pairs that collide or degenerate after scaling are dropped, so small
    boards may have fewer than 15 jumps. The result is a fresh dict; the
    underlying computation is cached per size.
    """
    return dict(_scaled_jumps(board_size))


def is_ladder(jumps: dict[int, int], square: int) -> bool:
    dest = jumps.get(square)
    return dest is not None and dest > square


def is_snake(jumps: dict[int, int], square: int) -> bool:
    dest = jumps.get(square)
    return dest is not None and dest < square


def jump_destination(jumps: dict[int, int], square: int) -> int | None:
    return jumps.get(square)


def find_chains(jumps: dict[int, int]) -> dict[int, int]:
    """Jumps whose destination is itself the start of another jump."""
    return {s: e for s, e in jumps.items() if e in jumps}


# ── Topology ─────────────────────────────────────────────────────────

def board_rows(board_size: int, columns: int = BOARD_COLUMNS) -> int:
    return max(1, math.ceil(board_size / columns))


def build_board_cells(board_size: int, columns: int = BOARD_COLUMNS) -> list[int | None]:
    """Square numbers in visual grid order, top-left to bottom-right.

    Rows alternate direction (boustrophedon); the top row starts with
    *board_size*. Incomplete rows are padded with ``None``.
    """
    cells: list[int | None] = []
    n = board_size
    for r in range(board_rows(board_size, columns)):
        row: list[int | None] = []
        for _ in range(columns):
            if n >= 1:
                row.append(n)
                n -= 1
            else:
                row.append(None)
        if r % 2 == 1:
            row.reverse()
        cells.extend(row)
    return cells


# ── Movement ─────────────────────────────────────────────────────────

@dataclass
class MoveResult:
    """Where a successful roll takes a pawn."""

    landing: int
    new_position: int
    jump_dest: int | None = None
    won: bool = False
    bounced: bool = False


def apply_roll(
    position: int, roll: int, board_size: int, jumps: dict[int, int],
) -> MoveResult:
    """Compute the result of moving *roll* squares from *position*.

    Pure: the caller decides whether to commit. Jumps resolve a single
    hop: a destination that is itself a jump start is not followed.
    """
    target = position + roll

    # Overshoot → stay put
    if target > board_size:
        return MoveResult(landing=position, new_position=position, bounced=True)

    dest = jumps.get(target)
    final = dest if dest is not None else target
    return MoveResult(
        landing=target,
        new_position=final,
        jump_dest=dest,
        won=final == board_size,
    )
