"""Render a board (grid, snakes, ladders, pawns) to a PNG."""

from __future__ import annotations

import matplotlib
matplotlib.use("Agg")  # non-interactive backend

import matplotlib.pyplot as plt
from matplotlib.patches import Circle, Rectangle

from snl_session.board import board_rows, build_board_cells, build_jump_graph
from snl_session.config import BOARD_COLUMNS

PAWN_COLORS = ["#a78bfa", "#22c55e", "#60a5fa", "#fb7185", "#f59e0b", "#14b8a6"]
LADDER_COLOR = "#16a34a"
SNAKE_COLOR = "#dc2626"


def cell_centers(board_size: int, columns: int = BOARD_COLUMNS) -> dict[int, tuple[float, float]]:
    """Map square number → (x, y) centre, with row 0 of the grid on top."""
    rows = board_rows(board_size, columns)
    centers: dict[int, tuple[float, float]] = {}
    for i, square in enumerate(build_board_cells(board_size, columns)):
        if square is None:
            continue
        r, c = divmod(i, columns)
        centers[square] = (c + 0.5, rows - r - 0.5)
    return centers


def make_board_chart(
    board_size: int,
    positions: list[int] | None = None,
    output_path: str = "board.png",
    columns: int = BOARD_COLUMNS,
    title: str | None = None,
) -> str:
    """Draw the serpentine grid with every jump as an arrow.

    Pawns at square 0 (not yet on the board) are not drawn.
    Returns the path to the saved PNG.
    """
    rows = board_rows(board_size, columns)
    centers = cell_centers(board_size, columns)
    jumps = build_jump_graph(board_size)

    fig, ax = plt.subplots(figsize=(columns * 0.8, rows * 0.8))

    for square, (x, y) in centers.items():
        shade = "#f8fafc" if (int(x) + int(y)) % 2 else "#e2e8f0"
        ax.add_patch(Rectangle((x - 0.5, y - 0.5), 1, 1, facecolor=shade, edgecolor="white"))
        ax.text(x - 0.42, y + 0.3, str(square), fontsize=7, va="center", color="#475569")

    for start, end in jumps.items():
        color = LADDER_COLOR if end > start else SNAKE_COLOR
        ax.annotate(
            "",
            xy=centers[end], xytext=centers[start],
            arrowprops={"arrowstyle": "->", "color": color, "lw": 2, "alpha": 0.8},
        )

    for idx, pos in enumerate(positions or []):
        if pos not in centers:
            continue
        x, y = centers[pos]
        # Offset pawns sharing a square
        dx = (idx % 3 - 1) * 0.22
        dy = (idx // 3) * -0.22
        ax.add_patch(Circle(
            (x + dx, y + dy), 0.16,
            facecolor=PAWN_COLORS[idx % len(PAWN_COLORS)], edgecolor="black",
        ))

    ax.set_xlim(0, columns)
    ax.set_ylim(0, rows)
    ax.set_aspect("equal")
    ax.axis("off")
    ax.set_title(title or f"Snakes & Ladders ({board_size} squares)", fontsize=12, fontweight="bold")

    plt.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    return output_path
