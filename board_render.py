"""
ASCII rendering for pipeflow boards.

Provides:
1. Board rendering with faucet markers, water highlighting and a cursor
2. One-line summaries of resolve steps
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

import simple_chalk as chalk  # type: ignore[import-untyped]

from board_parser import tile_glyph
from flow_board import Board
from flow_stage import FaucetConfig
from flow_types import (
    ClearStep,
    Coord,
    Direction,
    DropStep,
    FlowCountStep,
    PieceCategory,
    ResolveStep,
    ShiftStep,
    WaterStep,
)

logger = logging.getLogger(__name__)

INLET_MARK = "≈"
OUTLET_MARK = "○"


def _edge_marks(board: Board, faucets: FaucetConfig, side: Direction) -> dict[int, str]:
    """Marker per enabled faucet index on one side."""
    marks: dict[int, str] = {}
    if faucets.inlet.side == side:
        for index, _ in board.edge_cells(side):
            if faucets.inlet_enabled(index):
                marks[index] = chalk.blueBright(INLET_MARK)
    if faucets.outlet.side == side:
        for index, _ in board.edge_cells(side):
            if faucets.outlet_enabled(index):
                marks[index] = chalk.cyan(OUTLET_MARK)
    return marks


def render_board(
    board: Board,
    faucets: FaucetConfig,
    cell_width: int = 1,
    water: Iterable[Coord] = (),
    cursor: Coord | None = None,
) -> str:
    """
    Render a board inside a frame, with inlet/outlet markers on the edges.

    Args:
        board: The board to draw
        faucets: Which edge cells carry inlets and outlets
        cell_width: Characters per cell (default 1)
        water: Cells to draw as carrying water
        cursor: Optional cell to highlight

    Returns:
        Rendered string, one line per board row plus borders
    """
    water_cells = set(water)
    frame: Callable[[str], str] = chalk.white
    top = _edge_marks(board, faucets, Direction.U)
    bottom = _edge_marks(board, faucets, Direction.D)
    left = _edge_marks(board, faucets, Direction.L)
    right = _edge_marks(board, faucets, Direction.R)

    def border(marks: dict[int, str], corner_l: str, corner_r: str) -> str:
        parts = [" ", frame(corner_l)]
        for x in range(board.width):
            fill = "─" * cell_width
            if x in marks:
                mid = cell_width // 2
                parts.append(frame(fill[:mid]) + marks[x] + frame(fill[mid + 1:]))
            else:
                parts.append(frame(fill))
        parts.append(frame(corner_r))
        return "".join(parts)

    lines = [border(top, "┌", "┐")]
    for y in range(board.height):
        parts = [left.get(y, " "), frame("│")]
        for x in range(board.width):
            pos = Coord(x, y)
            tile = board[pos]
            content = tile_glyph(tile).center(cell_width)

            if pos == cursor:
                content = chalk.bgWhite.black(content)
            elif pos in water_cells:
                content = chalk.blueBright(content)
            elif tile is None:
                content = chalk.blackBright(content)
            elif tile.category is PieceCategory.TRIGGER:
                content = chalk.yellow(content)
            else:
                content = chalk.white(content)
            parts.append(content)
        parts.append(frame("│"))
        parts.append(right.get(y, " "))
        lines.append("".join(parts))
    lines.append(border(bottom, "└", "┘"))

    return "\n".join(lines)


def describe_step(step: ResolveStep) -> str:
    """One-line summary of a resolve step."""
    match step:
        case WaterStep(cells=cells):
            depth = max((c.dist for c in cells), default=0)
            return f"WATER {len(cells)} cells (depth {depth})"
        case ClearStep(cells=cells):
            coords = ", ".join(f"({c.x},{c.y})" for c in cells)
            return f"CLEAR {len(cells)} cells: {coords}"
        case DropStep(moves=moves, refill=True):
            return f"DROP {len(moves)} new tiles from above"
        case DropStep(moves=moves):
            return f"DROP {len(moves)} tiles fell"
        case ShiftStep(moves=moves):
            return f"SHIFT {len(moves)} tiles carried"
        case FlowCountStep(delta=delta):
            return f"FLOW_COUNT {delta:+d}"
    raise ValueError(f"Unknown step type: {step}")


def render_steps(steps: Iterable[ResolveStep]) -> str:
    lines = [f"{i:>3}. {describe_step(step)}" for i, step in enumerate(steps, 1)]
    logger.debug("render_steps: %d steps", len(lines))
    return "\n".join(lines)
