"""
Board layout parsing utilities for pipeflow.

Provides two parsing formats:
1. Standard format with spaces and explicit piece ids
2. Concise format with one box-drawing glyph per cell
"""

from __future__ import annotations

from flow_pieces import PIECE_DEFS, make_tile, piece_mask
from flow_types import Cell, Direction, PieceCategory, Tile

__all__ = ["parse_board", "parse_board_concise", "tile_glyph", "glyph_tile", "format_board"]

U, R, D, L = Direction.U.value, Direction.R.value, Direction.D.value, Direction.L.value

# Conduit masks are unique per (piece, rotation) family, so a glyph
# identifies the piece. X4 parses back as rotation 0.
MASK_GLYPHS: dict[int, str] = {
    0: " ",
    U: "╵",
    R: "╶",
    D: "╷",
    L: "╴",
    U | D: "│",
    L | R: "─",
    U | R: "└",
    R | D: "┌",
    D | L: "┐",
    L | U: "┘",
    U | R | D: "├",
    R | D | L: "┬",
    D | L | U: "┤",
    L | U | R: "┴",
    U | R | D | L: "┼",
}

ARROW_GLYPHS: dict[int, str] = {0: "→", 1: "↓", 2: "←", 3: "↑"}

EMPTY_GLYPH = "·"


def _build_glyph_table() -> dict[str, Tile]:
    table: dict[str, Tile] = {}
    for piece in PIECE_DEFS.values():
        for rotation in range(4):
            if piece.category is PieceCategory.TRIGGER:
                glyph = ARROW_GLYPHS[rotation]
            else:
                glyph = MASK_GLYPHS[piece_mask(piece.id, rotation)]
            table.setdefault(glyph, make_tile(piece.id, rotation))
    return table


GLYPH_TILES: dict[str, Tile] = _build_glyph_table()


def tile_glyph(tile: Cell) -> str:
    """Single-character picture of a cell."""
    if tile is None:
        return EMPTY_GLYPH
    if tile.category is PieceCategory.TRIGGER:
        return ARROW_GLYPHS[tile.rotation % 4]
    return MASK_GLYPHS[piece_mask(tile.piece_id, tile.rotation)]


def glyph_tile(glyph: str) -> Cell:
    """Inverse of tile_glyph. Raises KeyError for unknown glyphs."""
    if glyph in (EMPTY_GLYPH, "_"):
        return None
    return GLYPH_TILES[glyph]


def parse_board(definition: str) -> list[list[Cell]]:
    """
    Parse a board from a compact string format.

    Format:
    - Rows separated by |
    - Cells separated by whitespace
    - Cell token:
      * PIECE: piece id at rotation 0 (e.g., "I2", "T3")
      * PIECE:ROT: piece id at rotation 0-3 (e.g., "L2:1", "ARROW:2")
      * Underscore (_): Empty cell

    Example:
        "I2:1 I2:1 I2:1|L2 _ T3:2"
        Creates a 3x2 board; the top row is a horizontal straight run.

    Args:
        definition: The board string

    Returns:
        Rows of cells, top row first

    Raises:
        ValueError: On unknown pieces, bad rotations or ragged rows
    """
    row_strings = definition.strip().split("|")
    rows: list[list[Cell]] = []

    for row_idx, row_str in enumerate(row_strings):
        cells: list[Cell] = []
        for col_idx, token in enumerate(row_str.split()):
            if token == "_":
                cells.append(None)
                continue

            piece_id, _, rot_str = token.partition(":")
            if piece_id not in PIECE_DEFS or (rot_str and rot_str not in ("0", "1", "2", "3")):
                raise ValueError(
                    f"Invalid cell token: '{token}'\n"
                    f"  Row {row_idx}: \"{row_str.strip()}\"\n"
                    f"  Position: column {col_idx}\n"
                    f"  Valid formats:\n"
                    f"    - PIECE or PIECE:ROT with PIECE in {', '.join(PIECE_DEFS)} and ROT in 0-3\n"
                    f"    - '_': Empty cell"
                )
            cells.append(make_tile(piece_id, int(rot_str or 0)))

        rows.append(cells)

    if rows:
        cols = len(rows[0])
        mismatched = [(i, len(row)) for i, row in enumerate(rows) if len(row) != cols]
        if mismatched:
            error_msg = (
                f"Inconsistent row lengths in board\n"
                f"  Expected: {cols} columns (from row 0)\n"
                f"  Mismatched rows:\n"
            )
            for row_idx, actual_cols in mismatched:
                error_msg += f"    Row {row_idx}: {actual_cols} columns - \"{row_strings[row_idx].strip()}\"\n"
            error_msg += "  All rows must have the same number of cells"
            raise ValueError(error_msg)

    return rows


def parse_board_concise(definition: str) -> list[list[Cell]]:
    """
    Parse a board drawn with one glyph per cell.

    Format:
    - Rows separated by | or newlines (blank lines ignored)
    - Box-drawing glyphs for conduits (e.g. ─ │ └ ┬ ┼ ╵)
    - Arrows (→ ↓ ← ↑) for trigger tiles
    - '_' or '·' for empty cells

    Example:
        "──┐|_·│"

    Raises:
        ValueError: On unknown glyphs or ragged rows
    """
    row_strings = [
        row.strip()
        for line in definition.strip().splitlines()
        for row in line.split("|")
        if row.strip()
    ]
    rows: list[list[Cell]] = []

    for row_idx, row_str in enumerate(row_strings):
        cells: list[Cell] = []
        for col_idx, char in enumerate(row_str):
            try:
                cells.append(glyph_tile(char))
            except KeyError:
                raise ValueError(
                    f"Invalid character '{char}' in board\n"
                    f"  Row {row_idx}, column {col_idx}\n"
                    f"  Valid characters: box-drawing pipes, arrows (→↓←↑), '_' or '·'"
                ) from None
        rows.append(cells)

    if rows and any(len(row) != len(rows[0]) for row in rows):
        raise ValueError(
            f"Inconsistent row lengths in board: {[len(row) for row in rows]}\n"
            f"  All rows must have the same number of cells"
        )

    return rows


def format_board(rows: list[list[Cell]] | tuple[tuple[Cell, ...], ...]) -> str:
    """Standard-format string for a board (inverse of parse_board)."""
    return "|".join(
        " ".join("_" if cell is None else f"{cell.piece_id}:{cell.rotation}" for cell in row)
        for row in rows
    )
