"""
Mutable grid of optional tiles.

All coordinate-taking reads return None out of range and all writes are
no-ops out of range; callers may pass gesture coordinates straight through.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Iterator, Sequence

from flow_pieces import rot_cw
from flow_types import Cell, Coord, Direction, Move, Tile

logger = logging.getLogger(__name__)


class Board:
    """A width x height matrix of `Tile | None`, indexed [y][x]."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self._cells: list[list[Cell]] = [[None] * width for _ in range(height)]

    def __repr__(self) -> str:
        return f"Board({self.width}x{self.height}, empty={len(self.empty_cells())})"

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get_cell(self, x: int, y: int) -> Cell:
        if not self.in_bounds(x, y):
            return None
        return self._cells[y][x]

    def __getitem__(self, pos: Coord) -> Cell:
        return self.get_cell(pos.x, pos.y)

    def coords(self) -> Iterator[Coord]:
        """All positions, row-major."""
        for y in range(self.height):
            for x in range(self.width):
                yield Coord(x, y)

    def empty_cells(self) -> list[Coord]:
        return [pos for pos in self.coords() if self[pos] is None]

    def is_full(self) -> bool:
        return not self.empty_cells()

    def rows(self) -> tuple[tuple[Cell, ...], ...]:
        """Immutable snapshot of the board contents."""
        return tuple(tuple(row) for row in self._cells)

    def edge_cells(self, side: Direction) -> list[tuple[int, Coord]]:
        """
        Cells along one edge as (index, coord), ascending index.

        L/R edges are indexed by row, U/D edges by column.
        """
        match side:
            case Direction.L:
                return [(y, Coord(0, y)) for y in range(self.height)]
            case Direction.R:
                return [(y, Coord(self.width - 1, y)) for y in range(self.height)]
            case Direction.U:
                return [(x, Coord(x, 0)) for x in range(self.width)]
            case Direction.D:
                return [(x, Coord(x, self.height - 1)) for x in range(self.width)]
        raise ValueError(f"Unknown side: {side}")

    def edge_index(self, pos: Coord, side: Direction) -> int | None:
        """Index of `pos` along the given edge, or None if it isn't on it."""
        if not self.in_bounds(pos.x, pos.y):
            return None
        match side:
            case Direction.L:
                return pos.y if pos.x == 0 else None
            case Direction.R:
                return pos.y if pos.x == self.width - 1 else None
            case Direction.U:
                return pos.x if pos.y == 0 else None
            case Direction.D:
                return pos.x if pos.y == self.height - 1 else None
        return None

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def set_cell(self, x: int, y: int, tile: Cell) -> None:
        if not self.in_bounds(x, y):
            return
        self._cells[y][x] = tile

    def __setitem__(self, pos: Coord, tile: Cell) -> None:
        self.set_cell(pos.x, pos.y, tile)

    def load(self, rows: Sequence[Sequence[Cell]]) -> None:
        """
        Replace the board contents.

        Raises:
            ValueError: If the row/column counts don't match the board
        """
        if len(rows) != self.height or any(len(row) != self.width for row in rows):
            shape = f"{len(rows)} rows of " + ", ".join(str(len(row)) for row in rows)
            raise ValueError(
                f"Layout does not match board size\n"
                f"  Board: {self.width}x{self.height}\n"
                f"  Layout: {shape}"
            )
        self._cells = [list(row) for row in rows]

    def rotate_cw(self, x: int, y: int) -> None:
        tile = self.get_cell(x, y)
        if tile is None:
            return
        self._cells[y][x] = rotate_tile(tile)

    def swap_cells(self, a: Coord, b: Coord) -> None:
        """Exchange two cells' contents (empty cells included)."""
        if a == b or not self.in_bounds(a.x, a.y) or not self.in_bounds(b.x, b.y):
            return
        self._cells[a.y][a.x], self._cells[b.y][b.x] = self._cells[b.y][b.x], self._cells[a.y][a.x]

    def shift_along_path(self, path: Sequence[Coord]) -> list[Move]:
        """
        Carry tiles along a drag path.

        The tile at the head of the path moves to its tail and every other
        tile steps one cell back toward the head: [t0, t1, t2] -> [t1, t2, t0].

        Returns one Move per path cell, or [] (board untouched) when the path
        is shorter than 2, repeats a cell, leaves the board or crosses an
        empty cell.
        """
        if len(path) < 2 or len(set(path)) != len(path):
            return []
        if any(not self.in_bounds(p.x, p.y) for p in path):
            return []

        tiles = [tile for tile in (self[p] for p in path) if tile is not None]
        if len(tiles) != len(path):
            return []

        rotated = tiles[1:] + tiles[:1]
        moves: list[Move] = []
        for i, (dst, tile) in enumerate(zip(path, rotated)):
            self[dst] = tile
            moves.append(Move(path[(i + 1) % len(path)], dst, tile))
        return moves

    def clear_cells(self, cells: Iterable[Coord]) -> None:
        for pos in cells:
            self[pos] = None

    def apply_gravity(self) -> list[Move]:
        """
        Let tiles fall to fill the gaps below them, column by column.

        Order within a column is preserved. Returns a Move for every tile
        whose row changed.
        """
        moves: list[Move] = []
        for x in range(self.width):
            write_y = self.height - 1
            for y in range(self.height - 1, -1, -1):
                tile = self._cells[y][x]
                if tile is None:
                    continue
                if y != write_y:
                    self._cells[write_y][x] = tile
                    self._cells[y][x] = None
                    moves.append(Move(Coord(x, y), Coord(x, write_y), tile))
                write_y -= 1
        if moves:
            logger.debug("apply_gravity: %d tiles fell", len(moves))
        return moves


def rotate_tile(tile: Tile) -> Tile:
    return replace(tile, rotation=rot_cw(tile.rotation))
