"""
Shared type definitions for the pipeflow system.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Direction(Enum):
    """Cardinal direction, one bit of a 4-bit connectivity mask."""

    U = 1  # Up (decreasing y)
    R = 2  # Right (increasing x)
    D = 4  # Down (increasing y)
    L = 8  # Left (decreasing x)


# Canonical iteration order; BFS and leak checks depend on it.
ALL_DIRS: tuple[Direction, ...] = (Direction.U, Direction.R, Direction.D, Direction.L)

OPPOSITE: dict[Direction, Direction] = {
    Direction.U: Direction.D,
    Direction.R: Direction.L,
    Direction.D: Direction.U,
    Direction.L: Direction.R,
}

DIR_OFFSET: dict[Direction, tuple[int, int]] = {
    Direction.U: (0, -1),
    Direction.R: (1, 0),
    Direction.D: (0, 1),
    Direction.L: (-1, 0),
}


class PieceCategory(Enum):
    """What a piece does on the board."""

    CONDUIT = "conduit"  # Passive pipe
    TRIGGER = "trigger"  # One-shot directional effect


# =============================================================================
# Errors
# =============================================================================


class ConfigurationError(ValueError):
    """Stage or deck configuration the engine cannot run with."""


class ResolveLoopError(RuntimeError):
    """A resolve call exceeded its pass cap."""


class SessionLockedError(RuntimeError):
    """A session was mutated while it was not accepting input."""


# =============================================================================
# Board Types
# =============================================================================


@dataclass(frozen=True)
class Coord:
    """A board position. y grows downward."""

    x: int
    y: int

    def step(self, direction: Direction) -> Coord:
        dx, dy = DIR_OFFSET[direction]
        return Coord(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class PieceDef:
    """Catalog entry: connectivity at rotation 0."""

    id: str
    category: PieceCategory
    base_mask: int


@dataclass(frozen=True)
class Tile:
    """A piece placed on the board at a given rotation (quarter turns CW)."""

    category: PieceCategory
    piece_id: str
    rotation: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {"category": self.category.value, "pieceId": self.piece_id, "rotation": self.rotation}


Cell = Tile | None


@dataclass(frozen=True)
class Move:
    """A tile moving between two positions (src may be off-grid for refills)."""

    src: Coord
    dst: Coord
    tile: Tile

    def as_dict(self) -> dict[str, Any]:
        return {
            "from": {"x": self.src.x, "y": self.src.y},
            "to": {"x": self.dst.x, "y": self.dst.y},
            "tile": self.tile.as_dict(),
        }


# =============================================================================
# Resolve Steps
# =============================================================================


@dataclass(frozen=True)
class WaterCell:
    """A network cell with its BFS distance from the inlet."""

    coord: Coord
    dist: int


@dataclass(frozen=True)
class WaterStep:
    """Water runs through a network (cells in BFS order)."""

    cells: tuple[WaterCell, ...]

    kind = "WATER"

    def as_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "cells": [{"x": c.coord.x, "y": c.coord.y, "dist": c.dist} for c in self.cells],
        }


@dataclass(frozen=True)
class ClearStep:
    """Cells removed from the board."""

    cells: tuple[Coord, ...]

    kind = "CLEAR"

    def as_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "cells": [{"x": c.x, "y": c.y} for c in self.cells]}


@dataclass(frozen=True)
class DropStep:
    """Tiles falling. refill=True means they arrive from above the board."""

    moves: tuple[Move, ...]
    refill: bool = False

    kind = "DROP"

    def as_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "refill": self.refill, "moves": [m.as_dict() for m in self.moves]}


@dataclass(frozen=True)
class ShiftStep:
    """Tiles carried along a drag path."""

    moves: tuple[Move, ...]

    kind = "SHIFT"

    def as_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "moves": [m.as_dict() for m in self.moves]}


@dataclass(frozen=True)
class FlowCountStep:
    """The flow counter changed."""

    delta: int = 1

    kind = "FLOW_COUNT"

    def as_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "delta": self.delta}


ResolveStep = WaterStep | ClearStep | DropStep | ShiftStep | FlowCountStep


@dataclass
class ResolveResult:
    """Outcome of one resolve call."""

    steps: list[ResolveStep]
    flows_gained: int = 0
