"""
Piece catalog and bitmask rotation helpers.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from flow_types import ALL_DIRS, ConfigurationError, Direction, PieceCategory, PieceDef, Tile

U, R, D, L = Direction.U.value, Direction.R.value, Direction.D.value, Direction.L.value

# Read-only after import.
PIECE_DEFS: Mapping[str, PieceDef] = MappingProxyType(
    {
        "I2": PieceDef("I2", PieceCategory.CONDUIT, U | D),
        "L2": PieceDef("L2", PieceCategory.CONDUIT, U | R),
        "T3": PieceDef("T3", PieceCategory.CONDUIT, L | R | D),
        "X4": PieceDef("X4", PieceCategory.CONDUIT, U | R | D | L),
        "STOP1": PieceDef("STOP1", PieceCategory.CONDUIT, U),
        "ARROW": PieceDef("ARROW", PieceCategory.TRIGGER, R),
    }
)

PIECE_IDS: tuple[str, ...] = tuple(PIECE_DEFS)


def rotate_mask(mask: int, rotation: int) -> int:
    """
    Rotate a connectivity mask clockwise by `rotation` quarter turns.

    Each set bit advances one step in U -> R -> D -> L -> U per turn.
    """
    m = mask & 0b1111
    for _ in range(rotation % 4):
        m = (
            (R if m & U else 0)
            | (D if m & R else 0)
            | (L if m & D else 0)
            | (U if m & L else 0)
        )
    return m


def piece_def(piece_id: str) -> PieceDef:
    try:
        return PIECE_DEFS[piece_id]
    except KeyError:
        raise ConfigurationError(
            f"Unknown piece id: '{piece_id}'\n"
            f"  Known pieces: {', '.join(PIECE_IDS)}"
        ) from None


def piece_mask(piece_id: str, rotation: int) -> int:
    return rotate_mask(piece_def(piece_id).base_mask, rotation)


def tile_mask(tile: Tile) -> int:
    """Effective connectivity of a placed tile."""
    return piece_mask(tile.piece_id, tile.rotation)


def make_tile(piece_id: str, rotation: int = 0) -> Tile:
    return Tile(piece_def(piece_id).category, piece_id, rotation % 4)


def rot_cw(rotation: int) -> int:
    return (rotation + 1) % 4


def rot_ccw(rotation: int) -> int:
    return (rotation + 3) % 4


def has_bit(mask: int, direction: Direction) -> bool:
    return (mask & direction.value) != 0


def mask_directions(mask: int) -> list[Direction]:
    """Open directions of a mask, in canonical order."""
    return [d for d in ALL_DIRS if has_bit(mask, d)]
