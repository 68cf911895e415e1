"""
Flow network analysis: reachability from inlets and leak validation.

Two distinct passes. `collect_network` answers "what can water reach from
this inlet?"; `find_leak` answers "is that set a closed run with no open
connector pointing anywhere but the network or an enabled faucet?". A
reachable set can be non-empty yet leaky, so BFS membership alone never
implies validity.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import TypeGuard

from flow_board import Board
from flow_pieces import has_bit, mask_directions, tile_mask
from flow_stage import FaucetConfig
from flow_types import ALL_DIRS, OPPOSITE, Cell, Coord, Direction, PieceCategory, Tile

logger = logging.getLogger(__name__)


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class InletCell:
    """An edge cell opening toward an enabled inlet."""

    index: int  # Position along the inlet edge
    coord: Coord


@dataclass
class FlowNetwork:
    """
    Cells reachable from one inlet, with BFS layer distances.

    `distances` preserves visitation order, so iterating it yields cells in
    wave order from the inlet.
    """

    inlet: InletCell
    distances: dict[Coord, int]

    def __len__(self) -> int:
        return len(self.distances)

    def __contains__(self, pos: object) -> bool:
        return pos in self.distances

    @property
    def cells(self) -> list[Coord]:
        return list(self.distances)


class LeakReason(Enum):
    """Why a network cannot be cleared."""

    OUT_OF_BOUNDS = "out_of_bounds"  # Opens off-grid away from an enabled faucet
    EMPTY_NEIGHBOR = "empty_neighbor"  # Opens into an empty cell
    TRIGGER_NEIGHBOR = "trigger_neighbor"  # Opens into a trigger tile
    CLOSED_NEIGHBOR = "closed_neighbor"  # Neighbor lacks the matching opening
    NOT_IN_NETWORK = "not_in_network"  # Neighbor matches but wasn't collected
    MISSING_TILE = "missing_tile"  # A network cell is empty


@dataclass(frozen=True)
class Leak:
    """First leaking connector found in a network."""

    coord: Coord
    direction: Direction
    reason: LeakReason

    def __str__(self) -> str:
        target = self.coord.step(self.direction)
        return (
            f"{self.reason.name} at ({self.coord.x},{self.coord.y})"
            f"->({target.x},{target.y}) dir={self.direction.name}"
        )


@dataclass(frozen=True)
class NetworkReport:
    """Diagnosis of one inlet's network."""

    inlet: InletCell
    size: int
    reaches_drain: bool
    leak: Leak | None

    @property
    def clearable(self) -> bool:
        return self.size > 0 and self.reaches_drain and self.leak is None


# =============================================================================
# Reachability
# =============================================================================


def _is_conduit(tile: Cell) -> TypeGuard[Tile]:
    return tile is not None and tile.category is PieceCategory.CONDUIT


def inlet_cells(board: Board, faucets: FaucetConfig) -> list[InletCell]:
    """
    Edge cells that take water from an enabled inlet, ascending index.

    A cell qualifies when it holds a conduit, its edge index is enabled and
    its mask opens toward the inlet side's exterior. Trigger tiles never take
    water.
    """
    side = faucets.inlet.side
    cells: list[InletCell] = []
    for index, pos in board.edge_cells(side):
        if not faucets.inlet_enabled(index):
            continue
        tile = board[pos]
        if not _is_conduit(tile) or not has_bit(tile_mask(tile), side):
            continue
        cells.append(InletCell(index, pos))
    return cells


def collect_network(board: Board, inlet: InletCell) -> FlowNetwork:
    """
    Breadth-first flood fill from a single inlet cell.

    A step from a cell in direction d is taken only if the neighbor is in
    bounds, holds a conduit, opens toward OPPOSITE[d], and hasn't been visited.
    Networks from different inlets are never merged.
    """
    distances: dict[Coord, int] = {}
    if not _is_conduit(board[inlet.coord]):
        return FlowNetwork(inlet, distances)

    distances[inlet.coord] = 0
    queue: deque[Coord] = deque([inlet.coord])

    while queue:
        current = queue.popleft()
        tile = board[current]
        if tile is None:
            continue
        mask = tile_mask(tile)
        for direction in ALL_DIRS:
            if not has_bit(mask, direction):
                continue
            neighbor = current.step(direction)
            if neighbor in distances:
                continue
            neighbor_tile = board[neighbor]
            if not _is_conduit(neighbor_tile):
                continue
            if not has_bit(tile_mask(neighbor_tile), OPPOSITE[direction]):
                continue
            distances[neighbor] = distances[current] + 1
            queue.append(neighbor)

    return FlowNetwork(inlet, distances)


# =============================================================================
# Validation
# =============================================================================


def _faucet_opening(board: Board, faucets: FaucetConfig, pos: Coord, direction: Direction) -> bool:
    """Whether an off-grid connector lands on an enabled inlet or outlet."""
    if direction == faucets.inlet.side:
        index = board.edge_index(pos, direction)
        if index is not None and faucets.inlet_enabled(index):
            return True
    if direction == faucets.outlet.side:
        index = board.edge_index(pos, direction)
        if index is not None and faucets.outlet_enabled(index):
            return True
    return False


def reaches_drain(board: Board, network: FlowNetwork, faucets: FaucetConfig) -> bool:
    """Some network cell on the outlet edge opens toward an enabled drain."""
    side = faucets.outlet.side
    for pos in network.distances:
        index = board.edge_index(pos, side)
        if index is None or not faucets.outlet_enabled(index):
            continue
        tile = board[pos]
        if tile is not None and has_bit(tile_mask(tile), side):
            return True
    return False


def find_leak(board: Board, network: FlowNetwork, faucets: FaucetConfig) -> Leak | None:
    """
    Walk every open connector of every network cell; return the first leak.

    Cells are visited in network order and connectors in canonical direction
    order, so the reported leak is deterministic.
    """
    for pos in network.distances:
        tile = board[pos]
        if tile is None:
            return Leak(pos, Direction.U, LeakReason.MISSING_TILE)

        for direction in mask_directions(tile_mask(tile)):
            neighbor = pos.step(direction)

            if not board.in_bounds(neighbor.x, neighbor.y):
                if _faucet_opening(board, faucets, pos, direction):
                    continue
                return Leak(pos, direction, LeakReason.OUT_OF_BOUNDS)

            neighbor_tile = board[neighbor]
            if neighbor_tile is None:
                return Leak(pos, direction, LeakReason.EMPTY_NEIGHBOR)

            if not _is_conduit(neighbor_tile):
                return Leak(pos, direction, LeakReason.TRIGGER_NEIGHBOR)

            if not has_bit(tile_mask(neighbor_tile), OPPOSITE[direction]):
                return Leak(pos, direction, LeakReason.CLOSED_NEIGHBOR)

            if neighbor not in network:
                return Leak(pos, direction, LeakReason.NOT_IN_NETWORK)

    return None


def is_valid(board: Board, network: FlowNetwork, faucets: FaucetConfig) -> bool:
    return find_leak(board, network, faucets) is None


def find_clearable(board: Board, faucets: FaucetConfig) -> FlowNetwork | None:
    """
    First network, in ascending inlet order, that reaches the drain without
    leaking. The scan order is the tie-break that keeps resolves deterministic.
    """
    for inlet in inlet_cells(board, faucets):
        network = collect_network(board, inlet)
        if not network:
            continue
        if not reaches_drain(board, network, faucets):
            continue
        leak = find_leak(board, network, faucets)
        if leak is not None:
            logger.debug("find_clearable: inlet %d blocked by %s", inlet.index, leak)
            continue
        return network
    return None


def diagnose(board: Board, faucets: FaucetConfig) -> list[NetworkReport]:
    """One report per inlet cell explaining whether its network can clear."""
    reports: list[NetworkReport] = []
    for inlet in inlet_cells(board, faucets):
        network = collect_network(board, inlet)
        reports.append(
            NetworkReport(
                inlet=inlet,
                size=len(network),
                reaches_drain=reaches_drain(board, network, faucets),
                leak=find_leak(board, network, faucets),
            )
        )
    return reports
