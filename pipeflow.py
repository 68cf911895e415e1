"""
Pipe flow resolution engine.

Rotate/swap/shift calls mutate the board; `resolve_all` then repeatedly
finds the first leak-free network that reaches the drain, clears it, lets
tiles fall, refills from the deck, and records every change as an ordered
list of steps for a renderer to replay.
"""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from flow_board import Board
from flow_network import NetworkReport, diagnose, find_clearable
from flow_pieces import make_tile, mask_directions, tile_mask
from flow_rng import XorShift32, selectable_weights
from flow_stage import DeckConfig, StageConfig
from flow_types import (
    Cell,
    ClearStep,
    ConfigurationError,
    Coord,
    DropStep,
    FlowCountStep,
    Move,
    PieceCategory,
    ResolveLoopError,
    ResolveResult,
    ResolveStep,
    Tile,
    WaterCell,
    WaterStep,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_PASSES = 1000


# =============================================================================
# Spawner
# =============================================================================


class Spawner:
    """Draws new tiles from a deck with the engine's RNG."""

    def __init__(self, deck: DeckConfig, rng: XorShift32) -> None:
        self.deck = deck
        self.rng = rng
        if not selectable_weights(deck.weights, deck.enabled_pieces):
            raise ConfigurationError(
                f"Deck has no selectable pieces\n"
                f"  Weights: {dict(deck.weights)}\n"
                f"  Enabled: {dict(deck.enabled_pieces)}"
            )

    def spawn(self, weights: Mapping[str, float] | None = None) -> Tile:
        """Pick a piece (deck weights unless overridden), then a rotation."""
        piece_id = self.rng.pick_weighted(
            weights if weights is not None else self.deck.weights,
            self.deck.enabled_pieces,
        )
        return make_tile(piece_id, self.rng.next_int(4))


# =============================================================================
# Engine
# =============================================================================


class Engine:
    """
    One puzzle attempt: board, RNG and flow counter for a stage.

    The engine is single-writer. Callers must not mutate it again until they
    have finished consuming the steps of the previous call.
    """

    def __init__(self, stage: StageConfig, max_passes: int = DEFAULT_MAX_PASSES) -> None:
        self._stage = stage
        self.max_passes = max_passes
        self.board = Board(stage.board.width, stage.board.height)
        self.rng = XorShift32(stage.deck.rng_seed)
        self.spawner = Spawner(stage.deck, self.rng)
        self._flows_gained = 0

        self.current_piece: Tile | None = None
        self.aim_column = self.width // 2

        self._apply_initial_fill()
        # No auto-resolve: the caller decides when the first resolve runs.

    # -------------------------------------------------------------------------
    # Read-only accessors
    # -------------------------------------------------------------------------

    @property
    def stage(self) -> StageConfig:
        return self._stage

    @property
    def width(self) -> int:
        return self.board.width

    @property
    def height(self) -> int:
        return self.board.height

    @property
    def flows_gained(self) -> int:
        """Cumulative flows cleared by this engine."""
        return self._flows_gained

    @property
    def seed(self) -> int:
        """The RNG seed actually in use (entropy-derived if the stage had none)."""
        return self.rng.seed

    def get_cell(self, x: int, y: int) -> Cell:
        return self.board.get_cell(x, y)

    def in_bounds(self, x: int, y: int) -> bool:
        return self.board.in_bounds(x, y)

    # -------------------------------------------------------------------------
    # Player mutations
    # -------------------------------------------------------------------------

    def rotate_cw(self, x: int, y: int) -> None:
        self.board.rotate_cw(x, y)

    def swap_cells(self, a: Coord, b: Coord) -> None:
        self.board.swap_cells(a, b)

    def shift_along_path(self, path: Sequence[Coord]) -> list[Move]:
        return self.board.shift_along_path(path)

    def set_cell(self, x: int, y: int, tile: Cell) -> None:
        self.board.set_cell(x, y, tile)

    def load_layout(self, rows: Sequence[Sequence[Cell]]) -> None:
        """Replace the whole board, e.g. with a parsed layout."""
        self.board.load(rows)

    # -------------------------------------------------------------------------
    # Resolve loop
    # -------------------------------------------------------------------------

    def resolve_all(self) -> ResolveResult:
        """
        Clear valid networks until none is left.

        Each pass clears at most one network: the first valid one in ascending
        inlet order. After a clear the board has changed, so scanning restarts
        from the first inlet.

        Raises:
            ResolveLoopError: If more than `max_passes` passes were needed
        """
        steps: list[ResolveStep] = []
        flows = 0
        passes = 0
        cleared = True

        while cleared:
            passes += 1
            if passes > self.max_passes:
                raise ResolveLoopError(
                    f"resolve_all exceeded {self.max_passes} passes\n"
                    f"  Flows cleared so far: {flows}\n"
                    f"  Stage: '{self._stage.id or '<unnamed>'}'\n"
                    f"  The stage's deck keeps producing clearable networks after refill"
                )

            network = find_clearable(self.board, self._stage.faucets)
            cleared = network is not None
            if network is None:
                continue

            cells = network.cells
            steps.append(WaterStep(tuple(WaterCell(pos, dist) for pos, dist in network.distances.items())))

            self.board.clear_cells(cells)
            steps.append(ClearStep(tuple(cells)))

            flows += 1
            self._flows_gained += 1
            steps.append(FlowCountStep(1))
            logger.info(
                "resolve_all: cleared %d cells from inlet %d (flows=%d)",
                len(cells),
                network.inlet.index,
                self._flows_gained,
            )

            gravity_moves = self.board.apply_gravity()
            if gravity_moves:
                steps.append(DropStep(tuple(gravity_moves)))

            refill_moves = self.refill()
            if refill_moves:
                steps.append(DropStep(tuple(refill_moves), refill=True))

        logger.debug("resolve_all: settled after %d passes, %d flows", passes, flows)
        return ResolveResult(steps, flows)

    def refill(self) -> list[Move]:
        """Fill every empty cell from the deck; moves come from row -1."""
        moves: list[Move] = []
        for x in range(self.width):
            for y in range(self.height):
                if self.board.get_cell(x, y) is not None:
                    continue
                tile = self.spawner.spawn()
                self.board.set_cell(x, y, tile)
                moves.append(Move(Coord(x, -1), Coord(x, y), tile))
        return moves

    def diagnose(self) -> list[NetworkReport]:
        """Why each inlet's network does or doesn't clear right now."""
        return diagnose(self.board, self._stage.faucets)

    # -------------------------------------------------------------------------
    # Triggers
    # -------------------------------------------------------------------------

    def trigger_at(self, pos: Coord) -> list[ResolveStep]:
        """
        Fire a trigger tile (ARROW).

        Clears the tile and every contiguous occupied cell along its open
        direction, stopping at the first empty cell or the board edge, then
        applies gravity. Not a flow: no refill and no flow count.
        """
        tile = self.board[pos]
        if tile is None or tile.category is not PieceCategory.TRIGGER:
            return []

        directions = mask_directions(tile_mask(tile))
        if not directions:
            return []
        direction = directions[0]

        to_clear = [pos]
        current = pos.step(direction)
        while self.board[current] is not None:
            to_clear.append(current)
            current = current.step(direction)

        self.board.clear_cells(to_clear)
        steps: list[ResolveStep] = [ClearStep(tuple(to_clear))]
        logger.info("trigger_at: %s at (%d,%d) cleared %d cells", tile.piece_id, pos.x, pos.y, len(to_clear))

        moves = self.board.apply_gravity()
        if moves:
            steps.append(DropStep(tuple(moves)))
        return steps

    # -------------------------------------------------------------------------
    # Drop mode
    # -------------------------------------------------------------------------

    def spawn_next_piece(self) -> Tile:
        self.current_piece = self.spawner.spawn()
        return self.current_piece

    def move_aim(self, dx: int) -> None:
        self.aim_column = max(0, min(self.width - 1, self.aim_column + dx))

    def drop_row(self, col: int) -> int | None:
        """Lowest empty row in a column, or None if it is full."""
        if not 0 <= col < self.width:
            return None
        for y in range(self.height - 1, -1, -1):
            if self.board.get_cell(col, y) is None:
                return y
        return None

    def can_place_any(self) -> bool:
        return any(self.drop_row(x) is not None for x in range(self.width))

    def drop_current(self) -> Coord | None:
        """Place the current piece at the bottom of the aimed column."""
        if self.current_piece is None:
            return None
        y = self.drop_row(self.aim_column)
        if y is None:
            return None
        self.board.set_cell(self.aim_column, y, self.current_piece)
        self.current_piece = None
        return Coord(self.aim_column, y)

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def _apply_initial_fill(self) -> None:
        fill = self._stage.initial_fill
        rows = max(0, min(self.height, fill.rows_from_bottom))
        if rows == 0:
            return

        weights = fill.initial_weights()
        for y in range(self.height - rows, self.height):
            for x in range(self.width):
                self.board.set_cell(x, y, self.spawner.spawn(weights))
        logger.debug("initial fill: %d rows (seed=%#010x)", rows, self.seed)
