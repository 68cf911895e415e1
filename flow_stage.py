"""
Stage configuration: immutable data consumed by the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Literal, Mapping

from flow_pieces import PIECE_DEFS
from flow_types import ConfigurationError, Direction

ALL: Literal["ALL"] = "ALL"

EdgeIndices = Literal["ALL"] | tuple[int, ...]

# Default table used when an initial fill asks for initial weights.
DEFAULT_INITIAL_WEIGHTS: Mapping[str, float] = MappingProxyType(
    {"I2": 50, "L2": 40, "T3": 10, "X4": 0, "STOP1": 0, "ARROW": 0}
)


class FaucetMode(Enum):
    """How edge index lists are interpreted."""

    ANY_EDGE = "ANY_EDGE"  # Every index on both edges, lists ignored
    MASKED = "MASKED"  # Only listed indices
    SINGLE = "SINGLE"  # Only the first listed index (0 for ALL)


@dataclass(frozen=True)
class BoardSize:
    width: int
    height: int


@dataclass(frozen=True)
class EdgeSelector:
    """
    One board edge and the indices along it that carry a faucet.

    `side` is the direction of the exterior: L is the left column (indices are
    rows), R the right column, U the top row (indices are columns), D the
    bottom row.
    """

    side: Direction
    indices: EdgeIndices = ALL

    def __post_init__(self) -> None:
        if self.indices != ALL:
            object.__setattr__(self, "indices", tuple(int(i) for i in self.indices))


@dataclass(frozen=True)
class FaucetConfig:
    mode: FaucetMode = FaucetMode.ANY_EDGE
    inlet: EdgeSelector = EdgeSelector(Direction.L)
    outlet: EdgeSelector = EdgeSelector(Direction.R)

    def _enabled(self, edge: EdgeSelector, index: int) -> bool:
        if self.mode is FaucetMode.ANY_EDGE:
            return True
        if self.mode is FaucetMode.SINGLE:
            first = 0 if edge.indices == ALL or not edge.indices else edge.indices[0]
            return index == first
        return edge.indices == ALL or index in edge.indices

    def inlet_enabled(self, index: int) -> bool:
        return self._enabled(self.inlet, index)

    def outlet_enabled(self, index: int) -> bool:
        return self._enabled(self.outlet, index)


@dataclass(frozen=True)
class DeckConfig:
    """Spawn table. Pieces missing from `enabled_pieces` count as enabled."""

    weights: Mapping[str, float]
    enabled_pieces: Mapping[str, bool] = field(default_factory=dict)
    rng_seed: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "weights", MappingProxyType(dict(self.weights)))
        object.__setattr__(self, "enabled_pieces", MappingProxyType(dict(self.enabled_pieces)))


@dataclass(frozen=True)
class InitialFill:
    rows_from_bottom: int = 0
    use_initial_weights: bool = False
    weights: Mapping[str, float] | None = None

    def __post_init__(self) -> None:
        if self.weights is not None:
            object.__setattr__(self, "weights", MappingProxyType(dict(self.weights)))

    def initial_weights(self) -> Mapping[str, float] | None:
        """Weights for the initial fill, or None to use the deck weights."""
        if not self.use_initial_weights and self.weights is None:
            return None
        merged = dict(DEFAULT_INITIAL_WEIGHTS)
        merged.update(self.weights or {})
        return MappingProxyType(merged)


@dataclass(frozen=True)
class Goal:
    flows_to_clear: int = 1


@dataclass(frozen=True)
class StageConfig:
    """Everything the engine needs to build and run one puzzle."""

    board: BoardSize
    deck: DeckConfig
    faucets: FaucetConfig = FaucetConfig()
    initial_fill: InitialFill = InitialFill()
    goal: Goal = Goal()
    id: str = ""
    name: str = ""

    def __post_init__(self) -> None:
        problems: list[str] = []

        if self.board.width < 1 or self.board.height < 1:
            problems.append(f"board must be at least 1x1, got {self.board.width}x{self.board.height}")

        tables = [("deck.weights", self.deck.weights), ("deck.enabled_pieces", self.deck.enabled_pieces)]
        if self.initial_fill.weights is not None:
            tables.append(("initial_fill.weights", self.initial_fill.weights))
        for table_name, table in tables:
            unknown = [key for key in table if key not in PIECE_DEFS]
            if unknown:
                problems.append(f"{table_name} has unknown pieces: {', '.join(unknown)}")
        for table_name, table in tables:
            if table_name.endswith("weights"):
                negative = [key for key, w in table.items() if w < 0]
                if negative:
                    problems.append(f"{table_name} has negative weights: {', '.join(negative)}")

        if self.faucets.inlet.side == self.faucets.outlet.side:
            problems.append(f"inlet and outlet share the {self.faucets.inlet.side.name} edge")

        for label, edge in (("inlet", self.faucets.inlet), ("outlet", self.faucets.outlet)):
            if edge.indices == ALL:
                continue
            limit = self.edge_length(edge.side)
            bad = [i for i in edge.indices if not 0 <= i < limit]
            if bad:
                problems.append(f"{label} indices out of range 0..{limit - 1}: {bad}")

        if self.goal.flows_to_clear < 1:
            problems.append(f"goal.flows_to_clear must be >= 1, got {self.goal.flows_to_clear}")

        if problems:
            raise ConfigurationError(
                f"Invalid stage '{self.id or '<unnamed>'}'\n"
                + "\n".join(f"  - {p}" for p in problems)
            )

    def edge_length(self, side: Direction) -> int:
        """Number of cells along an edge."""
        if side in (Direction.L, Direction.R):
            return self.board.height
        return self.board.width


# =============================================================================
# Loading
# =============================================================================


def _edge_from_dict(data: Mapping[str, Any], default_side: Direction) -> EdgeSelector:
    try:
        side = Direction[data.get("side", default_side.name)]
    except KeyError:
        raise ConfigurationError(f"Unknown edge side: {data.get('side')!r} (expected U, R, D or L)") from None
    raw = data.get("enabled", data.get("enabledRows", ALL))
    if raw == ALL:
        return EdgeSelector(side, ALL)
    if not isinstance(raw, (list, tuple)) or not all(isinstance(i, int) and not isinstance(i, bool) for i in raw):
        raise ConfigurationError(
            f"Invalid enabled indices for the {side.name} edge: {raw!r}\n"
            f"  Expected 'ALL' or a list of integer indices"
        )
    return EdgeSelector(side, tuple(raw))


def stage_from_dict(data: Mapping[str, Any]) -> StageConfig:
    """
    Build a stage from the camelCase mapping used by stage files.

    Faucets accept either `inlet`/`outlet` blocks ({"side": "L", "enabled": [0, 2]})
    or the older `left`/`right` blocks ({"enabledRows": "ALL"}).
    """
    try:
        board = BoardSize(int(data["board"]["width"]), int(data["board"]["height"]))
        deck_data = data["deck"]
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Stage board or deck data is missing or malformed: {exc!r}") from None

    faucet_data = data.get("faucets") or {}
    if "inlet" in faucet_data or "outlet" in faucet_data:
        inlet = _edge_from_dict(faucet_data.get("inlet") or {}, Direction.L)
        outlet = _edge_from_dict(faucet_data.get("outlet") or {}, Direction.R)
    else:
        inlet = _edge_from_dict(faucet_data.get("left") or {}, Direction.L)
        outlet = _edge_from_dict(faucet_data.get("right") or {}, Direction.R)
    try:
        mode = FaucetMode(faucet_data.get("mode", FaucetMode.ANY_EDGE.value))
    except ValueError:
        raise ConfigurationError(f"Unknown faucet mode: {faucet_data.get('mode')!r}") from None

    seed = (deck_data.get("rng") or {}).get("seed", deck_data.get("rngSeed"))
    deck = DeckConfig(
        weights=deck_data.get("weights", {}),
        enabled_pieces=deck_data.get("enabledPieces", {}),
        rng_seed=seed,
    )

    fill_data = data.get("initialFill") or {}
    initial_fill = InitialFill(
        rows_from_bottom=int(fill_data.get("rowsFromBottom", 0)),
        use_initial_weights=bool(fill_data.get("useInitialWeights", False)),
        weights=fill_data.get("initialWeights", fill_data.get("weights")),
    )

    goal_data = data.get("goal") or {}
    goal = Goal(int(goal_data.get("flowsToClear", goal_data.get("waterFlowsToClear", 1))))

    return StageConfig(
        board=board,
        deck=deck,
        faucets=FaucetConfig(mode, inlet, outlet),
        initial_fill=initial_fill,
        goal=goal,
        id=str(data.get("id", "")),
        name=str(data.get("name", "")),
    )


def stage_001() -> StageConfig:
    """Tutorial 1: 5x7, water runs left to right."""
    return stage_from_dict(
        {
            "id": "stage_001",
            "name": "Tutorial 1",
            "board": {"width": 5, "height": 7},
            "goal": {"waterFlowsToClear": 3},
            "faucets": {
                "mode": "ANY_EDGE",
                "left": {"enabledRows": "ALL"},
                "right": {"enabledRows": "ALL"},
            },
            "deck": {
                "enabledPieces": {"I2": True, "L2": True, "T3": True, "X4": False, "STOP1": False, "ARROW": False},
                "weights": {"I2": 45, "L2": 45, "T3": 10, "X4": 0, "STOP1": 0, "ARROW": 0},
                "rng": {"seed": None},
            },
            "initialFill": {"mode": "RANDOM_ROWS", "rowsFromBottom": 999, "useInitialWeights": True},
        }
    )


STAGES = {
    "stage_001": stage_001,
}

__all__ = [
    "ALL",
    "BoardSize",
    "DeckConfig",
    "EdgeSelector",
    "FaucetConfig",
    "FaucetMode",
    "Goal",
    "InitialFill",
    "STAGES",
    "StageConfig",
    "stage_001",
    "stage_from_dict",
]
