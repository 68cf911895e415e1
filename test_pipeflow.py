"""Tests for the resolve engine, triggers and drop mode."""

import logging

import pytest

from board_parser import format_board, parse_board
from flow_pieces import make_tile
from flow_stage import BoardSize, DeckConfig, FaucetConfig, InitialFill, StageConfig, stage_001
from flow_types import (
    ClearStep,
    ConfigurationError,
    Coord,
    DropStep,
    FlowCountStep,
    ResolveLoopError,
    WaterStep,
)
from flow_rng import XorShift32
from pipeflow import Engine, Spawner

# Single-opening refills can never join an inlet to a drain.
QUIET_DECK = DeckConfig(weights={"STOP1": 1}, rng_seed=99)


def engine_for(layout: str, faucets: FaucetConfig = FaucetConfig(), **kwargs: int) -> Engine:
    rows = parse_board(layout)
    stage = StageConfig(board=BoardSize(len(rows[0]), len(rows)), deck=QUIET_DECK, faucets=faucets)
    engine = Engine(stage, **kwargs)
    engine.load_layout(rows)
    return engine


def seeded_stage(seed: int, rows_from_bottom: int = 999) -> StageConfig:
    return StageConfig(
        board=BoardSize(5, 7),
        deck=DeckConfig(weights={"I2": 45, "L2": 45, "T3": 10}, rng_seed=seed),
        initial_fill=InitialFill(rows_from_bottom=rows_from_bottom, use_initial_weights=True),
        id=f"seeded_{seed}",
    )


class TestResolveAll:
    """Tests for the clear/gravity/refill loop."""

    def test_straight_run(self) -> None:
        engine = engine_for("I2:1 I2:1 I2:1")
        result = engine.resolve_all()

        assert [step.kind for step in result.steps] == ["WATER", "CLEAR", "FLOW_COUNT", "DROP"]
        water, clear, count, refill = result.steps
        assert isinstance(water, WaterStep)
        assert [(c.coord, c.dist) for c in water.cells] == [(Coord(0, 0), 0), (Coord(1, 0), 1), (Coord(2, 0), 2)]
        assert isinstance(clear, ClearStep)
        assert set(clear.cells) == {Coord(0, 0), Coord(1, 0), Coord(2, 0)}
        assert count == FlowCountStep(1)
        assert isinstance(refill, DropStep) and refill.refill
        assert [m.src for m in refill.moves] == [Coord(0, -1), Coord(1, -1), Coord(2, -1)]
        assert result.flows_gained == 1
        assert engine.flows_gained == 1

    def test_broken_run_does_nothing(self) -> None:
        engine = engine_for("I2:1 I2:0 I2:1")
        result = engine.resolve_all()
        assert result.steps == []
        assert result.flows_gained == 0
        assert format_board(engine.board.rows()) == "I2:1 I2:0 I2:1"

    def test_gravity_then_refill(self) -> None:
        engine = engine_for("I2:0 I2:0 I2:0|I2:1 I2:1 I2:1")
        result = engine.resolve_all()

        assert [step.kind for step in result.steps] == ["WATER", "CLEAR", "FLOW_COUNT", "DROP", "DROP"]
        gravity, refill = result.steps[3], result.steps[4]
        assert isinstance(gravity, DropStep) and not gravity.refill
        assert [(m.src, m.dst) for m in gravity.moves] == [
            (Coord(0, 0), Coord(0, 1)),
            (Coord(1, 0), Coord(1, 1)),
            (Coord(2, 0), Coord(2, 1)),
        ]
        assert isinstance(refill, DropStep) and refill.refill
        assert [m.dst for m in refill.moves] == [Coord(0, 0), Coord(1, 0), Coord(2, 0)]
        assert [engine.get_cell(x, 1) for x in range(3)] == [make_tile("I2", 0)] * 3
        assert {engine.get_cell(x, 0).piece_id for x in range(3)} == {"STOP1"}  # type: ignore[union-attr]

    def test_lowest_inlet_clears_first(self) -> None:
        engine = engine_for("I2:1 I2:1 I2:1|I2:1 I2:1 I2:1")
        result = engine.resolve_all()

        waters = [step for step in result.steps if isinstance(step, WaterStep)]
        assert len(waters) == 2
        assert {c.coord.y for c in waters[0].cells} == {0}
        assert {c.coord.y for c in waters[1].cells} == {1}
        assert result.flows_gained == 2

    def test_flow_count_matches_clears(self) -> None:
        engine = engine_for("I2:1 I2:1 I2:1|I2:1 I2:1 I2:1")
        result = engine.resolve_all()
        kinds = [step.kind for step in result.steps]
        assert kinds.count("CLEAR") == kinds.count("FLOW_COUNT") == result.flows_gained

    def test_counter_accumulates(self) -> None:
        engine = engine_for("I2:1 I2:1 I2:1")
        engine.resolve_all()
        engine.load_layout(parse_board("I2:1 I2:1 I2:1"))
        engine.resolve_all()
        assert engine.flows_gained == 2

    def test_pass_cap(self) -> None:
        engine = engine_for("I2:1 I2:1 I2:1", max_passes=1)
        with pytest.raises(ResolveLoopError, match="exceeded 1 passes"):
            engine.resolve_all()

    def test_settling_pass_counts_toward_cap(self) -> None:
        """One clearing pass plus the pass that finds nothing fits in two."""
        engine = engine_for("I2:1 I2:1 I2:1", max_passes=2)
        assert engine.resolve_all().flows_gained == 1

    def test_logs_each_clear(self, caplog: pytest.LogCaptureFixture) -> None:
        engine = engine_for("I2:1 I2:1 I2:1")
        with caplog.at_level(logging.INFO, logger="pipeflow"):
            engine.resolve_all()
        assert "cleared 3 cells from inlet 0" in caplog.text

    @pytest.mark.parametrize("seed", [1, 2, 3, 42, 2024])
    def test_board_is_full_after_resolve(self, seed: int) -> None:
        engine = Engine(seeded_stage(seed))
        assert engine.board.is_full()
        engine.resolve_all()
        assert engine.board.is_full()
        for y in range(engine.height):
            engine.rotate_cw(y % engine.width, y)
        engine.resolve_all()
        assert engine.board.is_full()

    @pytest.mark.parametrize("seed", [5, 77, 31337])
    def test_same_seed_same_steps(self, seed: int) -> None:
        a = Engine(seeded_stage(seed))
        b = Engine(seeded_stage(seed))
        assert a.board.rows() == b.board.rows()

        for engine in (a, b):
            engine.rotate_cw(0, 6)
            engine.swap_cells(Coord(1, 6), Coord(2, 5))
        steps_a = a.resolve_all().steps
        steps_b = b.resolve_all().steps
        assert steps_a == steps_b
        assert [s.as_dict() for s in steps_a] == [s.as_dict() for s in steps_b]
        assert a.board.rows() == b.board.rows()

    def test_resolve_is_idempotent_once_settled(self) -> None:
        engine = Engine(seeded_stage(8))
        engine.resolve_all()
        snapshot = engine.board.rows()
        assert engine.resolve_all().steps == []
        assert engine.board.rows() == snapshot

    def test_branch_into_arrow_blocks_the_flow(self) -> None:
        engine = engine_for("I2:1 T3:0 I2:1|STOP1 ARROW:3 STOP1")
        result = engine.resolve_all()
        assert result.steps == []
        assert result.flows_gained == 0
        assert engine.get_cell(1, 1) == make_tile("ARROW", 3)


class TestSetup:
    """Tests for initial fill and spawning."""

    def test_no_auto_resolve(self) -> None:
        engine = Engine(seeded_stage(11))
        assert engine.flows_gained == 0

    def test_partial_fill(self) -> None:
        engine = Engine(seeded_stage(3, rows_from_bottom=2))
        assert all(engine.get_cell(x, y) is None for y in range(5) for x in range(5))
        assert all(engine.get_cell(x, y) is not None for y in (5, 6) for x in range(5))

    def test_initial_weights_override_deck(self) -> None:
        stage = StageConfig(
            board=BoardSize(3, 3),
            deck=QUIET_DECK,
            initial_fill=InitialFill(rows_from_bottom=3, weights={"X4": 1, "I2": 0, "L2": 0, "T3": 0}),
        )
        engine = Engine(stage)
        assert {engine.get_cell(x, y).piece_id for x in range(3) for y in range(3)} == {"X4"}  # type: ignore[union-attr]

    def test_deck_weights_used_without_initial_weights(self) -> None:
        stage = StageConfig(board=BoardSize(3, 3), deck=QUIET_DECK, initial_fill=InitialFill(rows_from_bottom=3))
        engine = Engine(stage)
        assert {engine.get_cell(x, y).piece_id for x in range(3) for y in range(3)} == {"STOP1"}  # type: ignore[union-attr]

    def test_seed_reported(self) -> None:
        assert Engine(seeded_stage(1234)).seed == 1234

    def test_empty_deck_rejected(self) -> None:
        stage = StageConfig(board=BoardSize(3, 3), deck=DeckConfig(weights={"I2": 0, "L2": 0}))
        with pytest.raises(ConfigurationError, match="Deck has no selectable pieces"):
            Engine(stage)

    def test_disabled_deck_rejected(self) -> None:
        deck = DeckConfig(weights={"I2": 5}, enabled_pieces={"I2": False})
        with pytest.raises(ConfigurationError, match="Deck has no selectable pieces"):
            Spawner(deck, XorShift32(1))

    def test_deck_accepted_when_one_piece_is_selectable(self) -> None:
        deck = DeckConfig(weights={"I2": 5, "L2": 0}, enabled_pieces={"L2": True})
        spawner = Spawner(deck, XorShift32(1))
        assert spawner.spawn().piece_id == "I2"

    def test_spawner_respects_enabled(self) -> None:
        deck = DeckConfig(weights={"I2": 5, "L2": 5}, enabled_pieces={"I2": False})
        spawner = Spawner(deck, XorShift32(3))
        assert {spawner.spawn().piece_id for _ in range(50)} == {"L2"}

    def test_stage_001_builds(self) -> None:
        engine = Engine(stage_001())
        assert (engine.width, engine.height) == (5, 7)
        assert engine.board.is_full()
        pieces = {engine.get_cell(x, y).piece_id for x in range(5) for y in range(7)}  # type: ignore[union-attr]
        assert pieces <= {"I2", "L2", "T3"}


class TestTrigger:
    """Tests for firing arrow tiles."""

    def test_arrow_clears_line_and_drops(self) -> None:
        engine = engine_for("I2:0 L2:0 T3:0|ARROW:0 I2:1 I2:0")
        steps = engine.trigger_at(Coord(0, 1))

        assert [step.kind for step in steps] == ["CLEAR", "DROP"]
        assert steps[0] == ClearStep((Coord(0, 1), Coord(1, 1), Coord(2, 1)))
        assert format_board(engine.board.rows()) == "_ _ _|I2:0 L2:0 T3:0"
        assert engine.flows_gained == 0

    def test_arrow_stops_at_empty_cell(self) -> None:
        engine = engine_for("ARROW:0 I2:0 _ I2:0")
        steps = engine.trigger_at(Coord(0, 0))
        assert steps == [ClearStep((Coord(0, 0), Coord(1, 0)))]
        assert format_board(engine.board.rows()) == "_ _ _ I2:0"

    def test_arrow_direction_follows_rotation(self) -> None:
        engine = engine_for("ARROW:1 I2:0|I2:0 I2:0|I2:0 I2:0")
        steps = engine.trigger_at(Coord(0, 0))
        assert steps == [ClearStep((Coord(0, 0), Coord(0, 1), Coord(0, 2)))]

    def test_no_refill_after_trigger(self) -> None:
        engine = engine_for("ARROW:0 I2:0")
        engine.trigger_at(Coord(0, 0))
        assert len(engine.board.empty_cells()) == 2

    @pytest.mark.parametrize("pos", [Coord(1, 0), Coord(2, 0), Coord(9, 9)])
    def test_non_trigger_cells_do_nothing(self, pos: Coord) -> None:
        engine = engine_for("ARROW:0 I2:0 _")
        before = engine.board.rows()
        assert engine.trigger_at(pos) == []
        assert engine.board.rows() == before


class TestDropMode:
    """Tests for aiming and dropping single pieces."""

    def test_drop_lands_on_lowest_empty_row(self) -> None:
        engine = engine_for("_ _ _|_ _ _|_ I2 _")
        assert engine.aim_column == 1
        assert engine.drop_row(1) == 1
        assert engine.drop_row(0) == 2
        assert engine.drop_row(7) is None

        piece = engine.spawn_next_piece()
        assert engine.drop_current() == Coord(1, 1)
        assert engine.get_cell(1, 1) == piece
        assert engine.current_piece is None

    def test_drop_without_piece(self) -> None:
        engine = engine_for("_ _|_ _")
        assert engine.drop_current() is None

    def test_aim_is_clamped(self) -> None:
        engine = engine_for("_ _ _")
        engine.move_aim(-5)
        assert engine.aim_column == 0
        engine.move_aim(10)
        assert engine.aim_column == 2

    def test_full_column(self) -> None:
        engine = engine_for("_ I2|_ I2")
        engine.move_aim(1)
        engine.spawn_next_piece()
        assert engine.drop_current() is None
        assert engine.current_piece is not None
        assert engine.can_place_any()

        engine.load_layout(parse_board("I2 I2|I2 I2"))
        assert not engine.can_place_any()
