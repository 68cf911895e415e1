"""
Demonstration script for the pipeflow engine.
"""

import logging
import sys

from board_parser import parse_board, parse_board_concise
from board_render import render_board, render_steps
from flow_stage import ALL, BoardSize, DeckConfig, EdgeSelector, FaucetConfig, FaucetMode, StageConfig, stage_001
from flow_types import Coord, Direction
from pipeflow import Engine


def show(engine: Engine, title: str) -> None:
    print("=" * 40)
    print(title)
    print("=" * 40)
    print(render_board(engine.board, engine.stage.faucets, cell_width=3))
    for report in engine.diagnose():
        verdict = "clears" if report.clearable else f"blocked ({report.leak or 'no drain'})"
        print(f"  inlet {report.inlet.index}: {report.size} cells, {verdict}")
    print()


def demo() -> None:
    """Walk through a straight run, a leaky branch and a seeded stage."""
    # Single-opening refills can never reconnect left to right, so each
    # resolve below stops after the scripted clears.
    quiet_deck = DeckConfig(weights={"STOP1": 1}, rng_seed=7)

    straight = StageConfig(board=BoardSize(3, 1), deck=quiet_deck, id="straight")
    engine = Engine(straight)
    engine.load_layout(parse_board("I2:1 I2:1 I2:1"))
    show(engine, "Straight run (left to right):")
    print(render_steps(engine.resolve_all().steps))
    print()

    leaky = StageConfig(board=BoardSize(3, 2), deck=quiet_deck, id="leaky")
    engine = Engine(leaky)
    engine.load_layout(parse_board_concise("─┬─|···"))
    show(engine, "T-junction leaking into an empty cell:")
    engine.set_cell(1, 1, parse_board("STOP1")[0][0])
    show(engine, "Same junction capped with a stop:")
    print(render_steps(engine.resolve_all().steps))
    print()

    vertical = StageConfig(
        board=BoardSize(2, 3),
        deck=quiet_deck,
        faucets=FaucetConfig(
            FaucetMode.MASKED,
            inlet=EdgeSelector(Direction.U, (1,)),
            outlet=EdgeSelector(Direction.D, ALL),
        ),
        id="vertical",
    )
    engine = Engine(vertical)
    engine.load_layout(parse_board_concise("╷│|╷│|╷│"))
    show(engine, "Top inlet on column 1, drain along the bottom:")
    print(render_steps(engine.resolve_all().steps))
    print()

    engine = Engine(stage_001())
    show(engine, f"stage_001 (seed {engine.seed:#010x}):")
    result = engine.resolve_all()
    print(render_steps(result.steps))
    print(f"flows gained: {result.flows_gained}")
    engine.rotate_cw(0, engine.height - 1)
    engine.swap_cells(Coord(1, engine.height - 1), Coord(2, engine.height - 1))
    show(engine, "After one rotate and one swap:")
    print(render_steps(engine.resolve_all().steps))


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "--debug":
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s: %(name)s: %(message)s")
    demo()
