"""
Interactive terminal demo for pipeflow.
Move a cursor over the board and rotate or swap tiles with keyboard commands.
"""

import logging
import sys

import readchar
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from board_render import render_board, render_steps
from flow_session import GameSession, PlayState
from flow_stage import STAGES, StageConfig
from flow_types import Coord, ResolveStep


class InteractiveDemo:
    """Keyboard-driven session on one stage."""

    def __init__(self, stage: StageConfig) -> None:
        self.session = GameSession(stage)
        self.console = Console()
        self.cursor = Coord(0, self.session.engine.height - 1)
        self.swap_from: Coord | None = None
        self.last_steps: list[ResolveStep] = []
        self.status_message = "Ready"

    def generate_display(self) -> Panel:
        """Generate the current display with board, steps and status."""
        engine = self.session.engine
        board_text = render_board(engine.board, engine.stage.faucets, cell_width=3, cursor=self.cursor)

        status = Text()
        status.append("Flows: ", style="bold")
        status.append(f"{self.session.flows}/{self.session.goal}   ")
        status.append("Seed: ", style="bold")
        status.append(f"{engine.seed:#010x}\n\n")

        status.append(Text.from_ansi(board_text))
        status.append("\n\n")

        if self.last_steps:
            status.append("Last resolve:\n", style="bold cyan")
            status.append(render_steps(self.last_steps[-8:]) + "\n\n")

        status.append("Keys:\n", style="bold cyan")
        status.append("  W/A/S/D - Move cursor\n")
        status.append("  E       - Rotate tile clockwise\n")
        status.append("  X       - Pick swap source / swap with it\n")
        status.append("  T       - Fire arrow tile\n")
        status.append("  R       - Restart stage\n")
        status.append("  Q       - Quit\n\n")

        status.append("─" * 40 + "\n", style="dim")
        status.append("Status: ", style="bold")
        status.append(self.status_message)

        border = "yellow" if self.session.state is PlayState.CLEAR else "green"
        title = f"pipeflow - {engine.stage.name or engine.stage.id or 'stage'}"
        return Panel(status, title=title, border_style=border, width=80)

    def move_cursor(self, dx: int, dy: int) -> None:
        engine = self.session.engine
        x = max(0, min(engine.width - 1, self.cursor.x + dx))
        y = max(0, min(engine.height - 1, self.cursor.y + dy))
        self.cursor = Coord(x, y)

    def play(self, steps: list[ResolveStep], action: str) -> None:
        """Record the steps and hand input back (no animation in the terminal)."""
        self.last_steps = steps
        state = self.session.finish_playback()
        flows = sum(1 for step in steps if step.kind == "FLOW_COUNT")
        self.status_message = f"✓ {action}: {len(steps)} steps, +{flows} flows"
        if state is PlayState.CLEAR:
            self.status_message += " - stage clear! (R to play again)"

    def attempt(self, action: str) -> None:
        if not self.session.can_interact():
            self.status_message = f"✗ {action} ignored: stage is {self.session.state.name}"
            return

        if action == "rotate":
            self.play(self.session.rotate(self.cursor.x, self.cursor.y), "Rotated")
        elif action == "swap":
            if self.swap_from is None:
                self.swap_from = self.cursor
                self.status_message = f"Swap from ({self.cursor.x},{self.cursor.y}) - move and press X"
                return
            source, self.swap_from = self.swap_from, None
            self.play(self.session.swap(source, self.cursor), "Swapped")
        elif action == "trigger":
            self.play(self.session.trigger(self.cursor), "Triggered")

    def run(self) -> None:
        """Run the interactive demo."""
        self.play(self.session.settle(), "Initial resolve")

        with Live(self.generate_display(), console=self.console, refresh_per_second=4) as live:
            try:
                while True:
                    live.update(self.generate_display())

                    key = readchar.readkey().lower()

                    if key == "q":
                        self.status_message = "Quitting..."
                        live.update(self.generate_display())
                        break
                    elif key == "r":
                        self.session.restart()
                        self.swap_from = None
                        self.play(self.session.settle(), "Restarted")
                    elif key == "w":
                        self.move_cursor(0, -1)
                    elif key == "s":
                        self.move_cursor(0, 1)
                    elif key == "a":
                        self.move_cursor(-1, 0)
                    elif key == "d":
                        self.move_cursor(1, 0)
                    elif key == "e":
                        self.attempt("rotate")
                    elif key == "x":
                        self.attempt("swap")
                    elif key == "t":
                        self.attempt("trigger")
                    else:
                        self.status_message = f"Unknown key: {repr(key)}"

            except KeyboardInterrupt:
                self.status_message = "Interrupted by user"
                live.update(self.generate_display())


if __name__ == "__main__":
    if "--debug" in sys.argv:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s: %(name)s: %(message)s")
    names = [arg for arg in sys.argv[1:] if not arg.startswith("--")]
    stage_name = names[0] if names else "stage_001"
    if stage_name not in STAGES:
        print(f"Unknown stage '{stage_name}'. Available: {', '.join(STAGES)}")
        sys.exit(1)
    InteractiveDemo(STAGES[stage_name]()).run()
