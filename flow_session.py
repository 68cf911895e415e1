"""
Turn state around an engine: input lock-out during playback and goal tracking.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Sequence

from flow_stage import StageConfig
from flow_types import Coord, ResolveStep, SessionLockedError, ShiftStep
from pipeflow import Engine

logger = logging.getLogger(__name__)


class PlayState(Enum):
    """Where the session is in its turn cycle."""

    PLAYING = "playing"  # Accepting input
    RESOLVING = "resolving"  # Steps handed out, waiting for playback to finish
    CLEAR = "clear"  # Goal reached


class GameSession:
    """
    Serializes player actions against one engine.

    Every action runs the engine to a settled state and returns the steps for
    the caller to animate. Input stays locked until `finish_playback()`.
    """

    def __init__(self, stage: StageConfig) -> None:
        self.stage = stage
        self.engine = Engine(stage)
        self.state = PlayState.PLAYING

    def __repr__(self) -> str:
        return f"GameSession({self.state.name}, flows={self.flows}/{self.goal})"

    @property
    def flows(self) -> int:
        return self.engine.flows_gained

    @property
    def goal(self) -> int:
        return self.stage.goal.flows_to_clear

    @property
    def goal_reached(self) -> bool:
        return self.flows >= self.goal

    def can_interact(self) -> bool:
        return self.state is PlayState.PLAYING

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def settle(self) -> list[ResolveStep]:
        """Resolve without a player action (e.g. right after the board is built)."""
        self._begin("settle")
        return self.engine.resolve_all().steps

    def rotate(self, x: int, y: int) -> list[ResolveStep]:
        self._begin("rotate")
        self.engine.rotate_cw(x, y)
        return self.engine.resolve_all().steps

    def swap(self, a: Coord, b: Coord) -> list[ResolveStep]:
        self._begin("swap")
        self.engine.swap_cells(a, b)
        return self.engine.resolve_all().steps

    def shift(self, path: Sequence[Coord]) -> list[ResolveStep]:
        """Carry tiles along a drag path; the SHIFT step comes first."""
        self._begin("shift")
        moves = self.engine.shift_along_path(path)
        steps: list[ResolveStep] = [ShiftStep(tuple(moves))] if moves else []
        steps.extend(self.engine.resolve_all().steps)
        return steps

    def trigger(self, pos: Coord) -> list[ResolveStep]:
        self._begin("trigger")
        return self.engine.trigger_at(pos)

    def finish_playback(self) -> PlayState:
        """The caller has replayed the last steps; unlock input unless the goal is met."""
        if self.state is PlayState.RESOLVING:
            if self.goal_reached:
                self.state = PlayState.CLEAR
                logger.info("GameSession: goal reached (%d/%d)", self.flows, self.goal)
            else:
                self.state = PlayState.PLAYING
        return self.state

    def restart(self) -> None:
        """Start a fresh attempt on the same stage."""
        self.engine = Engine(self.stage)
        self.state = PlayState.PLAYING

    def _begin(self, action: str) -> None:
        if not self.can_interact():
            raise SessionLockedError(
                f"Cannot {action} while the session is {self.state.name}\n"
                f"  Call finish_playback() after replaying the previous steps"
            )
        self.state = PlayState.RESOLVING
