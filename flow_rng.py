"""
Small deterministic RNG (xorshift32). Not crypto-safe.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Mapping

from flow_types import ConfigurationError

logger = logging.getLogger(__name__)

MASK32 = 0xFFFFFFFF
ZERO_STATE_SEED = 0x12345678  # xorshift never leaves the zero state


def entropy_seed() -> int:
    """Seed for stages that don't fix one."""
    return (time.time_ns() ^ random.getrandbits(32)) & MASK32


def selectable_weights(
    weights: Mapping[str, float],
    enabled: Mapping[str, bool] | None = None,
) -> list[tuple[str, float]]:
    """
    The (key, weight) pairs a weighted pick can land on, in table order.

    Non-positive weights are dropped, as are keys whose `enabled` flag is
    explicitly False. Keys missing from `enabled` count as enabled.
    """
    return [
        (key, weight)
        for key, weight in weights.items()
        if weight > 0 and (enabled is None or enabled.get(key, True) is not False)
    ]


class XorShift32:
    """
    Seeded 32-bit xorshift generator.

    Identical seed + identical call sequence gives an identical output
    sequence, which is what makes puzzles and tests reproducible.
    """

    def __init__(self, seed: int | None) -> None:
        if seed is None:
            seed = entropy_seed()
            logger.debug("XorShift32: no seed configured, using entropy seed %#010x", seed)
        self.seed = seed & MASK32
        self._x = self.seed or ZERO_STATE_SEED

    def next_u32(self) -> int:
        x = self._x
        x ^= (x << 13) & MASK32
        x ^= x >> 17
        x ^= (x << 5) & MASK32
        self._x = x
        return x

    def next_float01(self) -> float:
        """Uniform float in [0, 1)."""
        return self.next_u32() / 4294967296

    def next_int(self, max_exclusive: int) -> int:
        if max_exclusive <= 0:
            raise ValueError(f"max_exclusive must be > 0, got {max_exclusive}")
        return int(self.next_float01() * max_exclusive)

    def pick_weighted(
        self,
        weights: Mapping[str, float],
        enabled: Mapping[str, bool] | None = None,
    ) -> str:
        """
        Draw a key proportionally to its weight.

        Candidates are filtered by `selectable_weights`.

        Raises:
            ConfigurationError: If nothing is selectable (filtered total <= 0)
        """
        candidates = selectable_weights(weights, enabled)
        total = sum(weight for _, weight in candidates)
        if total <= 0:
            raise ConfigurationError(
                f"No selectable items in weights (total <= 0)\n"
                f"  Weights: {dict(weights)}\n"
                f"  Enabled: {dict(enabled) if enabled is not None else 'all'}"
            )

        r = self.next_float01() * total
        for key, weight in candidates:
            r -= weight
            if r < 0:
                return key
        # Float rounding can leave r at exactly 0 after the last subtraction
        return candidates[-1][0]
