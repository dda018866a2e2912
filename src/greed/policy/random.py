from typing import Optional

import numpy as np

from greed.game_numba import GameEngine
from greed.policy import Policy


class RandomPolicy(Policy):
    """Uniformly pick one of the legal directions"""

    def __init__(self, seed: Optional[int] = None):
        super().__init__()

        self._rand = np.random.default_rng(seed)

    def sample_direction(self, engine: GameEngine) -> int:
        valid = engine.evaluator.valid_actions(engine.player)
        candidates = np.flatnonzero(valid)

        if candidates.size == 0:
            return 0
        return int(self._rand.choice(candidates))
