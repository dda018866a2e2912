import numpy as np

from greed.game_numba import GameEngine
from greed.policy import Policy


class GreedyPolicy(Policy):
    """
    Pick the legal direction that eats the most cells right now.
    Ties go to the lowest direction index.
    """

    def sample_direction(self, engine: GameEngine) -> int:
        valid = engine.evaluator.valid_actions(engine.player)
        return int(np.argmax(valid))
