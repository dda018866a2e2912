from abc import ABCMeta, abstractmethod

from greed.game_numba import GameEngine


class Policy(metaclass=ABCMeta):
    @abstractmethod
    def sample_direction(self, engine: GameEngine) -> int:
        """
        Pick the next direction to play.

        When no move is legal any direction may be returned;
        the engine then ends the game.
        """
        raise NotImplementedError
