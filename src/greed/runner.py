import logging
from typing import Any, Callable, NamedTuple, Optional

import numpy as np

from greed.event import EventEmitter
from greed.game import HEIGHT, WIDTH
from greed.game_numba import GameEngine, GameOver, Moved, MoveOutcome, Rejected
from greed.policy import Policy


class Summary(NamedTuple):
    score: int
    steps: int
    rejected: int
    percentage: float


class EpisodeRunner:
    """
    Play whole games with a policy, without a terminal.
    """

    EVENT_STARTED: str = "started"
    """
    args: (engine,)
    """

    EVENT_STEPPED: str = "stepped"
    """
    args: (engine, direction, outcome)
    """

    def __init__(
        self,
        policy: Policy,
        *,
        height: int = HEIGHT,
        width: int = WIDTH,
        max_rejections: int = 100,
        logger: logging.Logger | None = None,
    ):
        self.policy = policy
        self.height = height
        self.width = width

        # a policy that keeps choosing illegal directions would never finish
        self._max_rejections = max_rejections
        self._logger = logger
        self._emitter = EventEmitter()

    def add_callback(self, event: str, fn: Callable[..., Any]):
        assert event in {self.EVENT_STARTED, self.EVENT_STEPPED}

        self._emitter.add_listener(event, fn)

    def new_engine(self, rng: np.random.Generator) -> GameEngine:
        return GameEngine.new_game(
            self.height,
            self.width,
            rng=rng,
            logger=self._logger,
        )

    def play(self, engine: GameEngine) -> Summary:
        self._emitter.emit(self.EVENT_STARTED, (engine,))

        rejected = 0
        while not engine.completed:
            direction = self.policy.sample_direction(engine)
            outcome: MoveOutcome = engine.apply_move(direction)
            self._emitter.emit(self.EVENT_STEPPED, (engine, direction, outcome))

            if isinstance(outcome, Rejected):
                rejected += 1
                if rejected >= self._max_rejections:
                    raise RuntimeError(
                        f"{type(self.policy).__name__} made {rejected} bad moves"
                    )
            else:
                assert isinstance(outcome, (Moved, GameOver)), outcome

        return Summary(
            score=engine.score,
            steps=engine.steps,
            rejected=rejected,
            percentage=engine.percentage,
        )

    def play_many(self, count: int, seed: Optional[int] = None) -> list[Summary]:
        rng = np.random.default_rng(seed)
        return [self.play(self.new_engine(rng)) for _ in range(count)]
