"""
Greed engine implemented with numpy and numba
"""

import enum
import logging
from typing import Iterator, NamedTuple, Optional, Union

import numpy as np
from numba import njit

from greed.event import EventEmitter
from greed.game import (
    DIRECTION_NAMES,
    DIRECTIONS,
    HEIGHT,
    WIDTH,
    Grid,
    InvalidState,
    Position,
    check_direction,
)

_NO_DIRECTION = -1


@njit
def _walk(cells: np.ndarray, y: int, x: int, dy: int, dx: int) -> int:
    """
    Walk from (y, x) toward (dy, dx).

    Return the distance travelled by a legal move, or 0 if the move is illegal.
    The distance is the value of the first cell; every cell on the way
    must be inside the grid and not eaten.
    """
    height, width = cells.shape

    j = y + dy
    i = x + dx
    if j < 0 or i < 0 or j >= height or i >= width:
        return 0

    distance = cells[j, i]
    if distance == 0:
        return 0

    j = y
    i = x
    for _ in range(distance):
        j += dy
        i += dx
        if j < 0 or i < 0 or j >= height or i >= width or cells[j, i] == 0:
            return 0

    return distance


@njit
def _any_legal_move(
    cells: np.ndarray,
    y: int,
    x: int,
    deltas: np.ndarray,
    exclude: int,
) -> bool:
    for k in range(deltas.shape[0]):
        if k == exclude:
            continue
        if _walk(cells, y, x, deltas[k, 0], deltas[k, 1]) != 0:
            return True
    return False


@njit
def _compute_valid_actions(
    cells: np.ndarray,
    y: int,
    x: int,
    deltas: np.ndarray,
    result: np.ndarray,
) -> bool:
    """
    Set the distance of each legal direction in result, 0 for illegal ones.
    Return True if there is any legal direction.
    """
    found = False
    for k in range(deltas.shape[0]):
        d = _walk(cells, y, x, deltas[k, 0], deltas[k, 1])
        result[k] = d
        if d != 0:
            found = True
    return found


@njit
def _erase(cells: np.ndarray, y: int, x: int, dy: int, dx: int, distance: int):
    for _ in range(distance):
        y += dy
        x += dx
        cells[y, x] = 0


class MoveEvaluator:
    """Legality checks against the cells of one grid"""

    def __init__(self, grid: Grid):
        self.grid = grid

    def distance(self, pos: Position, direction: int) -> int:
        dy, dx = DIRECTIONS[check_direction(direction)]
        return int(_walk(self.grid.cells, pos[0], pos[1], dy, dx))

    def walk(self, pos: Position, direction: int) -> Optional[Position]:
        """End position of a legal move, None if the move is illegal"""
        d = self.distance(pos, direction)
        if d == 0:
            return None

        dy, dx = DIRECTIONS[direction]
        return pos[0] + d * int(dy), pos[1] + d * int(dx)

    def any_legal_move(
        self,
        pos: Position,
        excluding: Optional[int] = None,
    ) -> bool:
        exclude = _NO_DIRECTION if excluding is None else check_direction(excluding)
        return bool(
            _any_legal_move(self.grid.cells, pos[0], pos[1], DIRECTIONS, exclude)
        )

    def valid_actions(self, pos: Position) -> np.ndarray:
        """Distances of all eight directions, 0 for illegal ones"""
        result = np.zeros((len(DIRECTIONS),), dtype=np.int64)
        _compute_valid_actions(self.grid.cells, pos[0], pos[1], DIRECTIONS, result)
        return result


def compute_highlights(grid: Grid, pos: Optional[Position] = None) -> set[int]:
    """Directions that are legal moves from pos (default: the player)"""
    if pos is None:
        pos = grid.player

    valid = MoveEvaluator(grid).valid_actions(pos)
    return {int(k) for k in np.flatnonzero(valid)}


def highlight_cells(
    grid: Grid,
    pos: Optional[Position] = None,
) -> Iterator[tuple[int, Position]]:
    """
    Yield (direction, cell) for every cell on every legal path from pos.
    """
    if pos is None:
        pos = grid.player

    valid = MoveEvaluator(grid).valid_actions(pos)
    for direction in np.flatnonzero(valid):
        dy, dx = DIRECTIONS[direction]
        y, x = pos
        for _ in range(int(valid[direction])):
            y += int(dy)
            x += int(dx)
            yield int(direction), (y, x)


class EngineState(enum.Enum):
    PLAYING = "playing"
    GAME_OVER = "game_over"


class Moved(NamedTuple):
    cells_eaten: int
    position: Position


class Rejected(NamedTuple):
    direction: int


class GameOver(NamedTuple):
    final_score: int
    position: Position


MoveOutcome = Union[Moved, Rejected, GameOver]


class GameEngine:
    """
    One game of Greed.

    The engine owns the grid and the score. Hosts read them for rendering
    and call apply_move() once per direction input.
    """

    EVENT_MOVED: str = "moved"
    """
    args: (engine, outcome)
    """

    EVENT_REJECTED: str = "rejected"
    """
    args: (engine, outcome)
    """

    EVENT_GAME_OVER: str = "game_over"
    """
    args: (engine, outcome)
    """

    _grid: Grid
    _score: int
    _state: EngineState
    _final_position: Optional[Position]

    def __init__(
        self,
        grid: Grid,
        *,
        logger: logging.Logger | None = None,
    ):
        self._grid = grid
        self._evaluator = MoveEvaluator(grid)
        self._emitter = EventEmitter()
        self._logger = logger

        self._score = 0
        self._steps = 0
        self._state = EngineState.PLAYING
        self._final_position = None

    @classmethod
    def new_game(
        cls,
        height: int = HEIGHT,
        width: int = WIDTH,
        seed: Optional[int] = None,
        *,
        rng: Optional[np.random.Generator] = None,
        logger: logging.Logger | None = None,
    ) -> "GameEngine":
        if rng is None:
            rng = np.random.default_rng(seed)

        grid = Grid.generate(height, width, rng)
        engine = cls(grid, logger=logger)
        engine._log("new %dx%d game, player at %s", height, width, grid.player)
        return engine

    @property
    def grid(self) -> Grid:
        return self._grid

    @property
    def evaluator(self) -> MoveEvaluator:
        return self._evaluator

    @property
    def player(self) -> Position:
        return self._grid.player

    @property
    def score(self) -> int:
        return self._score

    @property
    def steps(self) -> int:
        return self._steps

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def completed(self) -> bool:
        return self._state is EngineState.GAME_OVER

    @property
    def final_position(self) -> Optional[Position]:
        """Cell to mark as the end of the game, None while playing"""
        return self._final_position

    @property
    def percentage(self) -> float:
        height, width = self._grid.shape
        return 100.0 * self._score / (height * width)

    def add_callback(self, event: str, fn):
        assert event in {self.EVENT_MOVED, self.EVENT_REJECTED, self.EVENT_GAME_OVER}

        self._emitter.add_listener(event, fn)

    def highlights(self) -> set[int]:
        return compute_highlights(self._grid, self._grid.player)

    def has_legal_move(self) -> bool:
        return self._evaluator.any_legal_move(self._grid.player)

    def apply_move(self, direction: int) -> MoveOutcome:
        if self.completed:
            raise InvalidState("Game over")

        direction = check_direction(direction)
        grid = self._grid
        y, x = grid.player
        distance = self._evaluator.distance(grid.player, direction)

        if distance == 0:
            if self._evaluator.any_legal_move(grid.player):
                outcome = Rejected(direction)
                self._log("rejected %s from %s", DIRECTION_NAMES[direction], (y, x))
                self._emitter.emit(self.EVENT_REJECTED, (self, outcome))
                return outcome

            self._state = EngineState.GAME_OVER
            self._final_position = grid.player
            outcome = GameOver(self._score, grid.player)
            self._log("game over at %s, score %d", grid.player, self._score)
            self._log("final board:\n%s", "\n".join(grid.render()))
            self._emitter.emit(self.EVENT_GAME_OVER, (self, outcome))
            return outcome

        dy, dx = DIRECTIONS[direction]
        _erase(grid.cells, y, x, dy, dx, distance)

        grid.player = (y + distance * int(dy), x + distance * int(dx))
        self._score += distance
        self._steps += 1

        outcome = Moved(distance, grid.player)
        self._log(
            "moved %s from %s to %s, ate %d",
            DIRECTION_NAMES[direction],
            (y, x),
            grid.player,
            distance,
        )
        self._emitter.emit(self.EVENT_MOVED, (self, outcome))
        return outcome

    def _log(self, msg: str, *args):
        if self._logger is not None:
            self._logger.debug(msg, *args)
