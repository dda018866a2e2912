"""
Grid and directions of Greed.

+-----+-----+-----+
|  0  |  1  |  2  |
|  3  |  @  |  4  |
|  5  |  6  |  7  |
+-----+-----+-----+

Directions are indexed around the player as above.
"""

from typing import Iterable, Optional, Sequence

import numpy as np

VERSION = "3.10"

HEIGHT = 22
WIDTH = 79

STEP_UP_LEFT = 0
STEP_UP = 1
STEP_UP_RIGHT = 2
STEP_LEFT = 3
STEP_RIGHT = 4
STEP_DOWN_LEFT = 5
STEP_DOWN = 6
STEP_DOWN_RIGHT = 7

# (dy, dx) of each direction
DIRECTIONS = np.array(
    [
        [-1, -1],
        [-1, 0],
        [-1, 1],
        [0, -1],
        [0, 1],
        [1, -1],
        [1, 0],
        [1, 1],
    ],
    dtype=np.int64,
)

DIRECTION_NAMES = (
    "up-left",
    "up",
    "up-right",
    "left",
    "right",
    "down-left",
    "down",
    "down-right",
)

_CELL_DTYPE = np.int8

Position = tuple[int, int]


class OutOfBounds(IndexError):
    pass


class InvalidState(RuntimeError):
    pass


def check_direction(direction: int) -> int:
    direction = int(direction)
    if not 0 <= direction < len(DIRECTIONS):
        raise ValueError(f"Bad direction {direction!r}")
    return direction


class Grid:
    cells: np.ndarray
    player: Position

    def __init__(self, cells: np.ndarray, player: Position):
        if cells.ndim != 2 or 0 in cells.shape:
            raise ValueError(f"Bad grid shape {cells.shape}")
        if cells.min() < 0 or cells.max() > 9:
            raise ValueError("Cell values must be in [0, 9]")

        self.cells = np.array(cells, dtype=_CELL_DTYPE)
        self.player = (int(player[0]), int(player[1]))

        if not self.contains(self.player):
            raise OutOfBounds(f"Player {self.player} is outside the grid")

        # the player always stands on an eaten cell
        self.cells[self.player] = 0

    @classmethod
    def generate(
        cls,
        height: int = HEIGHT,
        width: int = WIDTH,
        rng: Optional[np.random.Generator] = None,
    ) -> "Grid":
        if height <= 0 or width <= 0:
            raise ValueError(f"height={height}, width={width}")

        if rng is None:
            rng = np.random.default_rng()

        cells = rng.integers(1, 10, size=(height, width), dtype=_CELL_DTYPE)
        y = rng.integers(0, height)
        x = rng.integers(0, width)
        return cls(cells, (y, x))

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[Sequence[int] | str],
        player: Position,
    ) -> "Grid":
        """
        Build a grid from rows of digits, e.g. ["021", "345"]

        Mostly useful to hand-construct small boards.
        """
        data = [[int(c) for c in row] for row in rows]
        return cls(np.array(data, dtype=_CELL_DTYPE), player)

    @property
    def shape(self) -> tuple[int, int]:
        return self.cells.shape

    @property
    def height(self) -> int:
        return self.cells.shape[0]

    @property
    def width(self) -> int:
        return self.cells.shape[1]

    def contains(self, pos: Position) -> bool:
        y, x = pos
        return 0 <= y < self.height and 0 <= x < self.width

    def value_at(self, pos: Position) -> int:
        if not self.contains(pos):
            raise OutOfBounds(f"{pos} is outside the {self.height}x{self.width} grid")
        return int(self.cells[pos[0], pos[1]])

    def set_zero(self, pos: Position):
        """
        Eat a single cell. The engine erases whole paths with a numba kernel;
        this is the single-cell accessor for hosts and tools.
        """
        if not self.contains(pos):
            raise OutOfBounds(f"{pos} is outside the {self.height}x{self.width} grid")
        self.cells[pos[0], pos[1]] = 0

    def eaten_count(self) -> int:
        return int(np.count_nonzero(self.cells == 0))

    def render(self) -> list[str]:
        """Rows as text: digits, blanks for eaten cells and '@' for the player"""
        lines = []
        for y in range(self.height):
            chars = [str(v) if v else " " for v in self.cells[y].tolist()]
            if y == self.player[0]:
                chars[self.player[1]] = "@"
            lines.append("".join(chars))
        return lines
