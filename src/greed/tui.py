"""
Play Greed in a curses terminal.
"""

import argparse
import curses
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Optional

from greed.game import (
    DIRECTIONS,
    STEP_DOWN,
    STEP_DOWN_LEFT,
    STEP_DOWN_RIGHT,
    STEP_LEFT,
    STEP_RIGHT,
    STEP_UP,
    STEP_UP_LEFT,
    STEP_UP_RIGHT,
    VERSION,
    Position,
)
from greed.game_numba import GameEngine, GameOver, Moved, highlight_cells
from greed.scores import (
    ScoreFile,
    ScoreFileError,
    default_score_path,
    format_table,
    table_entries,
)
from greed.visualization import DigitStyle, parse_greedopts

ME = "@"
DEAD = "*"

BANNER = f"Greed v{VERSION} - Hit '?' for help."

CMD_MOVE = "move"
CMD_TOGGLE = "toggle"
CMD_QUIT = "quit"
CMD_HELP = "help"
CMD_REDRAW = "redraw"

KEY_DIRECTIONS = {
    "h": STEP_LEFT,
    "4": STEP_LEFT,
    "j": STEP_DOWN,
    "2": STEP_DOWN,
    "k": STEP_UP,
    "8": STEP_UP,
    "l": STEP_RIGHT,
    "6": STEP_RIGHT,
    "b": STEP_DOWN_LEFT,
    "1": STEP_DOWN_LEFT,
    "n": STEP_DOWN_RIGHT,
    "3": STEP_DOWN_RIGHT,
    "y": STEP_UP_LEFT,
    "7": STEP_UP_LEFT,
    "u": STEP_UP_RIGHT,
    "9": STEP_UP_RIGHT,
}

ARROW_DIRECTIONS = {
    curses.KEY_LEFT: STEP_LEFT,
    curses.KEY_DOWN: STEP_DOWN,
    curses.KEY_UP: STEP_UP,
    curses.KEY_RIGHT: STEP_RIGHT,
}

# ^L and ^R
REDRAW_KEYS = {0x0C, 0x12}

# read in place of a key when SIGINT or SIGQUIT arrives
KEY_INTERRUPT = -2

INTERRUPT_SIGNALS = (signal.SIGINT, signal.SIGQUIT)

HELP_LINES = [
    f"Welcome to Greed v{VERSION}, originally by Matthew Day.",
    "",
    " The object of Greed is to erase as much of the screen as",
    " possible by moving around in a grid of numbers.  To move,",
    " use the arrow keys, your number pad, or one of the letters",
    f" 'hjklyubn'. Your location is signified by the '{ME}' symbol.",
    " When you move in a direction, you erase N number of grid",
    " squares in that direction, N being the first number in that",
    " direction.  Your score reflects the total number of squares",
    " eaten.  Greed will not let you make a move that would have",
    " placed you off the grid or over a previously eaten square",
    " unless no valid moves exist, in which case your game ends.",
    " Other Greed commands are 'Ctrl-L' to redraw the screen,",
    " 'p' to toggle the highlighting of the possible moves, and",
    " 'q' to quit.  Command line options to Greed are '-s' to",
    " output the high score file.",
]


def command_for_key(ch: int) -> tuple[Optional[str], Optional[int]]:
    """Map a curses key code to (command, direction)"""
    if ch == KEY_INTERRUPT:
        return CMD_QUIT, None
    if ch in ARROW_DIRECTIONS:
        return CMD_MOVE, ARROW_DIRECTIONS[ch]
    if ch in REDRAW_KEYS:
        return CMD_REDRAW, None
    if not 0 <= ch < 256:
        return None, None

    key = chr(ch).lower()
    if key in KEY_DIRECTIONS:
        return CMD_MOVE, KEY_DIRECTIONS[key]
    if key == "p":
        return CMD_TOGGLE, None
    if key == "q":
        return CMD_QUIT, None
    if key == "?":
        return CMD_HELP, None
    return None, None


class GreedScreen:
    """Draws one game on a curses window and feeds key presses to the engine"""

    def __init__(
        self,
        stdscr,
        engine: GameEngine,
        styles: list[DigitStyle],
        *,
        show_moves: bool = False,
    ):
        self.stdscr = stdscr
        self.engine = engine
        self.show_moves = show_moves

        height, width = engine.grid.shape
        self._msg_row = height + 1
        self._have_msg = False
        self._interrupted = False
        self._highlighted: list[Position] = []
        self._help: Optional["curses.window"] = None

        if curses.LINES < height + 2 or curses.COLS < width + 1:
            raise RuntimeError(
                f"Terminal is too small, {width + 1}x{height + 2} is required"
            )

        self._attrs = [curses.A_NORMAL] * 10
        if curses.has_colors():
            curses.start_color()
            for digit, style in enumerate(styles, 1):
                curses.init_pair(digit, style.color_number, curses.COLOR_BLACK)
                attr = curses.color_pair(digit)
                if style.bold:
                    attr |= curses.A_BOLD
                self._attrs[digit] = attr

    def _draw_cell(self, pos: Position, extra: int = curses.A_NORMAL):
        value = self.engine.grid.value_at(pos)
        if value:
            self.stdscr.addch(pos[0], pos[1], str(value), self._attrs[value] | extra)
        else:
            self.stdscr.addch(pos[0], pos[1], " ")

    def _move_cursor(self):
        y, x = self.engine.player
        self.stdscr.move(y, x)

    def draw(self):
        self.stdscr.erase()
        grid = self.engine.grid
        for y in range(grid.height):
            for x in range(grid.width):
                self._draw_cell((y, x))

        self.stdscr.addstr(self._msg_row, 0, "Score: ")
        self.stdscr.addstr(self._msg_row, 40, BANNER)
        self._highlighted = []
        if self.show_moves:
            self._draw_moves(True)
        self._draw_player()
        self.draw_score()

    def _draw_player(self):
        y, x = self.engine.player
        self.stdscr.addch(y, x, ME, curses.A_STANDOUT)

    def _draw_moves(self, on: bool):
        if on:
            self._highlighted = [
                pos for _, pos in highlight_cells(self.engine.grid, self.engine.player)
            ]
            for pos in self._highlighted:
                self._draw_cell(pos, curses.A_STANDOUT)
        else:
            for pos in self._highlighted:
                self._draw_cell(pos)
            self._highlighted = []

    def draw_score(self):
        self.stdscr.addstr(
            self._msg_row,
            7,
            f"{self.engine.score}  {self.engine.percentage:.2f}%",
        )
        self._move_cursor()
        self.stdscr.refresh()

    def message(self, msg: str, back_cursor: bool = True):
        self.stdscr.addstr(self._msg_row, 40, msg)
        self.stdscr.clrtoeol()
        if back_cursor:
            self._move_cursor()
        self.stdscr.refresh()
        self._have_msg = True

    def interrupt(self, signum=None, frame=None):
        """Signal handler, the next key read becomes KEY_INTERRUPT"""
        self._interrupted = True

    def read_key(self, window=None) -> int:
        """getch() that returns KEY_INTERRUPT for a pending or raised interrupt"""
        if window is None:
            window = self.stdscr

        if not self._interrupted:
            try:
                ch = window.getch()
            except KeyboardInterrupt:
                ch = KEY_INTERRUPT

        if self._interrupted:
            self._interrupted = False
            ch = KEY_INTERRUPT
        return ch

    def confirm_quit(self) -> bool:
        self.message("Really quit? ", back_cursor=False)
        ch = self.read_key()
        # a second interrupt confirms
        if ch in (ord("y"), ord("Y"), KEY_INTERRUPT):
            return True
        self._move_cursor()
        self.stdscr.refresh()
        return False

    def show_help(self):
        if self._help is None:
            self._help = curses.newwin(18, 65, 1, 7)
            self._help.box()
            for row, line in enumerate(HELP_LINES, 1):
                self._help.addstr(row, 2, line)
            self._help.move(17, 63)
        else:
            self._help.touchwin()
        self._help.refresh()
        if self.read_key(self._help) == KEY_INTERRUPT:
            self._interrupted = True
        self.stdscr.touchwin()
        self.stdscr.refresh()

    def _apply(self, direction: int) -> bool:
        """Return False when the game is over"""
        old = self.engine.player
        if self.show_moves:
            self._draw_moves(False)

        outcome = self.engine.apply_move(direction)

        if isinstance(outcome, Moved):
            if self._have_msg:
                self.stdscr.addstr(self._msg_row, 40, BANNER)
                self.stdscr.clrtoeol()
                self._have_msg = False

            dy, dx = (int(v) for v in DIRECTIONS[direction])
            y, x = old
            self.stdscr.addch(y, x, " ")
            for _ in range(outcome.cells_eaten):
                y += dy
                x += dx
                self.stdscr.addch(y, x, " ")
            self._draw_player()
            if self.show_moves:
                self._draw_moves(True)
            self.draw_score()
            return True

        if isinstance(outcome, GameOver):
            y, x = outcome.position
            self.stdscr.addch(y, x, DEAD)
            self.draw_score()
            return False

        if self.show_moves:
            self._draw_moves(True)
        self.message("Bad move.")
        return True

    def run(self) -> bool:
        """
        Play until the game ends or the player quits.

        Return True if the game ended, False if the player quit.
        """
        self.draw()

        while True:
            command, direction = command_for_key(self.read_key())

            if command == CMD_MOVE:
                if not self._apply(direction):
                    self.message("Hit any key..", back_cursor=False)
                    self.read_key()
                    return True
            elif command == CMD_TOGGLE:
                self.show_moves = not self.show_moves
                self._draw_moves(self.show_moves)
                self._move_cursor()
                self.stdscr.refresh()
            elif command == CMD_QUIT:
                if self.confirm_quit():
                    return False
            elif command == CMD_HELP:
                self.show_help()
            elif command == CMD_REDRAW:
                self.stdscr.redrawwin()
                self.stdscr.refresh()


def _play(stdscr, engine: GameEngine, styles: list[DigitStyle], show_moves: bool):
    curses.cbreak()
    curses.noecho()
    stdscr.keypad(True)
    screen = GreedScreen(stdscr, engine, styles, show_moves=show_moves)

    # SIGINT and SIGQUIT ask to quit, like the q key
    previous = {
        signum: signal.signal(signum, screen.interrupt)
        for signum in INTERRUPT_SIGNALS
    }
    try:
        return screen.run()
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def _terminate(signum, frame):
    # curses.wrapper restores the terminal on the way out
    raise SystemExit(0)


def _standout_codes() -> tuple[str, str]:
    if not sys.stdout.isatty():
        return "", ""
    try:
        curses.setupterm()
        on = curses.tigetstr("smso")
        off = curses.tigetstr("rmso")
    except curses.error:
        return "", ""
    # if only got one of the codes, use neither
    if not on or not off:
        return "", ""
    return on.decode("latin-1"), off.decode("latin-1")


def print_scores(table, new_index: Optional[int] = None):
    bold = _standout_codes() if new_index is not None else ("", "")
    for line in format_table(table_entries(table), new_index, bold=bold):
        print(line)


def setup_logger(log_file: Optional[str]) -> logging.Logger | None:
    if not log_file:
        return None

    logger = logging.getLogger("greed")
    logger.setLevel(logging.DEBUG)

    stream = logging.FileHandler(log_file, encoding="utf-8")
    stream.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(stream)
    return logger


def parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="greed")
    p.add_argument(
        "-p",
        action="store_true",
        default=False,
        help="highlight the possible moves",
    )
    p.add_argument(
        "-s",
        action="store_true",
        default=False,
        help="print the high score table and exit",
    )
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--score-file", type=Path, default=None)
    p.add_argument("--log-file", type=str, default=None)
    return p


def main(argv: Optional[list[str]] = None) -> int:
    ns = parser().parse_args(argv)
    logger = setup_logger(ns.log_file)

    score_path = ns.score_file or default_score_path()
    score_file = ScoreFile(score_path, logger=logger, notify=print)

    if ns.s:
        try:
            with score_file.locked():
                table = score_file.read()
        except ScoreFileError as e:
            print(f"greed: {e}", file=sys.stderr)
            return 1
        print_scores(table)
        return 0

    options = parse_greedopts(os.environ.get("GREEDOPTS"))
    engine = GameEngine.new_game(seed=ns.seed, logger=logger)

    signal.signal(signal.SIGTERM, _terminate)
    curses.wrapper(_play, engine, options.styles, ns.p or options.show_moves)
    print("\n")

    # keep the score file consistent
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    signal.signal(signal.SIGTERM, signal.SIG_IGN)

    try:
        table, new_index = score_file.record(engine.score)
    except ScoreFileError as e:
        print(f"greed: {e}", file=sys.stderr)
        return 1

    print_scores(table, new_index)
    return 0
