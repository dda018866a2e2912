from dataclasses import dataclass
from typing import Optional

# curses color numbers, in GREEDOPTS letter order
COLOR_LETTERS = " rgybmcw"
COLOR_NAMES = {
    "r": "red",
    "g": "green",
    "y": "yellow",
    "b": "blue",
    "m": "magenta",
    "c": "cyan",
    "w": "white",
}


@dataclass
class DigitStyle:
    color: str
    bold: bool = False

    @property
    def color_number(self) -> int:
        """curses color number, e.g. curses.COLOR_RED == 1"""
        for letter, name in COLOR_NAMES.items():
            if name == self.color:
                return COLOR_LETTERS.index(letter)
        raise ValueError(f"Unknown color {self.color!r}")


@dataclass
class GreedOptions:
    styles: list[DigitStyle]
    show_moves: bool = False


def make_digit_styles() -> list[DigitStyle]:
    """Default style of digits 1 to 9"""
    spec = """
    yellow,0
    red,0
    green,0
    cyan,0
    magenta,0
    yellow,1
    red,1
    green,1
    cyan,1
    """

    styles = []
    for line in spec.strip().splitlines():
        color, bold = line.strip().split(",")
        styles.append(DigitStyle(color=color, bold=bool(int(bold))))

    return styles


def parse_greedopts(value: Optional[str]) -> GreedOptions:
    """
    Parse GREEDOPTS, "<c1><c2>...<c9>[:[p]]"

    Each <cn> is a color letter of digit n; uppercase turns on bold and
    a space keeps the default. Unknown letters are ignored.
    Letters after ':' are options, 'p' shows possible moves.
    """
    options = GreedOptions(styles=make_digit_styles())
    if not value:
        return options

    colors, sep, flags = value.partition(":")

    for idx, letter in enumerate(colors[: len(options.styles)]):
        if letter == " " or letter.lower() not in COLOR_NAMES:
            continue
        options.styles[idx] = DigitStyle(
            color=COLOR_NAMES[letter.lower()],
            bold=letter.isupper(),
        )

    if sep and "p" in flags:
        options.show_moves = True

    return options
