"""
High-score table.

The score file is fixed-length binary: MAX_SCORES images of the C struct

    struct score {
        char user[9];
        int score;
    };

kept in descending score order. Files written by the C game can be read back
as long as they come from a little-endian machine.
"""

import contextlib
import dataclasses
import getpass
import logging
import os
import time
from pathlib import Path
from typing import Callable, Iterator, Optional

import numpy as np

from greed.game import HEIGHT, WIDTH

MAX_SCORES = 10
LOCK_RETRIES = 15
LOCK_RETRY_DELAY = 1.0

USER_LENGTH = 8

SCORE_DTYPE = np.dtype([("user", "S9"), ("score", "<i4")], align=True)
assert SCORE_DTYPE.itemsize == 16, SCORE_DTYPE.itemsize

SCOREFILE_SIZE = MAX_SCORES * SCORE_DTYPE.itemsize

# percentage of the standard board eaten
_FULL_BOARD = HEIGHT * WIDTH


class ScoreFileError(OSError):
    pass


@dataclasses.dataclass
class ScoreEntry:
    rank: int
    user: str
    score: int

    @property
    def percentage(self) -> float:
        return 100.0 * self.score / _FULL_BOARD


def default_score_path() -> Path:
    path = os.environ.get("GREED_SCOREFILE")
    if path:
        return Path(path)
    return Path.home() / ".greed.hs"


def current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


def empty_table() -> np.ndarray:
    return np.zeros((MAX_SCORES,), dtype=SCORE_DTYPE)


def decode_table(raw: bytes) -> np.ndarray:
    """Decode score file content; missing records are zero"""
    table = empty_table()
    count = min(len(raw) // SCORE_DTYPE.itemsize, MAX_SCORES)
    if count:
        size = count * SCORE_DTYPE.itemsize
        table[:count] = np.frombuffer(raw[:size], dtype=SCORE_DTYPE)
    return table


def insert_score(table: np.ndarray, user: str, score: int) -> Optional[int]:
    """
    Insert score into table in place.

    Return the index of the new record, or None if it does not rank.
    """
    if score <= 0:
        return None

    lower = np.flatnonzero(table["score"] < score)
    if lower.size == 0:
        return None

    idx = int(lower[0])
    # shift lower records one down, dropping the last
    table[idx + 1 :] = table[idx:-1].copy()
    table["user"][idx] = user.encode("utf-8", "replace")[:USER_LENGTH]
    table["score"][idx] = score
    return idx


def table_entries(table: np.ndarray) -> list[ScoreEntry]:
    entries = []
    for idx, record in enumerate(table):
        score = int(record["score"])
        if not score:
            break
        user = bytes(record["user"]).split(b"\0", 1)[0].decode("utf-8", "replace")
        entries.append(ScoreEntry(rank=idx + 1, user=user, score=score))
    return entries


def format_table(
    entries: list[ScoreEntry],
    new_index: Optional[int] = None,
    *,
    bold: tuple[str, str] = ("", ""),
) -> list[str]:
    """
    Lines of the printed table. The new entry, if any, is wrapped with bold.
    """
    if not entries:
        return ["No high scores."]

    lines = ["Rank  Score  Name     Percentage"]
    bold_on, bold_off = bold
    for idx, entry in enumerate(entries):
        line = (
            f"{entry.rank:<5d} {entry.score:<6d} {entry.user:<8s} "
            f"{entry.percentage:.2f}%"
        )
        if idx == new_index:
            line = f"{bold_on}{line}{bold_off}"
        lines.append(line)
    return lines


class ScoreFile:
    """
    The score file together with its lock file.

    The lock file is created exclusively. When it already exists, wait and
    retry; after the last retry the lock is considered stale and removed.
    """

    def __init__(
        self,
        path: Path | str,
        *,
        lock_path: Path | str | None = None,
        retries: int = LOCK_RETRIES,
        retry_delay: float = LOCK_RETRY_DELAY,
        logger: logging.Logger | None = None,
        notify: Callable[[str], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        assert retries >= 1, retries

        self.path = Path(path)
        if lock_path is None:
            lock_path = self.path.with_name(self.path.name + ".lock")
        self.lock_path = Path(lock_path)

        self._retries = retries
        self._retry_delay = retry_delay
        self._logger = logger
        self._notify = notify
        self._sleep = sleep

    def _report(self, level: int, msg: str):
        if self._notify is not None:
            self._notify(msg)
        if self._logger is not None:
            self._logger.log(level, msg)

    def acquire(self):
        attempt = 1
        while True:
            try:
                fd = os.open(self.lock_path, os.O_RDWR | os.O_CREAT | os.O_EXCL, 0)
            except FileExistsError:
                pass
            else:
                os.close(fd)
                return

            self._report(
                logging.INFO,
                f"Waiting for scorefile access... {attempt}/{self._retries}",
            )
            if attempt >= self._retries:
                self._report(logging.WARNING, "Overriding stale lock...")
                try:
                    self.lock_path.unlink()
                except FileNotFoundError:
                    pass
                except OSError as e:
                    raise ScoreFileError(
                        f"{self.lock_path}: Can't unlink lock: {e}"
                    ) from e
            attempt += 1
            self._sleep(self._retry_delay)

    def release(self):
        with contextlib.suppress(FileNotFoundError):
            self.lock_path.unlink()

    @contextlib.contextmanager
    def locked(self) -> Iterator["ScoreFile"]:
        self.acquire()
        try:
            yield self
        finally:
            self.release()

    def _open(self) -> int:
        try:
            return os.open(self.path, os.O_RDWR | os.O_CREAT, 0o600)
        except OSError as e:
            raise ScoreFileError(f"{self.path}: Cannot open: {e}") from e

    def read(self) -> np.ndarray:
        """Read the table without locking"""
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            raw = b""
        except OSError as e:
            raise ScoreFileError(f"{self.path}: Cannot open: {e}") from e
        return decode_table(raw)

    def record(
        self,
        score: int,
        user: Optional[str] = None,
    ) -> tuple[np.ndarray, Optional[int]]:
        """
        Enter score under the lock.

        Return the table after the update and the index of the new record.
        """
        if user is None:
            user = current_user()

        fd = self._open()
        with os.fdopen(fd, "r+b") as fp, self.locked():
            table = decode_table(fp.read(SCOREFILE_SIZE))
            new_index = insert_score(table, user, score)

            if new_index is not None:
                fp.seek(0)
                fp.write(table.tobytes())
                fp.truncate()
                if self._logger is not None:
                    self._logger.info(
                        "score %d of %s entered at rank %d",
                        score,
                        user,
                        new_index + 1,
                    )

        return table, new_index
