"""Tests for move evaluation, highlights and the game engine."""

import logging

import numpy as np
import pytest

from greed.game import (
    DIRECTIONS,
    STEP_DOWN,
    STEP_DOWN_RIGHT,
    STEP_LEFT,
    STEP_RIGHT,
    STEP_UP,
    Grid,
    InvalidState,
)
from greed.game_numba import (
    EngineState,
    GameEngine,
    GameOver,
    Moved,
    MoveEvaluator,
    Rejected,
    compute_highlights,
    highlight_cells,
)


def _neighbor_value(grid: Grid, pos, direction) -> int:
    dy, dx = DIRECTIONS[direction]
    target = (pos[0] + int(dy), pos[1] + int(dx))
    if not grid.contains(target):
        return 0
    return grid.value_at(target)


def test_walk_run_of_nonzero_cells():
    grid = Grid.from_rows(["021"], (0, 0))
    evaluator = MoveEvaluator(grid)

    assert evaluator.walk((0, 0), STEP_RIGHT) == (0, 2)
    assert evaluator.distance((0, 0), STEP_RIGHT) == 2


def test_walk_only_first_value_counts():
    grid = Grid.from_rows(["02911"], (0, 0))

    assert MoveEvaluator(grid).walk((0, 0), STEP_RIGHT) == (0, 2)


def test_walk_broken_run():
    grid = Grid.from_rows(["020"], (0, 0))

    assert MoveEvaluator(grid).walk((0, 0), STEP_RIGHT) is None


def test_walk_off_grid():
    grid = Grid.from_rows(["03"], (0, 0))
    evaluator = MoveEvaluator(grid)

    # run leaves the grid
    assert evaluator.walk((0, 0), STEP_RIGHT) is None
    # destination itself is off the grid
    assert evaluator.walk((0, 0), STEP_LEFT) is None
    assert evaluator.walk((0, 0), STEP_UP) is None


def test_walk_diagonal():
    grid = Grid.from_rows(["000", "010", "001"], (0, 0))
    evaluator = MoveEvaluator(grid)

    assert evaluator.walk((0, 0), STEP_DOWN_RIGHT) == (1, 1)
    assert evaluator.walk((0, 0), STEP_DOWN) is None


def test_walk_rejects_unknown_direction():
    grid = Grid.from_rows(["021"], (0, 0))

    with pytest.raises(ValueError):
        MoveEvaluator(grid).walk((0, 0), 8)


def test_any_legal_move_excluding():
    grid = Grid.from_rows(["021"], (0, 0))
    evaluator = MoveEvaluator(grid)

    assert evaluator.any_legal_move((0, 0))
    assert not evaluator.any_legal_move((0, 0), excluding=STEP_RIGHT)
    assert evaluator.any_legal_move((0, 0), excluding=STEP_LEFT)


def test_random_grids_agree_with_walk():
    rng = np.random.default_rng(2024)

    for _ in range(50):
        grid = Grid.generate(4, 5, rng)
        # punch some holes
        holes = rng.random(grid.shape) < 0.4
        grid.cells[holes] = 0
        evaluator = MoveEvaluator(grid)

        for y in range(grid.height):
            for x in range(grid.width):
                ends = [evaluator.walk((y, x), d) for d in range(8)]
                assert evaluator.any_legal_move((y, x)) == any(
                    e is not None for e in ends
                )

                for d, end in enumerate(ends):
                    if _neighbor_value(grid, (y, x), d) == 0:
                        assert end is None
                    if end is not None:
                        assert grid.contains(end)
                        assert grid.value_at(end) != 0


def test_compute_highlights():
    grid = Grid.from_rows(["000", "201", "010"], (1, 1))

    # left runs off the grid, right and down eat one cell
    assert compute_highlights(grid) == {STEP_RIGHT, STEP_DOWN}


def test_highlight_cells():
    grid = Grid.from_rows(["0221", "1000"], (0, 0))

    cells = list(highlight_cells(grid))
    assert cells == [(STEP_RIGHT, (0, 1)), (STEP_RIGHT, (0, 2)), (STEP_DOWN, (1, 0))]


def test_engine_moves_and_erases():
    grid = Grid.from_rows(["021"], (0, 0))
    engine = GameEngine(grid)

    outcome = engine.apply_move(STEP_RIGHT)

    assert outcome == Moved(cells_eaten=2, position=(0, 2))
    assert engine.player == (0, 2)
    assert engine.score == 2
    assert engine.steps == 1
    assert grid.cells.tolist() == [[0, 0, 0]]
    assert engine.state is EngineState.PLAYING


def test_engine_rejects_without_mutation():
    grid = Grid.from_rows(["020", "100"], (0, 0))
    engine = GameEngine(grid)
    before = grid.cells.copy()

    outcome = engine.apply_move(STEP_RIGHT)

    assert outcome == Rejected(STEP_RIGHT)
    assert np.array_equal(grid.cells, before)
    assert engine.player == (0, 0)
    assert engine.score == 0
    assert not engine.completed

    assert engine.apply_move(STEP_DOWN) == Moved(1, (1, 0))


def test_engine_single_direction():
    grid = Grid.from_rows(["0000", "0011", "0000"], (1, 1))
    engine = GameEngine(grid)

    assert engine.highlights() == {STEP_RIGHT}
    assert engine.apply_move(STEP_RIGHT) == Moved(1, (1, 2))
    # the rest of the run stays
    assert grid.value_at((1, 3)) == 1


def test_engine_game_over():
    grid = Grid.from_rows(["00", "00"], (0, 0))
    engine = GameEngine(grid)

    outcome = engine.apply_move(STEP_DOWN_RIGHT)

    assert outcome == GameOver(final_score=0, position=(0, 0))
    assert engine.completed
    assert engine.state is EngineState.GAME_OVER
    assert engine.final_position == (0, 0)

    with pytest.raises(InvalidState):
        engine.apply_move(STEP_RIGHT)


def test_engine_game_over_after_moves():
    grid = Grid.from_rows(["0210"], (0, 0))
    engine = GameEngine(grid)

    assert engine.apply_move(STEP_RIGHT) == Moved(2, (0, 2))
    assert not engine.has_legal_move()
    assert engine.apply_move(STEP_LEFT) == GameOver(final_score=2, position=(0, 2))


def test_engine_percentage():
    grid = Grid.from_rows(["0111", "1111"], (0, 0))
    engine = GameEngine(grid)
    engine.apply_move(STEP_RIGHT)

    assert engine.percentage == pytest.approx(12.5)


def test_engine_bad_direction():
    engine = GameEngine(Grid.from_rows(["021"], (0, 0)))

    with pytest.raises(ValueError):
        engine.apply_move(-1)


def test_engine_events():
    engine = GameEngine(Grid.from_rows(["020", "100"], (0, 0)))
    seen = []

    for event in (
        GameEngine.EVENT_MOVED,
        GameEngine.EVENT_REJECTED,
        GameEngine.EVENT_GAME_OVER,
    ):
        engine.add_callback(
            event, lambda eng, outcome, event=event: seen.append((event, outcome))
        )

    engine.apply_move(STEP_RIGHT)
    engine.apply_move(STEP_DOWN)
    engine.apply_move(STEP_DOWN)

    assert [e for e, _ in seen] == ["rejected", "moved", "game_over"]
    assert seen[-1][1] == GameOver(1, (1, 0))


def test_engine_logs_moves(caplog):
    logger = logging.getLogger("greed.test")
    engine = GameEngine(Grid.from_rows(["021"], (0, 0)), logger=logger)

    with caplog.at_level(logging.DEBUG, logger="greed.test"):
        engine.apply_move(STEP_RIGHT)

    assert "moved right from (0, 0) to (0, 2), ate 2" in caplog.text


def test_new_game_is_seeded():
    a = GameEngine.new_game(6, 9, seed=3)
    b = GameEngine.new_game(6, 9, seed=3)

    assert np.array_equal(a.grid.cells, b.grid.cells)
    assert a.player == b.player
    assert a.score == 0


def test_random_games_keep_invariants():
    rng = np.random.default_rng(11)

    for _ in range(20):
        engine = GameEngine.new_game(6, 8, rng=rng)
        total = 0

        while not engine.completed:
            highlights = engine.highlights()
            if not highlights:
                assert not engine.has_legal_move()
                outcome = engine.apply_move(STEP_UP)
                assert isinstance(outcome, GameOver)
                assert outcome.final_score == total
                break

            direction = int(rng.choice(sorted(highlights)))
            expected = _neighbor_value(engine.grid, engine.player, direction)
            zeros_before = engine.grid.eaten_count()
            score_before = engine.score

            outcome = engine.apply_move(direction)

            assert isinstance(outcome, Moved)
            assert outcome.cells_eaten == expected
            assert engine.grid.eaten_count() - zeros_before == expected
            assert engine.score - score_before == expected
            assert engine.grid.value_at(engine.player) == 0

            total += outcome.cells_eaten
            assert engine.score == total

            for d in engine.highlights():
                assert _neighbor_value(engine.grid, engine.player, d) != 0

        assert engine.completed


def test_engine_logs_final_board(caplog):
    logger = logging.getLogger("greed.test")
    engine = GameEngine(Grid.from_rows(["0210"], (0, 0)), logger=logger)

    with caplog.at_level(logging.DEBUG, logger="greed.test"):
        engine.apply_move(STEP_RIGHT)
        engine.apply_move(STEP_RIGHT)

    assert "game over at (0, 2), score 2" in caplog.text
    assert "final board:\n  @ " in caplog.text
