"""Tests for movement, collision, the Arena, and local matches."""

import numpy as np
import pytest

from snake_arena.ai.strategies import Strategy
from snake_arena.config import ArenaConfig
from snake_arena.display import RecordingRenderer, ScriptedKeys
from snake_arena.engine import Arena, LocalMatch, MatchResult, move, pop_walls
from snake_arena.grid import CellType, Grid
from snake_arena.net.protocol import decode_slot
from snake_arena.snake import Direction, Snake, kind_for_agent


def _snake(grid, agent_id, cells, direction=Direction.UP):
    """Build a snake from tail to head and register it."""
    snake = Snake(agent_id, kind_for_agent(agent_id), direction)
    for cell in cells:
        snake.push_head(grid, cell)
    grid.register_agent(agent_id)
    return snake


@pytest.fixture()
def rng():
    return np.random.default_rng(0)


class TestMove:
    def test_plain_move_keeps_length(self, rng):
        grid = Grid(7, 7)
        snake = _snake(grid, 0, [(4, 3), (3, 3)])
        assert move(snake, Direction.UP, grid, rng) is False
        assert list(snake.body) == [(2, 3), (3, 3)]
        assert grid.get((4, 3)) == CellType.EMPTY
        assert grid.get((2, 3)) == CellType.AGENT_A

    def test_direction_is_stored(self, rng):
        grid = Grid(7, 7)
        snake = _snake(grid, 0, [(3, 3)])
        move(snake, Direction.LEFT, grid, rng)
        assert snake.direction == Direction.LEFT

    def test_food_grows_without_dropping_tail(self, rng):
        grid = Grid(7, 7)
        snake = _snake(grid, 0, [(4, 2), (3, 2)])
        grid.set((2, 2), CellType.FOOD)

        assert move(snake, Direction.UP, grid, rng) is False
        assert len(snake) == 3
        assert snake.tail == (4, 2)
        assert snake.head == (2, 2)
        assert grid.get((2, 2)) == CellType.AGENT_A
        assert snake.grow_pending is False

    def test_length_grows_only_on_food(self, rng):
        grid = Grid(12, 12)
        snake = _snake(grid, 0, [(6, 4), (6, 5)], Direction.RIGHT)
        grid.set((6, 7), CellType.FOOD)
        lengths = []
        for _ in range(3):
            move(snake, Direction.RIGHT, grid, rng)
            lengths.append(len(snake))
        assert lengths == [2, 3, 3]

    def test_wall_is_fatal(self, rng):
        grid = Grid(7, 7)
        snake = _snake(grid, 0, [(2, 2)])
        assert move(snake, Direction.UP, grid, rng) is True
        # The fatal head is still drawn.
        assert snake.head == (1, 2)
        assert len(snake) == 2
        assert grid.get((1, 2)) == CellType.AGENT_A

    def test_own_body_is_fatal(self, rng):
        grid = Grid(8, 8)
        snake = _snake(grid, 0, [(3, 3), (3, 4), (4, 4), (4, 3)], Direction.LEFT)
        assert move(snake, Direction.UP, grid, rng) is True

    def test_rival_body_is_fatal(self, rng):
        grid = Grid(8, 8)
        snake = _snake(grid, 0, [(3, 3)])
        _snake(grid, 1, [(3, 4)])
        assert move(snake, Direction.RIGHT, grid, rng) is True

    def test_speed_items(self, rng):
        grid = Grid(8, 8)
        snake = _snake(grid, 0, [(4, 4)])
        grid.set((3, 4), CellType.HIGHSPEED)
        grid.set((2, 4), CellType.HIGHSPEED)
        move(snake, Direction.UP, grid, rng)
        move(snake, Direction.UP, grid, rng)
        assert grid.speed_bias == 2

        grid.set((2, 3), CellType.LOWSPEED)
        move(snake, Direction.LEFT, grid, rng)
        assert grid.speed_bias == 1

    def test_freeze_stops_other_snakes(self, rng):
        grid = Grid(10, 10)
        snake = _snake(grid, 0, [(4, 4)])
        rival = _snake(grid, 1, [(6, 6)])
        grid.set((3, 4), CellType.FREEZE)

        move(snake, Direction.UP, grid, rng)
        assert grid.freeze[1] == 10
        assert grid.freeze[0] == 0

        assert move(rival, Direction.UP, grid, rng) is False
        assert rival.head == (6, 6)
        assert grid.freeze[1] == 9

    def test_frozen_snake_ignores_fatal_direction(self, rng):
        grid = Grid(7, 7)
        snake = _snake(grid, 0, [(2, 2)])
        grid.freeze[0] = 1
        assert move(snake, Direction.UP, grid, rng) is False
        assert snake.head == (2, 2)
        assert not grid.is_frozen(0)

    def test_popwall_scatters_walls(self, scripted_rng):
        grid = Grid(20, 20)
        snake = _snake(grid, 0, [(10, 10)])
        grid.set((9, 10), CellType.POPWALL)
        # 400 // (100 + 0) is four picks: (5, 5), (6, 6), (7, 7), (8, 8).
        rng = scripted_rng([0, 4, 4, 5, 5, 6, 6, 7, 7])
        walls_before = int(np.sum(grid.cells == CellType.WALL))

        assert move(snake, Direction.UP, grid, rng) is False
        assert rng.exhausted
        for cell in [(5, 5), (6, 6), (7, 7), (8, 8)]:
            assert grid.get(cell) == CellType.WALL
        assert int(np.sum(grid.cells == CellType.WALL)) == walls_before + 4
        assert grid.get((9, 10)) == CellType.AGENT_A


class TestPopWalls:
    @pytest.mark.parametrize(("divisor_draw", "batch"), [(0, 9), (20, 7), (49, 6)])
    def test_batch_scales_with_area(self, scripted_rng, divisor_draw, batch):
        grid = Grid(30, 30)
        picks = []
        for i in range(batch):
            picks += [4 + i, 9]
        rng = scripted_rng([divisor_draw, *picks])
        before = int(np.sum(grid.cells == CellType.WALL))

        assert pop_walls(grid, rng) == batch
        assert rng.exhausted
        assert int(np.sum(grid.cells == CellType.WALL)) == before + batch
        for i in range(batch):
            assert grid.get((5 + i, 10)) == CellType.WALL

    def test_occupied_picks_are_skipped(self, scripted_rng):
        grid = Grid(20, 20)
        grid.set((6, 6), CellType.FOOD)
        grid.set((7, 7), CellType.AGENT_B)
        # Picks: empty, FOOD, agent body, the top border wall.
        rng = scripted_rng([0, 4, 4, 5, 5, 6, 6, 0, 2])
        before = int(np.sum(grid.cells == CellType.WALL))

        assert pop_walls(grid, rng) == 1
        assert rng.exhausted
        assert grid.get((5, 5)) == CellType.WALL
        assert grid.get((6, 6)) == CellType.FOOD
        assert grid.get((7, 7)) == CellType.AGENT_B
        assert int(np.sum(grid.cells == CellType.WALL)) == before + 1

    def test_only_empty_cells_are_walled(self):
        grid = Grid(10, 10)
        grid.cells[2:9, 2:9] = CellType.FOOD
        pop_walls(grid, np.random.default_rng(1))
        assert np.all(grid.cells[2:9, 2:9] == CellType.FOOD)


class TestArena:
    def test_initial_placement(self):
        arena = Arena(20, 20, 2, seed=0)
        assert arena.snakes[0].head == (10, 4)
        assert arena.snakes[1].head == (10, 16)
        assert arena.alive == [True, True]
        assert arena.tick == 0
        assert not arena.game_over

    def test_player_count_limits(self):
        with pytest.raises(ValueError):
            Arena(20, 20, 1)
        with pytest.raises(ValueError):
            Arena(20, 20, 13)

    def test_apply_moves(self):
        arena = Arena(20, 20, 2, seed=0)
        died = arena.apply_moves([Direction.RIGHT, Direction.LEFT])
        assert died == []
        assert arena.snakes[0].head == (10, 5)
        assert arena.snakes[1].head == (10, 15)
        assert arena.tick == 1

    def test_dead_slot_skips_agent(self):
        arena = Arena(20, 20, 3, seed=0)
        directions = [decode_slot(s) for s in (0, 4, 2)]
        for agent_id, direction in enumerate(directions):
            if direction is None:
                arena.kill(agent_id)
        arena.apply_moves(directions)

        assert arena.snakes[0].head == (9, 4)
        assert arena.snakes[1].head == (10, 16)
        assert arena.snakes[2].head == (4, 9)
        assert arena.alive == [True, False, True]

    def test_lower_id_wins_contested_cell(self):
        arena = Arena(20, 20, 2, seed=0)
        arena.grid.set(arena.snakes[0].head, CellType.EMPTY)
        arena.snakes[0].body[0] = (10, 9)
        arena.grid.set((10, 9), CellType.AGENT_A)
        arena.grid.set(arena.snakes[1].head, CellType.EMPTY)
        arena.snakes[1].body[0] = (10, 11)
        arena.grid.set((10, 11), CellType.AGENT_B)

        died = arena.apply_moves([Direction.RIGHT, Direction.LEFT])
        assert died == [1]
        assert arena.game_over
        assert arena.winner() == 0

    def test_dead_snakes_do_not_move(self):
        arena = Arena(20, 20, 2, seed=0)
        arena.kill(1)
        arena.apply_moves([Direction.RIGHT, Direction.LEFT])
        assert arena.snakes[1].head == (10, 16)
        assert arena.winner() == 0

    def test_synced_walls_are_reproducible(self):
        arenas = [Arena(20, 20, 2, seed=s, synced_walls=True) for s in (1, 2)]
        for arena in arenas:
            arena.grid.set((10, 5), CellType.POPWALL)
            arena.apply_moves([Direction.RIGHT, Direction.LEFT])
        assert np.array_equal(arenas[0].grid.cells, arenas[1].grid.cells)

    def test_to_dict(self):
        d = Arena(20, 20, 2, seed=0).to_dict()
        assert d["tick"] == 0
        assert d["game_over"] is False
        assert d["winner"] is None
        assert d["alive"] == [True, True]
        assert len(d["snakes"]) == 2
        assert d["grid"]["width"] == 20


class TestMatchResult:
    def test_summaries(self):
        assert "abandoned" in MatchResult(ticks=3, quit=True).summary()
        assert "stopped" in MatchResult(ticks=3).summary()
        assert "Both" in MatchResult(ticks=3, dead=[0, 1]).summary()
        assert MatchResult(ticks=3, dead=[1], winner=0).summary() == (
            "Snake 0 won after 3 ticks."
        )


def _config(**overrides):
    base = {"width": 20, "height": 20, "seed": 0, "local_item_odds": 0.0}
    base.update(overrides)
    return ArenaConfig(**base)


class TestLocalMatch:
    def test_quit_key(self):
        keys = ScriptedKeys("w\x1b")
        match = LocalMatch(_config(), keys, (None, None))
        result = match.step()
        assert result is not None
        assert result.quit
        assert match.arena.tick == 0
        assert all(q.is_empty() for q in match.queues)

    def test_keys_steer_each_player(self):
        keys = ScriptedKeys()
        match = LocalMatch(_config(), keys, (None, None))
        assert match.step() is None
        assert match.arena.snakes[0].head == (10, 5)
        assert match.arena.snakes[1].head == (10, 15)

        keys.feed("wk")
        match.step()
        assert match.arena.snakes[0].head == (9, 5)
        assert match.arena.snakes[1].head == (11, 15)

    def test_reverse_is_refused(self):
        keys = ScriptedKeys("a")
        match = LocalMatch(_config(), keys, (None, None))
        match.step()
        assert match.arena.snakes[0].head == (10, 5)
        assert match.arena.snakes[0].direction == Direction.RIGHT

    def test_head_on_collision(self):
        match = LocalMatch(_config(), ScriptedKeys(), (None, None))
        result = None
        for _ in range(20):
            result = match.step()
            if result is not None:
                break
        assert result == MatchResult(ticks=6, dead=[1], winner=0)
        assert match.step() is result

    def test_item_spawned_when_odds_hit(self, scripted_rng):
        match = LocalMatch(
            _config(local_item_odds=0.1), ScriptedKeys(), (None, None),
        )
        # Odds draw 0.05 hits; cell (5, 5); table slot 7 is FOOD.
        rng = scripted_rng([4, 4, 7], [0.05])
        match.arena.rng = rng
        match.arena.spawner.rng = rng
        assert match.grid.get((5, 5)) == CellType.EMPTY

        assert match.step() is None
        assert rng.exhausted
        assert match.grid.get((5, 5)) == CellType.FOOD
        assert int(np.sum(match.grid.cells == CellType.FOOD)) == 1

    def test_no_item_when_odds_miss(self, scripted_rng):
        match = LocalMatch(
            _config(local_item_odds=0.1), ScriptedKeys(), (None, None),
        )
        rng = scripted_rng([], [0.5])
        match.arena.rng = rng
        match.arena.spawner.rng = rng

        assert match.step() is None
        assert rng.exhausted
        assert not np.any(match.grid.cells >= CellType.FOOD)

    def test_items_spawn_with_certain_odds(self):
        match = LocalMatch(
            _config(local_item_odds=1.0), ScriptedKeys(), (None, None),
        )
        before = match.grid.cells.copy()
        match.step()
        new_items = np.argwhere(match.grid.cells >= CellType.FOOD)
        assert len(new_items) == 1
        row, col = new_items[0]
        assert before[row, col] == CellType.EMPTY

    def test_tick_period_follows_speed_bias(self):
        match = LocalMatch(_config(), ScriptedKeys(), (None, None))
        assert match.tick_period() == pytest.approx(0.15)
        match.grid.speed_bias = 2
        assert match.tick_period() == pytest.approx(0.10)
        match.grid.speed_bias = 10
        assert match.tick_period() == 0.0

    def test_run_sleeps_between_ticks(self):
        sleeps = []
        match = LocalMatch(
            _config(), ScriptedKeys(), (None, None), sleep=sleeps.append,
        )
        result = match.run(max_ticks=3)
        assert result.ticks == 3
        assert not result.dead
        assert sleeps == [pytest.approx(0.15)] * 3

    def test_ai_match_terminates(self):
        match = LocalMatch(
            _config(width=14, height=14, local_item_odds=0.3),
            ScriptedKeys(),
            (Strategy.SPREAD, Strategy.HEAT_MAP),
            renderer=RecordingRenderer(),
            sleep=lambda _: None,
        )
        result = match.run(max_ticks=300)
        assert result.ticks <= 300
        assert not result.quit
