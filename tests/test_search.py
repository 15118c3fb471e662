import unittest
import sys
import os
from collections import deque

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from maze_trace.core.grid import Grid
from maze_trace.core.errors import InvalidStart
from maze_trace.algo.backtracker import generate_maze
from maze_trace.algo.search import (
    BreadthFirstSearch, DepthFirstSearch, start_search,
    EXPANDED, GOAL_FOUND, EXHAUSTED, CANCELLED, BFS, DFS,
)

START = (0, 1)


def distances(grid, start):
    dist = {start: 0}
    queue = deque([start])
    while queue:
        x, y = queue.popleft()
        for dx, dy in ((1, 0), (-1, 0), (0, 1), (0, -1)):
            nx, ny = x + dx, y + dy
            if grid.in_bounds(nx, ny) and (nx, ny) not in dist and grid.get(nx, ny) in (Grid.PATH, Grid.END):
                dist[(nx, ny)] = dist[(x, y)] + 1
                queue.append((nx, ny))
    return dist


def trace(engine, grid, start=START):
    """Runs a session to the end: (discovered cells, tick count, final result, session)."""
    session = engine.start(grid, start)
    discovered = []
    ticks = 0
    while True:
        result = engine.step(session)
        ticks += 1
        discovered.extend(result.discovered)
        if result.terminal:
            return discovered, ticks, result, session


class TestSearchEngines(unittest.TestCase):
    def create_simple_maze(self):
        # Single corridor from the start to the end
        return Grid.from_text("""
            #######
            S.....#
            #####.#
            #.....#
            #.#####
            #.....E
            #######
        """.replace(" ", ""))

    def test_adjacent_goal_found_on_first_tick(self):
        grid = Grid.from_text("####\nSE..\n####")
        bfs = BreadthFirstSearch()
        session = bfs.start(grid, START)
        result = bfs.step(session)

        self.assertEqual(result.kind, GOAL_FOUND)
        self.assertEqual(result.cell, (1, 1))
        self.assertEqual(session.ticks, 1)

    def test_bfs_corridor(self):
        grid = self.create_simple_maze()
        discovered, ticks, result, session = trace(BreadthFirstSearch(), grid)

        self.assertEqual(result.kind, GOAL_FOUND)
        self.assertEqual(result.cell, (6, 5))
        self.assertEqual(discovered[-1], (6, 5))
        path = session.path()
        self.assertEqual(path[0], START)
        self.assertEqual(path[-1], (6, 5))
        # One corridor: every open cell lies on the path
        self.assertEqual(len(discovered), 18)
        self.assertEqual(len(path), len(discovered) + 1)

    def test_marks_visited_but_keeps_end_and_start(self):
        grid = self.create_simple_maze()
        path_cells = grid.count(Grid.PATH)
        trace(DepthFirstSearch(), grid)

        self.assertEqual(grid.count(Grid.PATH), 0)
        self.assertEqual(grid.count(Grid.VISITED), path_cells)
        self.assertEqual(grid.get(6, 5), Grid.END)
        self.assertEqual(grid.get(0, 1), Grid.START)

    def test_short_circuit_on_goal(self):
        grid = Grid.from_text("###\n#S.\n#E#")
        bfs = BreadthFirstSearch()
        session = bfs.start(grid, (1, 1))
        result = bfs.step(session)

        # +y is checked before +x, so the path cell to the east is never seen
        self.assertEqual(result.kind, GOAL_FOUND)
        self.assertEqual(result.discovered, ((1, 2),))
        self.assertEqual(grid.get(2, 1), Grid.PATH)
        self.assertNotIn((2, 1), session.visited)

    def test_frontier_discipline(self):
        grid = Grid.from_text("#.#\nS.#\n#.#")

        for engine, expected in [(BreadthFirstSearch(), (1, 2)), (DepthFirstSearch(), (1, 0))]:
            g = grid.copy()
            session = engine.start(g, START)
            first = engine.step(session)
            second = engine.step(session)
            third = engine.step(session)

            self.assertEqual(first.discovered, ((1, 1),))
            self.assertEqual(second.cell, (1, 1))
            self.assertEqual(second.discovered, ((1, 2), (1, 0)))
            self.assertEqual(third.kind, EXPANDED)
            self.assertEqual(third.cell, expected, engine.name)

    def test_bfs_level_order(self):
        for seed in range(5):
            grid = generate_maze(21, 21, seed=seed)
            dist = distances(grid, START)
            discovered, _, _, _ = trace(BreadthFirstSearch(), grid)

            levels = [dist[c] for c in discovered]
            self.assertEqual(levels, sorted(levels), f"seed {seed}")

    def test_bfs_shortest_path(self):
        grid = generate_maze(21, 21, seed=11)
        dist = distances(grid, START)
        end = next(grid.find(Grid.END))
        _, _, result, session = trace(BreadthFirstSearch(), grid)

        self.assertEqual(result.kind, GOAL_FOUND)
        self.assertEqual(len(session.path()), dist[end] + 1)

    def test_dfs_path_is_connected(self):
        grid = generate_maze(21, 21, seed=11)
        _, _, result, session = trace(DepthFirstSearch(), grid)
        path = session.path()

        self.assertEqual(result.kind, GOAL_FOUND)
        self.assertEqual(path[0], START)
        self.assertEqual(grid.get(*path[-1]), Grid.END)
        for (ax, ay), (bx, by) in zip(path, path[1:]):
            self.assertEqual(abs(ax - bx) + abs(ay - by), 1)
            self.assertNotEqual(grid.get(bx, by), Grid.WALL)

    def test_deterministic_trace(self):
        grid = generate_maze(25, 25, seed=3)
        for engine_cls in (BreadthFirstSearch, DepthFirstSearch):
            first, _, _, _ = trace(engine_cls(), grid.copy())
            second, _, _, _ = trace(engine_cls(), grid.copy())
            self.assertEqual(first, second)

    def test_no_cell_discovered_twice(self):
        grid = generate_maze(31, 31, seed=8)
        for engine_cls in (BreadthFirstSearch, DepthFirstSearch):
            discovered, _, _, _ = trace(engine_cls(), grid.copy())
            self.assertEqual(len(discovered), len(set(discovered)))
            self.assertNotIn(START, discovered)

    def test_terminates_within_area(self):
        for w, h in [(5, 5), (6, 9), (20, 20), (21, 13)]:
            for seed in range(3):
                grid = generate_maze(w, h, seed=seed)
                for engine_cls in (BreadthFirstSearch, DepthFirstSearch):
                    _, ticks, result, _ = trace(engine_cls(), grid.copy())
                    self.assertIn(result.kind, (GOAL_FOUND, EXHAUSTED))
                    self.assertLessEqual(ticks, w * h)

    def test_disconnected_end_exhausts(self):
        grid = generate_maze(9, 9, seed=21)
        # Wall off the end at (8, 7) by closing its only open neighbour
        grid.set(7, 7, Grid.WALL)
        reachable = len(distances(grid, START)) - 1

        for engine_cls in (BreadthFirstSearch, DepthFirstSearch):
            discovered, _, result, session = trace(engine_cls(), grid.copy())
            self.assertEqual(result.kind, EXHAUSTED)
            self.assertEqual(len(discovered), reachable)
            self.assertEqual(session.path(), [])

    def test_step_after_finish_repeats_result(self):
        grid = Grid.from_text("###\nS.#\n###")
        dfs = DepthFirstSearch()
        session = dfs.start(grid, START)
        dfs.step(session)  # discovers (1, 1)
        dfs.step(session)  # expands it, nothing new
        exhausted = dfs.step(session)

        self.assertEqual(exhausted.kind, EXHAUSTED)
        self.assertIs(dfs.step(session), exhausted)
        self.assertTrue(session.finished)

    def test_cancelled_session_leaves_grid_alone(self):
        grid = Grid.from_text("#######\nS.....E\n#######")
        bfs = BreadthFirstSearch()
        session = bfs.start(grid, START)
        bfs.step(session)
        before = grid.cells.tobytes()
        frontier = list(session.frontier)

        session.cancel()
        result = bfs.step(session)

        self.assertEqual(result.kind, CANCELLED)
        self.assertTrue(result.terminal)
        self.assertEqual(result.discovered, ())
        self.assertEqual(grid.cells.tobytes(), before)
        self.assertEqual(grid.count(Grid.VISITED), 1)
        self.assertEqual(list(session.frontier), frontier)
        self.assertEqual(session.ticks, 1)
        # Stays cancelled on later steps
        self.assertIs(bfs.step(session), result)
        self.assertEqual(bfs.run_to_end(session).kind, CANCELLED)

    def test_invalid_start(self):
        grid = self.create_simple_maze()
        with self.assertRaises(InvalidStart):
            BreadthFirstSearch().start(grid, (1, 0))
        with self.assertRaises(InvalidStart):
            DepthFirstSearch().start(grid, (-1, 1))
        with self.assertRaises(ValueError):
            BreadthFirstSearch().start(grid, (0, 0))

    def test_start_search_kinds(self):
        grid = self.create_simple_maze()
        self.assertIsInstance(start_search(BFS, grid, START).engine, BreadthFirstSearch)
        self.assertIsInstance(start_search(DFS, grid, START).engine, DepthFirstSearch)
        with self.assertRaises(ValueError):
            start_search("astar", grid, START)

    def test_second_search_clears_previous_marks(self):
        grid = generate_maze(15, 15, seed=4)
        _, _, first, _ = trace(BreadthFirstSearch(), grid)
        _, _, second, _ = trace(DepthFirstSearch(), grid)

        self.assertEqual(first.kind, GOAL_FOUND)
        self.assertEqual(second.kind, GOAL_FOUND)

if __name__ == '__main__':
    unittest.main()
