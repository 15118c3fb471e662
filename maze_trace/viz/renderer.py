import logging
import pygame
from maze_trace.core.grid import Grid
from maze_trace.core.events import FinishEvent, FOUND
from maze_trace.core.scheduler import StepScheduler
from maze_trace.algo.backtracker import generate_maze
from maze_trace.algo.search import start_search, BFS, DFS

logger = logging.getLogger(__name__)


class PygameClock:
    """Scheduler clock backed by pygame's millisecond tick counter."""
    def now(self) -> float:
        return float(pygame.time.get_ticks())

    def sleep(self, ms: float):
        pygame.time.wait(int(ms))


class Renderer:
    COLOR_BG = (10, 10, 10)
    COLOR_HUD = (255, 255, 255)
    CELL_COLORS = {
        Grid.WALL:    (40, 40, 40),
        Grid.PATH:    (200, 200, 200),
        Grid.START:   (26, 188, 156),
        Grid.END:     (231, 76, 60),
        Grid.VISITED: (60, 100, 160), # Blue tint
    }
    COLOR_SOLUTION = (255, 215, 0) # Gold

    def __init__(self, width=20, height=20, seed=None, tick_delay_ms=100,
                 screen_width=800, screen_height=800):
        self.maze_width = width
        self.maze_height = height
        self.seed = seed
        self.tick_delay_ms = tick_delay_ms
        self.screen_width = screen_width
        self.screen_height = screen_height

        self.grid = None
        self.scheduler = None
        self.handle = None
        self.message = ""

        self.cell_size = 20.0
        self.offset_x = 0.0
        self.offset_y = 0.0

        self.font = None
        self.running = True
        self.clock = None
        self.surface = None

    def fit_to_screen(self):
        """Auto-adjust cell size and offset to fit the entire grid on screen with padding."""
        padding = 40
        available_w = self.screen_width - (padding * 2)
        available_h = self.screen_height - (padding * 2)

        self.cell_size = min(available_w / self.grid.width, available_h / self.grid.height)

        self.offset_x = (self.screen_width - self.grid.width * self.cell_size) / 2
        self.offset_y = (self.screen_height - self.grid.height * self.cell_size) / 2

    def init_window(self):
        pygame.init()
        pygame.display.set_caption(f"Maze Trace - {self.maze_width}x{self.maze_height}")
        self.surface = pygame.display.set_mode((self.screen_width, self.screen_height), pygame.RESIZABLE)
        self.clock = pygame.time.Clock()
        self.font = pygame.font.SysFont("Consolas", 16)
        self.scheduler = StepScheduler(clock=PygameClock())

        self.refresh_maze()

    def refresh_maze(self):
        # The old session must stop before its grid is replaced
        if self.handle is not None:
            self.scheduler.cancel(self.handle)
            self.handle = None

        self.grid = generate_maze(self.maze_width, self.maze_height, seed=self.seed)
        # Only the first maze honours a fixed seed
        self.seed = None
        self.message = ""
        self.fit_to_screen()
        logger.info("New %dx%d maze", self.grid.width, self.grid.height)

    def launch_search(self, kind: str):
        if self.handle is not None:
            self.scheduler.cancel(self.handle)

        self.message = f"Running {kind.upper()}..."
        session = start_search(kind, self.grid, (0, 1))
        self.handle = self.scheduler.run(session, self.on_event, self.tick_delay_ms)

    def on_event(self, event):
        if isinstance(event, FinishEvent):
            self.message = "Path found!" if event.status == FOUND else "No path to the end."
            logger.info("Search finished: %s", event.status)

    def handle_input(self):
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False

            elif event.type == pygame.VIDEORESIZE:
                self.screen_width, self.screen_height = event.w, event.h
                self.fit_to_screen()

            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    self.running = False
                elif event.key == pygame.K_r:
                    self.refresh_maze()
                elif event.key == pygame.K_b:
                    self.launch_search(BFS)
                elif event.key == pygame.K_d:
                    self.launch_search(DFS)

    def draw_grid(self):
        self.surface.fill(self.COLOR_BG)
        cells = self.grid.snapshot()
        size = int(self.cell_size) + 1

        for y in range(self.grid.height):
            for x in range(self.grid.width):
                px = int(x * self.cell_size + self.offset_x)
                py = int(y * self.cell_size + self.offset_y)
                pygame.draw.rect(self.surface, self.CELL_COLORS[int(cells[y, x])], (px, py, size, size))

        # Solution overlay once the goal is reached
        if self.handle is not None and self.handle.final_status == FOUND:
            for (x, y) in self.handle.session.path():
                px = int(x * self.cell_size + self.offset_x)
                py = int(y * self.cell_size + self.offset_y)
                pygame.draw.rect(self.surface, self.COLOR_SOLUTION, (px, py, size, size))

    def draw_hud(self):
        info = [
            "R: new maze   B: breadth-first   D: depth-first",
            self.message,
        ]
        for i, text in enumerate(info):
            lbl = self.font.render(text, True, self.COLOR_HUD)
            self.surface.blit(lbl, (10, 10 + i * 20))

    def run_loop(self):
        while self.running:
            self.handle_input()
            self.scheduler.pump()

            self.draw_grid()
            self.draw_hud()
            pygame.display.flip()

            self.clock.tick(60)

        if self.handle is not None:
            self.scheduler.cancel(self.handle)
        pygame.quit()
