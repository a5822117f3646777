#Pygame visualization for the micromouse simulation
#Also acts as the tick scheduler: one simulation step per frame while a phase is running

from __future__ import annotations

import random

import pygame

from maze_gen import MazeError
from simulation import Phase


class MicromouseVisualizer:
    #R = new maze, E = explore, S = speed run, F = fullscreen, ESC = quit

    def __init__(
        self,
        simulation,
        tile_size=24,
        stats_height=150,
        fps=30,
        title_suffix="",
    ):
        self.simulation = simulation
        self.tile_size = tile_size
        self.stats_height = stats_height
        self.fps = fps
        self.title_suffix = title_suffix
        self.message = ""

    def _compute_layout(self, grid_cols, grid_rows, container_w, container_h):
        usable_w = max(320, container_w - 16)
        usable_h = max(240, container_h - 16)

        tile_size = self.tile_size
        stats_height = self.stats_height
        for _ in range(4):
            max_tile_w = max(4, usable_w // grid_cols)
            max_tile_h = max(4, (usable_h - stats_height) // grid_rows)
            tile_size = max(4, min(max_tile_w, max_tile_h))
            line_height = max(16, int(18 * tile_size / 24))
            stats_height = max(90, line_height * 7)

        return tile_size, stats_height, line_height

    def _reset(self):
        params = self.simulation.params
        params.seed = random.randint(0, 1_000_000_000)
        try:
            self.simulation.reset(params)
            self.message = f"seed {params.seed}"
        except MazeError as exc:
            self.message = str(exc)

    def _handle_key(self, key):
        if key == pygame.K_r:
            self._reset()
        elif key == pygame.K_e:
            self.simulation.start_exploration()
        elif key == pygame.K_s:
            self.simulation.start_speed_run()

    def run(self):
        pygame.init()
        display_info = pygame.display.Info()
        default_w = max(640, int(display_info.current_w * 0.6))
        default_h = max(480, int(display_info.current_h * 0.8))
        screen = pygame.display.set_mode((default_w, default_h), pygame.RESIZABLE)
        pygame.display.set_caption(f"Micromouse{self.title_suffix}")
        clock = pygame.time.Clock()
        fullscreen = False
        last_window_size = screen.get_size()
        font_size = 0
        font = None

        #color schemes for visual aspects
        colors = {
            "wall": (20, 20, 20),
            "floor": (235, 235, 235),
            "visited": (160, 160, 160),
            "start": (240, 220, 90),
            "goal": (60, 190, 90),
            "path": (120, 170, 240),
            "absolute": (130, 50, 200),
            "robot": (220, 50, 50),
        }

        #Draws semi transparent overlays on top of the floor tiles
        def draw_alpha_rect(surface, color, rect, alpha):
            overlay = pygame.Surface((rect.width, rect.height), pygame.SRCALPHA)
            overlay.fill((*color, alpha))
            surface.blit(overlay, rect.topleft)

        running = True
        while running:
            clock.tick(self.fps)
            for event in pygame.event.get():
                if event.type == pygame.QUIT or (
                    event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE
                ):
                    running = False
                elif event.type == pygame.VIDEORESIZE and not fullscreen:
                    last_window_size = (event.w, event.h)
                    screen = pygame.display.set_mode(last_window_size, pygame.RESIZABLE)
                elif event.type == pygame.KEYDOWN and event.key == pygame.K_f:
                    fullscreen = not fullscreen
                    if fullscreen:
                        display_info = pygame.display.Info()
                        screen = pygame.display.set_mode((display_info.current_w, display_info.current_h), pygame.FULLSCREEN)
                    else:
                        screen = pygame.display.set_mode(last_window_size, pygame.RESIZABLE)
                elif event.type == pygame.KEYDOWN:
                    self._handle_key(event.key)

            if self.simulation.phase is not Phase.IDLE:
                self.simulation.tick()

            snapshot = self.simulation.snapshot
            screen.fill((10, 10, 10))
            if snapshot.known is None:
                pygame.display.flip()
                continue

            maze = snapshot.actual
            grid = maze.to_grid()
            grid_rows = len(grid)
            grid_cols = len(grid[0])
            tile_size, stats_height, line_height = self._compute_layout(grid_cols, grid_rows, *screen.get_size())
            new_font_size = max(14, int(18 * tile_size / 24))
            if new_font_size != font_size:
                font_size = new_font_size
                font = pygame.font.SysFont(None, font_size)

            def cell_rect(pos):
                gx, gy = maze.grid_position(pos)
                return pygame.Rect(gx * tile_size, gy * tile_size, tile_size, tile_size)

            for gy, grid_row in enumerate(grid):
                for gx, value in enumerate(grid_row):
                    color = colors["floor"] if value == 1 else colors["wall"]
                    pygame.draw.rect(screen, color, pygame.Rect(gx * tile_size, gy * tile_size, tile_size, tile_size))

            for pos in snapshot.visited:
                draw_alpha_rect(screen, colors["visited"], cell_rect(pos), 150)
            for pos in snapshot.speed_run_path or ():
                draw_alpha_rect(screen, colors["path"], cell_rect(pos), 180)
            draw_alpha_rect(screen, colors["start"], cell_rect(maze.start), 230)
            for pos in maze.goal_area:
                draw_alpha_rect(screen, colors["goal"], cell_rect(pos), 230)
            for pos in snapshot.absolute_shortest_path or ():
                pygame.draw.circle(screen, colors["absolute"], cell_rect(pos).center, max(2, tile_size // 5))
            if snapshot.robot is not None:
                pygame.draw.circle(screen, colors["robot"], cell_rect(snapshot.robot).center, max(3, tile_size // 2 - 2))

            speed_len = len(snapshot.speed_run_path) - 1 if snapshot.speed_run_path else "-"
            best_len = len(snapshot.absolute_shortest_path) - 1 if snapshot.absolute_shortest_path else "-"
            lines = [
                f"phase: {snapshot.phase.value}   tick: {snapshot.ticks}",
                f"visited: {len(snapshot.visited)}/{maze.width * maze.height}",
                f"speed run ready: {snapshot.can_start_speed_run}",
                f"speed run length: {speed_len}   absolute shortest: {best_len}",
                "R new maze   E explore   S speed run   F fullscreen",
                self.message,
            ]
            pad = 6
            stats_rect = pygame.Rect(0, grid_rows * tile_size, grid_cols * tile_size, stats_height)
            pygame.draw.rect(screen, (25, 25, 25), stats_rect)
            for i, text in enumerate(lines):
                surface = font.render(text, True, (235, 235, 235))
                screen.blit(surface, (stats_rect.x + pad, stats_rect.y + pad + i * line_height))

            pygame.display.flip()

        pygame.quit()
