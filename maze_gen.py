#Maze data model and generator for the micromouse simulator
#The generator carves a perfect maze with an iterative DFS backtracker
#Then it removes a fraction of the remaining interior walls to create loops

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

Coord = Tuple[int, int]

MIN_SIZE = 2
UNREACHABLE = math.inf

DEFAULT_WIDTH = 16
DEFAULT_HEIGHT = 16
DEFAULT_EXTRA_PATH_FRACTION = 0.1
DEFAULT_START = (0, 0)
AUTO_CENTER = -1


class Direction(IntEnum):
    NORTH = 0
    EAST = 1
    SOUTH = 2
    WEST = 3


#North is +y, row height-1 is the top of the maze
#Iteration order of this table is the neighbor priority used everywhere
DIRS: Dict[Direction, Coord] = {
    Direction.NORTH: (0, 1),
    Direction.EAST: (1, 0),
    Direction.SOUTH: (0, -1),
    Direction.WEST: (-1, 0),
}

OPPOSITE: Dict[Direction, Direction] = {
    Direction.NORTH: Direction.SOUTH,
    Direction.EAST: Direction.WEST,
    Direction.SOUTH: Direction.NORTH,
    Direction.WEST: Direction.EAST,
}


class MazeError(ValueError):
    pass


class InvalidDimensions(MazeError):
    pass


class InvalidStart(MazeError):
    pass


class NoValidGoal(MazeError):
    pass


def within_bounds(width: int, height: int, x: int, y: int) -> bool:
    return 0 <= x < width and 0 <= y < height


@dataclass
class Cell:
    x: int
    y: int
    walls: List[bool] = field(default_factory=lambda: [True, True, True, True])
    distance: float = UNREACHABLE

    def copy(self) -> "Cell":
        return Cell(self.x, self.y, list(self.walls), self.distance)


class Maze:
#Grid of cells with four wall flags each
#Every edge stores its wall on both sides, set_wall keeps the two flags equal
#Cells are indexed cells[y][x]

    def __init__(
        self,
        width: int,
        height: int,
        start: Coord = DEFAULT_START,
        goal_area: Iterable[Coord] = (),
        walls: bool = True,
    ):
        if width < MIN_SIZE or height < MIN_SIZE:
            raise InvalidDimensions(f"Maze must be at least {MIN_SIZE}x{MIN_SIZE}, got {width}x{height}")
        if not within_bounds(width, height, *start):
            raise InvalidStart(f"Start {start} is outside a {width}x{height} maze")
        self.width = width
        self.height = height
        self.start: Coord = tuple(start)
        self.goal_area: List[Coord] = [tuple(g) for g in goal_area]
        self.cells: List[List[Cell]] = [
            [Cell(x, y, [walls] * 4) for x in range(width)] for y in range(height)
        ]

    def cell(self, pos: Coord) -> Cell:
        x, y = pos
        return self.cells[y][x]

    def in_bounds(self, pos: Coord) -> bool:
        return within_bounds(self.width, self.height, *pos)

    def positions(self) -> Iterator[Coord]:
        for y in range(self.height):
            for x in range(self.width):
                yield (x, y)

    def neighbor(self, pos: Coord, direction: Direction) -> Optional[Coord]:
        dx, dy = DIRS[direction]
        nxt = (pos[0] + dx, pos[1] + dy)
        return nxt if self.in_bounds(nxt) else None

    def has_wall(self, pos: Coord, direction: Direction) -> bool:
        #Reads only this cell's flag, symmetry makes it the answer for the edge
        return self.cell(pos).walls[direction]

    def set_wall(self, pos: Coord, direction: Direction, present: bool) -> None:
        self.cell(pos).walls[direction] = present
        nxt = self.neighbor(pos, direction)
        if nxt is not None:
            self.cell(nxt).walls[OPPOSITE[direction]] = present

    def open_neighbors(self, pos: Coord) -> List[Coord]:
        return [
            nxt
            for direction in DIRS
            if (nxt := self.neighbor(pos, direction)) is not None
            and not self.has_wall(pos, direction)
        ]

    def is_goal(self, pos: Coord) -> bool:
        return tuple(pos) in self.goal_area

    def distance(self, pos: Coord) -> float:
        return self.cell(pos).distance

    def apply_boundary_walls(self) -> None:
        for x in range(self.width):
            self.cells[self.height - 1][x].walls[Direction.NORTH] = True
            self.cells[0][x].walls[Direction.SOUTH] = True
        for y in range(self.height):
            self.cells[y][0].walls[Direction.WEST] = True
            self.cells[y][self.width - 1].walls[Direction.EAST] = True

    def clone(self) -> "Maze":
        other = Maze.__new__(Maze)
        other.width = self.width
        other.height = self.height
        other.start = tuple(self.start)
        other.goal_area = [tuple(g) for g in self.goal_area]
        other.cells = [[cell.copy() for cell in row] for row in self.cells]
        return other

    def symmetry_violations(self) -> List[Tuple[Coord, Direction]]:
        bad = []
        for pos in self.positions():
            for direction in DIRS:
                nxt = self.neighbor(pos, direction)
                if nxt is None:
                    continue
                if self.has_wall(pos, direction) != self.has_wall(nxt, OPPOSITE[direction]):
                    bad.append((pos, direction))
        return bad

    def boundary_violations(self) -> List[Tuple[Coord, Direction]]:
        return [
            (pos, direction)
            for pos in self.positions()
            for direction in DIRS
            if self.neighbor(pos, direction) is None and not self.has_wall(pos, direction)
        ]

    def interior_walls(self) -> List[Tuple[Coord, Direction]]:
        #Each edge is listed once, from its south or west cell
        walls = []
        for x, y in self.positions():
            if y < self.height - 1 and self.cells[y][x].walls[Direction.NORTH]:
                walls.append(((x, y), Direction.NORTH))
            if x < self.width - 1 and self.cells[y][x].walls[Direction.EAST]:
                walls.append(((x, y), Direction.EAST))
        return walls

    def to_grid(self) -> List[List[int]]:
        #1 = floor, 0 = wall, flipped so the north row comes first
        grid_w = self.width * 2 + 1
        grid_h = self.height * 2 + 1
        grid = [[0 for _ in range(grid_w)] for _ in range(grid_h)]
        for x, y in self.positions():
            walls = self.cells[y][x].walls
            gx, gy = self.grid_position((x, y))
            grid[gy][gx] = 1
            if not walls[Direction.NORTH]:
                grid[gy - 1][gx] = 1
            if not walls[Direction.SOUTH]:
                grid[gy + 1][gx] = 1
            if not walls[Direction.WEST]:
                grid[gy][gx - 1] = 1
            if not walls[Direction.EAST]:
                grid[gy][gx + 1] = 1
        return grid

    def grid_position(self, pos: Coord) -> Coord:
        x, y = pos
        return 2 * x + 1, 2 * (self.height - 1 - y) + 1


@dataclass
class GenerationParams:
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    extra_path_fraction: float = DEFAULT_EXTRA_PATH_FRACTION
    start_x: int = DEFAULT_START[0]
    start_y: int = DEFAULT_START[1]
    goal_center_x: int = AUTO_CENTER
    goal_center_y: int = AUTO_CENTER
    seed: Optional[int] = None


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def carve_passages(maze: Maze, start: Coord, rng: random.Random) -> None:
    #Recursive backtracker written with an explicit stack
    #Each frame keeps its own shuffled direction order, same visiting order as the recursive form
    visited = [[False] * maze.width for _ in range(maze.height)]
    visited[start[1]][start[0]] = True
    order = list(DIRS)
    rng.shuffle(order)
    stack: List[Tuple[Coord, Iterator[Direction]]] = [(start, iter(order))]

    while stack:
        pos, directions = stack[-1]
        for direction in directions:
            nxt = maze.neighbor(pos, direction)
            if nxt is None or visited[nxt[1]][nxt[0]]:
                continue
            maze.set_wall(pos, direction, False)
            visited[nxt[1]][nxt[0]] = True
            order = list(DIRS)
            rng.shuffle(order)
            stack.append((nxt, iter(order)))
            break
        else:
            stack.pop()


def braid(maze: Maze, fraction: float, rng: random.Random) -> int:
    #Delete a share of the interior walls so more than one route exists
    candidates = maze.interior_walls()
    rng.shuffle(candidates)
    to_remove = min(len(candidates), math.floor(len(candidates) * fraction))
    removed = 0
    for pos, direction in candidates[:to_remove]:
        if maze.has_wall(pos, direction):
            maze.set_wall(pos, direction, False)
            removed += 1
    return removed


def compute_goal_area(
    width: int,
    height: int,
    start: Coord,
    goal_center_x: int = AUTO_CENTER,
    goal_center_y: int = AUTO_CENTER,
) -> List[Coord]:
    max_x = max(0, width - 2)
    max_y = max(0, height - 2)
    cx = width // 2 - 1 if goal_center_x < 0 else goal_center_x
    cy = height // 2 - 1 if goal_center_y < 0 else goal_center_y
    cx = int(clamp(cx, 0, max_x))
    cy = int(clamp(cy, 0, max_y))

    def usable(pos: Coord) -> bool:
        return within_bounds(width, height, *pos) and pos != start

    block = [(cx, cy), (cx + 1, cy), (cx, cy + 1), (cx + 1, cy + 1)]
    goal_area = [pos for pos in block if usable(pos)]
    if goal_area:
        return goal_area

    fallbacks = [
        (int(clamp(width // 2, 0, width - 1)), int(clamp(height // 2, 0, height - 1))),
        (width - 1, height - 1),
        (0, 0),
        (1, 0),
        (0, 1),
    ]
    for pos in fallbacks:
        if usable(pos):
            return [pos]
    raise NoValidGoal(f"No goal cell distinct from start {start} in a {width}x{height} maze")


def generate_maze(params: GenerationParams, rng: Optional[random.Random] = None) -> Maze:
    width, height = params.width, params.height
    start = (params.start_x, params.start_y)
    if width == 1 and height == 1:
        raise NoValidGoal("A 1x1 maze has no cell left for the goal")
    if width < MIN_SIZE or height < MIN_SIZE:
        raise InvalidDimensions(f"Maze must be at least {MIN_SIZE}x{MIN_SIZE}, got {width}x{height}")
    if not within_bounds(width, height, *start):
        raise InvalidStart(f"Start {start} is outside a {width}x{height} maze")

    if rng is None:
        rng = random.Random(params.seed)
    fraction = clamp(params.extra_path_fraction, 0.0, 1.0)
    goal_area = compute_goal_area(width, height, start, params.goal_center_x, params.goal_center_y)

    maze = Maze(width, height, start, goal_area)
    carve_passages(maze, start, rng)
    braid(maze, fraction, rng)
    maze.apply_boundary_walls()
    return maze


def reachable_from(maze: Maze, start: Coord) -> List[Coord]:
    #Plain graph walk over open edges, used for connectivity checks
    seen = {tuple(start)}
    stack = [tuple(start)]
    order = []
    while stack:
        pos = stack.pop()
        order.append(pos)
        for nxt in maze.open_neighbors(pos):
            if nxt not in seen:
                seen.add(nxt)
                stack.append(nxt)
    return order


def format_maze(maze: Maze, marks: Optional[Dict[Coord, str]] = None) -> str:
    #ASCII view for the CLI, north row printed first
    marks = marks or {}
    lines = []
    for y in range(maze.height - 1, -1, -1):
        top = "+"
        mid = ""
        for x in range(maze.width):
            walls = maze.cells[y][x].walls
            top += ("---" if walls[Direction.NORTH] else "   ") + "+"
            mid += ("|" if walls[Direction.WEST] else " ") + f" {marks.get((x, y), ' ')} "
        mid += "|" if maze.cells[y][maze.width - 1].walls[Direction.EAST] else " "
        lines.append(top)
        lines.append(mid)
    bottom = "+"
    for x in range(maze.width):
        bottom += ("---" if maze.cells[0][x].walls[Direction.SOUTH] else "   ") + "+"
    lines.append(bottom)
    return "\n".join(lines)


def mark_cells(maze: Maze, path: Sequence[Coord] = (), robot: Optional[Coord] = None) -> Dict[Coord, str]:
    marks: Dict[Coord, str] = {pos: "." for pos in path}
    for pos in maze.goal_area:
        marks[pos] = "G"
    marks[maze.start] = "S"
    if robot is not None:
        marks[tuple(robot)] = "@"
    return marks
