#Flood fill distance field and greedy path descent
#Distances are measured from the maze goal area, restricted to an allowed cell set

from __future__ import annotations

from collections import deque
from typing import AbstractSet, List, Optional, Set

from maze_gen import DIRS, UNREACHABLE, Coord, Maze


def all_cells(maze: Maze) -> Set[Coord]:
    return set(maze.positions())


def compute_distances(maze: Maze, allowed: AbstractSet[Coord]) -> None:
    #Multi-source BFS from every allowed goal cell, labels are written into maze in place
    for row in maze.cells:
        for cell in row:
            cell.distance = UNREACHABLE

    q = deque()
    for goal in maze.goal_area:
        if not maze.in_bounds(goal) or goal not in allowed:
            continue
        cell = maze.cell(goal)
        if cell.distance == UNREACHABLE:
            cell.distance = 0
            q.append(goal)

    while q:
        pos = q.popleft()
        current = maze.cell(pos).distance
        for direction in DIRS:
            nxt = maze.neighbor(pos, direction)
            if nxt is None or nxt not in allowed:
                continue
            if maze.has_wall(pos, direction):
                continue
            neighbor = maze.cell(nxt)
            if neighbor.distance != UNREACHABLE:
                continue
            neighbor.distance = current + 1
            q.append(nxt)


def distances_to_goal(maze: Maze, allowed: AbstractSet[Coord]) -> Maze:
    result = maze.clone()
    compute_distances(result, allowed)
    return result


def distances_to_start(maze: Maze, allowed: AbstractSet[Coord]) -> Maze:
    #Same BFS with start and goal swapped for the duration of the call
    result = maze.clone()
    if not result.goal_area:
        for row in result.cells:
            for cell in row:
                cell.distance = UNREACHABLE
        return result
    start, goal_area = result.start, result.goal_area
    result.start, result.goal_area = goal_area[0], [start]
    try:
        compute_distances(result, allowed)
    finally:
        result.start, result.goal_area = start, goal_area
    return result


def best_move(maze: Maze, pos: Coord) -> Optional[Coord]:
    #One step of greedy descent: open neighbor with the strictly smallest label
    #Ties keep the first neighbor in N, E, S, W order
    best = None
    best_distance = maze.distance(pos)
    if best_distance == UNREACHABLE:
        return None
    for direction in DIRS:
        nxt = maze.neighbor(pos, direction)
        if nxt is None or maze.has_wall(pos, direction):
            continue
        d = maze.distance(nxt)
        if d < best_distance:
            best, best_distance = nxt, d
    return best


def shortest_path(maze: Maze) -> List[Coord]:
    #Walks the distance field from start down to the first goal cell reached
    #An empty list means unreachable, or a field that stopped descending
    start = maze.start
    if not maze.in_bounds(start) or maze.distance(start) == UNREACHABLE:
        return []

    path = [start]
    current = start
    limit = 2 * maze.width * maze.height
    steps = 0
    while not maze.is_goal(current):
        nxt = best_move(maze, current)
        if nxt is None:
            return []
        path.append(nxt)
        current = nxt
        steps += 1
        if steps > limit:
            return []
    return path


def is_valid_path(maze: Maze, path: List[Coord]) -> bool:
    #Starts at start, ends in the goal area, and every hop crosses an open edge
    if not path or path[0] != maze.start or not maze.is_goal(path[-1]):
        return False
    for a, b in zip(path, path[1:]):
        if b not in maze.open_neighbors(a):
            return False
    return True
