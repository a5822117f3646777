#Local wall sensing for the simulated robot
#The robot only sees the four walls of the cell it stands on

from __future__ import annotations

import logging
from typing import Tuple

from maze_gen import DIRS, Coord, Maze

logger = logging.getLogger(__name__)


def initial_known_map(actual: Maze) -> Maze:
    #Boundary walls plus the true walls of the start cell, every other wall assumed open
    known = Maze(actual.width, actual.height, actual.start, actual.goal_area, walls=False)
    for direction in DIRS:
        if known.neighbor(actual.start, direction) is not None:
            known.set_wall(actual.start, direction, actual.has_wall(actual.start, direction))
    known.apply_boundary_walls()
    return known


def discover(pos: Coord, known: Maze, actual: Maze) -> Tuple[Maze, bool]:
    #Returns a new known map, the caller drops the old reference
    updated = known.clone()
    changed = False
    for direction in DIRS:
        if updated.neighbor(pos, direction) is None:
            continue
        present = actual.has_wall(pos, direction)
        if updated.has_wall(pos, direction) != present:
            updated.set_wall(pos, direction, present)
            changed = True
    if changed:
        logger.debug("walls changed around %s", pos)
    return updated, changed
