#Exploration / return / speed run state machine for the micromouse
#Transitions are pure functions from one SimulationState to the next
#Simulation is the driver that owns the current state and is advanced one tick at a time

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import AbstractSet, Dict, FrozenSet, Iterator, List, Optional, Tuple

from flood_fill import (
    all_cells,
    best_move,
    distances_to_goal,
    distances_to_start,
    is_valid_path,
    shortest_path,
)
from maze_gen import DIRS, Coord, GenerationParams, Maze, generate_maze
from wall_discovery import discover, initial_known_map

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "IDLE"
    EXPLORATION = "EXPLORATION"
    RETURN = "RETURN"
    SPEED_RUN = "SPEED_RUN"


class Command(str, Enum):
    START_EXPLORATION = "start_exploration"
    START_SPEED_RUN = "start_speed_run"
    TICK = "tick"


@dataclass(frozen=True)
class SimulationState:
    phase: Phase = Phase.IDLE
    actual: Optional[Maze] = None
    known: Optional[Maze] = None
    robot: Optional[Coord] = None
    visited: FrozenSet[Coord] = frozenset()
    speed_run_path: Optional[Tuple[Coord, ...]] = None
    speed_run_index: int = 0
    can_start_speed_run: bool = False
    absolute_shortest_path: Optional[Tuple[Coord, ...]] = None
    ticks: int = 0


EMPTY_STATE = SimulationState()


def reset_state(actual: Maze) -> SimulationState:
    return SimulationState(
        phase=Phase.IDLE,
        actual=actual,
        known=initial_known_map(actual),
        robot=actual.start,
        visited=frozenset({actual.start}),
    )


def is_exploration_complete(known: Optional[Maze], visited: AbstractSet[Coord]) -> bool:
    #Complete when no visited cell has an open edge into an unvisited cell
    if known is None:
        return True
    for pos in visited:
        for direction in DIRS:
            nxt = known.neighbor(pos, direction)
            if nxt is None or known.has_wall(pos, direction):
                continue
            if nxt not in visited:
                return False
    return True


def can_start_speed_run(known: Optional[Maze], visited: AbstractSet[Coord]) -> bool:
    #Only cells the robot has driven through may carry the speed run
    if known is None:
        return False
    path = shortest_path(distances_to_goal(known, visited))
    return is_valid_path(known, path)


def speed_run_paths(
    known: Maze, actual: Maze, visited: AbstractSet[Coord]
) -> Tuple[List[Coord], List[Coord]]:
    #Robot route over visited cells, and the true optimum for comparison
    truth = distances_to_goal(actual, all_cells(actual))
    absolute = shortest_path(truth)

    robot_path = shortest_path(distances_to_goal(known, visited))
    if not is_valid_path(known, robot_path):
        robot_path = []
    return robot_path, absolute


def _idle(state: SimulationState, **changes) -> SimulationState:
    return replace(state, phase=Phase.IDLE, **changes)


def _moved(state: SimulationState, known: Maze, move: Coord) -> SimulationState:
    return replace(state, known=known, robot=move, visited=state.visited | {move})


def start_exploration(state: SimulationState) -> SimulationState:
    if state.phase != Phase.IDLE or state.known is None or state.robot is None:
        logger.warning("Cannot start exploration in phase %s", state.phase.value)
        return state
    known = distances_to_goal(state.known, all_cells(state.known))
    return replace(
        state,
        phase=Phase.EXPLORATION,
        known=known,
        robot=known.start,
        visited=frozenset({known.start}),
        speed_run_path=None,
        speed_run_index=0,
        can_start_speed_run=False,
        absolute_shortest_path=None,
    )


def start_speed_run(state: SimulationState) -> SimulationState:
    if (
        state.phase != Phase.IDLE
        or not state.can_start_speed_run
        or state.known is None
        or state.actual is None
    ):
        logger.warning("Cannot start speed run: phase %s, ready=%s", state.phase.value, state.can_start_speed_run)
        return state
    robot_path, absolute = speed_run_paths(state.known, state.actual, state.visited)
    absolute_path = tuple(absolute) if absolute else None
    if not robot_path:
        logger.warning("Speed run path no longer valid, staying idle")
        return _idle(
            state,
            can_start_speed_run=False,
            speed_run_path=None,
            speed_run_index=0,
            absolute_shortest_path=absolute_path,
        )
    return replace(
        state,
        phase=Phase.SPEED_RUN,
        robot=state.known.start,
        speed_run_path=tuple(robot_path),
        speed_run_index=1,
        absolute_shortest_path=absolute_path,
    )


def explore_step(state: SimulationState) -> SimulationState:
    actual, known, robot = state.actual, state.known, state.robot
    if actual is None or known is None or robot is None:
        return _idle(state)

    if actual.is_goal(robot):
        return replace(state, phase=Phase.RETURN, known=distances_to_start(known, all_cells(known)))

    #Walls are committed before distances, distances before the move
    known, changed = discover(robot, known, actual)
    if changed:
        known = distances_to_goal(known, all_cells(known))
    move = best_move(known, robot)
    if move is not None:
        return _moved(state, known, move)

    logger.debug("stuck at %s during exploration, recomputing", robot)
    known = distances_to_goal(known, all_cells(known))
    if is_exploration_complete(known, state.visited):
        return _idle(state, known=known, can_start_speed_run=can_start_speed_run(known, state.visited))
    return replace(state, known=known)


def return_step(state: SimulationState) -> SimulationState:
    actual, known, robot = state.actual, state.known, state.robot
    if actual is None or known is None or robot is None:
        return _idle(state)

    if robot == known.start:
        return _idle(state, can_start_speed_run=can_start_speed_run(known, state.visited))

    known, changed = discover(robot, known, actual)
    if changed:
        known = distances_to_start(known, all_cells(known))
    move = best_move(known, robot)
    if move is None:
        logger.debug("stuck at %s during return, recomputing", robot)
        known = distances_to_start(known, all_cells(known))
        move = best_move(known, robot)
    if move is None:
        return _idle(state, known=known, can_start_speed_run=can_start_speed_run(known, state.visited))
    return _moved(state, known, move)


def speed_run_step(state: SimulationState) -> SimulationState:
    path = state.speed_run_path
    index = state.speed_run_index
    if not path or index >= len(path):
        return _idle(state)
    return replace(state, robot=path[index], speed_run_index=index + 1)


PHASE_STEPS = {
    Phase.EXPLORATION: explore_step,
    Phase.RETURN: return_step,
    Phase.SPEED_RUN: speed_run_step,
}


def advance(state: SimulationState) -> SimulationState:
    step = PHASE_STEPS.get(state.phase)
    if step is None:
        return state
    return replace(step(state), ticks=state.ticks + 1)


def apply(state: SimulationState, command: Command) -> SimulationState:
    if command is Command.START_EXPLORATION:
        return start_exploration(state)
    if command is Command.START_SPEED_RUN:
        return start_speed_run(state)
    return advance(state)


@dataclass
class RunMetrics:
    phase_ticks: Dict[Phase, int] = field(default_factory=dict)
    speed_run_length: Optional[int] = None
    absolute_length: Optional[int] = None

    def count(self, phase: Phase) -> None:
        self.phase_ticks[phase] = self.phase_ticks.get(phase, 0) + 1


class Simulation:
    #Owns the one mutable SimulationState, outside code only reads snapshots
    #An outside scheduler calls tick(), nothing in here sleeps or blocks

    def __init__(self, params: Optional[GenerationParams] = None):
        self.params = params or GenerationParams()
        self.state: SimulationState = EMPTY_STATE
        self.metrics = RunMetrics()

    @property
    def snapshot(self) -> SimulationState:
        return self.state

    @property
    def phase(self) -> Phase:
        return self.state.phase

    def reset(self, params: Optional[GenerationParams] = None, maze: Optional[Maze] = None) -> SimulationState:
        #Generation errors propagate and the previous state is kept
        params = params or self.params
        actual = maze if maze is not None else generate_maze(params)
        self.params = params
        self.state = reset_state(actual)
        self.metrics = RunMetrics()
        logger.info("reset to a %dx%d maze, goal %s", actual.width, actual.height, actual.goal_area)
        return self.state

    def start_exploration(self) -> SimulationState:
        return self._apply(Command.START_EXPLORATION)

    def start_speed_run(self) -> SimulationState:
        state = self._apply(Command.START_SPEED_RUN)
        if state.phase is Phase.SPEED_RUN:
            self.metrics.speed_run_length = len(state.speed_run_path) - 1
        if state.absolute_shortest_path:
            self.metrics.absolute_length = len(state.absolute_shortest_path) - 1
        return state

    def tick(self) -> SimulationState:
        phase = self.state.phase
        if phase is not Phase.IDLE:
            self.metrics.count(phase)
        return self._apply(Command.TICK)

    def run(self, max_ticks: int = 100_000) -> Iterator[SimulationState]:
        #Yields a snapshot after every tick until the machine is idle again
        for _ in range(max_ticks):
            if self.state.phase is Phase.IDLE:
                return
            yield self.tick()

    def _apply(self, command: Command) -> SimulationState:
        before = self.state.phase
        self.state = apply(self.state, command)
        if self.state.phase is not before:
            logger.info("phase %s -> %s", before.value, self.state.phase.value)
        return self.state
