"""Offline tests for the exploration / return / speed run state machine.

Run:
  python3 -m pytest tests/test_simulation.py
"""

import pytest

from flood_fill import all_cells, distances_to_goal, shortest_path
from maze_gen import Direction, GenerationParams, Maze, NoValidGoal, generate_maze
from simulation import (
    Command,
    Phase,
    Simulation,
    SimulationState,
    advance,
    apply,
    can_start_speed_run,
    is_exploration_complete,
    reset_state,
)


def _sim(width=8, height=8, fraction=0.0, seed=0, **kwargs):
    sim = Simulation(GenerationParams(width=width, height=height, extra_path_fraction=fraction, seed=seed, **kwargs))
    sim.reset()
    return sim


def _cycle(sim, max_ticks=10_000):
    sim.start_exploration()
    for _ in sim.run(max_ticks):
        pass
    return sim.snapshot


def _open_maze(width, height, start=(0, 0), goal_area=None):
    maze = Maze(width, height, start, goal_area or [(width - 1, height - 1)], walls=False)
    maze.apply_boundary_walls()
    return maze


def _distances(maze):
    return [[cell.distance for cell in row] for row in maze.cells]


def _walls(maze):
    return [[list(cell.walls) for cell in row] for row in maze.cells]


def test_reset_builds_idle_state():
    sim = _sim(seed=1)
    state = sim.snapshot
    assert state.phase is Phase.IDLE
    assert state.robot == state.actual.start
    assert state.visited == {state.actual.start}
    assert state.speed_run_path is None
    assert state.absolute_shortest_path is None
    assert not state.can_start_speed_run
    assert state.known is not state.actual


def test_commands_with_unmet_preconditions_are_ignored():
    sim = _sim(seed=2)
    before = sim.snapshot
    assert sim.start_speed_run() is before
    assert sim.tick() is before
    assert before.ticks == 0

    exploring = sim.start_exploration()
    assert exploring.phase is Phase.EXPLORATION
    assert sim.start_exploration() is exploring
    assert sim.start_speed_run() is exploring

    empty = Simulation()
    assert empty.start_exploration() is empty.snapshot


def test_failed_reset_keeps_previous_state():
    sim = _sim(seed=3)
    before = sim.snapshot
    with pytest.raises(NoValidGoal):
        sim.reset(GenerationParams(width=1, height=1))
    assert sim.snapshot is before
    assert sim.params.width == 8


def test_reset_accepts_a_ready_maze():
    maze = generate_maze(GenerationParams(width=5, height=4, seed=9))
    sim = Simulation()
    state = sim.reset(maze=maze)
    assert state.actual is maze
    assert state.known.width == 5 and state.known.height == 4


@pytest.mark.parametrize("seed", range(10))
def test_perfect_maze_cycle_learns_the_route(seed):
    sim = _sim(width=8, height=8, fraction=0.0, seed=seed)
    state = _cycle(sim)
    actual = state.actual

    assert state.phase is Phase.IDLE
    assert state.robot == actual.start
    assert state.can_start_speed_run
    #In a perfect maze the only route to the goal must have been driven
    true_path = shortest_path(distances_to_goal(actual, all_cells(actual)))
    assert set(true_path) <= state.visited
    assert sim.metrics.phase_ticks[Phase.EXPLORATION] > 0
    assert sim.metrics.phase_ticks[Phase.RETURN] > 0


@pytest.mark.parametrize("seed", range(6))
@pytest.mark.parametrize("fraction", [0.0, 0.25])
def test_speed_run_never_beats_the_true_shortest_path(seed, fraction):
    sim = _sim(width=10, height=10, fraction=fraction, seed=seed)
    _cycle(sim)
    state = sim.start_speed_run()
    assert state.phase is Phase.SPEED_RUN
    assert state.robot == state.actual.start
    assert state.speed_run_index == 1
    path = state.speed_run_path
    best = state.absolute_shortest_path
    assert path[0] == state.actual.start
    assert state.actual.is_goal(path[-1])
    assert len(path) >= len(best)
    if fraction == 0.0 or set(best) <= state.visited:
        assert len(path) == len(best)
    assert sim.metrics.speed_run_length == len(path) - 1
    assert sim.metrics.absolute_length == len(best) - 1

    walked = [state.robot]
    for snapshot in sim.run(1000):
        if snapshot.phase is Phase.SPEED_RUN:
            walked.append(snapshot.robot)
    assert sim.phase is Phase.IDLE
    assert tuple(walked) == path
    assert sim.snapshot.robot == path[-1]
    assert sim.metrics.phase_ticks[Phase.SPEED_RUN] == len(path)


@pytest.mark.parametrize("seed", range(20))
def test_smallest_maze_reaches_goal_quickly(seed):
    sim = _sim(width=2, height=2, seed=seed)
    assert sorted(sim.snapshot.actual.goal_area) == [(0, 1), (1, 0), (1, 1)]
    sim.start_exploration()
    for _ in range(4):
        if sim.phase is not Phase.EXPLORATION:
            break
        sim.tick()
    assert sim.phase is not Phase.EXPLORATION
    for _ in sim.run(100):
        pass
    assert sim.phase is Phase.IDLE
    assert sim.snapshot.can_start_speed_run


def test_field_is_fresh_before_every_move():
    sim = _sim(width=12, height=12, fraction=0.2, seed=17)
    sim.start_exploration()
    for state in sim.run(5000):
        if state.phase is not Phase.EXPLORATION:
            break
        fresh = distances_to_goal(state.known, all_cells(state.known))
        assert _distances(state.known) == _distances(fresh)
        assert state.known.symmetry_violations() == []
        assert state.known.boundary_violations() == []


def test_published_snapshots_never_change():
    sim = _sim(width=10, height=10, fraction=0.2, seed=5)
    first = sim.start_exploration()
    walls, distances = _walls(first.known), _distances(first.known)
    visited, robot = set(first.visited), first.robot
    for _ in range(30):
        sim.tick()
    assert sim.snapshot is not first
    assert _walls(first.known) == walls
    assert _distances(first.known) == distances
    assert first.visited == visited
    assert first.robot == robot


def test_apply_is_pure():
    actual = generate_maze(GenerationParams(width=6, height=6, seed=4))
    state = apply(reset_state(actual), Command.START_EXPLORATION)
    nxt = apply(state, Command.TICK)
    assert nxt is not state
    assert state.robot == actual.start
    assert state.ticks == 0
    assert nxt.ticks == 1
    assert advance(reset_state(actual)).ticks == 0


def test_restarting_exploration_starts_a_new_cycle():
    sim = _sim(width=6, height=6, fraction=0.1, seed=8)
    _cycle(sim)
    learned = _walls(sim.snapshot.known)
    sim.start_speed_run()
    for _ in sim.run(1000):
        pass
    assert sim.snapshot.robot != sim.snapshot.actual.start

    state = sim.start_exploration()
    assert state.phase is Phase.EXPLORATION
    assert state.robot == state.actual.start
    assert state.visited == {state.actual.start}
    assert state.speed_run_path is None
    assert state.absolute_shortest_path is None
    assert not state.can_start_speed_run
    assert _walls(state.known) == learned


def test_exploration_stays_active_while_cells_are_left():
    actual = _open_maze(8, 8, goal_area=[(3, 3), (4, 3), (3, 4), (4, 4)])
    known = actual.clone()
    #Wrong belief far from the robot: a ring around the goal block
    for x in (3, 4):
        known.set_wall((x, 2), Direction.NORTH, True)
        known.set_wall((x, 4), Direction.NORTH, True)
    for y in (3, 4):
        known.set_wall((2, y), Direction.EAST, True)
        known.set_wall((4, y), Direction.EAST, True)
    state = SimulationState(
        phase=Phase.EXPLORATION, actual=actual, known=known, robot=(0, 0), visited=frozenset({(0, 0)})
    )
    nxt = advance(state)
    assert nxt.phase is Phase.EXPLORATION
    assert nxt.robot == (0, 0)
    assert nxt.ticks == 1


def test_exploration_ends_idle_when_nothing_is_left():
    actual = _open_maze(3, 3, goal_area=[(2, 2)])
    known = actual.clone()
    for y in range(3):
        known.set_wall((1, y), Direction.EAST, True)
    visited = frozenset((x, y) for x in range(2) for y in range(3))
    state = SimulationState(phase=Phase.EXPLORATION, actual=actual, known=known, robot=(0, 0), visited=visited)
    nxt = advance(state)
    assert nxt.phase is Phase.IDLE
    assert not nxt.can_start_speed_run


def test_return_gives_up_when_start_is_cut_off():
    actual = _open_maze(8, 8, goal_area=[(3, 3)])
    known = actual.clone()
    known.set_wall((0, 0), Direction.NORTH, True)
    known.set_wall((0, 0), Direction.EAST, True)
    state = SimulationState(phase=Phase.RETURN, actual=actual, known=known, robot=(3, 3), visited=frozenset({(3, 3)}))
    nxt = advance(state)
    assert nxt.phase is Phase.IDLE
    assert nxt.robot == (3, 3)
    assert not nxt.can_start_speed_run


def test_completeness_and_speed_run_checks():
    maze = _open_maze(3, 2, goal_area=[(2, 1)])
    assert not is_exploration_complete(maze, {(0, 0)})
    assert is_exploration_complete(maze, set(maze.positions()))
    assert is_exploration_complete(None, set())

    assert not can_start_speed_run(maze, {(0, 0), (1, 0)})
    assert can_start_speed_run(maze, {(0, 0), (1, 0), (2, 0), (2, 1)})
    assert not can_start_speed_run(None, {(0, 0)})
