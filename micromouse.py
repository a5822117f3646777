#Micromouse simulator: random maze, flood fill exploration, return trip, speed run
#The robot starts knowing only the outer walls and the walls around its start cell

#To watch it, run "python3 micromouse.py --mode visual"
#To save metrics for several mazes, run "python3 micromouse.py --mode cli --runs 10 --csv-output results.csv"

from __future__ import annotations

import argparse
import csv
import logging
import random
from typing import Dict, List, Optional

from maze_gen import (
    AUTO_CENTER,
    DEFAULT_EXTRA_PATH_FRACTION,
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    GenerationParams,
    MazeError,
    format_maze,
    mark_cells,
)
from simulation import Phase, Simulation, SimulationState

CSV_FIELDS = [
    "run",
    "seed",
    "width",
    "height",
    "extra_path_fraction",
    "exploration_ticks",
    "return_ticks",
    "speed_run_ticks",
    "visited",
    "speed_run_ready",
    "speed_run_length",
    "absolute_length",
]


def build_params(args, seed: Optional[int]) -> GenerationParams:
    return GenerationParams(
        width=args.width,
        height=args.height,
        extra_path_fraction=args.extra_paths,
        start_x=args.start_x,
        start_y=args.start_y,
        goal_center_x=args.goal_x,
        goal_center_y=args.goal_y,
        seed=seed,
    )


def consume(simulation: Simulation, max_ticks: int) -> SimulationState:
    last = simulation.snapshot
    for snapshot in simulation.run(max_ticks):
        last = snapshot
    return last


def run_once(params: GenerationParams, max_ticks: int) -> Dict[str, object]:
    #Full cycle on one maze: explore, come back, then speed run if a route was learned
    simulation = Simulation(params)
    simulation.reset()
    simulation.start_exploration()
    consume(simulation, max_ticks)
    ready = simulation.snapshot.can_start_speed_run
    if ready:
        simulation.start_speed_run()
        consume(simulation, max_ticks)

    state = simulation.snapshot
    metrics = simulation.metrics
    return {
        "seed": params.seed,
        "width": params.width,
        "height": params.height,
        "extra_path_fraction": params.extra_path_fraction,
        "exploration_ticks": metrics.phase_ticks.get(Phase.EXPLORATION, 0),
        "return_ticks": metrics.phase_ticks.get(Phase.RETURN, 0),
        "speed_run_ticks": metrics.phase_ticks.get(Phase.SPEED_RUN, 0),
        "visited": len(state.visited),
        "speed_run_ready": ready,
        "speed_run_length": metrics.speed_run_length if metrics.speed_run_length is not None else "-",
        "absolute_length": metrics.absolute_length if metrics.absolute_length is not None else "-",
        "state": state,
    }


def run_cli_mode(args) -> List[Dict[str, object]]:
    rows = []
    for run_idx in range(args.runs):
        seed = args.seed + run_idx if args.seed is not None else random.randint(0, 1_000_000_000)
        params = build_params(args, seed)
        try:
            result = run_once(params, args.max_ticks)
        except MazeError as exc:
            print(f"Run {run_idx + 1}/{args.runs}: cannot build maze: {exc}")
            return rows

        state = result.pop("state")
        print(f"\nRun {run_idx + 1}/{args.runs} | maze {params.width}x{params.height} | seed: {seed} | extra_paths={params.extra_path_fraction}")
        if args.show:
            print(format_maze(state.actual, mark_cells(state.actual, state.speed_run_path or (), state.robot)))
        print(
            f"explore={result['exploration_ticks']} return={result['return_ticks']} "
            f"speed_run={result['speed_run_ticks']} visited={result['visited']} "
            f"ready={'yes' if result['speed_run_ready'] else 'no'} "
            f"path_len={result['speed_run_length']} best_len={result['absolute_length']}"
        )
        rows.append({"run": run_idx + 1, **result})

    if args.csv_output:
        with open(args.csv_output, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
            writer.writeheader()
            writer.writerows(rows)
        print(f"\nWrote {len(rows)} rows to {args.csv_output}")
    return rows


def run_visual_mode(args):
    from visualizer import MicromouseVisualizer

    seed = args.seed if args.seed is not None else random.randint(0, 1_000_000_000)
    simulation = Simulation(build_params(args, seed))
    simulation.reset()
    viewer = MicromouseVisualizer(
        simulation,
        tile_size=args.tile_size,
        fps=args.fps,
        title_suffix=f" - seed {seed}",
    )
    viewer.run()


def prompt_for_mode():
    response = input("Run visualizer? (y/n): ").strip().lower()
    return "visual" if response.startswith("y") else "cli"


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Micromouse maze exploration simulator.")
    parser.add_argument("--mode", choices=["visual", "cli"], help="Choose 'visual' for the pygame viewer or 'cli' for text metrics.")
    parser.add_argument("--width", type=int, default=DEFAULT_WIDTH, help="Maze width in cells.")
    parser.add_argument("--height", type=int, default=DEFAULT_HEIGHT, help="Maze height in cells.")
    parser.add_argument("--extra-paths", type=float, default=DEFAULT_EXTRA_PATH_FRACTION, help="Fraction of interior walls removed after carving (0..1).")
    parser.add_argument("--start-x", type=int, default=0, help="Start cell x.")
    parser.add_argument("--start-y", type=int, default=0, help="Start cell y.")
    parser.add_argument("--goal-x", type=int, default=AUTO_CENTER, help="Goal block corner x, -1 centers it.")
    parser.add_argument("--goal-y", type=int, default=AUTO_CENTER, help="Goal block corner y, -1 centers it.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for maze generation (default: random). Run i uses seed + i.")
    parser.add_argument("--runs", type=int, default=1, help="Number of mazes to run in CLI mode.")
    parser.add_argument("--max-ticks", type=int, default=100_000, help="Tick limit per phase in CLI mode.")
    parser.add_argument("--csv-output", type=str, default=None, help="Path to write CSV metrics.")
    parser.add_argument("--show", action="store_true", help="Print each maze with the speed run path in CLI mode.")
    parser.add_argument("--tile-size", type=int, default=24, help="Base tile size for visual mode; auto-scales to fit the screen.")
    parser.add_argument("--fps", type=int, default=30, help="Simulation ticks per second in visual mode.")
    parser.add_argument("--verbose", action="store_true", help="Log phase changes and ignored commands.")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    mode = args.mode or prompt_for_mode()
    if mode == "visual":
        run_visual_mode(args)
    else:
        run_cli_mode(args)


if __name__ == "__main__":
    main()
