"""
Cell Chain Simulator: CLI Entry Point

Usage:
    python main.py --mode run --config config.json
    python main.py --mode watch --delay 200 --cannibal
    python main.py --mode run --output runs --resume latest
    python main.py --ui
"""

import argparse
import sys
import threading
import time
from pathlib import Path


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Cell Chain Simulator: numbered cells eating their way across a grid",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --ui                                 Launch Streamlit UI
  python main.py --mode run --ticks 500 --seed 7      Run headless and print a summary
  python main.py --mode watch --cells-die             Watch the grid in the terminal
  python main.py --mode run --resume latest           Continue the newest run saved under runs/
        """,
    )

    parser.add_argument(
        "--mode",
        choices=["run", "watch"],
        default=None,
        help="'run' ticks headless as fast as possible; 'watch' redraws the grid every tick",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to JSON config file (default: built-in defaults)",
    )
    parser.add_argument(
        "--ui",
        action="store_true",
        help="Launch Streamlit web UI (ignores --mode and --config)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Override random seed")
    parser.add_argument("--ticks", type=int, default=None, help="Override max ticks")
    parser.add_argument("--delay", type=int, default=None, help="Override delay between ticks (ms)")
    parser.add_argument("--output", type=str, default=None, help="Save config, final snapshot and summary here")
    parser.add_argument("--log-level", type=str, default=None, help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--cells-die", action="store_true", help="Enable starvation")
    parser.add_argument("--random-move", action="store_true", help="Let cells wander when nothing is edible")
    parser.add_argument("--cannibal", action="store_true", help="Let cells eat other cells")
    parser.add_argument(
        "--resume",
        type=str,
        default=None,
        metavar="RUN",
        help="Continue from a saved run under the output directory ('latest' = newest)",
    )

    return parser.parse_args(argv)


def launch_ui() -> None:
    """Launch the Streamlit web UI."""
    import subprocess
    ui_path = Path(__file__).parent / "cellchain" / "ui" / "app.py"
    if not ui_path.exists():
        print(f"Error: UI app not found at {ui_path}")
        sys.exit(1)
    subprocess.run(
        [
            sys.executable, "-m", "streamlit", "run", str(ui_path),
            "--server.port=8501",
            "--server.headless=true",
            "--browser.gatherUsageStats=false",
        ],
        check=True,
    )


def build_config(args: argparse.Namespace, base=None):
    """
    Start from `base` (a resumed run's config), else the config file or
    defaults, and apply command-line overrides.
    """
    from cellchain.core.config import get_default_config, load_config

    if base is not None:
        config = base.copy()
    else:
        config = load_config(args.config) if args.config else get_default_config()

    if args.seed is not None:
        config.grid.seed = args.seed
    if args.ticks is not None:
        config.run.max_ticks = args.ticks
    if args.delay is not None:
        config.run.delay_ms = args.delay
    if args.log_level is not None:
        config.run.log_level = args.log_level
    if args.cells_die:
        config.rules.cells_die = True
    if args.random_move:
        config.rules.allow_random_move = True
    if args.cannibal:
        config.rules.cannibal_mode = True

    errors = config.validate()
    if errors:
        raise ValueError("Invalid configuration:\n" + "\n".join(f"  - {e}" for e in errors))
    return config


def _print_header(config, mode: str, start_tick: int = 0) -> None:
    print(f"[Cell Chain Simulator] {mode}")
    print(f"  Grid: {config.grid.width}x{config.grid.height}")
    print(f"  Food: {config.grid.food_count}  Cells: {config.grid.cell_count}  Max value: {config.grid.max_value}")
    print(f"  Rules: cells_die={config.rules.cells_die} energy={config.rules.initial_energy} "
          f"random_move={config.rules.allow_random_move} cannibal={config.rules.cannibal_mode}")
    print(f"  Seed: {config.grid.seed}")
    print(f"  Max ticks: {config.run.max_ticks}")
    if start_tick:
        print(f"  Resumed from tick: {start_tick}")
    print()


def _build_engine(config, grid=None, on_update=None, on_no_moves=None):
    """Fresh simulation from the config, or an engine around a resumed grid."""
    from cellchain.core.rng import default_random_source
    from cellchain.simulation.engine import SimulationEngine, create_simulation

    if grid is None:
        return create_simulation(config, on_update=on_update, on_no_moves=on_no_moves)
    grid.rng = default_random_source(config.grid.seed)
    return SimulationEngine.from_config(
        config, grid, on_update=on_update, on_no_moves=on_no_moves, rng=grid.rng,
    )


def load_resume(args: argparse.Namespace):
    """
    Find the run named by --resume and load it.

    The run is looked up under --output, else the output directory of the
    config file (or defaults).

    Returns:
        (run_dir, config, grid, tick) of the saved run.

    Raises:
        FileNotFoundError: If the run, its config or its snapshot is missing.
    """
    from cellchain.core.config import get_default_config, load_config
    from cellchain.output.run_manager import RunManager

    base_dir = args.output
    if base_dir is None:
        source = load_config(args.config) if args.config else get_default_config()
        base_dir = source.run.output_dir
    run_dir = RunManager.find_run(base_dir, args.resume)
    config, grid, tick = RunManager.load_run(run_dir)
    return run_dir, config, grid, tick


def run_headless(config, output_dir: str | None = None, grid=None, start_tick: int = 0) -> dict:
    """
    Run a simulation synchronously and print a summary.

    Args:
        config: Validated configuration.
        output_dir: Save config, final snapshot and summary under this directory.
        grid: Resumed grid to continue. None = scatter a fresh one.
        start_tick: Tick the resumed grid was saved at.
    """
    from cellchain.output.run_manager import RunManager
    from cellchain.simulation.metrics import MetricsCollector

    _print_header(config, "Headless run", start_tick)

    metrics = MetricsCollector()
    engine = _build_engine(config, grid)
    engine.on_update = lambda: metrics.collect(
        engine.grid, start_tick + engine.tick_count, engine.last_tick_stats,
    )

    start_time = time.time()
    result = engine.run(max_ticks=config.run.max_ticks)
    elapsed = time.time() - start_time

    eaten = sum(metrics.get_kpi_series("food_eaten")) + sum(metrics.get_kpi_series("cells_eaten"))
    summary = {
        "start_tick": start_tick,
        "total_ticks": result.total_ticks,
        "final_cells": result.final_cell_count,
        "final_food": result.final_food_count,
        "total_eaten": eaten,
        "total_starved": sum(metrics.get_kpi_series("starved")),
        "extinct": result.extinct,
        "stalled": result.stalled,
        "elapsed_seconds": round(elapsed, 2),
        "seed": config.grid.seed,
    }

    print("[Result]")
    print(f"  Ticks: {result.total_ticks}")
    print(f"  Final cells: {result.final_cell_count}")
    print(f"  Final food: {result.final_food_count}")
    print(f"  Meals: {eaten}")
    print(f"  Extinct: {result.extinct}")
    print(f"  Stalled: {result.stalled}")
    print(f"  Elapsed: {elapsed:.2f}s")

    if output_dir:
        run_manager = RunManager(config, base_dir=output_dir)
        run_manager.save_snapshot(engine.grid, start_tick + engine.tick_count)
        run_manager.finalize(summary)
        print(f"  Output saved to: {run_manager.run_dir}")

    return summary


def run_watch(config, output_dir: str | None = None, grid=None, start_tick: int = 0) -> None:
    """Drive the engine's own continuous loop and redraw the grid every tick."""
    from cellchain.output.run_manager import RunManager
    from cellchain.utils.display import render_text

    _print_header(config, "Watch", start_tick)

    finished = threading.Event()
    engine = None

    def on_update() -> None:
        print("\033[2J\033[H", end="")
        print(render_text(engine.grid, config.grid.max_value))
        print(f"\nTick {start_tick + engine.tick_count} | Cells: {engine.alive_count} "
              f"| Food: {engine.grid.food_count}")
        if engine.tick_count >= config.run.max_ticks:
            finished.set()

    def on_no_moves() -> None:
        print("No more moves available")
        finished.set()

    engine = _build_engine(config, grid, on_update=on_update, on_no_moves=on_no_moves)
    on_update()
    engine.start(config.run.delay_ms)
    try:
        finished.wait()
    except KeyboardInterrupt:
        print("\nInterrupted.")
    finally:
        engine.stop()

    if output_dir:
        run_manager = RunManager(config, base_dir=output_dir)
        run_manager.save_snapshot(engine.grid, start_tick + engine.tick_count)
        run_manager.finalize({
            "start_tick": start_tick,
            "total_ticks": engine.tick_count,
            "final_cells": engine.alive_count,
            "final_food": engine.grid.food_count,
            "extinct": engine.is_extinct,
            "seed": config.grid.seed,
        })
        print(f"Output saved to: {run_manager.run_dir}")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    if args.ui:
        launch_ui()
        return

    if args.mode is None:
        print("Error: Specify --mode (run|watch) or --ui to launch the web interface.")
        print("Run with --help for usage information.")
        sys.exit(1)

    from cellchain.core.entities import InvalidValueError
    from cellchain.core.grid import CapacityExceededError
    from cellchain.utils.log import setup_logging

    grid, start_tick = None, 0
    try:
        if args.resume:
            run_dir, base, grid, start_tick = load_resume(args)
            print(f"Resuming {run_dir} at tick {start_tick}")
            config = build_config(args, base)
        else:
            config = build_config(args)
    except (ValueError, KeyError, FileNotFoundError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    setup_logging(config.run.log_level)

    try:
        if args.mode == "run":
            run_headless(config, output_dir=args.output, grid=grid, start_tick=start_tick)
        elif args.mode == "watch":
            run_watch(config, output_dir=args.output, grid=grid, start_tick=start_tick)
    except (CapacityExceededError, InvalidValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
