"""
Terminal front-end for the reserve dashboard.

Subcommands:
  reserves
  series <reserve> [--csv PATH]
  insights <reserve> [--json]
  simulate <reserve> [--ticks N]
  plot <reserve> [--out PATH]
  view <reserve>
  shell

Shell commands:
  reserves
  select <reserve>
  series
  insights
  simulate <ticks>
  explain
  plot <path>
  help
  quit
"""

from __future__ import annotations

import argparse
import json
import logging
import random
from pathlib import Path
from typing import List, Optional, Sequence

from agent_sim import AgentRules, SpatialAgentSimulator, TickCounts, simulate_reserve
from analysis import build_explanations
from density_grids import DensityGridProvider
from insights import build_report
from population_model import ODEPopulationModel, OdeParams, samples_to_dataframe
from reserves import DEFAULT_RESERVES, Reserve, find_reserve, load_reserves

logger = logging.getLogger(__name__)


def _print_counts(counts: TickCounts) -> None:
    print(f"Tick {counts.tick:4d}  Tigers: {counts.predator_count:3d}  Deer: {counts.prey_count:3d}")


def _print_report(reserve: Reserve) -> None:
    report = build_report(reserve)
    print(report.insights.description)
    print(f"Current Status: {report.insights.status}")
    print()
    print("Key Metrics:")
    for name, value in report.metrics.items():
        print(f"  {name}: {value}")
    print()
    print("Spatial Distribution:")
    for kind, levels in report.summary.display().items():
        print(f"  {kind}: " + ", ".join(f"{k}={v}" for k, v in levels.items()))
    print()
    print("Ecological Insights:")
    for line in report.insights.insights:
        print(f"  - {line}")
    print()
    print("Conservation Recommendations:")
    for rec in report.recommendations:
        print(f"  [{rec.priority}] {rec.text}")


class Dashboard:
    """Holds the active reserve selection and recomputes outputs on demand."""

    def __init__(
        self,
        reserves: Sequence[Reserve],
        grid_dir: Path,
        seed: Optional[int] = None,
        deterministic: bool = False,
    ):
        self.reserves = list(reserves)
        self.grid_dir = Path(grid_dir)
        self.seed = seed
        self.params = OdeParams(noise_scale=0.0 if deterministic else 1.0)
        self.active = self.reserves[0]
        self.samples = []
        self.tick_history = None
        self.select(self.active.name)

    def _rng(self) -> random.Random:
        return random.Random(self.seed)

    def select(self, name: str) -> Reserve:
        self.active = find_reserve(self.reserves, name)
        logger.info("Selected reserve %s", self.active.name)
        # no caching across selections
        self.samples = ODEPopulationModel(self.params, self._rng()).run(self.active)
        self.tick_history = None
        return self.active

    def simulate(self, ticks: int, verbose: bool = True):
        with DensityGridProvider(self.grid_dir) as provider:
            self.tick_history = simulate_reserve(
                self.active,
                provider.load(self.active.name),
                ticks,
                rng=self._rng(),
                observer=_print_counts if verbose else None,
            )
        return self.tick_history

    def view(self, ticks: int) -> None:
        from visualize import run_live_view

        with DensityGridProvider(self.grid_dir) as provider:
            grids = provider.load(self.active.name).wait()
        simulator = SpatialAgentSimulator(self.active, grids, AgentRules(), self._rng())
        simulator.populate()
        try:
            run_live_view(simulator, max_ticks=ticks)
        finally:
            simulator.dispose()

    def plot(self, path: Path) -> None:
        from visualize import plot_population_series

        plot_population_series(self.samples, path, title=f"{self.active.name} Ecological Simulation")
        print(f"Saved {path}")


def run_shell(dashboard: Dashboard) -> None:
    print("Reserve dashboard shell. Type 'help' for commands.")
    while True:
        try:
            raw = input(f"{dashboard.active.name}> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not raw:
            continue
        parts = raw.split(maxsplit=1)
        cmd = parts[0].lower()
        arg = parts[1] if len(parts) > 1 else ""

        if cmd in ("quit", "exit"):
            break
        if cmd == "help":
            print("Commands: reserves, select <reserve>, series, insights, simulate <ticks>, explain, plot <path>, help, quit")
            continue
        if cmd == "reserves":
            for reserve in dashboard.reserves:
                marker = "*" if reserve is dashboard.active else " "
                print(f"{marker} {reserve.name} ({reserve.region})")
            continue
        if cmd == "select":
            if not arg:
                print("Usage: select <reserve>")
                continue
            try:
                dashboard.select(arg)
            except KeyError as exc:
                print(exc.args[0])
                continue
            print(f"Selected {dashboard.active.name}")
            continue
        if cmd == "series":
            print(samples_to_dataframe(dashboard.samples).to_string(index=False))
            continue
        if cmd == "insights":
            _print_report(dashboard.active)
            continue
        if cmd == "simulate":
            if arg and not arg.isdigit():
                print("Usage: simulate <ticks>")
                continue
            history = dashboard.simulate(int(arg) if arg else 30)
            print(history.tail(1).to_string(index=False))
            continue
        if cmd == "explain":
            analysis = build_explanations(dashboard.samples, dashboard.tick_history)
            print(analysis.summary)
            for line in analysis.detailed:
                print(f"  {line}")
            continue
        if cmd == "plot":
            dashboard.plot(Path(arg or f"{dashboard.active.name}_population.png"))
            continue

        print("Unknown command. Type 'help'.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tiger reserve eco-balance dashboard")
    parser.add_argument("--reserves", type=Path, default=None, help="JSON or CSV reserve list.")
    parser.add_argument("--grid-dir", type=Path, default=Path("data"), help="Directory of grid CSV files.")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible runs.")
    parser.add_argument(
        "--deterministic",
        action="store_true",
        help="Disable the integrator noise.",
    )
    parser.add_argument("--log-level", default="WARNING")

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("reserves", help="List reserves.")
    series = sub.add_parser("series", help="Print the population series.")
    series.add_argument("reserve")
    series.add_argument("--csv", type=Path, default=None)
    insights = sub.add_parser("insights", help="Print insights and recommendations.")
    insights.add_argument("reserve")
    insights.add_argument("--json", action="store_true")
    simulate = sub.add_parser("simulate", help="Run the agent simulation headless.")
    simulate.add_argument("reserve")
    simulate.add_argument("--ticks", type=int, default=60)
    plot = sub.add_parser("plot", help="Save the population chart.")
    plot.add_argument("reserve")
    plot.add_argument("--out", type=Path, default=None)
    view = sub.add_parser("view", help="Animate the agent simulation.")
    view.add_argument("reserve")
    view.add_argument("--ticks", type=int, default=300)
    sub.add_parser("shell", help="Interactive shell.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    reserves = load_reserves(args.reserves) if args.reserves else list(DEFAULT_RESERVES)
    dashboard = Dashboard(reserves, args.grid_dir, seed=args.seed, deterministic=args.deterministic)

    command = args.command or "shell"
    if command == "shell":
        run_shell(dashboard)
        return 0
    if command == "reserves":
        for reserve in dashboard.reserves:
            print(f"{reserve.id:3d}  {reserve.name:<14} {reserve.region}")
        return 0

    try:
        dashboard.select(args.reserve)
    except KeyError as exc:
        print(exc.args[0])
        return 2

    if command == "series":
        df = samples_to_dataframe(dashboard.samples)
        if args.csv:
            df.to_csv(args.csv, index=False)
            print(f"Saved {args.csv}")
        else:
            print(df.to_string(index=False))
    elif command == "insights":
        if args.json:
            print(json.dumps(build_report(dashboard.active).json, indent=2))
        else:
            _print_report(dashboard.active)
    elif command == "simulate":
        history = dashboard.simulate(args.ticks)
        print(history.tail(1).to_string(index=False))
    elif command == "plot":
        dashboard.plot(args.out or Path(f"{dashboard.active.name}_population.png"))
    elif command == "view":
        dashboard.view(args.ticks)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
