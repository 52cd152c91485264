"""
Optional display consumers for the simulation outputs.

``plot_population_series`` draws the integrator series. ``run_live_view``
animates the agent simulator: ticks run on the simulator's own driver thread
and the render loop only reads snapshots taken between ticks, interpolating
agent moves by the time elapsed since the last tick.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.animation import FuncAnimation
from matplotlib.lines import Line2D

from agent_sim import SimulationSnapshot, SpatialAgentSimulator
from population_model import PopulationSample, samples_to_dataframe

PREY_COLOR = "#8b5a2b"
PREDATOR_COLOR = "#e67e22"


def plot_population_series(
    samples: Sequence[PopulationSample],
    path: Optional[Union[str, Path]] = None,
    title: str = "Ecological Simulation",
):
    df = samples_to_dataframe(samples)
    fig, ax_pop = plt.subplots(figsize=(10, 5))
    ax_pop.plot(df["time"], df["prey"], color=PREY_COLOR, label="Prey")
    ax_pop.plot(df["time"], df["predator"], color=PREDATOR_COLOR, label="Predator")
    ax_pop.set_xlabel("Month")
    ax_pop.set_ylabel("Population")
    ax_pop.set_title(title)

    ax_veg = ax_pop.twinx()
    ax_veg.plot(df["time"], df["vegetation_index"], color="#2f7d32", linestyle="--", label="NDVI")
    ax_veg.set_ylabel("Vegetation index")
    ax_veg.set_ylim(0, 1)

    ax_pop.legend(loc="upper left", fontsize=8)
    ax_veg.legend(loc="upper right", fontsize=8)
    fig.tight_layout()
    if path is not None:
        fig.savefig(path, dpi=150)
        plt.close(fig)
    return fig


def _offsets(snapshot: SimulationSnapshot, kind: str, fraction: float) -> np.ndarray:
    agents = snapshot.prey if kind == "prey" else snapshot.predators
    if not agents:
        return np.empty((0, 2))
    return np.array([a.position_at(fraction) for a in agents])


def grid_extent(simulator: SpatialAgentSimulator) -> Tuple[float, float, float, float]:
    h = simulator.rules.half_extent
    return (-h, h, -h, h)


def run_live_view(
    simulator: SpatialAgentSimulator,
    max_ticks: int = 300,
    frames_per_tick: int = 10,
    show_population_plot: bool = True,
) -> FuncAnimation:
    """Animate a populated simulator; closing the window disposes it."""
    interval = int(simulator.rules.tick_period * 1000 / frames_per_tick)

    if show_population_plot:
        fig, (ax_grid, ax_pop) = plt.subplots(1, 2, figsize=(11, 5))
    else:
        fig, ax_grid = plt.subplots(1, 1, figsize=(6, 6))
        ax_pop = None

    x0, x1, y0, y1 = grid_extent(simulator)
    ax_grid.set_xlim(x0, x1)
    ax_grid.set_ylim(y0, y1)
    ax_grid.set_aspect("equal")
    ax_grid.set_title(f"{simulator.reserve.name} Tiger Reserve")
    ax_grid.set_xticks([])
    ax_grid.set_yticks([])

    ndvi = simulator.grids.ndvi
    if ndvi.size:
        ax_grid.imshow(
            ndvi.T,
            origin="lower",
            extent=(x0, x1, y0, y1),
            cmap="Greens",
            vmin=0.0,
            vmax=1.0,
            alpha=0.6,
        )

    prey_scatter = ax_grid.scatter([], [], marker="o", s=20, c=PREY_COLOR, linewidths=0)
    predator_scatter = ax_grid.scatter([], [], marker="^", s=50, c=PREDATOR_COLOR, linewidths=0)

    legend_handles = [
        Line2D([0], [0], marker="o", color="w", label="Deer",
               markerfacecolor=PREY_COLOR, markersize=8),
        Line2D([0], [0], marker="^", color="w", label="Tigers",
               markerfacecolor=PREDATOR_COLOR, markersize=8),
    ]
    ax_grid.legend(handles=legend_handles, loc="upper right", fontsize=8)

    counter_text = ax_grid.text(
        0.02,
        0.98,
        "",
        transform=ax_grid.transAxes,
        va="top",
        ha="left",
        fontsize=9,
        bbox=dict(facecolor="white", alpha=0.7, edgecolor="none"),
    )

    history = {"tick": [], "predators": [], "prey": []}
    if ax_pop:
        ax_pop.set_title("Population Over Time")
        ax_pop.set_xlabel("Tick")
        ax_pop.set_ylabel("Count")
        pop_lines = {
            "prey": ax_pop.plot([], [], color=PREY_COLOR, label="Deer")[0],
            "predators": ax_pop.plot([], [], color=PREDATOR_COLOR, label="Tigers")[0],
        }
        ax_pop.legend(loc="upper right", fontsize=8)

    seen = {"tick": -1, "at": time.monotonic(), "snapshot": simulator.snapshot()}

    def update(_frame):
        snapshot = simulator.snapshot()
        now = time.monotonic()
        if snapshot.tick != seen["tick"]:
            seen.update(tick=snapshot.tick, at=now, snapshot=snapshot)
            history["tick"].append(snapshot.tick)
            history["predators"].append(len(snapshot.predators))
            history["prey"].append(len(snapshot.prey))
            if ax_pop:
                for name, line in pop_lines.items():
                    line.set_data(history["tick"], history[name])
                ax_pop.relim()
                ax_pop.autoscale_view()
            if snapshot.tick >= max_ticks and driver.running:
                driver.stop()

        fraction = (now - seen["at"]) / simulator.rules.tick_period
        snapshot = seen["snapshot"]
        prey_scatter.set_offsets(_offsets(snapshot, "prey", fraction))
        predator_scatter.set_offsets(_offsets(snapshot, "predator", fraction))
        counter_text.set_text(
            f"Tick: {snapshot.tick}\n"
            f"Tigers: {len(snapshot.predators)}\n"
            f"Deer: {len(snapshot.prey)}"
        )
        return prey_scatter, predator_scatter, counter_text

    driver = simulator.start()

    anim = FuncAnimation(
        fig,
        update,
        frames=None,
        cache_frame_data=False,
        interval=interval,
        blit=False,
        repeat=False,
    )
    fig.canvas.mpl_connect("close_event", lambda _event: simulator.dispose())
    plt.tight_layout()
    plt.show()
    return anim
