"""
Spatial predator-prey agent simulation on a bounded reserve terrain.

Agents are seeded from density grids, then advanced one tick at a time:
prey wander, predators chase the nearest prey and may capture it, and small
populations reproduce or starve with fixed per-tick probabilities. The
observer receives ``TickCounts`` once per tick, after every rule has run.

Run:
  python agent_sim.py Bandipur --grid-dir data --ticks 60
"""

from __future__ import annotations

import logging
import math
import random
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

import numpy as np
import pandas as pd
from mesa import Agent, Model
from mesa.datacollection import DataCollector

from density_grids import DensityGrids, GRID_KINDS, GridStatus
from population_model import round_half_up
from reserves import Reserve
from tick_driver import TickDriver

logger = logging.getLogger(__name__)

Position = Tuple[float, float]


@dataclass
class AgentRules:
    half_extent: float = 500.0
    prey_step: float = 25.0
    predator_step: float = 25.0
    capture_radius: float = 20.0
    placement_attempts: int = 100
    forced_after: int = 90
    prey_birth_below: int = 30
    prey_birth_probability: float = 0.3
    prey_birth_extent: float = 100.0
    predator_birth_below: int = 10
    predator_birth_probability: float = 0.05
    predator_birth_extent: float = 400.0
    starvation_prey_below: int = 6
    starvation_predators_above: int = 2
    starvation_probability: float = 0.05
    tick_period: float = 1.0
    # share of a tick over which a prey move is eased in
    prey_transition: float = 0.9
    fallback_predators: Tuple[int, int] = (8, 10)
    fallback_prey: Tuple[int, int] = (45, 50)

    def __post_init__(self) -> None:
        if self.forced_after >= self.placement_attempts:
            raise ValueError("forced_after must be below placement_attempts")
        for name in ("prey_birth_probability", "predator_birth_probability", "starvation_probability"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1]")
        if not 0.0 < self.prey_transition <= 1.0:
            raise ValueError("prey_transition must be within (0, 1]")


@dataclass(frozen=True)
class TickCounts:
    tick: int
    predator_count: int
    prey_count: int

    def as_dict(self) -> Dict[str, int]:
        return {"predatorCount": self.predator_count, "preyCount": self.prey_count}


@dataclass(frozen=True)
class AgentSnapshot:
    unique_id: int
    kind: str
    start: Position
    target: Position
    heading: float
    transition: float

    def position_at(self, fraction: float) -> Position:
        """Interpolated position ``fraction`` of the way through the tick."""
        if fraction >= self.transition:
            return self.target
        t = max(0.0, fraction) / self.transition
        if self.kind == "prey":
            t = 1 - (1 - t) ** 2
        return (
            self.start[0] + (self.target[0] - self.start[0]) * t,
            self.start[1] + (self.target[1] - self.start[1]) * t,
        )


@dataclass(frozen=True)
class SimulationSnapshot:
    tick: int
    predators: Tuple[AgentSnapshot, ...]
    prey: Tuple[AgentSnapshot, ...]


class Animal(Agent):
    kind = "animal"

    def __init__(self, model: "SpatialAgentSimulator", pos: Position):
        super().__init__(model)
        self.pos = pos
        self.start_pos = pos
        self.heading = 0.0

    def _move_to(self, pos: Position) -> None:
        self.start_pos = self.pos
        self.pos = pos

    def snapshot(self, transition: float) -> AgentSnapshot:
        return AgentSnapshot(
            self.unique_id, self.kind, self.start_pos, self.pos, self.heading, transition
        )


class Prey(Animal):
    kind = "prey"

    def step(self) -> None:
        rules = self.model.rules
        rng = self.model.random
        dx = (rng.random() - 0.5) * 2 * rules.prey_step
        dy = (rng.random() - 0.5) * 2 * rules.prey_step
        x, y = self.pos
        new_pos = self.model.clamp_position((x + dx, y + dy))
        # orientation only
        self.heading = math.atan2(new_pos[1] - y, new_pos[0] - x)
        self._move_to(new_pos)


class Predator(Animal):
    kind = "predator"

    def nearest_prey(self) -> Tuple[Optional[Prey], float]:
        closest = None
        closest_distance = math.inf
        x, y = self.pos
        for prey in self.model.state.prey.values():
            distance = math.hypot(prey.pos[0] - x, prey.pos[1] - y)
            if distance < closest_distance:
                closest = prey
                closest_distance = distance
        return closest, closest_distance

    def step(self) -> None:
        target, distance = self.nearest_prey()
        if target is None:
            self.start_pos = self.pos
            return
        rules = self.model.rules
        x, y = self.pos
        if distance > 0:
            ux = (target.pos[0] - x) / distance
            uy = (target.pos[1] - y) / distance
            new_pos = self.model.clamp_position(
                (x + ux * rules.predator_step, y + uy * rules.predator_step)
            )
            self.heading = math.atan2(uy, ux)
        else:
            new_pos = self.pos
        self._move_to(new_pos)

        remaining = math.hypot(target.pos[0] - new_pos[0], target.pos[1] - new_pos[1])
        if remaining < rules.capture_radius:
            self.model.destroy(target)
            self.model.captures += 1


@dataclass
class SimulationState:
    """Live agents keyed by unique id, in insertion order."""

    predators: Dict[int, Predator] = field(default_factory=dict)
    prey: Dict[int, Prey] = field(default_factory=dict)
    tick: int = 0

    def population(self, agent: Animal) -> Dict:
        return self.predators if isinstance(agent, Predator) else self.prey

    def counts(self) -> TickCounts:
        return TickCounts(self.tick, len(self.predators), len(self.prey))


def seed_counts(reserve: Reserve, rules: AgentRules, rng: random.Random) -> Tuple[int, int, bool]:
    """Predator and prey counts for a reserve; the flag marks the random fallback."""
    if reserve.has_tiger_density:
        predators = max(2, round_half_up(reserve.tiger_density * 0.5))
        prey = max(10, round_half_up(predators * 8))
        return predators, prey, False
    predators = rng.randint(*rules.fallback_predators)
    prey = rng.randint(*rules.fallback_prey)
    return predators, prey, True


class SpatialAgentSimulator(Model):
    def __init__(
        self,
        reserve: Reserve,
        grids: DensityGrids,
        rules: Optional[AgentRules] = None,
        rng: Optional[random.Random] = None,
        observer: Optional[Callable[[TickCounts], None]] = None,
    ):
        super().__init__()
        self.random = rng or random.Random()
        self.reserve = reserve
        self.grids = grids
        self.rules = rules or AgentRules()
        self.observer = observer
        self.state: Optional[SimulationState] = None
        self.captures = 0
        self.disposed = False
        self._lock = threading.RLock()
        self._driver: Optional[TickDriver] = None
        self.datacollector = DataCollector(
            model_reporters={
                "tick": lambda m: m.state.tick,
                "predators": lambda m: len(m.state.predators),
                "prey": lambda m: len(m.state.prey),
                "captures": lambda m: m.captures,
            }
        )

    # --- geometry ---------------------------------------------------------
    def clamp_position(self, pos: Position) -> Position:
        h = self.rules.half_extent
        return (max(-h, min(h, pos[0])), max(-h, min(h, pos[1])))

    def tile_size(self, grid: np.ndarray) -> float:
        return 2 * self.rules.half_extent / (grid.shape[0] or 1)

    def sample_position(self, grid: np.ndarray) -> Tuple[Position, int]:
        """Density-weighted position; also returns the attempt that accepted it."""
        rows = grid.shape[0]
        cols = grid.shape[1] if rows else 0
        tile = self.tile_size(grid)
        h = self.rules.half_extent
        attempt = 0
        while True:
            attempt += 1
            row = int(self.random.random() * rows)
            col = int(self.random.random() * cols)
            density = float(grid[row, col]) if row < rows and col < cols else 0.0
            forced = attempt > self.rules.forced_after
            if self.random.random() < density or forced:
                break
        if forced:
            logger.debug("Forced placement after %d attempts", attempt)
        # tile size follows the row count; wide grids overshoot on y
        pos = self.clamp_position(
            (-h + tile * (row + self.random.random()), -h + tile * (col + self.random.random()))
        )
        return pos, attempt

    # --- population --------------------------------------------------------
    def admit(self, agent: Animal) -> None:
        self.state.population(agent)[agent.unique_id] = agent

    def destroy(self, agent: Animal) -> None:
        population = self.state.population(agent)
        if population.pop(agent.unique_id, None) is not None:
            agent.remove()

    def _clear(self) -> None:
        if self.state is None:
            return
        for agent in list(self.state.predators.values()) + list(self.state.prey.values()):
            agent.remove()
        self.state.predators.clear()
        self.state.prey.clear()
        self.state = None

    def populate(self) -> SimulationState:
        """Seed agents from the density grids. All three grids must be settled."""
        if self.disposed:
            raise RuntimeError("simulator has been disposed")
        pending = [k for k in GRID_KINDS if self.grids.status(k) is GridStatus.PENDING]
        if pending:
            raise RuntimeError(f"density grids still pending: {', '.join(pending)}")
        with self._lock:
            self._clear()
            self.state = SimulationState()
            predators, prey, fallback = seed_counts(self.reserve, self.rules, self.random)
            logger.info(
                "Loading %d tigers and %d deer for %s (fallback=%s, grids=%s)",
                predators,
                prey,
                self.reserve.name,
                fallback,
                {k: s.value for k, s in self.grids.statuses().items()},
            )
            for _ in range(predators):
                pos, _attempts = self.sample_position(self.grids.predator)
                self.admit(Predator(self, pos))
            for _ in range(prey):
                pos, _attempts = self.sample_position(self.grids.prey)
                self.admit(Prey(self, pos))
            self.datacollector.collect(self)
            return self.state

    # --- tick rules ------------------------------------------------------
    def _reproduce(self) -> None:
        rules = self.rules
        rng = self.random
        if (
            self.state.prey
            and len(self.state.prey) < rules.prey_birth_below
            and rng.random() < rules.prey_birth_probability
        ):
            e = rules.prey_birth_extent
            self.admit(Prey(self, (rng.random() * 2 * e - e, rng.random() * 2 * e - e)))
        if (
            self.state.predators
            and len(self.state.predators) < rules.predator_birth_below
            and rng.random() < rules.predator_birth_probability
        ):
            e = rules.predator_birth_extent
            self.admit(Predator(self, (rng.random() * 2 * e - e, rng.random() * 2 * e - e)))

    def _starve(self) -> None:
        rules = self.rules
        if (
            len(self.state.prey) < rules.starvation_prey_below
            and len(self.state.predators) > rules.starvation_predators_above
            and self.random.random() < rules.starvation_probability
        ):
            newest = next(reversed(self.state.predators))
            self.destroy(self.state.predators[newest])

    def tick(self) -> TickCounts:
        with self._lock:
            if self.disposed:
                raise RuntimeError("simulator has been disposed")
            if self.state is None:
                raise RuntimeError("simulator has not been populated")
            for prey in list(self.state.prey.values()):
                prey.step()
            for predator in list(self.state.predators.values()):
                predator.step()
            self._reproduce()
            self._starve()
            self.state.tick += 1
            self.datacollector.collect(self)
            counts = self.state.counts()
        self._notify(counts)
        return counts

    def step(self) -> None:
        self.tick()

    def _notify(self, counts: TickCounts) -> None:
        if self.observer is None or self.disposed:
            return
        try:
            self.observer(counts)
        except Exception:
            logger.exception("Tick observer failed at tick %d", counts.tick)

    # --- consumers -----------------------------------------------------
    def snapshot(self) -> SimulationSnapshot:
        with self._lock:
            if self.state is None:
                return SimulationSnapshot(0, (), ())
            prey_transition = self.rules.prey_transition
            return SimulationSnapshot(
                self.state.tick,
                tuple(p.snapshot(1.0) for p in self.state.predators.values()),
                tuple(p.snapshot(prey_transition) for p in self.state.prey.values()),
            )

    def history(self) -> pd.DataFrame:
        return self.datacollector.get_model_vars_dataframe()

    def run(self, ticks: int) -> pd.DataFrame:
        for _ in range(ticks):
            self.tick()
        return self.history()

    def start(self) -> TickDriver:
        if self.state is None:
            raise RuntimeError("simulator has not been populated")
        if self._driver is None:
            self._driver = TickDriver(self.tick, self.rules.tick_period, name=f"ticks-{self.reserve.name}")
        self._driver.start()
        return self._driver

    def dispose(self) -> None:
        if self.disposed:
            return
        if self._driver is not None:
            self._driver.stop()
            self._driver = None
        with self._lock:
            self.disposed = True
            self.observer = None
            self._clear()
            self.grids = None
        logger.info("Disposed simulation for %s", self.reserve.name)


def simulate_reserve(
    reserve: Reserve,
    grids: DensityGrids,
    ticks: int,
    rules: Optional[AgentRules] = None,
    rng: Optional[random.Random] = None,
    observer: Optional[Callable[[TickCounts], None]] = None,
) -> pd.DataFrame:
    """Wait for the grids, seed, run ``ticks`` ticks and return the history."""
    grids.wait()
    simulator = SpatialAgentSimulator(reserve, grids, rules, rng, observer)
    simulator.populate()
    try:
        return simulator.run(ticks)
    finally:
        simulator.dispose()


if __name__ == "__main__":
    import argparse

    from density_grids import DensityGridProvider
    from reserves import DEFAULT_RESERVES, find_reserve

    parser = argparse.ArgumentParser(description="Spatial agent simulation")
    parser.add_argument("reserve", help="Reserve name")
    parser.add_argument("--grid-dir", default="data")
    parser.add_argument("--ticks", type=int, default=60)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    reserve = find_reserve(DEFAULT_RESERVES, args.reserve)
    with DensityGridProvider(args.grid_dir) as provider:
        df = simulate_reserve(
            reserve,
            provider.load(reserve.name),
            args.ticks,
            rng=random.Random(args.seed),
            observer=lambda c: print(f"Tick {c.tick}: Tigers {c.predator_count}  Deer {c.prey_count}"),
        )
    print(df.tail().to_string(index=False))
