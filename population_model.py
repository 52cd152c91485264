"""
Stochastic predator-prey-vegetation integrator.

A modified Lotka-Volterra system with logistic prey growth and a vegetation
index that grows logistically with a yearly seasonal term and is consumed by
prey. It is stepped with forward Euler over a fixed horizon (one step per
month) and each step is perturbed by small multiplicative noise.

Run:
  python population_model.py Bandipur
"""

from __future__ import annotations

import math
import random
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

import pandas as pd

from reserves import Reserve


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass
class OdeParams:
    prey_growth_rate: float = 0.4
    predation_rate: float = 0.008
    predator_death_rate: float = 0.2
    predator_growth_rate: float = 0.0005
    vegetation_growth_rate: float = 0.1
    vegetation_capacity: float = 0.8
    consumption_rate: float = 0.05
    dt: float = 1.0
    steps: int = 100
    prey_noise: float = 0.1
    predator_noise: float = 0.05
    vegetation_noise: float = 0.02
    # 0.0 makes the run deterministic
    noise_scale: float = 1.0

    def __post_init__(self) -> None:
        if self.steps <= 0:
            raise ValueError("steps must be positive")
        if self.dt <= 0:
            raise ValueError("dt must be positive")
        if self.noise_scale < 0:
            raise ValueError("noise_scale must be >= 0")


@dataclass(frozen=True)
class PopulationSample:
    time: int
    prey: int
    predator: int
    vegetation_index: float

    def as_dict(self) -> Dict:
        return {
            "time": self.time,
            "prey": self.prey,
            "predator": self.predator,
            "vegetationIndex": self.vegetation_index,
        }


@dataclass
class PopulationState:
    prey: float
    predator: float
    vegetation: float


def initial_state(reserve: Reserve) -> PopulationState:
    td = reserve.effective_tiger_density
    prey = clamp(reserve.area_factor * 400, 500, 5000)
    if reserve.core_area > 1000:
        prey *= 1.2
    if reserve.buffer_area > 500:
        prey *= 1.1
    return PopulationState(
        prey=prey,
        predator=clamp(td * 2, 10, 100),
        vegetation=clamp(td / 50, 0.3, 0.8),
    )


class ODEPopulationModel:
    def __init__(self, params: Optional[OdeParams] = None, rng: Optional[random.Random] = None):
        self.params = params or OdeParams()
        self.random = rng or random.Random()

    def derivatives(self, state: PopulationState, t: int, area_factor: float) -> PopulationState:
        p = self.params
        # a reserve with no recorded area gets the carrying capacity of 1 sq km
        capacity = 10000 * area_factor or 10.0
        prey_growth = p.prey_growth_rate * state.prey * (1 - state.prey / capacity)
        prey_death = p.predation_rate * state.prey * state.predator
        predator_growth = p.predator_growth_rate * state.predator * state.prey
        predator_death = p.predator_death_rate * state.predator

        seasonal = 0.1 * math.sin(2 * math.pi * t / 12)
        vegetation_growth = (
            p.vegetation_growth_rate
            * state.vegetation
            * (1 - state.vegetation / p.vegetation_capacity)
            + seasonal
        )
        vegetation_consumption = p.consumption_rate * state.vegetation * state.prey

        return PopulationState(
            prey=prey_growth - prey_death,
            predator=predator_growth - predator_death,
            vegetation=vegetation_growth - vegetation_consumption,
        )

    def _noise(self, amplitude: float) -> float:
        scale = amplitude * self.params.noise_scale
        if scale == 0:
            return 1.0
        return 1 + (self.random.random() - 0.5) * scale

    def step(self, state: PopulationState, t: int, area_factor: float) -> PopulationState:
        p = self.params
        d = self.derivatives(state, t, area_factor)
        prey = max(100.0, state.prey + d.prey * p.dt)
        predator = max(1.0, state.predator + d.predator * p.dt)
        vegetation = clamp(state.vegetation + d.vegetation * p.dt, 0.2, 1.0)

        prey *= self._noise(p.prey_noise)
        predator *= self._noise(p.predator_noise)
        vegetation *= self._noise(p.vegetation_noise)
        return PopulationState(prey, predator, vegetation)

    def run(self, reserve: Reserve) -> List[PopulationSample]:
        """Integrate from the reserve's initial state; one sample per step."""
        state = initial_state(reserve)
        samples: List[PopulationSample] = []
        for t in range(self.params.steps):
            state = self.step(state, t, reserve.area_factor)
            samples.append(
                PopulationSample(
                    time=t,
                    prey=round_half_up(state.prey),
                    predator=round_half_up(state.predator),
                    vegetation_index=round(state.vegetation, 2),
                )
            )
        return samples


def samples_to_dataframe(samples: List[PopulationSample]) -> pd.DataFrame:
    return pd.DataFrame([asdict(s) for s in samples], columns=[
        "time", "prey", "predator", "vegetation_index"
    ])


if __name__ == "__main__":
    import argparse

    from reserves import DEFAULT_RESERVES, find_reserve

    parser = argparse.ArgumentParser(description="Population series for a reserve")
    parser.add_argument("reserve", help="Reserve name")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--deterministic", action="store_true", help="Disable noise.")
    args = parser.parse_args()

    params = OdeParams(noise_scale=0.0 if args.deterministic else 1.0)
    model = ODEPopulationModel(params, random.Random(args.seed))
    df = samples_to_dataframe(model.run(find_reserve(DEFAULT_RESERVES, args.reserve)))
    print(df.to_string(index=False))
