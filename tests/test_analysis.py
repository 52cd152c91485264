import pandas as pd

from analysis import build_explanations, classify_series, summarize_ticks
from population_model import PopulationSample


def _flat_series(prey=1000, predator=50, vegetation=0.6, steps=50):
    return [PopulationSample(t, prey, predator, vegetation) for t in range(steps)]


def _labels(samples):
    return [e.label for e in classify_series(samples)]


def test_empty_series_has_no_data_label():
    assert _labels([]) == ["no_data"]


def test_flat_series_is_equilibrium():
    assert _labels(_flat_series()) == ["equilibrium"]


def test_series_ending_on_floor_is_collapse():
    labels = _labels(_flat_series(prey=100, predator=1))
    assert "collapse" in labels


def test_alternating_prey_is_oscillation():
    samples = [
        PopulationSample(t, 500 if t % 2 else 3000, 50, 0.6) for t in range(40)
    ]
    assert "oscillation" in _labels(samples)


def test_predator_heavy_series_is_trophic_imbalance_and_low_vegetation_flagged():
    labels = _labels(_flat_series(prey=200, predator=80, vegetation=0.2))
    assert "trophic_imbalance" in labels
    assert "vegetation_stress" in labels


def test_summarize_ticks_reports_extinction():
    history = pd.DataFrame(
        {
            "tick": [0, 1, 2, 3],
            "predators": [4, 4, 3, 3],
            "prey": [3, 1, 0, 1],
            "captures": [0, 2, 3, 3],
        }
    )
    summary = summarize_ticks(history)
    assert summary["ticks"] == 3
    assert summary["prey_extinction_tick"] == 2
    assert summary["predator_extinction_tick"] is None
    assert summary["prey_final"] == 1
    assert summary["predator_min"] == 3
    assert summary["captures"] == 3


def test_build_explanations_combines_series_and_ticks():
    history = pd.DataFrame({"tick": [0, 1], "predators": [2, 2], "prey": [1, 0]})
    result = build_explanations(_flat_series(), history)
    assert result.summary == "Outcomes: equilibrium; prey extinct at tick 1"
    assert result.json["ticks"]["prey_extinction_tick"] == 1
    assert result.detailed[-1].startswith("Agent run:")
