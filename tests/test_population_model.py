import random

import pytest

from helpers import make_reserve
from population_model import (
    ODEPopulationModel,
    OdeParams,
    PopulationSample,
    initial_state,
    round_half_up,
    samples_to_dataframe,
)


def _deterministic_model():
    return ODEPopulationModel(OdeParams(noise_scale=0.0), random.Random(0))


def test_initial_state_from_reserve_attributes():
    state = initial_state(make_reserve())
    assert state.predator == pytest.approx(76)
    assert state.prey == pytest.approx(1034)
    assert state.vegetation == pytest.approx(0.76)


def test_initial_prey_bonus_for_large_core_and_buffer():
    state = initial_state(make_reserve(total_area=2000, core_area=1200, buffer_area=600))
    assert state.prey == pytest.approx(800 * 1.2 * 1.1)


def test_initial_state_clamps_and_defaults_density():
    state = initial_state(make_reserve(total_area=100, tiger_density=None))
    assert state.prey == 500
    assert state.predator == 20
    assert state.vegetation == pytest.approx(0.3)


def test_first_step_matches_forward_euler_by_hand():
    samples = _deterministic_model().run(make_reserve())
    first = samples[0]
    # prey: 1034 + 397.056 - 628.672, predator: 76 + 39.292 - 15.2
    assert first == PopulationSample(time=0, prey=802, predator=100, vegetation_index=0.2)


def test_series_has_one_sample_per_step_without_gaps():
    samples = _deterministic_model().run(make_reserve())
    assert len(samples) == 100
    assert [s.time for s in samples] == list(range(100))


def test_fractional_dt_keeps_one_month_index_per_sample():
    params = OdeParams(dt=0.5, noise_scale=0.0)
    samples = ODEPopulationModel(params, random.Random(0)).run(make_reserve())
    assert [s.time for s in samples] == list(range(100))


def test_zero_noise_runs_are_identical():
    reserve = make_reserve()
    first = ODEPopulationModel(OdeParams(noise_scale=0.0), random.Random(1)).run(reserve)
    second = ODEPopulationModel(OdeParams(noise_scale=0.0), random.Random(2)).run(reserve)
    assert first == second


def test_seeded_noise_is_reproducible_and_bounded():
    reserve = make_reserve()
    first = ODEPopulationModel(rng=random.Random(42)).run(reserve)
    second = ODEPopulationModel(rng=random.Random(42)).run(reserve)
    assert first == second
    for sample in first:
        assert sample.prey >= 95
        assert sample.predator >= 1
        assert 0.19 <= sample.vegetation_index <= 1.01


def test_zero_area_reserve_does_not_divide_by_zero():
    samples = _deterministic_model().run(make_reserve(total_area=0))
    assert len(samples) == 100


def test_params_are_validated():
    with pytest.raises(ValueError):
        OdeParams(steps=0)
    with pytest.raises(ValueError):
        OdeParams(noise_scale=-1)


def test_round_half_up_differs_from_bankers_rounding():
    assert round_half_up(6.5) == 7
    assert round_half_up(7.5) == 8
    assert round_half_up(2.4) == 2


def test_samples_to_dataframe_and_dict_keys():
    samples = _deterministic_model().run(make_reserve())
    df = samples_to_dataframe(samples)
    assert list(df.columns) == ["time", "prey", "predator", "vegetation_index"]
    assert len(df) == 100
    assert samples[0].as_dict() == {
        "time": 0,
        "prey": 802,
        "predator": 100,
        "vegetationIndex": 0.2,
    }
