import logging
from concurrent.futures import Future

import numpy as np
import pytest

from density_grids import (
    GRID_KINDS,
    DensityGridProvider,
    DensityGrids,
    GridStatus,
    read_grid_csv,
)


def _write_grids(directory, name, ndvi=None, prey=None, predator=None):
    contents = {"last_ndvi": ndvi, "last_prey_density": prey, "last_predator_density": predator}
    for suffix, text in contents.items():
        if text is not None:
            (directory / f"{name}_{suffix}.csv").write_text(text)


def test_read_grid_csv_parses_rectangular_rows(tmp_path):
    path = tmp_path / "grid.csv"
    path.write_text("0.1,0.2,0.3\n0.4,0.5,0.6\n")
    grid = read_grid_csv(path)
    assert grid.shape == (2, 3)
    assert grid[1, 2] == pytest.approx(0.6)
    assert not grid.flags.writeable


@pytest.mark.parametrize(
    "text",
    [
        "0.1,abc\n0.2,0.3\n",
        "0.1,0.2\n0.3\n",
        "0.1,1.5\n",
        "",
    ],
)
def test_read_grid_csv_rejects_bad_content(tmp_path, text):
    path = tmp_path / "grid.csv"
    path.write_text(text)
    with pytest.raises(Exception):
        read_grid_csv(path)


def test_provider_resolves_all_three_grids(tmp_path):
    _write_grids(tmp_path, "Bandipur", "0.5,0.5\n0.5,0.5\n", "1,0\n0,1\n", "0.2\n")
    with DensityGridProvider(tmp_path) as provider:
        grids = provider.load("Bandipur").wait()
    assert grids.settled
    assert grids.statuses() == {kind: GridStatus.RESOLVED for kind in GRID_KINDS}
    assert grids.ndvi.shape == (2, 2)
    assert grids.prey[1, 1] == 1.0
    assert grids.predator.shape == (1, 1)


def test_one_failed_grid_does_not_affect_the_others(tmp_path, caplog):
    _write_grids(tmp_path, "Nagarhole", "0.5,0.5\n", "not,numbers\n", None)
    with caplog.at_level(logging.WARNING, logger="density_grids"):
        with DensityGridProvider(tmp_path) as provider:
            grids = provider.load("Nagarhole").wait()

    assert grids.status("ndvi") is GridStatus.RESOLVED
    assert grids.status("prey") is GridStatus.FAILED_DEFAULTED
    assert grids.status("predator") is GridStatus.FAILED_DEFAULTED
    assert grids.prey.shape == (0, 0)
    assert grids.predator.size == 0
    assert grids.resolution("predator").error
    messages = [r.getMessage() for r in caplog.records]
    assert any("prey grid for Nagarhole" in m for m in messages)
    assert any("predator grid for Nagarhole" in m for m in messages)


def test_reader_exceptions_never_reach_the_caller(tmp_path):
    def exploding_reader(path):
        raise RuntimeError("disk on fire")

    with DensityGridProvider(tmp_path, reader=exploding_reader) as provider:
        grids = provider.load("Corbett").wait()
    assert all(s is GridStatus.FAILED_DEFAULTED for s in grids.statuses().values())


def test_resource_path_follows_naming_convention(tmp_path):
    provider = DensityGridProvider(tmp_path)
    try:
        assert provider.resource_path("Kanha", "prey").name == "Kanha_last_prey_density.csv"
        assert provider.resource_path("Kanha", "ndvi").name == "Kanha_last_ndvi.csv"
    finally:
        provider.close()


def test_pending_grid_cannot_be_read():
    futures = {kind: Future() for kind in GRID_KINDS}
    grids = DensityGrids("Pending", futures)
    assert grids.status("prey") is GridStatus.PENDING
    assert not grids.settled
    with pytest.raises(RuntimeError):
        grids.prey


def test_from_arrays_marks_missing_grids_failed():
    grids = DensityGrids.from_arrays("Mem", ndvi=np.ones((2, 2)), prey=[[0.5]])
    assert grids.status("ndvi") is GridStatus.RESOLVED
    assert grids.prey.shape == (1, 1)
    assert grids.status("predator") is GridStatus.FAILED_DEFAULTED
    assert grids.predator.shape == (0, 0)
