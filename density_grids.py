"""
Density grid provider for reserve terrain.

Each reserve has three grid resources (vegetation index, prey density,
predator density) stored as comma separated rows of values in [0, 1]. The
three are resolved independently on a small thread pool. A grid that cannot
be read is logged and replaced by an empty grid; the failure never reaches
the caller and never affects the other two grids.

No timeout is applied while waiting for a grid. A read that never returns
keeps ``DensityGrids.wait`` blocked.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Optional, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

GRID_KINDS = ("ndvi", "prey", "predator")

GRID_RESOURCE_SUFFIX = {
    "ndvi": "last_ndvi",
    "prey": "last_prey_density",
    "predator": "last_predator_density",
}


class GridStatus(Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED_DEFAULTED = "failed-defaulted"


def empty_grid() -> np.ndarray:
    grid = np.zeros((0, 0), dtype=float)
    grid.setflags(write=False)
    return grid


@dataclass
class GridResolution:
    kind: str
    status: GridStatus = GridStatus.PENDING
    grid: np.ndarray = field(default_factory=empty_grid)
    error: Optional[str] = None

    @property
    def settled(self) -> bool:
        return self.status is not GridStatus.PENDING


def read_grid_csv(path: Union[str, Path]) -> np.ndarray:
    """Parse a row-major grid file into a read-only float array."""
    frame = pd.read_csv(path, header=None, dtype=float, skip_blank_lines=True)
    values = frame.to_numpy(dtype=float)
    if values.size == 0:
        raise ValueError(f"{path} contains no values")
    # pandas pads short rows with NaN
    if np.isnan(values).any():
        raise ValueError(f"{path} is not rectangular or has blank cells")
    if values.min() < 0.0 or values.max() > 1.0:
        raise ValueError(
            f"{path} has values outside [0, 1] "
            f"(min={values.min():.3f}, max={values.max():.3f})"
        )
    values.setflags(write=False)
    return values


class DensityGrids:
    """The three grids for one reserve selection, each with its own status."""

    def __init__(self, reserve_name: str, futures: Optional[Dict[str, Future]] = None):
        self.reserve_name = reserve_name
        self._futures: Dict[str, Future] = dict(futures or {})
        self._resolutions: Dict[str, GridResolution] = {
            kind: GridResolution(kind) for kind in GRID_KINDS
        }

    @classmethod
    def from_arrays(
        cls,
        reserve_name: str,
        ndvi=None,
        prey=None,
        predator=None,
    ) -> "DensityGrids":
        """Already-settled grids from in-memory arrays; ``None`` means failed."""
        grids = cls(reserve_name)
        for kind, values in zip(GRID_KINDS, (ndvi, prey, predator)):
            if values is None:
                grids._resolutions[kind] = GridResolution(
                    kind, GridStatus.FAILED_DEFAULTED, error="not provided"
                )
                continue
            array = np.array(values, dtype=float, ndmin=2)
            array.setflags(write=False)
            grids._resolutions[kind] = GridResolution(kind, GridStatus.RESOLVED, array)
        return grids

    def _collect(self, kind: str) -> None:
        future = self._futures.get(kind)
        if future is None or not future.done():
            return
        self._resolutions[kind] = future.result()
        del self._futures[kind]

    def status(self, kind: str) -> GridStatus:
        self._collect(kind)
        return self._resolutions[kind].status

    def resolution(self, kind: str) -> GridResolution:
        self._collect(kind)
        return self._resolutions[kind]

    @property
    def settled(self) -> bool:
        return all(self.status(kind) is not GridStatus.PENDING for kind in GRID_KINDS)

    def wait(self) -> "DensityGrids":
        for kind, future in list(self._futures.items()):
            future.result()
            self._collect(kind)
        return self

    def grid(self, kind: str) -> np.ndarray:
        resolution = self.resolution(kind)
        if resolution.status is GridStatus.PENDING:
            raise RuntimeError(f"{kind} grid for {self.reserve_name} has not resolved yet")
        return resolution.grid

    @property
    def ndvi(self) -> np.ndarray:
        return self.grid("ndvi")

    @property
    def prey(self) -> np.ndarray:
        return self.grid("prey")

    @property
    def predator(self) -> np.ndarray:
        return self.grid("predator")

    def statuses(self) -> Dict[str, GridStatus]:
        return {kind: self.status(kind) for kind in GRID_KINDS}


class DensityGridProvider:
    def __init__(
        self,
        data_dir: Union[str, Path],
        reader: Callable[[Path], np.ndarray] = read_grid_csv,
        max_workers: int = 3,
    ):
        self.data_dir = Path(data_dir)
        self.reader = reader
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="density-grid"
        )

    def resource_path(self, reserve_name: str, kind: str) -> Path:
        return self.data_dir / f"{reserve_name}_{GRID_RESOURCE_SUFFIX[kind]}.csv"

    def _resolve(self, reserve_name: str, kind: str) -> GridResolution:
        path = self.resource_path(reserve_name, kind)
        try:
            grid = self.reader(path)
        except Exception as exc:  # any reader failure degrades to an empty grid
            logger.warning(
                "Error loading %s grid for %s from %s: %s", kind, reserve_name, path, exc
            )
            return GridResolution(
                kind, GridStatus.FAILED_DEFAULTED, empty_grid(), error=str(exc)
            )
        logger.debug("Loaded %s grid for %s with shape %s", kind, reserve_name, grid.shape)
        return GridResolution(kind, GridStatus.RESOLVED, grid)

    def load(self, reserve_name: str) -> DensityGrids:
        futures = {
            kind: self._executor.submit(self._resolve, reserve_name, kind)
            for kind in GRID_KINDS
        }
        return DensityGrids(reserve_name, futures)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "DensityGridProvider":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
