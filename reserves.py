"""
Static reserve records for the predator-prey dashboard.

Reserves are loaded once and never mutated. Numeric fields that are missing
or non-numeric in the source data are coerced to defaults here so the
simulation modules never have to check for them again. Tiger density is the
one exception: it is kept as ``None`` when absent so descriptive text can say
"Undetermined", while ``effective_tiger_density`` gives the numeric default.
"""

from __future__ import annotations

import json
import logging
import math
import numbers
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

logger = logging.getLogger(__name__)

DEFAULT_TIGER_DENSITY = 10.0

# camelCase keys as they appear in exported dashboard data -> field names
FIELD_ALIASES = {
    "totalArea": "total_area",
    "coreArea": "core_area",
    "bufferArea": "buffer_area",
    "tigerDensity": "tiger_density",
    "latMin": "lat_min",
    "latMax": "lat_max",
    "lonMin": "lon_min",
    "lonMax": "lon_max",
}


def _as_number(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return None
    if math.isnan(value):
        return None
    return float(value)


@dataclass(frozen=True)
class Reserve:
    id: int
    name: str
    region: str = ""
    total_area: float = 0.0
    core_area: float = 0.0
    buffer_area: float = 0.0
    tiger_density: Optional[float] = None
    lat_min: float = 0.0
    lat_max: float = 0.0
    lon_min: float = 0.0
    lon_max: float = 0.0
    notes: str = ""

    @property
    def has_tiger_density(self) -> bool:
        return self.tiger_density is not None

    @property
    def effective_tiger_density(self) -> float:
        if self.tiger_density is None:
            return DEFAULT_TIGER_DENSITY
        return self.tiger_density

    @property
    def area_factor(self) -> float:
        """Total area normalised by 1000 sq km."""
        return self.total_area / 1000

    @property
    def core_to_buffer_ratio(self) -> float:
        # A reserve without buffer is compared against a buffer of 1 sq km.
        return self.core_area / (self.buffer_area or 1)

    def center(self) -> Tuple[float, float]:
        return (
            (self.lat_min + self.lat_max) / 2,
            (self.lon_min + self.lon_max) / 2,
        )

    def polygon(self) -> List[Tuple[float, float]]:
        """Closed (lat, lon) ring around the bounding box."""
        return [
            (self.lat_min, self.lon_min),
            (self.lat_max, self.lon_min),
            (self.lat_max, self.lon_max),
            (self.lat_min, self.lon_max),
            (self.lat_min, self.lon_min),
        ]


def reserve_from_record(record: Mapping, index: int = 0) -> Reserve:
    fields: Dict = {}
    for key, value in record.items():
        fields[FIELD_ALIASES.get(key, key)] = value

    name = fields.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"Reserve record {index} has no name")

    raw_id = _as_number(fields.get("id"))
    measures = {}
    for key in (
        "total_area",
        "core_area",
        "buffer_area",
        "lat_min",
        "lat_max",
        "lon_min",
        "lon_max",
    ):
        value = _as_number(fields.get(key))
        if value is None:
            if key in fields:
                logger.debug("Reserve %s: %s=%r replaced by 0", name, key, fields[key])
            value = 0.0
        measures[key] = value

    notes = fields.get("notes")
    return Reserve(
        id=int(raw_id) if raw_id is not None else index + 1,
        name=name.strip(),
        region=str(fields.get("region") or ""),
        tiger_density=_as_number(fields.get("tiger_density")),
        notes=notes if isinstance(notes, str) else "",
        **measures,
    )


def reserves_from_records(records: Iterable[Mapping]) -> List[Reserve]:
    return [reserve_from_record(record, i) for i, record in enumerate(records)]


def load_reserves(path: Union[str, Path]) -> List[Reserve]:
    """Load an ordered reserve list from a JSON array or a CSV table."""
    path = Path(path)
    if path.suffix.lower() == ".json":
        with path.open(encoding="utf-8") as handle:
            records = json.load(handle)
        if not isinstance(records, list):
            raise ValueError(f"{path} must contain a JSON array of reserves")
    elif path.suffix.lower() == ".csv":
        frame = pd.read_csv(path, keep_default_na=True)
        frame = frame.astype(object).where(frame.notna(), None)
        records = frame.to_dict(orient="records")
    else:
        raise ValueError(f"Unsupported reserve file type: {path.suffix}")
    reserves = reserves_from_records(records)
    logger.info("Loaded %d reserves from %s", len(reserves), path)
    return reserves


def find_reserve(reserves: Sequence[Reserve], name: str) -> Reserve:
    for reserve in reserves:
        if reserve.name == name:
            return reserve
    for reserve in reserves:
        if reserve.name.lower() == name.lower():
            return reserve
    known = ", ".join(r.name for r in reserves)
    raise KeyError(f"Unknown reserve: {name} (known: {known})")


# Approximate published figures; densities are tigers per 100 sq km.
DEFAULT_RESERVES: Tuple[Reserve, ...] = tuple(
    reserves_from_records(
        [
            {
                "id": 1,
                "name": "Bandipur",
                "region": "Karnataka",
                "totalArea": 1456,
                "coreArea": 872,
                "bufferArea": 584,
                "tigerDensity": 12.3,
                "latMin": 11.58,
                "latMax": 11.93,
                "lonMin": 76.20,
                "lonMax": 76.86,
                "notes": "Part of the Nilgiri Biosphere Reserve, contiguous with Nagarhole and Mudumalai.",
            },
            {
                "id": 2,
                "name": "Nagarhole",
                "region": "Karnataka",
                "totalArea": 1205,
                "coreArea": 643,
                "bufferArea": 562,
                "tigerDensity": 14.1,
                "latMin": 11.85,
                "latMax": 12.26,
                "lonMin": 76.00,
                "lonMax": 76.28,
                "notes": "Kabini river connects the reserve with Bandipur to the south.",
            },
            {
                "id": 3,
                "name": "Corbett",
                "region": "Uttarakhand",
                "totalArea": 1288,
                "coreArea": 821,
                "bufferArea": 467,
                "tigerDensity": 19.6,
                "latMin": 29.40,
                "latMax": 29.70,
                "lonMin": 78.70,
                "lonMax": 79.10,
                "notes": "Oldest national park in India with dense sal forest and grassland chaurs.",
            },
            {
                "id": 4,
                "name": "Kanha",
                "region": "Madhya Pradesh",
                "totalArea": 2052,
                "coreArea": 917,
                "bufferArea": 1135,
                "tigerDensity": 8.5,
                "latMin": 22.05,
                "latMax": 22.45,
                "lonMin": 80.45,
                "lonMax": 81.05,
                "notes": "Meadow habitat supports the hard ground barasingha.",
            },
            {
                "id": 5,
                "name": "Ranthambore",
                "region": "Rajasthan",
                "totalArea": 1411,
                "coreArea": 1113,
                "bufferArea": 298,
                "tigerDensity": 6.0,
                "latMin": 25.90,
                "latMax": 26.20,
                "lonMin": 76.25,
                "lonMax": 76.60,
                "notes": "Dry deciduous forest bordered by the Chambal and Banas rivers.",
            },
            {
                "id": 6,
                "name": "Sundarbans",
                "region": "West Bengal",
                "totalArea": 2585,
                "coreArea": 1700,
                "bufferArea": 885,
                "tigerDensity": None,
                "latMin": 21.55,
                "latMax": 22.15,
                "lonMin": 88.40,
                "lonMax": 89.10,
                "notes": "Mangrove delta where tigers are surveyed by camera traps on tidal creeks.",
            },
        ]
    )
)
