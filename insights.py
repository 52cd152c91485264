"""
Rule-based ecological insights and conservation recommendations.

This module does not run simulations. It reads static reserve attributes and
a derived three-level density summary and produces descriptive text plus a
recommendation list sorted high -> medium -> low priority.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

from population_model import clamp
from reserves import Reserve

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}

CONNECTIVITY_KEYWORDS = ("contiguous", "connects")


@dataclass(frozen=True)
class DensityLevels:
    high: float
    medium: float
    low: float


@dataclass(frozen=True)
class DensitySummary:
    ndvi: DensityLevels
    prey: DensityLevels
    predator: DensityLevels

    def display(self) -> Dict[str, Dict[str, str]]:
        """Formatted values: vegetation as a percentage, densities to one decimal."""
        return {
            "ndvi": {k: f"{v * 100:.1f}%" for k, v in asdict(self.ndvi).items()},
            "prey": {k: f"{v:.1f}" for k, v in asdict(self.prey).items()},
            "predator": {k: f"{v:.1f}" for k, v in asdict(self.predator).items()},
        }


@dataclass(frozen=True)
class Recommendation:
    priority: str
    text: str

    def __post_init__(self) -> None:
        if self.priority not in PRIORITY_ORDER:
            raise ValueError(f"Unknown priority: {self.priority}")


@dataclass
class ReserveInsights:
    description: str
    status: str
    insights: List[str]


@dataclass
class InsightReport:
    insights: ReserveInsights
    summary: DensitySummary
    recommendations: List[Recommendation]
    metrics: Dict[str, str]
    json: Dict


def density_summary(reserve: Reserve) -> DensitySummary:
    td = reserve.effective_tiger_density
    base_prey = clamp(reserve.area_factor * 10, 20, 50)
    return DensitySummary(
        ndvi=DensityLevels(
            high=clamp(td / 50, 0.6, 0.8),
            medium=clamp(td / 70, 0.4, 0.6),
            low=clamp(td / 100, 0.2, 0.4),
        ),
        # per sq km
        prey=DensityLevels(
            high=clamp(base_prey * 1.2, 40, 60),
            medium=clamp(base_prey, 20, 40),
            low=clamp(base_prey * 0.8, 10, 20),
        ),
        # per 100 sq km
        predator=DensityLevels(
            high=clamp(td * 1.2, 20, 40),
            medium=clamp(td, 10, 20),
            low=clamp(td * 0.8, 5, 10),
        ),
    )


def _format_number(value: float) -> str:
    return f"{value:g}"


def _density_text(reserve: Reserve) -> str:
    if not reserve.has_tiger_density:
        return "Undetermined"
    return _format_number(reserve.tiger_density)


def reserve_insights(reserve: Reserve) -> ReserveInsights:
    insights: List[str] = []
    td = reserve.tiger_density
    ratio = reserve.core_to_buffer_ratio

    if td is not None and td > 30:
        insights.append("High tiger density suggests excellent prey base and habitat management.")
    elif td is not None and td < 10:
        insights.append(
            "Lower tiger density indicates potential for habitat improvement and anti-poaching measures."
        )

    if ratio > 1.5:
        insights.append("Large core area relative to buffer zone may provide better protection for tigers.")
    elif ratio < 0.5:
        insights.append("Small core area relative to buffer zone may increase human-wildlife conflict.")

    if reserve.total_area > 2000:
        insights.append("Large reserve area supports greater biodiversity and ecosystem resilience.")

    insights.append(reserve.notes)

    return ReserveInsights(
        description=(
            f"{reserve.name} Tiger Reserve is located in {reserve.region} "
            f"with a total area of {_format_number(reserve.total_area)} sq km."
        ),
        status=(
            f"Tiger density: {_density_text(reserve)} per 100 sq km. "
            f"Core area: {_format_number(reserve.core_area)} sq km. "
            f"Buffer zone: {_format_number(reserve.buffer_area)} sq km."
        ),
        insights=insights,
    )


def conservation_recommendations(
    reserve: Reserve, summary: Optional[DensitySummary] = None
) -> List[Recommendation]:
    summary = summary or density_summary(reserve)
    td = reserve.effective_tiger_density
    ratio = reserve.core_to_buffer_ratio
    recs: List[Recommendation] = []

    # habitat
    if summary.ndvi.low < 0.4:
        recs.append(Recommendation("high", "Implement habitat restoration programs to improve vegetation cover"))
    if reserve.core_area < 500:
        recs.append(Recommendation("high", "Expand core area to provide better protection for tiger populations"))

    # prey base
    if summary.prey.low < 15:
        recs.append(Recommendation("high", "Enhance prey base through habitat improvement and water management"))
    if summary.prey.medium < 25:
        recs.append(Recommendation("medium", "Monitor and manage prey population dynamics"))

    # tiger population
    if td < 10:
        recs.append(Recommendation("high", "Strengthen anti-poaching measures and habitat protection"))
    if td > 40:
        recs.append(Recommendation("medium", "Consider translocation to maintain optimal tiger density"))

    # buffer zone
    if ratio < 0.5:
        recs.append(Recommendation("high", "Improve buffer zone management to reduce human-wildlife conflict"))
    if reserve.buffer_area < 300:
        recs.append(Recommendation("medium", "Expand buffer zone to provide better habitat connectivity"))

    if any(keyword in reserve.notes for keyword in CONNECTIVITY_KEYWORDS):
        recs.append(
            Recommendation("medium", "Maintain and enhance corridor connectivity with neighboring reserves")
        )

    if reserve.total_area > 2000:
        recs.append(Recommendation("low", "Implement zone-based management for better resource allocation"))
    if reserve.total_area < 1000:
        recs.append(Recommendation("medium", "Focus on habitat quality improvement within limited area"))

    # sorted() is stable, so equal priorities keep rule order
    return sorted(recs, key=lambda r: PRIORITY_ORDER[r.priority])


def key_metrics(reserve: Reserve) -> Dict[str, str]:
    return {
        "Tiger Density": f"{_density_text(reserve)} per 100 sq km",
        "Total Area": f"{_format_number(reserve.total_area)} sq km",
        "Core Area": f"{_format_number(reserve.core_area)} sq km",
        "Buffer Area": f"{_format_number(reserve.buffer_area)} sq km",
        "Core/Buffer Ratio": f"{reserve.core_to_buffer_ratio:.2f}",
    }


def build_report(reserve: Reserve) -> InsightReport:
    summary = density_summary(reserve)
    insights = reserve_insights(reserve)
    recommendations = conservation_recommendations(reserve, summary)
    metrics = key_metrics(reserve)

    json_payload = {
        "reserve": reserve.name,
        "description": insights.description,
        "status": insights.status,
        "insights": list(insights.insights),
        "densities": asdict(summary),
        "recommendations": [asdict(r) for r in recommendations],
        "metrics": metrics,
    }
    return InsightReport(
        insights=insights,
        summary=summary,
        recommendations=recommendations,
        metrics=metrics,
        json=json_payload,
    )
