"""
Post-hoc analysis of simulation outputs.

This module does not modify or run simulations. It interprets a population
series from the integrator, or the tick history of the agent simulator, and
produces labelled evidence with short justifications.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import pandas as pd

from population_model import PopulationSample


@dataclass
class OutcomeEvidence:
    label: str
    evidence: Dict[str, float]
    justification: str


@dataclass
class AnalysisResult:
    labels: List[OutcomeEvidence]
    summary: str
    detailed: List[str]
    json: Dict


def _mean(values: Sequence[float]) -> float:
    return float(sum(values) / len(values)) if values else 0.0


def _stdev(values: Sequence[float]) -> float:
    return float(statistics.pstdev(values)) if len(values) > 1 else 0.0


def _trend_slope(series: Sequence[float]) -> float:
    if len(series) < 2:
        return 0.0
    n = len(series)
    x_mean = (n - 1) / 2.0
    y_mean = _mean(series)
    num = sum((i - x_mean) * (y - y_mean) for i, y in enumerate(series))
    den = sum((i - x_mean) ** 2 for i in range(n))
    return float(num / den) if den else 0.0


def _variance_ratio(series: Sequence[float]) -> float:
    mean = _mean(series)
    return _stdev(series) / mean if mean else 0.0


def _window(series: Sequence[float], fraction: float = 0.2) -> List[float]:
    if not series:
        return []
    size = max(1, int(len(series) * fraction))
    return list(series[-size:])


def _dominant_periodicity(series: Sequence[float]) -> float:
    if len(series) < 10:
        return 0.0
    diffs = [series[i + 1] - series[i] for i in range(len(series) - 1)]
    sign_changes = sum(
        1 for i in range(len(diffs) - 1) if diffs[i] == 0 or diffs[i] * diffs[i + 1] < 0
    )
    return sign_changes / max(1, len(series) - 2)


def classify_series(samples: Sequence[PopulationSample]) -> List[OutcomeEvidence]:
    if not samples:
        return [
            OutcomeEvidence(
                label="no_data",
                evidence={"steps": 0},
                justification="No population samples available.",
            )
        ]

    prey = [s.prey for s in samples]
    predators = [s.predator for s in samples]
    vegetation = [s.vegetation_index for s in samples]
    labels: List[OutcomeEvidence] = []

    end_prey = prey[-1]
    end_pred = predators[-1]
    # the integrator floors prey at 100 and predators at 1
    if end_pred <= 1 or end_prey <= 100:
        labels.append(
            OutcomeEvidence(
                label="collapse",
                evidence={"prey_end": float(end_prey), "predator_end": float(end_pred)},
                justification="A population ended on its lower bound.",
            )
        )

    prey_var_ratio = _variance_ratio(_window(prey))
    pred_var_ratio = _variance_ratio(_window(predators))
    if prey_var_ratio < 0.2 and pred_var_ratio < 0.2:
        labels.append(
            OutcomeEvidence(
                label="equilibrium",
                evidence={"prey_var_ratio": prey_var_ratio, "pred_var_ratio": pred_var_ratio},
                justification="Low variance in final window for prey and predators.",
            )
        )
    else:
        periodicity = _dominant_periodicity(_window(prey, fraction=0.5))
        if periodicity > 0.25:
            labels.append(
                OutcomeEvidence(
                    label="oscillation",
                    evidence={"prey_periodicity": periodicity},
                    justification="Frequent sign changes in prey growth indicate oscillation.",
                )
            )

    ratio = end_pred / max(1, end_prey)
    if ratio < 0.001 or ratio > 0.1:
        labels.append(
            OutcomeEvidence(
                label="trophic_imbalance",
                evidence={"predator_prey_ratio": ratio},
                justification="Predator-prey ratio outside typical bounds.",
            )
        )

    mean_vegetation = _mean(vegetation)
    if mean_vegetation < 0.3:
        labels.append(
            OutcomeEvidence(
                label="vegetation_stress",
                evidence={
                    "mean_vegetation": mean_vegetation,
                    "vegetation_trend": _trend_slope(vegetation),
                },
                justification="Vegetation index stayed low across the run.",
            )
        )

    return labels


def summarize_ticks(history: pd.DataFrame) -> Dict[str, Optional[float]]:
    """First extinction tick, final and minimum counts from a tick history."""
    if history.empty:
        return {
            "ticks": 0,
            "predator_extinction_tick": None,
            "prey_extinction_tick": None,
        }
    summary: Dict[str, Optional[float]] = {"ticks": int(history["tick"].iloc[-1])}
    for column, name in (("predators", "predator"), ("prey", "prey")):
        extinct = history.loc[history[column] == 0, "tick"].tolist()
        summary[f"{name}_extinction_tick"] = int(extinct[0]) if extinct else None
        summary[f"{name}_final"] = int(history[column].iloc[-1])
        summary[f"{name}_min"] = int(history[column].min())
    if "captures" in history:
        summary["captures"] = int(history["captures"].iloc[-1])
    return summary


def build_explanations(
    samples: Sequence[PopulationSample], tick_history: Optional[pd.DataFrame] = None
) -> AnalysisResult:
    labels = classify_series(samples)

    summary_parts = []
    if labels:
        summary_parts.append("Outcomes: " + ", ".join(l.label for l in labels))
    tick_summary = None
    if tick_history is not None:
        tick_summary = summarize_ticks(tick_history)
        if tick_summary.get("prey_extinction_tick") is not None:
            summary_parts.append(f"prey extinct at tick {tick_summary['prey_extinction_tick']}")
    summary = "; ".join(summary_parts) if summary_parts else "No outcomes detected."

    detailed = [f"{l.label}: {l.justification} Evidence: {l.evidence}" for l in labels]
    if tick_summary is not None:
        detailed.append(f"Agent run: {tick_summary}")

    json_payload = {
        "labels": [
            {"label": l.label, "evidence": l.evidence, "justification": l.justification}
            for l in labels
        ],
        "ticks": tick_summary,
        "summary": summary,
    }
    return AnalysisResult(labels=labels, summary=summary, detailed=detailed, json=json_payload)
