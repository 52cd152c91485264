import pytest

from helpers import make_reserve
from insights import (
    PRIORITY_ORDER,
    Recommendation,
    build_report,
    conservation_recommendations,
    density_summary,
    key_metrics,
    reserve_insights,
)
from reserves import DEFAULT_RESERVES


def test_density_summary_levels():
    summary = density_summary(make_reserve())
    assert summary.ndvi.high == pytest.approx(0.76)
    assert summary.ndvi.medium == pytest.approx(38 / 70)
    assert summary.ndvi.low == pytest.approx(0.38)
    assert summary.prey.high == 40
    assert summary.prey.medium == pytest.approx(25.85)
    assert summary.prey.low == 20
    assert summary.predator.high == 40
    assert summary.predator.medium == 20
    assert summary.predator.low == 10


def test_display_formats_percentages_and_decimals():
    display = density_summary(make_reserve()).display()
    assert display["ndvi"]["high"] == "76.0%"
    assert display["prey"]["high"] == "40.0"
    assert display["predator"]["low"] == "10.0"


def test_insights_text_and_notes_last():
    reserve = make_reserve(name="Bigpark", region="Assam", notes="Floodplain grassland.")
    insights = reserve_insights(reserve)
    assert insights.description == (
        "Bigpark Tiger Reserve is located in Assam with a total area of 2585 sq km."
    )
    assert insights.status == (
        "Tiger density: 38 per 100 sq km. Core area: 800 sq km. Buffer zone: 300 sq km."
    )
    assert insights.insights[0].startswith("High tiger density")
    assert "Large core area relative to buffer zone" in insights.insights[1]
    assert insights.insights[2].startswith("Large reserve area")
    assert insights.insights[-1] == "Floodplain grassland."


def test_absent_density_is_undetermined_in_text_only():
    reserve = make_reserve(tiger_density=None, core_area=500, buffer_area=500, total_area=1500)
    insights = reserve_insights(reserve)
    assert "Tiger density: Undetermined per 100 sq km." in insights.status
    assert insights.insights == [""]
    assert key_metrics(reserve)["Tiger Density"] == "Undetermined per 100 sq km"
    texts = [r.text for r in conservation_recommendations(reserve)]
    # numeric rules use the default density of 10
    assert "Strengthen anti-poaching measures and habitat protection" not in texts
    assert density_summary(reserve).predator.medium == 10


def test_low_density_and_small_core_insights():
    insights = reserve_insights(make_reserve(tiger_density=5, core_area=100, buffer_area=900))
    assert insights.insights[0].startswith("Lower tiger density")
    assert "Small core area relative to buffer zone" in insights.insights[1]


def test_zero_buffer_is_compared_against_one():
    reserve = make_reserve(buffer_area=0, core_area=1)
    insights = reserve_insights(reserve)
    assert not any("core area relative" in line for line in insights.insights)
    texts = [r.text for r in conservation_recommendations(reserve)]
    assert "Expand buffer zone to provide better habitat connectivity" in texts


def test_recommendations_for_reference_reserve():
    recs = conservation_recommendations(make_reserve())
    assert recs == [
        Recommendation("high", "Implement habitat restoration programs to improve vegetation cover"),
        Recommendation("low", "Implement zone-based management for better resource allocation"),
    ]


def test_recommendations_sorted_stably_by_priority():
    reserve = make_reserve(
        tiger_density=45,
        total_area=900,
        core_area=400,
        buffer_area=1000,
        notes="Forest contiguous with the state park.",
    )
    texts = [r.text for r in conservation_recommendations(reserve)]
    assert texts == [
        "Expand core area to provide better protection for tiger populations",
        "Improve buffer zone management to reduce human-wildlife conflict",
        "Monitor and manage prey population dynamics",
        "Consider translocation to maintain optimal tiger density",
        "Maintain and enhance corridor connectivity with neighboring reserves",
        "Focus on habitat quality improvement within limited area",
    ]


@pytest.mark.parametrize("reserve", DEFAULT_RESERVES, ids=lambda r: r.name)
def test_every_bundled_reserve_has_sorted_recommendations(reserve):
    ranks = [PRIORITY_ORDER[r.priority] for r in conservation_recommendations(reserve)]
    assert ranks == sorted(ranks)


def test_unknown_priority_is_rejected():
    with pytest.raises(ValueError):
        Recommendation("urgent", "Do something")


def test_build_report_json_payload():
    report = build_report(make_reserve())
    assert report.json["reserve"] == "Testpur"
    assert report.json["recommendations"][0]["priority"] == "high"
    assert report.json["densities"]["prey"]["high"] == 40
    assert report.metrics["Core/Buffer Ratio"] == "2.67"
