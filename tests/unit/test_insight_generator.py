"""Unit tests for insight synthesis, filtering and sorting."""

import pytest

from tools.insight_generator import (
    filter_insights,
    generate_anomaly_insight,
    generate_correlation_insights,
    generate_statistical_insights,
    generate_summary_insight,
    generate_trend_insights,
    group_by_severity,
    sort_insights,
)
from tools.statistical_analysis import analyze_distribution, calculate_statistical_metrics


INSIGHT_KEYS = {
    "id", "type", "title", "description", "severity", "confidence",
    "actionable", "recommendation", "data", "metadata",
}


def _trend(**overrides):
    trend = {
        "trend": "stable",
        "trend_strength": 0.1,
        "change_rate": 0.0,
        "volatility": 0.0,
        "change_points": [],
        "has_seasonality": False,
        "seasonality_period": None,
    }
    trend.update(overrides)
    return trend


# =============================================================================
# Statistical insights
# =============================================================================

@pytest.mark.unit
def test_statistical_insights_for_outlier_column():
    """High variance, one outlier and right skew each produce an insight."""
    values = [1, 2, 3, 4, 5, 6, 7, 8, 9, 100]
    metrics = calculate_statistical_metrics(values)
    insights = generate_statistical_insights("sales", metrics, analyze_distribution(values, metrics))

    assert [i["id"] for i in insights] == ["high-variance-sales", "outliers-sales", "skewness-sales"]
    for insight in insights:
        assert set(insight) == INSIGHT_KEYS

    variance, outliers, skewness = insights
    assert variance["severity"] == "warning"
    assert variance["confidence"] == pytest.approx(0.8)
    assert variance["data"] == {"metric": "variance", "value": metrics["variance"]}

    # 1 outlier out of 10 is not more than 10%
    assert outliers["type"] == "anomaly"
    assert outliers["severity"] == "info"
    assert outliers["title"] == "1 Outliers Detected in sales"

    assert skewness["actionable"] is False
    assert skewness["recommendation"] is None
    assert "right-skewed" in skewness["description"]


@pytest.mark.unit
def test_outlier_insight_warning_above_ten_percent():
    metrics = {"count": 10, "variance": 1.0, "mean": 10.0, "skewness": 0.0}
    distribution = {"outliers": [{"index": i} for i in range(3)]}

    insights = generate_statistical_insights("x", metrics, distribution)

    assert len(insights) == 1
    assert insights[0]["severity"] == "warning"


@pytest.mark.unit
def test_quiet_column_produces_no_statistical_insights():
    metrics = {"count": 10, "variance": 0.5, "mean": 10.0, "skewness": 0.2}

    assert generate_statistical_insights("x", metrics, {"outliers": []}) == []


# =============================================================================
# Trend insights
# =============================================================================

@pytest.mark.unit
def test_strong_decreasing_trend_is_warning():
    insights = generate_trend_insights(
        "revenue", _trend(trend="decreasing", trend_strength=0.9, change_rate=-2.0, volatility=0.5)
    )

    assert len(insights) == 1
    insight = insights[0]
    assert insight["id"] == "trend-revenue"
    assert insight["title"] == "Strong Decreasing Trend in revenue"
    assert insight["severity"] == "warning"
    assert insight["confidence"] == pytest.approx(0.9)
    assert insight["data"] == {"metric": "trend", "change": -2.0}


@pytest.mark.unit
def test_strong_increasing_trend_is_info():
    insights = generate_trend_insights(
        "revenue", _trend(trend="increasing", trend_strength=1.0, change_rate=3.0)
    )

    assert insights[0]["severity"] == "info"
    assert "100% confidence" in insights[0]["description"]


@pytest.mark.unit
def test_weak_trend_produces_nothing():
    assert generate_trend_insights("x", _trend(trend="increasing", trend_strength=0.5, change_rate=1.0, volatility=0.4)) == []


@pytest.mark.unit
def test_volatile_series_reports_volatility_not_direction():
    insights = generate_trend_insights(
        "x", _trend(trend="volatile", trend_strength=1.0, change_rate=1.0, volatility=5.0)
    )

    assert [i["id"] for i in insights] == ["volatility-x"]
    assert insights[0]["data"] == {"metric": "volatility", "value": 5.0}


@pytest.mark.unit
def test_only_significant_change_points_are_reported():
    points = [{"index": 3, "significance": 0.9}, {"index": 7, "significance": 0.5}]
    insights = generate_trend_insights("x", _trend(change_points=points))

    assert len(insights) == 1
    insight = insights[0]
    assert insight["type"] == "pattern"
    assert insight["title"] == "1 Significant Change Points Detected"
    assert insight["metadata"] == {"change_points": [points[0]]}


@pytest.mark.unit
def test_seasonality_insight():
    insights = generate_trend_insights("x", _trend(has_seasonality=True, seasonality_period=12))

    assert insights[0]["id"] == "seasonality-x"
    assert insights[0]["data"]["period"] == "12 periods"
    assert insights[0]["confidence"] == pytest.approx(0.75)


# =============================================================================
# Anomaly & correlation insights
# =============================================================================

@pytest.mark.unit
def test_anomaly_insight_severity():
    assert generate_anomaly_insight("x", []) is None
    assert generate_anomaly_insight("x", [{"severity": 0.5}])["severity"] == "info"

    insight = generate_anomaly_insight("x", [{"severity": 0.5}, {"severity": 0.95}])
    assert insight["severity"] == "warning"
    assert insight["title"] == "2 Anomalies Detected in x"
    assert len(insight["metadata"]["anomalies"]) == 2


@pytest.mark.unit
def test_strong_positive_correlation():
    insights = generate_correlation_insights("price", "sales", 0.85)

    assert len(insights) == 1
    insight = insights[0]
    assert insight["id"] == "correlation-price-sales"
    assert insight["title"] == "Strong Positive Correlation"
    assert insight["confidence"] == pytest.approx(0.85)
    assert insight["metadata"] == {"columns": ["price", "sales"]}


@pytest.mark.unit
def test_strong_negative_correlation():
    insight = generate_correlation_insights("price", "demand", -0.9)[0]

    assert insight["title"] == "Strong Negative Correlation"
    assert insight["confidence"] == pytest.approx(0.9)
    assert "opposite directions" in insight["recommendation"]


@pytest.mark.unit
def test_weak_correlation():
    insight = generate_correlation_insights("a", "b", 0.1)[0]

    assert insight["id"] == "no-correlation-a-b"
    assert insight["confidence"] == pytest.approx(0.9)
    assert insight["actionable"] is False


@pytest.mark.unit
@pytest.mark.parametrize("r", [0.5, -0.6, None, float("nan")])
def test_moderate_or_missing_correlation_produces_nothing(r):
    assert generate_correlation_insights("a", "b", r) == []


# =============================================================================
# Summary
# =============================================================================

@pytest.mark.unit
def test_summary_insight():
    insights = [{"severity": "warning"}, {"severity": "info"}]
    summary = generate_summary_insight(insights)

    assert summary["id"] == "summary"
    assert summary["title"] == "Analysis Summary: 2 Insights Found"
    assert summary["severity"] == "warning"
    assert "0 critical, 1 warnings, and 1 informational" in summary["description"]
    assert summary["data"] == {"metric": "total_insights", "value": 2}


@pytest.mark.unit
def test_summary_of_nothing_is_none():
    assert generate_summary_insight([]) is None


# =============================================================================
# Filtering / sorting
# =============================================================================

@pytest.fixture
def mixed_insights():
    return [
        {"id": "a", "type": "trend", "severity": "info", "confidence": 0.6, "actionable": True,
         "title": "Strong Increasing Trend in revenue", "description": "", "recommendation": None},
        {"id": "b", "type": "anomaly", "severity": "warning", "confidence": 0.9, "actionable": True,
         "title": "3 Outliers Detected in cost", "description": "", "recommendation": None},
        {"id": "c", "type": "correlation", "severity": "info", "confidence": 0.95, "actionable": False,
         "title": "Weak Correlation", "description": "revenue and cost", "recommendation": None},
        {"id": "d", "type": "statistical", "severity": "critical", "confidence": 0.7, "actionable": True,
         "title": "Summary", "description": "", "recommendation": "Review revenue"},
    ]


@pytest.mark.unit
def test_filter_by_type_and_severity(mixed_insights):
    assert [i["id"] for i in filter_insights(mixed_insights, insight_type="trend")] == ["a"]
    assert [i["id"] for i in filter_insights(mixed_insights, severity="info")] == ["a", "c"]
    assert [i["id"] for i in filter_insights(mixed_insights, actionable_only=True)] == ["a", "b", "d"]


@pytest.mark.unit
def test_filter_search_is_case_insensitive(mixed_insights):
    ids = [i["id"] for i in filter_insights(mixed_insights, search="  REVENUE ")]

    assert ids == ["a", "c", "d"]


@pytest.mark.unit
def test_sort_by_severity_keeps_ties_in_order(mixed_insights):
    ids = [i["id"] for i in sort_insights(mixed_insights)]

    assert ids == ["d", "b", "a", "c"]


@pytest.mark.unit
def test_sort_by_confidence_and_type(mixed_insights):
    assert [i["id"] for i in sort_insights(mixed_insights, "confidence")] == ["c", "b", "d", "a"]
    assert [i["id"] for i in sort_insights(mixed_insights, "type", "asc")] == ["b", "c", "d", "a"]


@pytest.mark.unit
def test_actionable_only_sorted_ascending(mixed_insights):
    """Actionable filter followed by least-severe-first ordering."""
    visible = filter_insights(mixed_insights, actionable_only=True)

    assert [i["id"] for i in sort_insights(visible, "severity", "asc")] == ["a", "b", "d"]


@pytest.mark.unit
def test_sort_rejects_unknown_key(mixed_insights):
    with pytest.raises(ValueError, match="Unsupported sort key"):
        sort_insights(mixed_insights, "title")


@pytest.mark.unit
def test_group_by_severity(mixed_insights):
    groups = group_by_severity(mixed_insights)

    assert list(groups) == ["critical", "warning", "info"]
    assert [i["id"] for i in groups["info"]] == ["a", "c"]
