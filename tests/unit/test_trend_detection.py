"""Unit tests for trend, change point, seasonality and anomaly detection."""

import pytest

from tools.trend_detection import (
    calculate_growth_rate,
    detect_change_points,
    detect_seasonality,
    detect_time_series_anomalies,
    detect_trends,
)


def _flat_with(value_at_10, length=20, base=10.0):
    values = [base] * length
    values[10] = value_at_10
    return values


# =============================================================================
# detect_trends
# =============================================================================

@pytest.mark.unit
def test_linear_increase_is_strong_increasing_trend():
    """Constant positive steps: increasing with full strength."""
    result = detect_trends(list(range(1, 11)))

    assert result["trend"] == "increasing"
    assert result["trend_strength"] == pytest.approx(1.0)
    assert result["change_rate"] == pytest.approx(1.0)
    assert result["volatility"] == pytest.approx(0.0)
    assert result["forecast"]["next_value"] == pytest.approx(11.0)
    assert result["forecast"]["confidence"] == pytest.approx(1.0)
    assert result["change_points"] == []


@pytest.mark.unit
def test_linear_regression_fields():
    regression = detect_trends([3, 5, 7, 9, 11])["regression"]

    assert regression["slope"] == pytest.approx(2.0)
    assert regression["intercept"] == pytest.approx(3.0)
    assert regression["r_squared"] == pytest.approx(1.0)
    assert regression["slope_pct"] == pytest.approx(2.0 / 7.0 * 100)


@pytest.mark.unit
def test_linear_decrease_is_decreasing_trend():
    result = detect_trends([10, 9, 8, 7, 6, 5])

    assert result["trend"] == "decreasing"
    assert result["change_rate"] == pytest.approx(-1.0)


@pytest.mark.unit
def test_constant_series_is_stable():
    """No movement at all reads as stable, not as a direction."""
    result = detect_trends([5, 5, 5, 5, 5, 5])

    assert result["trend"] == "stable"
    assert result["trend_strength"] == pytest.approx(0.1)
    assert result["change_rate"] == 0
    assert result["regression"]["slope"] == 0


@pytest.mark.unit
def test_oscillating_series_is_volatile():
    result = detect_trends([1, 10, 1, 10, 1, 10])

    assert result["trend"] == "volatile"
    assert result["trend_strength"] == pytest.approx(1.0)
    assert result["volatility"] > 2 * abs(result["change_rate"])


@pytest.mark.unit
@pytest.mark.parametrize("values, expected", [
    ([0, 2.5, 2, 4.5, 4, 6.5, 6], "increasing"),
    ([0, -2.5, -2, -4.5, -4, -6.5, -6], "decreasing"),
])
def test_noisy_direction_has_partial_strength(values, expected):
    """Mean step 1 against step spread 1.5 keeps the direction at strength 2/3."""
    result = detect_trends(values)

    assert result["trend"] == expected
    assert abs(result["change_rate"]) == pytest.approx(1.0)
    assert result["volatility"] == pytest.approx(1.5)
    assert result["trend_strength"] == pytest.approx(2 / 3)


@pytest.mark.unit
def test_trend_ignores_non_finite_values():
    """NaN is dropped before differencing instead of poisoning the rate."""
    result = detect_trends([1, float("nan"), 3])

    assert result["trend"] == "increasing"
    assert result["change_rate"] == pytest.approx(2.0)
    assert result["forecast"]["next_value"] == pytest.approx(5.0)


@pytest.mark.unit
@pytest.mark.parametrize("values", [[], [42]])
def test_too_short_series_is_unknown(values):
    result = detect_trends(values)

    assert result["trend"] == "unknown"
    assert result["change_rate"] is None
    assert result["forecast"] is None
    assert result["change_points"] == []


# =============================================================================
# Change points & anomalies
# =============================================================================

@pytest.mark.unit
def test_change_points_around_spike():
    """Jump up into the spike and back down are both reported."""
    points = detect_change_points(_flat_with(100.0))

    assert [p["index"] for p in points] == [10, 11]
    assert points[0]["change_type"] == "spike"
    assert points[1]["change_type"] == "drop"
    assert points[0]["magnitude"] == pytest.approx(90.0)
    assert points[0]["significance"] == pytest.approx(1.0)


@pytest.mark.unit
def test_change_points_carry_timestamps():
    timestamps = [f"t{i}" for i in range(20)]
    points = detect_change_points(_flat_with(100.0), timestamps)

    assert points[0]["timestamp"] == "t10"


@pytest.mark.unit
@pytest.mark.parametrize("values, expected_type", [
    ([0.0] * 10 + [10.0] * 10, "increase"),
    ([10.0] * 10 + [0.0] * 10, "decrease"),
    (_flat_with(100.0), "spike"),
    (_flat_with(-80.0), "drop"),
])
def test_change_point_types(values, expected_type):
    """Steps between 2 and 3 rolling std devs are increase/decrease; beyond 3 spike/drop."""
    point = detect_change_points(values)[0]

    assert point["index"] == 10
    assert point["change_type"] == expected_type
    if expected_type in ("increase", "decrease"):
        assert point["significance"] < 1.0
    else:
        assert point["significance"] == pytest.approx(1.0)


@pytest.mark.unit
def test_level_shift_is_a_single_change_point():
    points = detect_change_points([0.0] * 10 + [10.0] * 10)

    assert len(points) == 1
    assert points[0]["magnitude"] == pytest.approx(10.0)


@pytest.mark.unit
def test_non_finite_values_drop_with_their_timestamps():
    """Timestamps stay aligned with the remaining values after NaN is removed."""
    values = _flat_with(100.0)
    values.insert(3, float("nan"))
    timestamps = [f"t{i}" for i in range(len(values))]

    points = detect_change_points(values, timestamps)
    anomalies = detect_time_series_anomalies(values, timestamps)

    assert points[0]["index"] == 10
    assert points[0]["timestamp"] == "t11"
    assert anomalies[0]["timestamp"] == "t11"
    assert anomalies[0]["value"] == 100.0


@pytest.mark.unit
def test_anomaly_spike_detected():
    anomalies = detect_time_series_anomalies(_flat_with(100.0))

    assert len(anomalies) == 1
    anomaly = anomalies[0]
    assert anomaly["index"] == 10
    assert anomaly["value"] == 100.0
    assert anomaly["anomaly_type"] == "spike"
    assert anomaly["z_score"] > 3
    assert 0.75 < anomaly["severity"] <= 1.0


@pytest.mark.unit
def test_anomaly_drop_detected():
    anomalies = detect_time_series_anomalies(_flat_with(-80.0))

    assert len(anomalies) == 1
    assert anomalies[0]["anomaly_type"] == "drop"


@pytest.mark.unit
def test_no_anomalies_in_smooth_or_short_series():
    assert detect_time_series_anomalies(list(range(30))) == []
    assert detect_time_series_anomalies([1, 100]) == []
    assert detect_time_series_anomalies([7] * 12) == []


# =============================================================================
# Seasonality & growth
# =============================================================================

@pytest.mark.unit
def test_repeating_pattern_has_seasonality():
    result = detect_seasonality([1, 2, 3] * 6)

    assert result["has_seasonality"] is True
    assert result["period"] == 3
    assert result["score"] == pytest.approx(1.0)


@pytest.mark.unit
def test_steep_ramp_has_no_seasonality():
    result = detect_seasonality([i * 10 for i in range(20)])

    assert result["has_seasonality"] is False


@pytest.mark.unit
def test_seasonality_needs_twelve_observations():
    result = detect_seasonality([1, 2, 3] * 3)

    assert result == {"has_seasonality": False, "period": None, "score": 0.0}


@pytest.mark.unit
def test_trend_reports_seasonality_period():
    result = detect_trends([1, 2, 3] * 6)

    assert result["has_seasonality"] is True
    assert result["seasonality_period"] == 3


@pytest.mark.unit
def test_growth_rate():
    assert calculate_growth_rate([100, 110, 121]) == pytest.approx(21.0)
    assert calculate_growth_rate([200, 150]) == pytest.approx(-25.0)


@pytest.mark.unit
def test_growth_rate_undefined_cases():
    assert calculate_growth_rate([0, 5]) is None
    assert calculate_growth_rate([5]) is None
    assert calculate_growth_rate([1, 2, 3], periods=3) is None
