# trend_detection.py — Trend, change point, seasonality and anomaly detection
# Operates on ordered numeric sequences (index = time)
"""
trend_detection.py — Sequential Pattern Detection

Implements:
- Trend classification from first differences (rate vs volatility)
- OLS slope over the index
- Change point detection (rolling z-score of steps)
- Simplified seasonality scoring
- Growth rate
- Rolling z-score anomaly detection

Values are treated as already ordered; timestamps, when given, are only
carried through to the output records. NaN / inf are dropped first, so
returned indices refer to the finite values.
"""

from __future__ import annotations

import math
from typing import Any, Sequence

import numpy as np
from scipy import stats


# =============================================================================
# CONSTANTS
# =============================================================================

STABLE_RATE_RATIO = 0.1  # |rate| below 10% of volatility reads as flat
VOLATILE_RATIO = 2.0  # volatility above 2x |rate| reads as volatile
STABLE_TREND_STRENGTH = 0.1
MAX_ROLLING_HALF_WINDOW = 5
CHANGE_POINT_Z_THRESHOLD = 2.0
CHANGE_POINT_EXTREME_Z = 3.0
ANOMALY_Z_THRESHOLD = 2.0
ANOMALY_SEVERITY_SCALE = 4.0
MIN_SEASONALITY_OBSERVATIONS = 12
SEASONALITY_PERIODS = (3, 4, 6, 7, 12)
SEASONALITY_SCORE_THRESHOLD = 0.6
MIN_REGRESSION_POINTS = 3


# =============================================================================
# HELPERS
# =============================================================================

def _as_array(values: Sequence[float] | np.ndarray) -> np.ndarray:
    """1-D float array with NaN/inf removed."""
    arr = np.asarray(values, dtype=float).ravel()
    return arr[np.isfinite(arr)]


def _finite_series(
    values: Sequence[float] | np.ndarray,
    timestamps: Sequence[Any] | None,
) -> tuple[np.ndarray, Sequence[Any] | None]:
    """Drop non-finite values together with their timestamps."""
    arr = np.asarray(values, dtype=float).ravel()
    mask = np.isfinite(arr)
    if timestamps is not None and len(timestamps) == arr.size and not mask.all():
        timestamps = [ts for ts, keep in zip(timestamps, mask) if keep]
    return arr[mask], timestamps


def _timestamp_at(timestamps: Sequence[Any] | None, index: int) -> Any:
    if timestamps is None or index >= len(timestamps):
        return None
    return timestamps[index]


def _rolling_window_stats(arr: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Centred rolling mean and population std.

    Window half-width is min(5, n // 3); windows are truncated at the edges.
    """
    half_window = min(MAX_ROLLING_HALF_WINDOW, arr.size // 3)
    means = np.empty(arr.size)
    std_devs = np.empty(arr.size)

    for i in range(arr.size):
        window = arr[max(0, i - half_window):i + half_window + 1]
        means[i] = window.mean()
        std_devs[i] = 0.0 if np.ptp(window) == 0 else window.std()

    return means, std_devs


def _compute_regression(arr: np.ndarray) -> dict:
    """
    OLS regression of values against their index.

    Returns:
        {slope, intercept, r_squared, p_value, slope_pct}
    """
    result = {
        "slope": None,
        "intercept": None,
        "r_squared": None,
        "p_value": None,
        "slope_pct": None,
    }
    if arr.size < MIN_REGRESSION_POINTS or np.ptp(arr) == 0:
        if arr.size >= MIN_REGRESSION_POINTS:
            result.update(slope=0.0, intercept=float(arr[0]), r_squared=0.0, p_value=1.0, slope_pct=0.0)
        return result

    try:
        fit = stats.linregress(np.arange(arr.size, dtype=float), arr)
    except ValueError:
        return result

    y_mean = float(arr.mean())
    slope_pct = (fit.slope / y_mean) * 100 if y_mean != 0 else 0.0
    p_value = float(fit.pvalue) if math.isfinite(fit.pvalue) else None

    result.update(
        slope=float(fit.slope),
        intercept=float(fit.intercept),
        r_squared=float(fit.rvalue ** 2),
        p_value=p_value,
        slope_pct=float(slope_pct),
    )
    return result


# =============================================================================
# TREND DETECTION
# =============================================================================

def _classify_trend(change_rate: float, volatility: float) -> tuple[str, float]:
    """
    Classify trend direction and strength from average step and step spread.

    Returns:
        (trend, trend_strength)
    """
    abs_rate = abs(change_rate)

    if volatility == 0 and abs_rate == 0:
        return "stable", STABLE_TREND_STRENGTH

    if abs_rate < volatility * STABLE_RATE_RATIO:
        trend, strength = "stable", STABLE_TREND_STRENGTH
    else:
        trend = "increasing" if change_rate > 0 else "decreasing"
        strength = 1.0 if volatility == 0 else min(1.0, abs_rate / volatility)

    if volatility > abs_rate * VOLATILE_RATIO:
        trend = "volatile"
        strength = min(1.0, volatility / (abs_rate or 1.0))

    return trend, strength


def detect_trends(
    values: Sequence[float] | np.ndarray,
    timestamps: Sequence[Any] | None = None,
) -> dict:
    """
    Analyze the trend of an ordered numeric sequence.

    Args:
        values: Ordered values (index = period)
        timestamps: Optional labels aligned with values

    Returns:
        dict:
        {
            trend: "increasing" | "decreasing" | "stable" | "volatile" | "unknown",
            trend_strength: float (0-1),
            change_rate: float | None,   # mean change per period
            volatility: float,           # std of period changes
            regression: {slope, intercept, r_squared, p_value, slope_pct},
            has_seasonality: bool,
            seasonality_period: int | None,
            change_points: list[dict],
            forecast: {next_value, confidence} | None
        }
    """
    arr, timestamps = _finite_series(values, timestamps)

    if arr.size < 2:
        return {
            "trend": "unknown",
            "trend_strength": 0.0,
            "change_rate": None,
            "volatility": 0.0,
            "regression": _compute_regression(arr),
            "has_seasonality": False,
            "seasonality_period": None,
            "change_points": [],
            "forecast": None,
        }

    changes = np.diff(arr)
    change_rate = float(changes.mean())
    volatility = float(changes.std())

    trend, trend_strength = _classify_trend(change_rate, volatility)
    seasonality = detect_seasonality(arr)

    return {
        "trend": trend,
        "trend_strength": float(trend_strength),
        "change_rate": change_rate,
        "volatility": volatility,
        "regression": _compute_regression(arr),
        "has_seasonality": seasonality["has_seasonality"],
        "seasonality_period": seasonality["period"],
        "change_points": detect_change_points(arr, timestamps),
        "forecast": {
            "next_value": float(arr[-1] + change_rate),
            "confidence": max(0.0, 1 - volatility / (abs(change_rate) or 1.0)),
        },
    }


# =============================================================================
# CHANGE POINTS
# =============================================================================

def detect_change_points(
    values: Sequence[float] | np.ndarray,
    timestamps: Sequence[Any] | None = None,
) -> list[dict]:
    """
    Find interior points whose step from the previous value is unusually large.

    A step larger than 2 rolling std devs is a change point; beyond 3 it is
    classed as a spike (up) or drop (down).

    Returns:
        list[{index, timestamp, value, change_type, magnitude, significance}]
    """
    arr, timestamps = _finite_series(values, timestamps)
    if arr.size < 3:
        return []

    _, std_devs = _rolling_window_stats(arr)
    change_points = []

    for i in range(1, arr.size - 1):
        std_dev = std_devs[i]
        if std_dev == 0:
            continue

        change = float(arr[i] - arr[i - 1])
        z_score = abs(change) / std_dev

        if z_score <= CHANGE_POINT_Z_THRESHOLD:
            continue

        if change < 0:
            change_type = "drop" if abs(change) > std_dev * CHANGE_POINT_EXTREME_Z else "decrease"
        else:
            change_type = "spike" if change > std_dev * CHANGE_POINT_EXTREME_Z else "increase"

        change_points.append({
            "index": i,
            "timestamp": _timestamp_at(timestamps, i),
            "value": float(arr[i]),
            "change_type": change_type,
            "magnitude": abs(change),
            "significance": min(1.0, z_score / CHANGE_POINT_EXTREME_Z),
        })

    return change_points


# =============================================================================
# SEASONALITY
# =============================================================================

def detect_seasonality(values: Sequence[float] | np.ndarray) -> dict:
    """
    Score candidate periods by similarity of values one period apart.

    Returns:
        {has_seasonality: bool, period: int | None, score: float}
    """
    arr = _as_array(values)
    if arr.size < MIN_SEASONALITY_OBSERVATIONS:
        return {"has_seasonality": False, "period": None, "score": 0.0}

    best_period = 0
    best_score = 0.0

    for period in SEASONALITY_PERIODS:
        if arr.size < period * 2:
            continue
        diffs = np.abs(arr[:-period] - arr[period:])
        score = float(np.mean(1.0 / (1.0 + diffs)))
        if score > best_score:
            best_score = score
            best_period = period

    return {
        "has_seasonality": best_score > SEASONALITY_SCORE_THRESHOLD and best_period > 0,
        "period": best_period if best_period > 0 else None,
        "score": best_score,
    }


# =============================================================================
# GROWTH RATE
# =============================================================================

def calculate_growth_rate(
    values: Sequence[float] | np.ndarray,
    periods: int = 1,
) -> float | None:
    """
    Percentage change from the first to the last value.

    Returns:
        Growth in percent, or None with fewer than periods + 1 values or a
        zero starting value
    """
    arr = _as_array(values)
    if arr.size < periods + 1:
        return None

    start_value = float(arr[0])
    end_value = float(arr[-1])
    if start_value == 0:
        return None

    return ((end_value - start_value) / start_value) * 100


# =============================================================================
# TIME-SERIES ANOMALIES
# =============================================================================

def detect_time_series_anomalies(
    values: Sequence[float] | np.ndarray,
    timestamps: Sequence[Any] | None = None,
) -> list[dict]:
    """
    Flag points that sit more than 2 rolling std devs from their window mean.

    Returns:
        list[{index, timestamp, value, anomaly_type, z_score, severity}]
        with anomaly_type "spike" (above mean) or "drop" (below)
    """
    arr, timestamps = _finite_series(values, timestamps)
    if arr.size < 3:
        return []

    means, std_devs = _rolling_window_stats(arr)
    anomalies = []

    for i, value in enumerate(arr):
        std_dev = std_devs[i]
        if std_dev == 0:
            continue

        z_score = abs(value - means[i]) / std_dev
        if z_score <= ANOMALY_Z_THRESHOLD:
            continue

        anomalies.append({
            "index": i,
            "timestamp": _timestamp_at(timestamps, i),
            "value": float(value),
            "anomaly_type": "spike" if value > means[i] else "drop",
            "z_score": round(float(z_score), 4),
            "severity": min(1.0, float(z_score) / ANOMALY_SEVERITY_SCALE),
        })

    return anomalies
