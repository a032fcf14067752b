# statistical_analysis.py — Descriptive statistics for a single dataset column
# Metrics, distribution shape, outliers, Pearson correlation
"""
statistical_analysis.py — Column Statistics Engine

Implements:
- Descriptive metrics (mean, variance, quartiles, skewness, kurtosis)
- Distribution analysis (quantiles, Tukey outliers, normality, shape)
- Pearson correlation between two equal-length columns

Every function is pure and accepts any sequence of numbers. Non-finite
values are discarded before computation; degenerate input yields None
fields rather than exceptions.
"""

from __future__ import annotations

import math
from typing import Any, Sequence

import numpy as np
from scipy import stats


# =============================================================================
# CONSTANTS
# =============================================================================

SKEWNESS_THRESHOLD = 1.0  # |skew| > 1 is notably skewed
KURTOSIS_THRESHOLD = 1.0
IQR_MULTIPLIER = 1.5
MIN_OBSERVATIONS_SKEWNESS = 3
MIN_OBSERVATIONS_KURTOSIS = 4
MIN_OBSERVATIONS_NORMALITY = 30
MAX_OBSERVATIONS_SHAPIRO = 5000
NORMALITY_ALPHA = 0.05
DEFAULT_HISTOGRAM_BINS = 10

CORRELATION_STRONG_THRESHOLD = 0.7
CORRELATION_MODERATE_THRESHOLD = 0.5
CORRELATION_WEAK_THRESHOLD = 0.3

METRIC_FIELDS = (
    "sum", "mean", "median", "mode", "variance", "std_dev", "min", "max",
    "range", "q1", "q3", "iqr", "skewness", "kurtosis",
    "coefficient_of_variation",
)


# =============================================================================
# HELPERS
# =============================================================================

def _as_finite_array(values: Sequence[float] | np.ndarray | None) -> np.ndarray:
    """Convert input to a 1-D float array with NaN/inf removed."""
    if values is None:
        return np.array([], dtype=float)
    arr = np.asarray(values, dtype=float).ravel()
    return arr[np.isfinite(arr)]


def _finite_or_none(value: float | None) -> float | None:
    if value is None:
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def _compute_mode(arr: np.ndarray) -> float | None:
    """Smallest most-frequent value, or None when all values are unique."""
    if arr.size == 0:
        return None
    unique, counts = np.unique(arr, return_counts=True)
    if arr.size > 1 and counts.max() == 1:
        return None
    return float(unique[np.argmax(counts)])


def _interpret_skewness(skew: float | None) -> str | None:
    """Interpret skewness value."""
    if skew is None:
        return None
    if abs(skew) <= SKEWNESS_THRESHOLD:
        return "symmetric"
    elif skew > SKEWNESS_THRESHOLD:
        return "right-skewed"
    else:
        return "left-skewed"


def _interpret_kurtosis(kurt: float | None) -> str | None:
    """Interpret kurtosis value."""
    if kurt is None:
        return None
    if kurt > KURTOSIS_THRESHOLD:
        return "heavy-tailed"
    elif kurt < -KURTOSIS_THRESHOLD:
        return "light-tailed"
    return "normal-tailed"


def _classify_distribution(
    skewness: float | None,
    kurtosis: float | None,
    is_normal: bool | None,
) -> str:
    """Classify distribution type based on shape statistics."""
    if is_normal:
        return "normal"

    if skewness is None:
        return "unknown"
    kurt = kurtosis if kurtosis is not None else 0.0

    if abs(skewness) <= 0.5 and abs(kurt) <= 1:
        return "normal"
    elif skewness > 1:
        return "right-skewed"
    elif skewness < -1:
        return "left-skewed"
    elif kurt > 3:
        return "heavy-tailed"
    elif abs(skewness) <= 0.5:
        return "symmetric"
    else:
        return "skewed"


def interpret_correlation(r: float) -> str:
    """Interpret correlation coefficient strength, e.g. "strong_positive"."""
    abs_r = abs(r)

    if abs_r >= CORRELATION_STRONG_THRESHOLD:
        prefix = "strong"
    elif abs_r >= CORRELATION_MODERATE_THRESHOLD:
        prefix = "moderate"
    elif abs_r >= CORRELATION_WEAK_THRESHOLD:
        prefix = "weak"
    else:
        return "none"

    suffix = "positive" if r > 0 else "negative"
    return f"{prefix}_{suffix}"


# =============================================================================
# DESCRIPTIVE METRICS
# =============================================================================

def calculate_statistical_metrics(values: Sequence[float] | np.ndarray) -> dict:
    """
    Compute descriptive statistics for a numeric column.

    Args:
        values: Numeric values (NaN / inf are ignored)

    Returns:
        dict:
        {
            count: int,
            sum, mean, median, mode, variance, std_dev, min, max, range,
            q1, q3, iqr, skewness, kurtosis, coefficient_of_variation: float | None,
            skew_interpretation: str | None,
            kurtosis_interpretation: str | None
        }

        Variance and std_dev are population statistics. Kurtosis uses
        Fisher's definition (normal = 0).
    """
    arr = _as_finite_array(values)
    count = int(arr.size)

    if count == 0:
        metrics: dict[str, Any] = {"count": 0}
        metrics.update({field: None for field in METRIC_FIELDS})
        metrics["skew_interpretation"] = None
        metrics["kurtosis_interpretation"] = None
        return metrics

    mean_val = float(arr.mean())
    # Constant float columns leave rounding noise in var(); range is exact
    variance_val = 0.0 if np.ptp(arr) == 0 else float(arr.var())
    std_val = math.sqrt(variance_val)
    min_val = float(arr.min())
    max_val = float(arr.max())
    q1, median_val, q3 = (float(q) for q in np.percentile(arr, [25, 50, 75]))

    skewness_val = None
    kurtosis_val = None
    if std_val > 0:
        if count >= MIN_OBSERVATIONS_SKEWNESS:
            skewness_val = _finite_or_none(stats.skew(arr))
        if count >= MIN_OBSERVATIONS_KURTOSIS:
            kurtosis_val = _finite_or_none(stats.kurtosis(arr))

    cv = (std_val / abs(mean_val)) * 100 if mean_val != 0 else None

    return {
        "count": count,
        "sum": float(arr.sum()),
        "mean": mean_val,
        "median": median_val,
        "mode": _compute_mode(arr),
        "variance": variance_val,
        "std_dev": std_val,
        "min": min_val,
        "max": max_val,
        "range": max_val - min_val,
        "q1": q1,
        "q3": q3,
        "iqr": q3 - q1,
        "skewness": skewness_val,
        "kurtosis": kurtosis_val,
        "coefficient_of_variation": cv,
        "skew_interpretation": _interpret_skewness(skewness_val),
        "kurtosis_interpretation": _interpret_kurtosis(kurtosis_val),
    }


# =============================================================================
# DISTRIBUTION ANALYSIS
# =============================================================================

def _empty_distribution(distribution_type: str) -> dict:
    return {
        "distribution_type": distribution_type,
        "shape": {"skew": None, "tail": None},
        "quantiles": None,
        "lower_fence": None,
        "upper_fence": None,
        "outliers": [],
        "outlier_pct": 0.0,
        "histogram": {"bin_edges": [], "counts": []},
        "is_normal": None,
        "normality_p_value": None,
    }


def _normality_test(arr: np.ndarray, std_val: float) -> tuple[bool | None, float | None]:
    """
    Shapiro-Wilk for moderate samples, D'Agostino-Pearson for larger ones.

    Returns:
        (is_normal, p_value), both None when the sample is too small
    """
    if arr.size < MIN_OBSERVATIONS_NORMALITY or std_val == 0:
        return None, None

    try:
        if arr.size <= MAX_OBSERVATIONS_SHAPIRO:
            _, p_value = stats.shapiro(arr)
        else:
            _, p_value = stats.normaltest(arr)
    except ValueError:
        return None, None

    p_value = _finite_or_none(p_value)
    if p_value is None:
        return False, None
    return p_value > NORMALITY_ALPHA, p_value


def analyze_distribution(
    values: Sequence[float] | np.ndarray,
    metrics: dict | None = None,
) -> dict:
    """
    Describe the shape of a numeric column and flag outliers.

    Outliers use Tukey fences (q1 - 1.5*IQR, q3 + 1.5*IQR). Indices refer to
    positions in the finite-filtered input.

    Args:
        values: Numeric values
        metrics: Output of calculate_statistical_metrics() for the same values,
            computed here when omitted

    Returns:
        dict:
        {
            distribution_type: str,
            shape: {skew, tail},
            quantiles: {p5, p25, p50, p75, p95} | None,
            lower_fence, upper_fence: float | None,
            outliers: list[{index, value, direction, z_score}],
            outlier_pct: float,
            histogram: {bin_edges, counts},
            is_normal: bool | None,
            normality_p_value: float | None
        }
    """
    arr = _as_finite_array(values)
    if arr.size == 0:
        return _empty_distribution("unknown")

    if metrics is None or metrics.get("count") != arr.size:
        metrics = calculate_statistical_metrics(arr)

    mean_val = metrics["mean"]
    std_val = 0.0 if np.ptp(arr) == 0 else metrics["std_dev"]
    q1 = metrics["q1"]
    q3 = metrics["q3"]
    iqr = metrics["iqr"]

    lower_fence = q1 - IQR_MULTIPLIER * iqr
    upper_fence = q3 + IQR_MULTIPLIER * iqr

    outliers = []
    for idx, value in enumerate(arr):
        if value < lower_fence or value > upper_fence:
            z_score = (value - mean_val) / std_val if std_val else None
            outliers.append({
                "index": idx,
                "value": float(value),
                "direction": "high" if value > upper_fence else "low",
                "z_score": round(float(z_score), 4) if z_score is not None else None,
            })

    p5, p25, p50, p75, p95 = (float(q) for q in np.percentile(arr, [5, 25, 50, 75, 95]))

    n_bins = max(1, min(DEFAULT_HISTOGRAM_BINS, int(np.unique(arr).size)))
    counts, bin_edges = np.histogram(arr, bins=n_bins)

    is_normal, p_value = _normality_test(arr, std_val)

    if std_val == 0:
        distribution_type = "constant"
    elif arr.size < MIN_OBSERVATIONS_SKEWNESS:
        distribution_type = "insufficient_data"
    else:
        distribution_type = _classify_distribution(
            metrics.get("skewness"), metrics.get("kurtosis"), is_normal
        )

    return {
        "distribution_type": distribution_type,
        "shape": {
            "skew": metrics.get("skew_interpretation"),
            "tail": metrics.get("kurtosis_interpretation"),
        },
        "quantiles": {
            "p5": p5,
            "p25": p25,
            "p50": p50,
            "p75": p75,
            "p95": p95,
        },
        "lower_fence": float(lower_fence),
        "upper_fence": float(upper_fence),
        "outliers": outliers,
        "outlier_pct": round(len(outliers) / arr.size * 100, 2),
        "histogram": {
            "bin_edges": [float(edge) for edge in bin_edges],
            "counts": [int(c) for c in counts],
        },
        "is_normal": is_normal,
        "normality_p_value": p_value,
    }


# =============================================================================
# CORRELATION
# =============================================================================

def calculate_correlation(
    x: Sequence[float] | np.ndarray,
    y: Sequence[float] | np.ndarray,
) -> float | None:
    """
    Pearson correlation coefficient between two equal-length columns.

    Returns:
        r in [-1, 1], or None when lengths differ, fewer than 2 pairs exist,
        any value is non-finite, or either column is constant
    """
    x_arr = np.asarray(x, dtype=float).ravel()
    y_arr = np.asarray(y, dtype=float).ravel()

    if x_arr.size != y_arr.size or x_arr.size < 2:
        return None
    if not (np.isfinite(x_arr).all() and np.isfinite(y_arr).all()):
        return None
    if np.ptp(x_arr) == 0 or np.ptp(y_arr) == 0:
        return None

    x_dev = x_arr - x_arr.mean()
    y_dev = y_arr - y_arr.mean()
    denominator = math.sqrt(float((x_dev ** 2).sum()) * float((y_dev ** 2).sum()))

    if denominator == 0:
        return None

    r = float((x_dev * y_dev).sum()) / denominator
    return max(-1.0, min(1.0, r))


def correlation_test(
    x: Sequence[float] | np.ndarray,
    y: Sequence[float] | np.ndarray,
) -> dict | None:
    """
    Pearson correlation with significance and strength label.

    Returns:
        {correlation, p_value, sample_size, strength} or None
    """
    r = calculate_correlation(x, y)
    if r is None:
        return None

    sample_size = len(x)
    p_value = None
    if sample_size >= 3:
        try:
            _, p_value = stats.pearsonr(np.asarray(x, dtype=float), np.asarray(y, dtype=float))
            p_value = _finite_or_none(p_value)
        except ValueError:
            p_value = None

    return {
        "correlation": r,
        "p_value": p_value,
        "sample_size": sample_size,
        "strength": interpret_correlation(r),
    }
