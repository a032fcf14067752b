# insight_generator.py — Template-based natural-language insights
# Turns statistical / trend / correlation results into Insight records
"""
insight_generator.py — Insight Synthesis

Every generator returns plain dicts shaped like the Insight TypedDict so
results can be sanitized and serialized to JSON without conversion.

Provides:
- generate_statistical_insights: variance, outliers, skewness
- generate_trend_insights: strong trends, volatility, change points, seasonality
- generate_anomaly_insight: time-series anomalies for one column
- generate_correlation_insights: strong / weak pairwise correlation
- generate_summary_insight: roll-up of everything generated
- filter_insights / sort_insights / group_by_severity: list view helpers
"""

from __future__ import annotations

from typing import Any, Literal, TypedDict


# =============================================================================
# TYPES & CONSTANTS
# =============================================================================

InsightType = Literal["statistical", "trend", "anomaly", "correlation", "pattern"]
Severity = Literal["info", "warning", "critical"]

INSIGHT_TYPES = ("statistical", "trend", "anomaly", "correlation", "pattern")
SEVERITY_ORDER = {"critical": 3, "warning": 2, "info": 1}

HIGH_VARIANCE_RATIO = 2.0
OUTLIER_WARNING_RATIO = 0.1
SKEWNESS_INSIGHT_THRESHOLD = 1.0
STRONG_TREND_THRESHOLD = 0.7
VOLATILITY_RATIO = 2.0
SIGNIFICANT_CHANGE_POINT = 0.7
ANOMALY_WARNING_SEVERITY = 0.8
STRONG_CORRELATION = 0.7
WEAK_CORRELATION = 0.3


class Insight(TypedDict, total=False):
    """A single human-readable finding about one or more dataset columns."""

    id: str
    type: InsightType
    title: str
    description: str
    severity: Severity
    confidence: float  # 0.0 - 1.0
    actionable: bool
    recommendation: str | None
    data: dict[str, Any]  # {metric, value, change, period}
    metadata: dict[str, Any] | None


def _make_insight(
    insight_id: str,
    insight_type: InsightType,
    title: str,
    description: str,
    severity: Severity,
    confidence: float,
    actionable: bool,
    data: dict[str, Any],
    recommendation: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> Insight:
    return Insight(
        id=insight_id,
        type=insight_type,
        title=title,
        description=description,
        severity=severity,
        confidence=float(confidence),
        actionable=actionable,
        recommendation=recommendation,
        data=data,
        metadata=metadata,
    )


# =============================================================================
# STATISTICAL INSIGHTS
# =============================================================================

def generate_statistical_insights(
    column: str,
    metrics: dict,
    distribution: dict,
) -> list[Insight]:
    """
    Generate insights from descriptive metrics and distribution analysis.

    Args:
        column: Column name
        metrics: Output of calculate_statistical_metrics()
        distribution: Output of analyze_distribution()
    """
    insights: list[Insight] = []

    variance = metrics.get("variance")
    mean = metrics.get("mean")
    if variance and mean and variance > mean * HIGH_VARIANCE_RATIO:
        insights.append(_make_insight(
            f"high-variance-{column}",
            "statistical",
            f"High Variability in {column}",
            f"The {column} column shows high variability (variance: {variance:.2f}), "
            f"indicating inconsistent data patterns.",
            "warning",
            0.8,
            True,
            {"metric": "variance", "value": variance},
            recommendation="Consider investigating the causes of high variability "
                           "or applying data normalization.",
        ))

    outliers = distribution.get("outliers") or []
    if outliers:
        count = metrics.get("count", 0)
        insights.append(_make_insight(
            f"outliers-{column}",
            "anomaly",
            f"{len(outliers)} Outliers Detected in {column}",
            f"Found {len(outliers)} outlier values that deviate significantly from the norm.",
            "warning" if len(outliers) > count * OUTLIER_WARNING_RATIO else "info",
            0.9,
            True,
            {"metric": "outliers", "value": len(outliers)},
            recommendation="Review outliers to determine if they are data errors "
                           "or legitimate extreme values.",
        ))

    skewness = metrics.get("skewness")
    if skewness is not None and abs(skewness) > SKEWNESS_INSIGHT_THRESHOLD:
        direction = "right" if skewness > 0 else "left"
        insights.append(_make_insight(
            f"skewness-{column}",
            "statistical",
            f"Skewed Distribution in {column}",
            f"The {column} data is {direction}-skewed (skewness: {skewness:.2f}), "
            f"indicating an asymmetric distribution.",
            "info",
            0.85,
            False,
            {"metric": "skewness", "value": skewness},
        ))

    return insights


# =============================================================================
# TREND INSIGHTS
# =============================================================================

def generate_trend_insights(column: str, trend: dict) -> list[Insight]:
    """
    Generate insights from detect_trends() output.

    Strong-trend insights are only produced for a directional trend
    ("increasing" / "decreasing"); volatility is reported separately.
    """
    insights: list[Insight] = []

    direction = trend.get("trend")
    strength = trend.get("trend_strength", 0.0)
    change_rate = trend.get("change_rate")
    volatility = trend.get("volatility", 0.0)

    if direction in ("increasing", "decreasing") and strength > STRONG_TREND_THRESHOLD:
        declining = direction == "decreasing"
        insights.append(_make_insight(
            f"trend-{column}",
            "trend",
            f"Strong {direction.capitalize()} Trend in {column}",
            f"{column} shows a strong {direction} trend with {strength * 100:.0f}% confidence.",
            "warning" if declining else "info",
            strength,
            True,
            {"metric": "trend", "change": change_rate or None},
            recommendation=(
                "Investigate the cause of the declining trend and consider corrective actions."
                if declining
                else "This positive trend may indicate successful initiatives or natural growth."
            ),
        ))

    if volatility > abs(change_rate or 0.0) * VOLATILITY_RATIO:
        insights.append(_make_insight(
            f"volatility-{column}",
            "trend",
            f"High Volatility in {column}",
            f"{column} exhibits high volatility, making it difficult to predict future values.",
            "warning",
            0.8,
            True,
            {"metric": "volatility", "value": volatility},
            recommendation="Consider smoothing techniques or investigate the causes of volatility.",
        ))

    significant = [
        cp for cp in trend.get("change_points") or []
        if cp.get("significance", 0) > SIGNIFICANT_CHANGE_POINT
    ]
    if significant:
        insights.append(_make_insight(
            f"change-points-{column}",
            "pattern",
            f"{len(significant)} Significant Change Points Detected",
            f"Found {len(significant)} significant change points in {column}, "
            f"indicating shifts in the data pattern.",
            "warning",
            0.85,
            True,
            {"metric": "change_points", "value": len(significant)},
            recommendation="Review the periods around change points to identify what caused the shifts.",
            metadata={"change_points": significant},
        ))

    period = trend.get("seasonality_period")
    if trend.get("has_seasonality") and period:
        insights.append(_make_insight(
            f"seasonality-{column}",
            "pattern",
            f"Seasonal Pattern Detected in {column}",
            f"{column} shows a seasonal pattern with a period of {period} time units.",
            "info",
            0.75,
            True,
            {"metric": "seasonality", "period": f"{period} periods"},
            recommendation="Use this seasonal pattern to improve forecasting accuracy.",
        ))

    return insights


# =============================================================================
# ANOMALY INSIGHTS
# =============================================================================

def generate_anomaly_insight(column: str, anomalies: list[dict]) -> Insight | None:
    """Summarize detect_time_series_anomalies() output as one insight."""
    if not anomalies:
        return None

    return _make_insight(
        f"anomalies-{column}",
        "anomaly",
        f"{len(anomalies)} Anomalies Detected in {column}",
        f"Found {len(anomalies)} anomalous values that deviate from expected patterns.",
        "warning" if any(a.get("severity", 0) > ANOMALY_WARNING_SEVERITY for a in anomalies) else "info",
        0.85,
        True,
        {"metric": "anomalies", "value": len(anomalies)},
        recommendation="Review anomalous values to determine if they are errors or legitimate outliers.",
        metadata={"anomalies": anomalies},
    )


# =============================================================================
# CORRELATION INSIGHTS
# =============================================================================

def generate_correlation_insights(
    column_a: str,
    column_b: str,
    correlation: float | None,
) -> list[Insight]:
    """
    Generate insights for one column pair.

    |r| > 0.7 yields a strong correlation insight, |r| < 0.3 a weak one;
    moderate correlations produce nothing.
    """
    if correlation is None or correlation != correlation:
        return []

    abs_r = abs(correlation)

    if abs_r > STRONG_CORRELATION:
        direction = "positive" if correlation > 0 else "negative"
        return [_make_insight(
            f"correlation-{column_a}-{column_b}",
            "correlation",
            f"Strong {direction.capitalize()} Correlation",
            f"{column_a} and {column_b} show a strong {direction} correlation ({correlation:.2f}).",
            "info",
            abs_r,
            True,
            {"metric": "correlation", "value": correlation},
            recommendation=(
                "These variables move together. Changes in one may predict changes in the other."
                if direction == "positive"
                else "These variables move in opposite directions. "
                     "Consider the inverse relationship in your analysis."
            ),
            metadata={"columns": [column_a, column_b]},
        )]

    if abs_r < WEAK_CORRELATION:
        return [_make_insight(
            f"no-correlation-{column_a}-{column_b}",
            "correlation",
            f"Weak Correlation Between {column_a} and {column_b}",
            f"{column_a} and {column_b} show little to no correlation ({correlation:.2f}).",
            "info",
            1 - abs_r,
            False,
            {"metric": "correlation", "value": correlation},
            metadata={"columns": [column_a, column_b]},
        )]

    return []


# =============================================================================
# SUMMARY
# =============================================================================

def generate_summary_insight(insights: list[Insight]) -> Insight | None:
    """Roll up a list of insights into a single summary record."""
    if not insights:
        return None

    critical_count = sum(1 for i in insights if i.get("severity") == "critical")
    warning_count = sum(1 for i in insights if i.get("severity") == "warning")
    info_count = len(insights) - critical_count - warning_count

    if critical_count:
        severity: Severity = "critical"
    elif warning_count:
        severity = "warning"
    else:
        severity = "info"

    return _make_insight(
        "summary",
        "statistical",
        f"Analysis Summary: {len(insights)} Insights Found",
        f"Found {len(insights)} insights including {critical_count} critical, "
        f"{warning_count} warnings, and {info_count} informational insights.",
        severity,
        0.9,
        True,
        {"metric": "total_insights", "value": len(insights)},
        recommendation="Review all insights to understand your data better and identify actionable items.",
    )


# =============================================================================
# INSIGHT FILTERING & SORTING
# =============================================================================

def filter_insights(
    insights: list[Insight],
    insight_type: str | None = None,
    severity: str | None = None,
    search: str | None = None,
    actionable_only: bool = False,
) -> list[Insight]:
    """
    Filter insights by type, severity, free-text search and actionability.

    Search is case-insensitive over title, description and recommendation.
    """
    term = search.strip().lower() if search else ""
    result = []

    for insight in insights:
        if insight_type and insight.get("type") != insight_type:
            continue
        if severity and insight.get("severity") != severity:
            continue
        if actionable_only and not insight.get("actionable"):
            continue
        if term:
            haystack = " ".join(
                str(insight.get(field) or "")
                for field in ("title", "description", "recommendation")
            ).lower()
            if term not in haystack:
                continue
        result.append(insight)

    return result


def sort_insights(
    insights: list[Insight],
    sort_by: str = "severity",
    sort_order: str = "desc",
) -> list[Insight]:
    """
    Sort insights by "severity", "confidence" or "type".

    Python's stable sort keeps generation order among ties.
    """
    key_funcs = {
        "severity": lambda i: SEVERITY_ORDER.get(i.get("severity"), 0),
        "confidence": lambda i: i.get("confidence", 0.0),
        "type": lambda i: i.get("type", ""),
    }
    if sort_by not in key_funcs:
        raise ValueError(f"Unsupported sort key: {sort_by}. Allowed: {', '.join(key_funcs)}")

    return sorted(insights, key=key_funcs[sort_by], reverse=(sort_order == "desc"))


def group_by_severity(insights: list[Insight]) -> dict[str, list[Insight]]:
    """Group insights as {"critical": [...], "warning": [...], "info": [...]}."""
    groups: dict[str, list[Insight]] = {"critical": [], "warning": [], "info": []}
    for insight in insights:
        groups.setdefault(insight.get("severity", "info"), []).append(insight)
    return groups
