# nodes.py — Pipeline steps (individual graph node functions)
# Steps: load → resolve columns → statistics → trends → anomalies → correlations → synthesize
"""
nodes.py — LangGraph Insight Nodes

Each node is a function that takes InsightState and returns state updates.

Node Responsibilities:
- load_dataset_node: Build a DataFrame from JSON rows or CSV bytes
- resolve_columns_node: Validate requested columns or infer numeric ones
- analyze_statistics_node: Descriptive metrics + distribution per column
- analyze_trends_node: Trend detection per column (optional)
- detect_anomalies_node: Time-series anomaly detection per column (optional)
- analyze_correlations_node: Pairwise Pearson correlation (optional)
- synthesize_insights_node: Turn results into Insight records + response
- handle_error_node: Build the error payload

Nodes never raise; failures are reported through the error fields so the
graph can route to handle_error.
"""

from __future__ import annotations

from datetime import datetime, timezone
from itertools import combinations

from loguru import logger

from tools.data_loader import (
    extract_numeric_column,
    extract_numeric_pairs,
    infer_numeric_columns,
    rows_to_dataframe,
    safe_load_csv,
)
from tools.insight_generator import (
    generate_anomaly_insight,
    generate_correlation_insights,
    generate_statistical_insights,
    generate_summary_insight,
    generate_trend_insights,
)
from tools.statistical_analysis import (
    analyze_distribution,
    calculate_statistical_metrics,
    correlation_test,
)
from tools.trend_detection import detect_time_series_anomalies, detect_trends
from tools.validators import (
    sanitize_column_names,
    sanitize_dict_for_json,
    validate_dataframe,
    validate_file_extension,
)


# =============================================================================
# PROGRESS HELPERS
# =============================================================================

def _emit_progress(
    state: dict,
    node: str,
    progress: float,
    message: str,
    status: str = "running",
) -> None:
    """
    Emit a progress update via the callback if available.

    Args:
        state: Current pipeline state
        node: Current node name
        progress: Progress value (0.0 - 1.0)
        message: Human-readable progress message
        status: "running" | "complete" | "skipped" | "failed"
    """
    logger.debug(f"[{node}] {progress:.0%} {message}")
    callback = state.get("progress_callback")
    if callback and callable(callback):
        try:
            callback({
                "node": node,
                "status": status,
                "progress": progress,
                "message": message,
            })
        except Exception as e:
            logger.warning(f"Progress callback failed in {node}: {e}")


def _create_error_state(
    state: dict,
    node: str,
    error_msg: str,
    error_type: str,
    recovery_hint: str,
) -> dict:
    """
    Create state update for error routing.
    """
    logger.error(f"[{node}] {error_type}: {error_msg}")
    return {
        "error": error_msg,
        "error_type": error_type,
        "failed_node": node,
        "recovery_hint": recovery_hint,
        "current_node": node,
        "partial_results": _has_partial_results(state),
    }


def _has_partial_results(state: dict) -> bool:
    """Check if state has any usable partial results."""
    return bool(state.get("column_analyses"))


def _copy_analyses(state: dict) -> list[dict]:
    """Shallow-copy per-column analyses so nodes never mutate prior state."""
    return [dict(analysis) for analysis in state.get("column_analyses") or []]


# =============================================================================
# NODE: LOAD DATASET
# =============================================================================

def load_dataset_node(state: dict) -> dict:
    """
    Build the working DataFrame.

    Input state:
        - rows: list[dict] (preferred) or raw_file + filename
        - max_rows: int

    Output state updates:
        - dataframe, row_count, col_count, warnings

    On error:
        - error, error_type, failed_node, recovery_hint
    """
    node_name = "load_dataset"
    _emit_progress(state, node_name, 0.02, "Loading dataset...")

    rows = state.get("rows")
    raw_file = state.get("raw_file")
    max_rows = state.get("max_rows") or 0
    warnings = list(state.get("warnings", []))

    if rows is not None:
        df, load_error = rows_to_dataframe(rows)
        recovery_hint = "Send rows as a list of objects mapping column names to values."
    elif raw_file is not None:
        filename = state.get("filename") or "unknown.csv"
        is_valid_ext, ext_error = validate_file_extension(filename)
        if not is_valid_ext:
            return _create_error_state(
                state, node_name,
                ext_error,
                "DATA_INVALID",
                "Please upload a valid CSV file.",
            )
        # One extra row tells us whether the cap truncated anything
        df, load_error = safe_load_csv(raw_file, filename, max_rows=max_rows + 1 if max_rows else None)
        recovery_hint = "Check that your file is a valid CSV with UTF-8 or Latin-1 encoding."
    else:
        return _create_error_state(
            state, node_name,
            "No dataset provided",
            "DATA_MISSING",
            "Provide dataset rows or upload a CSV file.",
        )

    if load_error:
        return _create_error_state(state, node_name, load_error, "DATA_INVALID", recovery_hint)

    is_valid_df, df_error = validate_dataframe(df)
    if not is_valid_df:
        return _create_error_state(
            state, node_name,
            df_error,
            "DATA_EMPTY",
            "The dataset appears to be empty. Please check the source data.",
        )

    if max_rows and len(df) > max_rows:
        warnings.append(f"Dataset truncated to the first {max_rows:,} rows")
        df = df.head(max_rows)

    _emit_progress(state, node_name, 0.10, "Dataset loaded", "complete")
    logger.info(f"Loaded dataset {state.get('dataset_id') or state.get('filename') or ''}: {len(df):,} rows x {len(df.columns)} columns")

    return {
        "dataframe": df,
        "row_count": len(df),
        "col_count": len(df.columns),
        "warnings": warnings,
        "current_node": node_name,
        "progress": 0.10,
        "progress_message": f"Loaded {len(df):,} rows × {len(df.columns)} columns",
    }


# =============================================================================
# NODE: RESOLVE COLUMNS
# =============================================================================

def resolve_columns_node(state: dict) -> dict:
    """
    Decide which columns to analyze.

    Requested columns missing from the dataset are dropped with a warning.
    With no request, columns that are predominantly numeric are used.

    Output state updates:
        - columns_analyzed: list[str]
        - column_source: "user" | "inferred"
    """
    node_name = "resolve_columns"
    _emit_progress(state, node_name, 0.12, "Selecting columns...")

    df = state.get("dataframe")
    if df is None:
        return _create_error_state(
            state, node_name,
            "No dataset available for column selection",
            "DATA_MISSING",
            "Please re-run the analysis.",
        )

    warnings = list(state.get("warnings", []))
    requested = sanitize_column_names(state.get("column_names"))

    if requested:
        available = set(df.columns)
        columns = [col for col in requested if col in available]
        missing = [col for col in requested if col not in available]
        if missing:
            warnings.append(f"Columns not found in dataset: {', '.join(missing)}")
        if not columns:
            return _create_error_state(
                state, node_name,
                "None of the requested columns exist in the dataset",
                "DATA_INVALID",
                f"Choose from: {', '.join(map(str, list(df.columns)[:10]))}",
            )
        source = "user"
    else:
        columns = infer_numeric_columns(df)
        if not columns:
            return _create_error_state(
                state, node_name,
                "No numeric columns found in the dataset",
                "DATA_INVALID",
                "Insights need at least one numeric column. Specify column names explicitly.",
            )
        source = "inferred"

    _emit_progress(state, node_name, 0.15, f"Analyzing {len(columns)} columns", "complete")

    return {
        "columns_analyzed": columns,
        "column_source": source,
        "warnings": warnings,
        "current_node": node_name,
        "progress": 0.15,
        "progress_message": f"Selected {len(columns)} columns ({source})",
    }


# =============================================================================
# NODE: ANALYZE STATISTICS
# =============================================================================

def analyze_statistics_node(state: dict) -> dict:
    """
    Compute descriptive metrics and distribution for every selected column.

    Columns without numeric values are skipped with a warning.

    Output state updates:
        - column_analyses: list[{column, values, value_count, metrics, distribution}]
        - columns_analyzed: list[str] (only columns with data)
    """
    node_name = "analyze_statistics"
    _emit_progress(state, node_name, 0.20, "Computing statistics...")

    df = state.get("dataframe")
    columns = state.get("columns_analyzed") or []

    if df is None or not columns:
        return _create_error_state(
            state, node_name,
            "Data or column selection not available for analysis",
            "DATA_MISSING",
            "Please re-run the analysis from the beginning.",
        )

    warnings = list(state.get("warnings", []))
    analyses = []

    for i, column in enumerate(columns):
        _emit_progress(state, node_name, 0.20 + 0.20 * i / len(columns), f"Analyzing {column}...")
        values = extract_numeric_column(df, column)

        if not values:
            warnings.append(f"Column '{column}' has no numeric values and was skipped")
            continue

        try:
            metrics = calculate_statistical_metrics(values)
            distribution = analyze_distribution(values, metrics)
        except (ValueError, TypeError) as e:
            logger.exception(f"Statistics failed for column {column}")
            warnings.append(f"Statistics incomplete for '{column}': {str(e)}")
            continue

        analyses.append({
            "column": column,
            "values": values,
            "value_count": len(values),
            "metrics": metrics,
            "distribution": distribution,
            "trend": None,
            "anomalies": None,
        })

    if not analyses:
        return _create_error_state(
            state, node_name,
            "None of the selected columns contain numeric values",
            "DATA_EMPTY",
            "Select columns with numeric data (numbers or numeric text).",
        )

    _emit_progress(state, node_name, 0.40, "Statistics complete", "complete")

    return {
        "column_analyses": analyses,
        "columns_analyzed": [a["column"] for a in analyses],
        "warnings": warnings,
        "current_node": node_name,
        "progress": 0.40,
        "progress_message": f"Computed statistics for {len(analyses)} columns",
    }


# =============================================================================
# NODE: ANALYZE TRENDS
# =============================================================================

def analyze_trends_node(state: dict) -> dict:
    """Detect trends per column when options.analyze_trends is set."""
    node_name = "analyze_trends"

    if not state.get("options", {}).get("analyze_trends"):
        _emit_progress(state, node_name, 0.55, "Trend analysis disabled", "skipped")
        return {"current_node": node_name, "progress": 0.55}

    _emit_progress(state, node_name, 0.45, "Detecting trends...")

    warnings = list(state.get("warnings", []))
    analyses = _copy_analyses(state)

    for analysis in analyses:
        try:
            analysis["trend"] = detect_trends(analysis["values"])
        except (ValueError, TypeError) as e:
            logger.exception(f"Trend detection failed for column {analysis['column']}")
            warnings.append(f"Trend analysis incomplete for '{analysis['column']}': {str(e)}")

    _emit_progress(state, node_name, 0.55, "Trends detected", "complete")

    return {
        "column_analyses": analyses,
        "warnings": warnings,
        "current_node": node_name,
        "progress": 0.55,
        "progress_message": "Trend analysis complete",
    }


# =============================================================================
# NODE: DETECT ANOMALIES
# =============================================================================

def detect_anomalies_node(state: dict) -> dict:
    """Detect rolling z-score anomalies per column when options.detect_anomalies is set."""
    node_name = "detect_anomalies"

    if not state.get("options", {}).get("detect_anomalies"):
        _emit_progress(state, node_name, 0.70, "Anomaly detection disabled", "skipped")
        return {"current_node": node_name, "progress": 0.70}

    _emit_progress(state, node_name, 0.60, "Scanning for anomalies...")

    warnings = list(state.get("warnings", []))
    analyses = _copy_analyses(state)
    total = 0

    for analysis in analyses:
        try:
            analysis["anomalies"] = detect_time_series_anomalies(analysis["values"])
            total += len(analysis["anomalies"])
        except (ValueError, TypeError) as e:
            logger.exception(f"Anomaly detection failed for column {analysis['column']}")
            warnings.append(f"Anomaly detection incomplete for '{analysis['column']}': {str(e)}")

    _emit_progress(state, node_name, 0.70, f"Found {total} anomalies", "complete")

    return {
        "column_analyses": analyses,
        "warnings": warnings,
        "current_node": node_name,
        "progress": 0.70,
        "progress_message": f"Found {total} anomalies",
    }


# =============================================================================
# NODE: ANALYZE CORRELATIONS
# =============================================================================

def analyze_correlations_node(state: dict) -> dict:
    """
    Pearson correlation for every pair of analyzed columns.

    Values are paired by row; rows where either side is non-numeric are
    excluded from that pair.
    """
    node_name = "analyze_correlations"
    columns = state.get("columns_analyzed") or []

    if not state.get("options", {}).get("analyze_correlations") or len(columns) < 2:
        _emit_progress(state, node_name, 0.80, "Correlation analysis skipped", "skipped")
        return {"current_node": node_name, "progress": 0.80, "correlations": []}

    _emit_progress(state, node_name, 0.72, "Computing correlations...")

    df = state.get("dataframe")
    warnings = list(state.get("warnings", []))
    correlations = []

    try:
        for column_a, column_b in combinations(columns, 2):
            x, y = extract_numeric_pairs(df, column_a, column_b)
            result = correlation_test(x, y)
            if result is None:
                logger.debug(f"No correlation for {column_a}/{column_b} ({len(x)} paired rows)")
                continue
            correlations.append({"column_a": column_a, "column_b": column_b, **result})
    except Exception as e:
        logger.exception("Correlation analysis failed")
        return _create_error_state(
            state, node_name,
            f"Correlation analysis failed: {str(e)}",
            "ANALYSIS_FAILED",
            "Retry with analyze_correlations disabled or fewer columns.",
        )

    _emit_progress(state, node_name, 0.80, f"Computed {len(correlations)} correlations", "complete")

    return {
        "correlations": correlations,
        "warnings": warnings,
        "current_node": node_name,
        "progress": 0.80,
        "progress_message": f"Computed {len(correlations)} correlations",
    }


# =============================================================================
# NODE: SYNTHESIZE INSIGHTS
# =============================================================================

def synthesize_insights_node(state: dict) -> dict:
    """
    Transform analysis results into Insight records and the response payload.

    Order: per column (statistical, trend, anomaly), then correlations, with
    the summary insight first.
    """
    node_name = "synthesize_insights"
    _emit_progress(state, node_name, 0.85, "Generating insights...")

    analyses = state.get("column_analyses") or []
    correlations = state.get("correlations") or []
    insights = []

    try:
        for analysis in analyses:
            column = analysis["column"]
            insights.extend(generate_statistical_insights(
                column, analysis["metrics"], analysis["distribution"]
            ))
            if analysis.get("trend") is not None:
                insights.extend(generate_trend_insights(column, analysis["trend"]))
            if analysis.get("anomalies"):
                anomaly_insight = generate_anomaly_insight(column, analysis["anomalies"])
                if anomaly_insight:
                    insights.append(anomaly_insight)

        for corr in correlations:
            insights.extend(generate_correlation_insights(
                corr["column_a"], corr["column_b"], corr["correlation"]
            ))

        summary = generate_summary_insight(insights)
        if summary:
            insights.insert(0, summary)
    except Exception as e:
        logger.exception("Insight synthesis failed")
        return _create_error_state(
            state, node_name,
            f"Insight generation failed: {str(e)}",
            "ANALYSIS_FAILED",
            "Analysis results are available below. Try again or reduce the selected columns.",
        )

    _emit_progress(state, node_name, 0.95, "Preparing response...")
    response = _build_response(state, insights)

    _emit_progress(state, node_name, 1.0, f"Generated {len(insights)} insights", "complete")
    logger.info(f"Generated {len(insights)} insights for {len(analyses)} columns")

    return {
        "insights": sanitize_dict_for_json(insights),
        "response": response,
        "current_node": node_name,
        "progress": 1.0,
        "progress_message": f"Generated {len(insights)} insights",
    }


def _build_response(state: dict, insights: list) -> dict:
    """Build the JSON-ready payload returned by the API and shown in the UI."""
    column_analyses = [
        {key: value for key, value in analysis.items() if key != "values"}
        for analysis in state.get("column_analyses") or []
    ]

    return sanitize_dict_for_json({
        "is_error": False,
        "insights": insights,
        "count": len(insights),
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "dataset_id": state.get("dataset_id"),
        "columns_analyzed": state.get("columns_analyzed", []),
        "column_source": state.get("column_source"),
        "data_rows_analyzed": state.get("row_count", 0),
        "options": state.get("options", {}),
        "column_analyses": column_analyses,
        "correlations": state.get("correlations") or [],
        "warnings": state.get("warnings", []),
    })


# =============================================================================
# NODE: HANDLE ERROR
# =============================================================================

def handle_error_node(state: dict) -> dict:
    """
    Prepare the user-facing error payload.

    Output state updates:
        - response: dict (error payload)
    """
    node_name = "handle_error"
    _emit_progress(state, node_name, 1.0, "Handling error...", "failed")

    error = state.get("error") or "An unknown error occurred"
    error_type = state.get("error_type") or "UNKNOWN"
    has_partial = bool(state.get("partial_results"))

    payload = {
        "is_error": True,
        "error_message": error,
        "error_type": error_type,
        "failed_node": state.get("failed_node") or "unknown",
        "recovery_hint": state.get("recovery_hint") or "Please try again.",
        "has_partial_results": has_partial,
        "dataset_id": state.get("dataset_id"),
        "warnings": state.get("warnings", []),
    }

    if has_partial:
        payload["partial_results"] = {
            "columns_analyzed": state.get("columns_analyzed", []),
            "column_analyses": [
                {key: value for key, value in analysis.items() if key != "values"}
                for analysis in state.get("column_analyses") or []
            ],
        }

    return {
        "response": sanitize_dict_for_json(payload),
        "current_node": node_name,
        "progress": 1.0,
        "progress_message": f"Error: {error_type}",
    }
