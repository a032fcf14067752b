# state.py — Shared InsightState schema
# TypedDict definition for state passed between graph nodes
"""
state.py — Insight Pipeline State Schema

Defines the TypedDict structure for state passed between LangGraph nodes.
"""

from __future__ import annotations

from typing import Any, Callable, TypedDict

import pandas as pd

from config.settings import get_settings
from tools.validators import sanitize_options


class InsightState(TypedDict, total=False):
    """
    Shared state passed between all pipeline nodes.

    All fields are optional (total=False) to support partial updates.
    """

    # =========================================================================
    # INPUT LAYER
    # =========================================================================
    raw_file: bytes | None  # Uploaded CSV bytes
    filename: str | None  # Original filename
    rows: list[dict[str, Any]] | None  # Row objects from a JSON request
    dataset_id: str | None  # Caller's dataset identifier, echoed back
    column_names: list[str] | None  # Requested columns (None = infer)
    options: dict[str, bool]  # {analyze_trends, detect_anomalies, analyze_correlations}
    max_rows: int

    # =========================================================================
    # DATA LAYER
    # =========================================================================
    dataframe: pd.DataFrame | None
    row_count: int
    col_count: int
    columns_analyzed: list[str]
    column_source: str | None  # "user" | "inferred"

    # =========================================================================
    # ANALYSIS LAYER
    # =========================================================================
    column_analyses: list[dict] | None  # [{column, value_count, metrics, distribution, trend, anomalies}]
    correlations: list[dict] | None  # [{column_a, column_b, correlation, p_value, sample_size, strength}]

    # =========================================================================
    # SYNTHESIS LAYER
    # =========================================================================
    insights: list[dict] | None
    warnings: list[str]

    # =========================================================================
    # OUTPUT LAYER
    # =========================================================================
    response: dict | None  # JSON-ready payload for API / UI

    # =========================================================================
    # CONTROL LAYER
    # =========================================================================
    current_node: str | None
    progress: float  # 0.0 - 1.0
    progress_message: str | None

    # =========================================================================
    # ERROR LAYER
    # =========================================================================
    error: str | None
    error_type: str | None  # DATA_MISSING | DATA_INVALID | DATA_EMPTY | ANALYSIS_FAILED
    failed_node: str | None
    partial_results: bool
    recovery_hint: str | None

    # =========================================================================
    # CALLBACKS (not persisted)
    # =========================================================================
    progress_callback: Callable[[dict], None] | None


def create_initial_state(
    raw_file: bytes | None = None,
    filename: str | None = None,
    rows: list[dict[str, Any]] | None = None,
    dataset_id: str | None = None,
    column_names: list[str] | None = None,
    options: dict[str, bool] | None = None,
    max_rows: int | None = None,
    progress_callback: Callable[[dict], None] | None = None,
) -> InsightState:
    """
    Create a fresh InsightState with default values.

    Args:
        raw_file: CSV bytes (used when rows is None)
        filename: Original filename for the CSV
        rows: Row objects, takes precedence over raw_file
        dataset_id: Identifier echoed in the response
        column_names: Columns to analyze; None infers numeric columns
        options: Analysis toggles; missing keys are False
        max_rows: Row cap (defaults to settings)
        progress_callback: Optional callback for progress updates

    Returns:
        Initialized InsightState dict
    """
    return InsightState(
        # Input
        raw_file=raw_file,
        filename=filename,
        rows=rows,
        dataset_id=dataset_id,
        column_names=column_names,
        options=sanitize_options(options),
        max_rows=max_rows or get_settings().max_rows,

        # Data
        dataframe=None,
        row_count=0,
        col_count=0,
        columns_analyzed=[],
        column_source=None,

        # Analysis
        column_analyses=None,
        correlations=None,

        # Synthesis
        insights=None,
        warnings=[],

        # Output
        response=None,

        # Control
        current_node=None,
        progress=0.0,
        progress_message=None,

        # Error
        error=None,
        error_type=None,
        failed_node=None,
        partial_results=False,
        recovery_hint=None,

        # Callbacks
        progress_callback=progress_callback,
    )
