# validators.py — Input sanitization & validation
# File type checks, request body validation, JSON-safe output
"""
validators.py — Input Sanitization & Validation

Production implementation for:
- File type validation
- Insight request validation (rows, column names, options)
- JSON sanitization of numpy / NaN values
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np
import pandas as pd


# =============================================================================
# CONSTANTS
# =============================================================================

ALLOWED_EXTENSIONS = {".csv"}
MAX_COLUMN_NAME_LENGTH = 200
MAX_COLUMNS_PER_REQUEST = 50

OPTION_KEYS = {
    "analyze_trends": ("analyze_trends", "analyzeTrends"),
    "detect_anomalies": ("detect_anomalies", "detectAnomalies"),
    "analyze_correlations": ("analyze_correlations", "analyzeCorrelations"),
}
TRUTHY_STRINGS = {"1", "true", "yes", "on"}


# =============================================================================
# FILE VALIDATION
# =============================================================================

def validate_file_extension(filename: str) -> tuple[bool, str | None]:
    """
    Validate that file has an allowed extension.

    Returns:
        (is_valid, error_message)
    """
    if not filename:
        return False, "No filename provided"

    ext = "." + filename.rsplit(".", 1)[-1].lower() if "." in filename else ""

    if ext not in ALLOWED_EXTENSIONS:
        return False, f"Invalid file type: {ext or '(none)'}. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"

    return True, None


def validate_dataframe(df: pd.DataFrame) -> tuple[bool, str | None]:
    """
    Validate that a DataFrame is suitable for analysis.

    Returns:
        (is_valid, error_message)
    """
    if df is None:
        return False, "No data provided"

    if not isinstance(df, pd.DataFrame):
        return False, "Data is not a valid DataFrame"

    if df.empty or len(df) == 0:
        return False, "DataFrame has no rows"

    if len(df.columns) == 0:
        return False, "DataFrame has no columns"

    return True, None


# =============================================================================
# REQUEST VALIDATION
# =============================================================================

def sanitize_column_names(column_names: Any) -> list[str] | None:
    """
    Normalize a requested column list.

    Returns:
        De-duplicated list of stripped names in request order, or None when
        nothing usable was given (meaning "infer columns")
    """
    if column_names is None:
        return None

    if isinstance(column_names, str):
        column_names = [part for part in column_names.split(",")]

    if not isinstance(column_names, (list, tuple)):
        return None

    cleaned: list[str] = []
    for name in column_names:
        if name is None:
            continue
        name = str(name).strip()[:MAX_COLUMN_NAME_LENGTH]
        if name and name not in cleaned:
            cleaned.append(name)

    return cleaned[:MAX_COLUMNS_PER_REQUEST] or None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    return bool(value)


def sanitize_options(options: Any, default: bool = False) -> dict[str, bool]:
    """
    Normalize analysis options, accepting snake_case or camelCase keys.

    Missing keys take `default`.

    Returns:
        {analyze_trends, detect_anomalies, analyze_correlations}
    """
    if not isinstance(options, dict):
        options = {}

    sanitized = {}
    for key, aliases in OPTION_KEYS.items():
        value = default
        for alias in aliases:
            if alias in options:
                value = _as_bool(options[alias])
                break
        sanitized[key] = value

    return sanitized


def validate_insight_request(body: Any) -> tuple[bool, str | None]:
    """
    Validate a JSON insight-generation request body.

    Expected shape:
        {rows: list[object], column_names?: list[str], options?: object,
         dataset_id?: str}

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(body, dict):
        return False, "Request body must be a JSON object"

    rows = body.get("rows")
    if rows is None:
        return False, "Dataset rows are required"

    if not isinstance(rows, list):
        return False, "rows must be a list of objects"

    columns = body.get("column_names", body.get("columnNames"))
    if columns is not None and not isinstance(columns, (list, str)):
        return False, "column_names must be a list of column names"

    options = body.get("options")
    if options is not None and not isinstance(options, dict):
        return False, "options must be an object"

    return True, None


# =============================================================================
# OUTPUT SANITIZATION
# =============================================================================

def sanitize_dict_for_json(obj: Any) -> Any:
    """
    Recursively sanitize a dict/list for JSON serialization.
    Handles numpy types, NaN, Inf, etc.
    """
    if obj is None:
        return None

    if isinstance(obj, dict):
        return {k: sanitize_dict_for_json(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [sanitize_dict_for_json(v) for v in obj]

    if isinstance(obj, np.bool_):
        return bool(obj)

    if isinstance(obj, np.integer):
        return int(obj)

    if isinstance(obj, np.floating):
        obj = float(obj)

    if isinstance(obj, np.ndarray):
        return sanitize_dict_for_json(obj.tolist())

    if isinstance(obj, float):
        if not math.isfinite(obj):
            return None
        return obj

    return obj
