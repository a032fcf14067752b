# data_loader.py — Dataset loading & numeric column extraction
# CSV bytes or JSON rows in, DataFrame and numeric series out
"""
data_loader.py — Dataset Loading

Production implementation for:
- Safe CSV loading (encoding detection, size limits, basic cleaning)
- JSON row lists to DataFrame
- Numeric column extraction (numbers kept, numeric strings parsed)
- Row-aligned pair extraction for correlation
"""

from __future__ import annotations

import io
import math
import numbers
from typing import Any, BinaryIO

import pandas as pd


# =============================================================================
# CONSTANTS
# =============================================================================

MAX_FILE_SIZE_MB = 100
MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024
SUPPORTED_ENCODINGS = ["utf-8", "latin-1", "cp1252", "iso-8859-1"]
NUMERIC_INFERENCE_RATIO = 0.8  # share of non-null values that must parse


# =============================================================================
# DATA LOADING
# =============================================================================

def safe_load_csv(
    file: BinaryIO | bytes | str,
    filename: str = "unknown.csv",
    max_rows: int | None = None,
) -> tuple[pd.DataFrame | None, str | None]:
    """
    Safely load a CSV file with encoding detection and error handling.

    Args:
        file: File-like object, bytes, or file path
        filename: Original filename for error messages
        max_rows: Optional cap on parsed rows

    Returns:
        Tuple of (DataFrame or None, error_message or None)
    """
    try:
        if isinstance(file, str):
            with open(file, "rb") as f:
                raw_bytes = f.read()
        elif isinstance(file, bytes):
            raw_bytes = file
        else:
            raw_bytes = file.read()
            if hasattr(file, "seek"):
                file.seek(0)
    except OSError as e:
        return None, f"Failed to read {filename}: {str(e)}"

    if len(raw_bytes) > MAX_FILE_SIZE_BYTES:
        return None, f"File exceeds {MAX_FILE_SIZE_MB}MB limit ({len(raw_bytes) / 1024 / 1024:.1f}MB)"

    if len(raw_bytes) == 0:
        return None, "File is empty"

    df = None
    last_error = None

    for encoding in SUPPORTED_ENCODINGS:
        try:
            text_io = io.StringIO(raw_bytes.decode(encoding))
            df = pd.read_csv(
                text_io,
                on_bad_lines="warn",
                low_memory=False,
                nrows=max_rows,
            )
            break
        except UnicodeDecodeError:
            last_error = f"Encoding {encoding} failed"
            continue
        except pd.errors.EmptyDataError:
            return None, "CSV file contains no data"
        except pd.errors.ParserError as e:
            last_error = f"CSV parsing error: {str(e)}"
            continue

    if df is None:
        return None, last_error or "Failed to parse CSV with any supported encoding"

    return _clean_dataframe(df)


def rows_to_dataframe(
    rows: list[dict[str, Any]] | None,
) -> tuple[pd.DataFrame | None, str | None]:
    """
    Build a DataFrame from a list of row objects (e.g. a JSON request body).

    Returns:
        Tuple of (DataFrame or None, error_message or None)
    """
    if rows is None:
        return None, "No rows provided"

    if not isinstance(rows, list):
        return None, "Rows must be a list of objects"

    if not all(isinstance(row, dict) for row in rows):
        return None, "Every row must be an object mapping column names to values"

    if not rows:
        return None, "Dataset contains no rows"

    return _clean_dataframe(pd.DataFrame.from_records(rows))


def _clean_dataframe(df: pd.DataFrame) -> tuple[pd.DataFrame | None, str | None]:
    """Strip column names and drop fully empty rows/columns."""
    if df.empty or len(df.columns) == 0:
        return None, "Dataset contains no data rows"

    df.columns = [str(col).strip() for col in df.columns]
    df = df.dropna(how="all")
    df = df.dropna(axis=1, how="all")

    if df.empty:
        return None, "Dataset contains only empty rows/columns"

    return df, None


def get_file_info(file: BinaryIO | bytes, filename: str = "unknown.csv") -> dict:
    """Basic file metadata without parsing."""
    if isinstance(file, bytes):
        size_bytes = len(file)
    else:
        file.seek(0, 2)
        size_bytes = file.tell()
        file.seek(0)

    return {
        "filename": filename,
        "size_bytes": size_bytes,
        "size_mb": round(size_bytes / 1024 / 1024, 2),
        "is_valid_size": size_bytes <= MAX_FILE_SIZE_BYTES,
    }


# =============================================================================
# NUMERIC EXTRACTION
# =============================================================================

def coerce_numeric(value: Any) -> float | None:
    """
    Convert a single cell to a finite float.

    Numbers pass through, strings are parsed, everything else (booleans,
    None, blanks, NaN, inf, unparseable text) becomes None.
    """
    if isinstance(value, bool) or value is None:
        return None

    if isinstance(value, numbers.Real):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None

    return number if math.isfinite(number) else None


def _coerce_series(series: pd.Series) -> pd.Series:
    """Element-wise coerce_numeric, keeping the original index."""
    return series.map(coerce_numeric).astype(float)


def extract_numeric_column(df: pd.DataFrame, column: str) -> list[float]:
    """
    Extract the numeric values of a column in row order.

    Non-numeric cells are dropped, so the result may be shorter than the
    DataFrame.
    """
    if column not in df.columns:
        return []
    return _coerce_series(df[column]).dropna().tolist()


def extract_numeric_pairs(
    df: pd.DataFrame,
    column_a: str,
    column_b: str,
) -> tuple[list[float], list[float]]:
    """
    Extract row-aligned values for two columns.

    Only rows where both cells are numeric are kept, so the two lists always
    have equal length and index i of each comes from the same row.
    """
    if column_a not in df.columns or column_b not in df.columns:
        return [], []

    pairs = pd.DataFrame({
        "a": _coerce_series(df[column_a]),
        "b": _coerce_series(df[column_b]),
    }).dropna()

    return pairs["a"].tolist(), pairs["b"].tolist()


def infer_numeric_columns(df: pd.DataFrame) -> list[str]:
    """
    Columns whose non-null cells are predominantly numeric.

    Numeric dtypes qualify directly (booleans excluded); object columns
    qualify when at least 80% of their non-null cells parse as numbers.
    """
    numeric_columns = []

    for col in df.columns:
        series = df[col]
        if pd.api.types.is_bool_dtype(series):
            continue
        if pd.api.types.is_numeric_dtype(series):
            numeric_columns.append(str(col))
            continue

        non_null = series.dropna()
        if len(non_null) == 0:
            continue
        parsed = _coerce_series(non_null).notna().mean()
        if parsed >= NUMERIC_INFERENCE_RATIO:
            numeric_columns.append(str(col))

    return numeric_columns
