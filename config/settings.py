# settings.py — Runtime configuration
# Environment-driven settings shared by the pipeline, API and UI
"""
settings.py — Insight Engine Configuration

Values come from environment variables (a local .env file is loaded first):

    INSIGHTS_MAX_ROWS             Row cap per analysis (default 10000)
    INSIGHTS_DEFAULT_TRENDS       Default for options.analyze_trends
    INSIGHTS_DEFAULT_ANOMALIES    Default for options.detect_anomalies
    INSIGHTS_DEFAULT_CORRELATIONS Default for options.analyze_correlations
    INSIGHTS_LOG_LEVEL            Console log level (default INFO)
    INSIGHTS_LOG_DIR              Directory for the log file (unset = console only)
    INSIGHTS_API_HOST / INSIGHTS_API_PORT  Flask development server binding
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_MAX_ROWS = 10_000
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 5000


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


# =============================================================================
# SETTINGS
# =============================================================================

@dataclass
class InsightSettings:
    """Configuration for insight generation runs."""
    max_rows: int = DEFAULT_MAX_ROWS
    default_analyze_trends: bool = True
    default_detect_anomalies: bool = True
    default_analyze_correlations: bool = True
    log_level: str = DEFAULT_LOG_LEVEL
    log_dir: Path | None = None
    api_host: str = DEFAULT_API_HOST
    api_port: int = DEFAULT_API_PORT

    @property
    def default_options(self) -> dict[str, bool]:
        return {
            "analyze_trends": self.default_analyze_trends,
            "detect_anomalies": self.default_detect_anomalies,
            "analyze_correlations": self.default_analyze_correlations,
        }


def get_settings() -> InsightSettings:
    """
    Build settings from the current environment.

    Read on every call so tests and long-running servers pick up changes.
    """
    log_dir = os.getenv("INSIGHTS_LOG_DIR")

    return InsightSettings(
        max_rows=_env_int("INSIGHTS_MAX_ROWS", DEFAULT_MAX_ROWS),
        default_analyze_trends=_env_bool("INSIGHTS_DEFAULT_TRENDS", True),
        default_detect_anomalies=_env_bool("INSIGHTS_DEFAULT_ANOMALIES", True),
        default_analyze_correlations=_env_bool("INSIGHTS_DEFAULT_CORRELATIONS", True),
        log_level=(os.getenv("INSIGHTS_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
        log_dir=Path(log_dir) if log_dir else None,
        api_host=os.getenv("INSIGHTS_API_HOST") or DEFAULT_API_HOST,
        api_port=_env_int("INSIGHTS_API_PORT", DEFAULT_API_PORT),
    )
