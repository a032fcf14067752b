"""Shared fixtures for unit and integration tests."""

import pytest

from api.app import create_app


@pytest.fixture
def sample_rows():
    """24 monthly rows: revenue and cost rise linearly, region is text."""
    return [
        {
            "month": f"2024-{i + 1:02d}" if i < 12 else f"2025-{i - 11:02d}",
            "revenue": 100 + 10 * i,
            "cost": 50 + 5 * i,
            "region": "north" if i % 2 else "south",
        }
        for i in range(24)
    ]


@pytest.fixture
def sample_csv_bytes(sample_rows):
    lines = ["month,revenue,cost,region"]
    lines += [f"{r['month']},{r['revenue']},{r['cost']},{r['region']}" for r in sample_rows]
    return ("\n".join(lines) + "\n").encode("utf-8")


@pytest.fixture
def all_options():
    return {"analyze_trends": True, "detect_anomalies": True, "analyze_correlations": True}


@pytest.fixture
def client():
    app = create_app({"TESTING": True})
    return app.test_client()
