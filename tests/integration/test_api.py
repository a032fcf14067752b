"""
Integration tests for the Flask API.
Tests: HTTP request → validation → insight graph → JSON response / status code.
"""

import io

import pytest

import api.routes


@pytest.mark.integration
def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


@pytest.mark.integration
def test_generate_from_json_rows(client, sample_rows):
    response = client.post("/api/insights/generate", json={
        "datasetId": "sales-2024",
        "rows": sample_rows,
        "columnNames": ["revenue", "cost"],
        "options": {"analyzeTrends": True, "detectAnomalies": True, "analyzeCorrelations": True},
    })

    assert response.status_code == 200
    body = response.get_json()
    assert body["dataset_id"] == "sales-2024"
    assert body["insights"][0]["id"] == "summary"
    assert body["count"] == len(body["insights"])
    assert body["column_source"] == "user"
    assert "correlation-revenue-cost" in [i["id"] for i in body["insights"]]


@pytest.mark.integration
def test_generate_without_options_runs_statistics_only(client, sample_rows):
    response = client.post("/api/insights/generate", json={"rows": sample_rows})

    body = response.get_json()
    assert response.status_code == 200
    assert body["options"] == {
        "analyze_trends": False,
        "detect_anomalies": False,
        "analyze_correlations": False,
    }
    assert body["correlations"] == []


@pytest.mark.integration
@pytest.mark.parametrize("payload, error", [
    (None, "Request body must be a JSON object"),
    ({"datasetId": "x"}, "Dataset rows are required"),
    ({"rows": "not-a-list"}, "rows must be a list of objects"),
    ({"rows": [], "options": "all"}, "options must be an object"),
])
def test_generate_rejects_invalid_bodies(client, payload, error):
    if payload is None:
        response = client.post("/api/insights/generate", data="not json", content_type="text/plain")
    else:
        response = client.post("/api/insights/generate", json=payload)

    assert response.status_code == 400
    assert response.get_json()["error"] == error


@pytest.mark.integration
def test_generate_with_empty_rows_is_client_error(client):
    response = client.post("/api/insights/generate", json={"rows": []})

    body = response.get_json()
    assert response.status_code == 400
    assert body["error"] == "Failed to generate insights"
    assert body["details"] == "Dataset contains no rows"
    assert body["error_type"] == "DATA_INVALID"
    assert body["recovery_hint"]


@pytest.mark.integration
def test_generate_with_text_only_columns_is_client_error(client):
    response = client.post("/api/insights/generate", json={
        "rows": [{"name": "a"}, {"name": "b"}],
        "column_names": ["name"],
    })

    assert response.status_code == 400
    assert response.get_json()["error_type"] == "DATA_EMPTY"


@pytest.mark.integration
def test_generate_analysis_failure_is_server_error(client, monkeypatch):
    def fail(**kwargs):
        return {"response": {
            "is_error": True,
            "error_message": "boom",
            "error_type": "ANALYSIS_FAILED",
            "recovery_hint": "Please try again.",
        }}

    monkeypatch.setattr(api.routes, "run_insight_generation", fail)
    response = client.post("/api/insights/generate", json={"rows": [{"a": 1}]})

    assert response.status_code == 500
    assert response.get_json()["details"] == "boom"


@pytest.mark.integration
def test_generate_unexpected_exception_is_server_error(client, monkeypatch):
    def crash(**kwargs):
        raise RuntimeError("graph exploded")

    monkeypatch.setattr(api.routes, "run_insight_generation", crash)
    response = client.post("/api/insights/generate", json={"rows": [{"a": 1}]})

    assert response.status_code == 500
    assert response.get_json() == {
        "error": "Failed to generate insights",
        "details": "graph exploded",
    }


# =============================================================================
# Upload endpoint
# =============================================================================

@pytest.mark.integration
def test_upload_csv(client, sample_csv_bytes):
    response = client.post(
        "/api/insights/generate/upload",
        data={
            "file": (io.BytesIO(sample_csv_bytes), "sales.csv"),
            "dataset_id": "upload-1",
            "column_names": "revenue, cost",
            "analyze_trends": "true",
        },
        content_type="multipart/form-data",
    )

    body = response.get_json()
    assert response.status_code == 200
    assert body["dataset_id"] == "upload-1"
    assert body["columns_analyzed"] == ["revenue", "cost"]
    assert body["options"]["analyze_trends"] is True
    assert body["options"]["analyze_correlations"] is False
    assert "trend-revenue" in [i["id"] for i in body["insights"]]


@pytest.mark.integration
def test_upload_requires_file(client):
    response = client.post(
        "/api/insights/generate/upload", data={}, content_type="multipart/form-data"
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "A CSV file is required"


@pytest.mark.integration
def test_upload_rejects_non_csv(client):
    response = client.post(
        "/api/insights/generate/upload",
        data={"file": (io.BytesIO(b"a\n1\n"), "data.xlsx")},
        content_type="multipart/form-data",
    )

    assert response.status_code == 400
    assert "Invalid file type" in response.get_json()["error"]


@pytest.mark.integration
def test_unknown_route_and_wrong_method(client):
    assert client.get("/api/nope").status_code == 404
    assert client.get("/api/nope").get_json() == {"error": "Endpoint not found"}
    assert client.get("/api/insights/generate").status_code == 405
