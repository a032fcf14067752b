# Insight generation endpoints

from flask import Blueprint, jsonify, request
from loguru import logger

from agent.graph import run_insight_generation
from tools.validators import (
    sanitize_column_names,
    sanitize_options,
    validate_file_extension,
    validate_insight_request,
)

insights_bp = Blueprint("insights", __name__)

# Pipeline error types → HTTP status
ERROR_STATUS = {
    "DATA_MISSING": 400,
    "DATA_INVALID": 400,
    "DATA_EMPTY": 400,
    "ANALYSIS_FAILED": 500,
}


# ============================================================
# UTILITY FUNCTIONS
# ============================================================

def _error(message, status, details=None, recovery_hint=None):
    body = {"error": message}
    if details:
        body["details"] = details
    if recovery_hint:
        body["recovery_hint"] = recovery_hint
    return jsonify(body), status


def _pipeline_response(final_state):
    """Translate the final pipeline state into an HTTP response."""
    payload = final_state.get("response") or {}

    if payload.get("is_error"):
        status = ERROR_STATUS.get(payload.get("error_type"), 500)
        body = {
            "error": "Failed to generate insights",
            "details": payload.get("error_message"),
            "error_type": payload.get("error_type"),
            "recovery_hint": payload.get("recovery_hint"),
            "warnings": payload.get("warnings", []),
        }
        return jsonify(body), status

    return jsonify(payload), 200


# ============================================================
# ROUTES
# ============================================================

@insights_bp.route("/generate", methods=["POST"])
def generate_insights():
    """
    Generate insights from JSON rows.

    Body:
        {
            "dataset_id": "sales-2024",          (or datasetId)
            "rows": [{"month": "Jan", "revenue": 120}, ...],
            "column_names": ["revenue"],         (or columnNames, optional)
            "options": {"analyze_trends": true, "detect_anomalies": true,
                        "analyze_correlations": true}
        }
    """
    body = request.get_json(silent=True)

    is_valid, error = validate_insight_request(body)
    if not is_valid:
        return _error(error, 400)

    dataset_id = body.get("dataset_id") or body.get("datasetId")
    logger.info(f"POST /api/insights/generate dataset={dataset_id} rows={len(body['rows'])}")

    try:
        final_state = run_insight_generation(
            rows=body["rows"],
            column_names=sanitize_column_names(body.get("column_names", body.get("columnNames"))),
            options=sanitize_options(body.get("options")),
            dataset_id=str(dataset_id) if dataset_id is not None else None,
        )
    except Exception as e:
        logger.exception("Insight generation crashed")
        return _error("Failed to generate insights", 500, details=str(e))

    return _pipeline_response(final_state)


@insights_bp.route("/generate/upload", methods=["POST"])
def generate_insights_from_upload():
    """
    Generate insights from an uploaded CSV (multipart/form-data).

    Form fields:
        file: CSV file (required)
        dataset_id, column_names (comma separated),
        analyze_trends / detect_anomalies / analyze_correlations ("true"/"false")
    """
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return _error("A CSV file is required", 400, recovery_hint="Send the file in the 'file' form field.")

    is_valid_ext, ext_error = validate_file_extension(upload.filename)
    if not is_valid_ext:
        return _error(ext_error, 400)

    form = request.form
    dataset_id = form.get("dataset_id") or form.get("datasetId")
    logger.info(f"POST /api/insights/generate/upload file={upload.filename}")

    try:
        final_state = run_insight_generation(
            raw_file=upload.read(),
            filename=upload.filename,
            column_names=sanitize_column_names(form.get("column_names") or form.get("columnNames")),
            options=sanitize_options(form.to_dict()),
            dataset_id=dataset_id,
        )
    except Exception as e:
        logger.exception("Insight generation crashed")
        return _error("Failed to generate insights", 500, details=str(e))

    return _pipeline_response(final_state)
