# =============================================================================
# File: fakescan/api/routes.py
# Description: Harbor scanner adapter API v1.1.
#
#   GET  /api/v1/metadata             - adapter descriptor
#   POST /api/v1/scan                 - accept a scan request (202 + id)
#   GET  /api/v1/scan/<id>/report     - poll for a report
#
# Report polling:
#   unknown id      → 404, no body
#   pending         → 302 back to the same URI
#   terminal error  → 500 {"error": {"message": ...}}
#   done            → 200 with the report chosen by Accept / sbom_media_type
# =============================================================================

from __future__ import annotations

import logging
import time

from flask import Blueprint, current_app, jsonify, redirect, request

from fakescan.errors import FakeScannerError, ReportNotFoundError, ValidationError
from fakescan.models import ScanRequest
from fakescan.scanner.constants import (
    MIME_TYPE_ERROR,
    MIME_TYPE_GENERIC_VULNERABILITY_REPORT,
    MIME_TYPE_METADATA,
    MIME_TYPE_NATIVE_REPORT,
    MIME_TYPE_SBOM_REPORT,
    MIME_TYPE_SCAN_RESPONSE,
)

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__, url_prefix="/api/v1")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _orchestrator():
    return current_app.extensions["fakescan"]


def _delays():
    return _orchestrator().cfg.server.delay


def _sleep(seconds: float) -> None:
    if seconds > 0:
        time.sleep(seconds)


def _respond(payload, status: int, content_type: str):
    resp = jsonify(payload)
    resp.status_code = status
    resp.headers["Content-Type"] = content_type
    return resp


def send_error(message: str, status: int = 500):
    return _respond({"error": {"message": message}}, status, MIME_TYPE_ERROR)


def _mime_base(mime: str) -> str:
    return mime.split(";", 1)[0].strip().lower()


def _wants_sbom() -> bool:
    if "sbom_media_type" in request.args:
        return True
    accept = request.headers.get("Accept", "").lower()
    return _mime_base(MIME_TYPE_SBOM_REPORT) in accept


def _vuln_report_mime() -> str:
    accept = request.headers.get("Accept", "").lower()
    if _mime_base(MIME_TYPE_GENERIC_VULNERABILITY_REPORT) in accept:
        return MIME_TYPE_GENERIC_VULNERABILITY_REPORT
    return MIME_TYPE_NATIVE_REPORT


@api_bp.errorhandler(FakeScannerError)
def handle_scanner_error(e: FakeScannerError):
    if isinstance(e, ReportNotFoundError):
        return "", 404
    return send_error(e.message, e.status_code)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@api_bp.get("/metadata")
def get_metadata():
    _sleep(_delays().metadata)
    return _respond(_orchestrator().metadata().to_dict(), 200, MIME_TYPE_METADATA)


@api_bp.post("/scan")
def accept_scan_request():
    _sleep(_delays().accept_scan_request)

    body = request.get_json(force=True, silent=True)
    if body is None:
        raise ValidationError("request body must be a JSON scan request")

    scan_request = ScanRequest.from_dict(body)
    scan_request_id = _orchestrator().scan(scan_request)

    return _respond({"id": scan_request_id}, 202, MIME_TYPE_SCAN_RESPONSE)


@api_bp.get("/scan/<scan_request_id>/report")
def get_scan_report(scan_request_id: str):
    _sleep(_delays().get_scan_report)

    result = _orchestrator().get_report(scan_request_id)

    if result.error is not None:
        return send_error(str(result.error), 500)

    if result.pending:
        return redirect(request.full_path.rstrip("?"), code=302)

    if _wants_sbom():
        if result.sbom_report is None:
            return "", 404
        return _respond(result.sbom_report.to_dict(), 200, MIME_TYPE_SBOM_REPORT)

    if result.vuln_report is None:
        return "", 404
    return _respond(result.vuln_report.to_dict(), 200, _vuln_report_mime())
