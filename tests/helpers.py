"""Builders shared across test modules."""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from fakescan.config import Config
from fakescan.models import ScanRequest
from fakescan.scanner import ScanOrchestrator
from fakescan.store import ReportOrError

DIGEST = "sha256:" + "a" * 64


def make_config(**scanner: Any) -> Config:
    cfg = Config()
    cfg.db.total = 100
    cfg.scanner.workers = 2
    cfg.scanner.skip_pulling = True
    cfg.scanner.error_rate = 0.0
    cfg.scanner.vulnerable_rate = 1.0
    cfg.scanner.vulnerabilities_per_report = 10
    cfg.scanner.sbom_packages_per_report = 5
    for key, value in scanner.items():
        setattr(cfg.scanner, key, value)
    cfg.validate()
    return cfg


def request_body(capabilities: Optional[List[str]] = None, tag: Optional[str] = "3.4") -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "registry": {
            "url": "https://core.harbor.domain",
            "authorization": "Basic dXNlcjpwYXNz",
        },
        "artifact": {
            "repository": "library/mongo",
            "digest": DIGEST,
            "mime_type": "application/vnd.docker.distribution.manifest.v2+json",
        },
    }
    if tag:
        body["artifact"]["tag"] = tag
    if capabilities is not None:
        body["enabled_capabilities"] = [{"type": c} for c in capabilities]
    return body


def make_request(capabilities: Optional[List[str]] = None, tag: Optional[str] = "3.4") -> ScanRequest:
    return ScanRequest.from_dict(request_body(capabilities, tag))


def wait_for_result(orchestrator: ScanOrchestrator, scan_request_id: str, timeout: float = 10) -> ReportOrError:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        result = orchestrator.get_report(scan_request_id)
        if not result.pending:
            return result
        time.sleep(0.01)
    raise AssertionError(f"scan request {scan_request_id} still pending after {timeout}s")
