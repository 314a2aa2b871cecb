# fakescan/store/memory.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from fakescan.errors import ReportNotFoundError
from fakescan.models import SbomReport, ScanRequest, VulnerabilityReport, now_utc
from fakescan.store.base import ReportOrError, Store

logger = logging.getLogger(__name__)


@dataclass
class StoreEntry:
    scan_request: ScanRequest
    created_at: datetime = field(default_factory=now_utc)
    vuln_report: Optional[VulnerabilityReport] = None
    sbom_report: Optional[SbomReport] = None
    error: Optional[BaseException] = None


class MemoryStore(Store):
    """
    Process-local store guarded by a single lock.

    Entries are never expired; they live as long as the process does.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[str, StoreEntry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, scan_request_id: object) -> bool:
        with self._lock:
            return scan_request_id in self._entries

    def _get_entry(self, scan_request_id: str) -> StoreEntry:
        with self._lock:
            entry = self._entries.get(scan_request_id)
        if entry is None:
            raise ReportNotFoundError(f"scan request {scan_request_id} not found")
        return entry

    def set_request(self, scan_request_id: str, scan_request: ScanRequest) -> None:
        with self._lock:
            self._entries[scan_request_id] = StoreEntry(scan_request=scan_request)

    def get_request(self, scan_request_id: str) -> ScanRequest:
        return self._get_entry(scan_request_id).scan_request

    def remove_request(self, scan_request_id: str) -> None:
        with self._lock:
            self._entries.pop(scan_request_id, None)

    def set_report_or_error(self, scan_request_id: str, result: ReportOrError) -> None:
        with self._lock:
            entry = self._entries.get(scan_request_id)
            if entry is None:
                logger.debug(f"Dropping result for unknown scan request {scan_request_id}")
                return
            entry.vuln_report = result.vuln_report
            entry.sbom_report = result.sbom_report
            entry.error = result.error

    def get_report_or_error(self, scan_request_id: str) -> ReportOrError:
        with self._lock:
            entry = self._entries.get(scan_request_id)
            if entry is None:
                raise ReportNotFoundError(f"scan request {scan_request_id} not found")
            return ReportOrError(
                vuln_report=entry.vuln_report,
                sbom_report=entry.sbom_report,
                error=entry.error,
            )

    def created_at(self, scan_request_id: str) -> datetime:
        return self._get_entry(scan_request_id).created_at
