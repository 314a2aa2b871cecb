# fakescan/store/base.py
"""
Result store contract.

One entry per scan request id:

    SetRequest        → entry created Pending (submitter, once per id)
    SetReportOrError  → entry becomes Done (the worker that ran the job, once)

A Pending entry reads back as a ReportOrError with every field empty.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from fakescan.models import SbomReport, ScanRequest, VulnerabilityReport


@dataclass
class ReportOrError:
    vuln_report: Optional[VulnerabilityReport] = None
    sbom_report: Optional[SbomReport] = None
    error: Optional[BaseException] = None

    @property
    def pending(self) -> bool:
        return self.vuln_report is None and self.sbom_report is None and self.error is None


class Store(ABC):

    @abstractmethod
    def set_request(self, scan_request_id: str, scan_request: ScanRequest) -> None:
        """Create (or overwrite) a Pending entry for the id."""
        ...

    @abstractmethod
    def get_request(self, scan_request_id: str) -> ScanRequest:
        """Return the stored request. Raises ReportNotFoundError."""
        ...

    @abstractmethod
    def remove_request(self, scan_request_id: str) -> None:
        """Drop the entry; a no-op for unknown ids."""
        ...

    @abstractmethod
    def set_report_or_error(self, scan_request_id: str, result: ReportOrError) -> None:
        """Record the outcome. A no-op for unknown ids."""
        ...

    @abstractmethod
    def get_report_or_error(self, scan_request_id: str) -> ReportOrError:
        """Current outcome, empty while pending. Raises ReportNotFoundError."""
        ...
