# fakescan/scanner/__init__.py
"""
Fake scan pipeline.

Usage:
    from fakescan.scanner import ScanOrchestrator

    orchestrator = ScanOrchestrator(cfg, db)
    scan_id = orchestrator.scan(scan_request)

Architecture:
    ScanOrchestrator
    ├── Dispatcher       - bounded worker pool draining a bounded job queue
    ├── RegistryPuller   - optional artifact pull before generation
    ├── ReportGenerator  - vulnerability / SBOM reports
    │   └── WeightedChooser ×2 (error rate, vulnerable rate)
    └── Store            - id → request + result
"""

from fakescan.scanner.chooser import WeightedChooser
from fakescan.scanner.dispatcher import Dispatcher
from fakescan.scanner.generator import GeneratedReports, ReportGenerator
from fakescan.scanner.orchestrator import ScanOrchestrator
from fakescan.scanner.puller import RegistryPuller

__all__ = [
    "Dispatcher",
    "GeneratedReports",
    "RegistryPuller",
    "ReportGenerator",
    "ScanOrchestrator",
    "WeightedChooser",
]
