# fakescan/scanner/generator.py
"""
Report generator: turns a scan request into fabricated reports.

For every request:

    1. Sleep for the configured generation delay (the simulated scan)
    2. No declared capabilities → legacy vulnerability report only
    3. Otherwise one report per declared capability type:
           vulnerability → VulnerabilityReport
           sbom          → SbomReport
       Any other type fails the whole request with UnsupportedCapabilityError.

The vulnerability report is where the randomness lives: the error chooser
may fail the scan outright, the vulnerable chooser may declare the artifact
clean, and otherwise a set of distinct records is sampled from the database.

All random draws go through one Random instance guarded by a lock, so a
seeded generator is reproducible when driven from a single thread. The
generation delay happens outside the lock.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set

from faker import Faker

from fakescan.config import ScannerConfig
from fakescan.errors import SimulatedScanError, UnsupportedCapabilityError
from fakescan.models import (
    CapabilityType,
    SbomDocument,
    SbomPackage,
    SbomReport,
    ScanRequest,
    Scanner,
    VulnerabilityItem,
    VulnerabilityReport,
    now_utc,
)
from fakescan.scanner.chooser import WeightedChooser
from fakescan.scanner.constants import MEDIA_TYPE_SPDX_JSON, SBOM_LICENSES, SCANNER
from fakescan.vulndb import VulnerabilityDB, severity_less

logger = logging.getLogger(__name__)


@dataclass
class GeneratedReports:
    vuln_report: Optional[VulnerabilityReport] = None
    sbom_report: Optional[SbomReport] = None


class ReportGenerator:

    def __init__(
        self,
        cfg: ScannerConfig,
        db: VulnerabilityDB,
        scanner: Scanner = SCANNER,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.cfg = cfg
        self.db = db
        self.scanner = scanner
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._lock = threading.Lock()

        self._fake = Faker()
        self._fake.seed_instance(self._rng.getrandbits(32))

        self.error_chooser = WeightedChooser(cfg.error_rate, random.Random(self._rng.getrandbits(64)))
        self.vulnerable_chooser = WeightedChooser(cfg.vulnerable_rate, random.Random(self._rng.getrandbits(64)))

        self._generators: Dict[CapabilityType, Callable[[ScanRequest], object]] = {
            CapabilityType.VULNERABILITY: self.generate_vulnerability_report,
            CapabilityType.SBOM: self.generate_sbom_report,
        }

    def generate(self, req: ScanRequest) -> GeneratedReports:
        """
        Produce the reports a request asks for.

        Raises SimulatedScanError or UnsupportedCapabilityError; nothing is
        returned partially.
        """
        if self.cfg.report_generating_duration > 0:
            self._sleep(self.cfg.report_generating_duration)

        if not req.enabled_capabilities:
            return GeneratedReports(vuln_report=self.generate_vulnerability_report(req))

        wanted: List[CapabilityType] = []
        for capability in req.enabled_capabilities:
            try:
                kind = CapabilityType(capability.type)
            except ValueError:
                raise UnsupportedCapabilityError(capability.type) from None
            if kind not in wanted:
                wanted.append(kind)

        result = GeneratedReports()
        for kind in wanted:
            report = self._generators[kind](req)
            if kind is CapabilityType.VULNERABILITY:
                result.vuln_report = report
            else:
                result.sbom_report = report
        return result

    # ------------------------------------------------------------------
    # Vulnerability report
    # ------------------------------------------------------------------

    def generate_vulnerability_report(self, req: ScanRequest) -> VulnerabilityReport:
        if self.error_chooser.pick():
            with self._lock:
                message = self._fake.sentence(nb_words=20)
            raise SimulatedScanError(message)

        vulnerabilities: List[VulnerabilityItem] = []
        severity = None

        if self.vulnerable_chooser.pick():
            with self._lock:
                vulnerabilities = self._sample(self._sample_size())
            for vul in vulnerabilities:
                if severity is None or severity_less(severity, vul.severity):
                    severity = vul.severity

        return VulnerabilityReport(
            generated_at=now_utc(),
            artifact=req.artifact,
            scanner=self.scanner,
            vulnerabilities=vulnerabilities,
            severity=severity,
        )

    def _sample_size(self) -> int:
        size = self.cfg.vulnerabilities_per_report
        if size == 0:
            size = self._rng.randrange(self.db.total)
        return size

    def _sample(self, size: int) -> List[VulnerabilityItem]:
        """Draw `size` distinct records, redrawing on duplicates."""
        picked: Set[str] = set()
        items: List[VulnerabilityItem] = []
        while len(items) != size:
            vul = self.db.pick(self._rng)
            if vul.id in picked:
                continue
            picked.add(vul.id)
            items.append(vul)
        return items

    # ------------------------------------------------------------------
    # SBOM report
    # ------------------------------------------------------------------

    def generate_sbom_report(self, req: ScanRequest) -> SbomReport:
        now = now_utc()
        with self._lock:
            packages = [self._sbom_package(i) for i in range(self.cfg.sbom_packages_per_report)]
            document_id = self._fake.uuid4()

        document = SbomDocument(
            name=req.artifact.name,
            document_namespace=f"https://fake-scanner.goharbor.io/spdx/{req.artifact.repository}-{document_id}",
            created=now,
            creators=[
                f"Organization: {self.scanner.vendor}",
                f"Tool: {self.scanner.name}-{self.scanner.version}",
            ],
            packages=packages,
        )

        return SbomReport(
            generated_at=now,
            artifact=req.artifact,
            scanner=self.scanner,
            media_type=MEDIA_TYPE_SPDX_JSON,
            sbom=document,
        )

    def _sbom_package(self, index: int) -> SbomPackage:
        rng = self._rng
        version = f"{rng.randrange(5)}.{rng.randrange(10)}.{rng.randrange(20)}-r{rng.randrange(20)}"
        return SbomPackage(
            name=f"pkg-name-{self._fake.uuid4()}",
            spdx_id=f"SPDXRef-Package-{index}",
            version_info=version,
            license_concluded=rng.choice(SBOM_LICENSES),
            license_declared=rng.choice(SBOM_LICENSES),
        )
