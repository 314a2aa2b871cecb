# fakescan/scanner/orchestrator.py
"""
Scan Orchestrator: the public face of the fake scanner.

    Metadata()   → static adapter descriptor
    Scan(req)    → store Pending, enqueue job, return id without waiting
    GetReport(id)→ whatever the store holds for the id right now

Per-id lifecycle:

    Unsubmitted ──scan()──▶ Pending ──worker──▶ Done{report | error}

The worker that runs a job is the only writer of its entry after creation.
Errors raised while pulling or generating never leave the worker; they are
stored as the terminal result and surface on the next poll.

Usage from the API blueprint:
    orchestrator = ScanOrchestrator(cfg, db)
    scan_id = orchestrator.scan(scan_request)
    result = orchestrator.get_report(scan_id)
"""

from __future__ import annotations

import logging
import random
import uuid
from typing import Optional

from fakescan.config import Config
from fakescan.errors import QueueSaturatedError, ReportNotFoundError
from fakescan.models import (
    CapabilityType,
    ScannerAdapterMetadata,
    ScannerCapability,
    ScanRequest,
    now_utc,
)
from fakescan.scanner.constants import (
    MEDIA_TYPE_SPDX_JSON,
    MIME_TYPE_DOCKER_ARTIFACT,
    MIME_TYPE_GENERIC_VULNERABILITY_REPORT,
    MIME_TYPE_NATIVE_REPORT,
    MIME_TYPE_OCI_ARTIFACT,
    MIME_TYPE_SBOM_REPORT,
    SCANNER,
    SCANNER_TYPE,
    VULNERABILITY_DATABASE_UPDATED_AT,
)
from fakescan.scanner.dispatcher import Dispatcher
from fakescan.scanner.generator import ReportGenerator
from fakescan.scanner.puller import RegistryPuller
from fakescan.store import ReportOrError, Store, new_store
from fakescan.vulndb import VulnerabilityDB

logger = logging.getLogger(__name__)


def build_metadata() -> ScannerAdapterMetadata:
    consumes = [MIME_TYPE_OCI_ARTIFACT, MIME_TYPE_DOCKER_ARTIFACT]
    return ScannerAdapterMetadata(
        scanner=SCANNER,
        capabilities=[
            ScannerCapability(
                type=CapabilityType.VULNERABILITY,
                consumes_mime_types=consumes,
                produces_mime_types=[MIME_TYPE_NATIVE_REPORT, MIME_TYPE_GENERIC_VULNERABILITY_REPORT],
            ),
            ScannerCapability(
                type=CapabilityType.SBOM,
                consumes_mime_types=consumes,
                produces_mime_types=[MIME_TYPE_SBOM_REPORT],
                additional_attributes={"sbom_media_types": [MEDIA_TYPE_SPDX_JSON]},
            ),
        ],
        properties={
            VULNERABILITY_DATABASE_UPDATED_AT: now_utc().replace(microsecond=0).isoformat(),
            SCANNER_TYPE: "os-package-vulnerability",
        },
    )


class ScanOrchestrator:

    def __init__(
        self,
        cfg: Config,
        db: VulnerabilityDB,
        store: Optional[Store] = None,
        dispatcher: Optional[Dispatcher] = None,
        generator: Optional[ReportGenerator] = None,
        puller: Optional[RegistryPuller] = None,
        rng: Optional[random.Random] = None,
    ):
        self.cfg = cfg
        self.db = db
        self.store = store if store is not None else new_store()
        self.generator = generator or ReportGenerator(cfg.scanner, db, SCANNER, rng=rng)

        self.puller = puller
        if self.puller is None and not cfg.scanner.skip_pulling:
            self.puller = RegistryPuller(insecure=cfg.scanner.insecure_registry)

        if dispatcher is None:
            dispatcher = Dispatcher(cfg.scanner.workers)
            dispatcher.start()
        self.dispatcher = dispatcher

        self._metadata = build_metadata()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def metadata(self) -> ScannerAdapterMetadata:
        return self._metadata

    def scan(self, req: ScanRequest) -> str:
        """
        Accept a scan request and return its id immediately.

        Raises QueueSaturatedError when the job queue is full; the Pending
        entry for that attempt is removed before raising.
        """
        scan_request_id = str(uuid.uuid4())
        self.store.set_request(scan_request_id, req)

        try:
            self.dispatcher.dispatch(lambda: self.execute(scan_request_id))
        except QueueSaturatedError:
            self.store.remove_request(scan_request_id)
            raise

        logger.debug(f"Accepted scan request {scan_request_id} for {req.reference}")
        return scan_request_id

    def get_report(self, scan_request_id: str) -> ReportOrError:
        """
        Current result for the id. Pending reads back with every field None.
        Raises ReportNotFoundError for ids never produced by scan().
        """
        return self.store.get_report_or_error(scan_request_id)

    def shutdown(self) -> None:
        self.dispatcher.stop()

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def execute(self, scan_request_id: str) -> None:
        """Run one job to completion and record its outcome."""
        try:
            req = self.store.get_request(scan_request_id)
        except ReportNotFoundError:
            logger.warning(f"Scan request {scan_request_id} vanished before its job ran")
            return

        if self.puller is not None:
            try:
                self.puller.pull(req)
            except Exception as e:
                logger.error(f"Pull artifact {req.reference} failed: {e}")
                self.store.set_report_or_error(scan_request_id, ReportOrError(error=e))
                return

        try:
            reports = self.generator.generate(req)
        except Exception as e:
            logger.error(f"Generate report for {req.reference} failed: {e}")
            self.store.set_report_or_error(scan_request_id, ReportOrError(error=e))
            return

        self.store.set_report_or_error(
            scan_request_id,
            ReportOrError(vuln_report=reports.vuln_report, sbom_report=reports.sbom_report),
        )
        logger.debug(f"Scan request {scan_request_id} for {req.reference} done")
