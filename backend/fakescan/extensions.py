# fakescan/extensions.py
from __future__ import annotations

import logging
import random
from typing import Optional

from fakescan.config import Config
from fakescan.scanner import ScanOrchestrator
from fakescan.vulndb import VulnerabilityDB

logger = logging.getLogger(__name__)


def build_orchestrator(cfg: Config, rng: Optional[random.Random] = None) -> ScanOrchestrator:
    rng = rng or random.Random()
    db = VulnerabilityDB(cfg.db.total, rng=random.Random(rng.getrandbits(64)))
    return ScanOrchestrator(cfg, db, rng=random.Random(rng.getrandbits(64)))


def init_extensions(app, cfg: Config, orchestrator: Optional[ScanOrchestrator] = None) -> ScanOrchestrator:
    """Attach the scan orchestrator to the app as app.extensions["fakescan"]."""
    orchestrator = orchestrator or build_orchestrator(cfg)
    app.extensions["fakescan"] = orchestrator
    return orchestrator
