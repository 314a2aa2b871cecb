# fakescan/vulndb/__init__.py
"""
Synthetic vulnerability database.

Usage:
    from fakescan.vulndb import VulnerabilityDB

    db = VulnerabilityDB(10_000, rng=random.Random(42))
    item = db.pick()
"""

from fakescan.vulndb.cve import TOTAL_IDS, max_severity, severity_less
from fakescan.vulndb.database import VulnerabilityDB

__all__ = ["TOTAL_IDS", "VulnerabilityDB", "max_severity", "severity_less"]
