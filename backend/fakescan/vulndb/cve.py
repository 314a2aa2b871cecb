# fakescan/vulndb/cve.py
"""
Synthetic CVE records.

Identifiers are drawn per year: 1999-2014 allow 10,000 ids each
(CVE-YYYY-NNNN), 2015-2021 allow 1,000,000 each (CVE-YYYY-NNNNNN).
The sum of those ranges is the ceiling on the database size.
"""

from __future__ import annotations

import math
import random
from typing import Dict, Iterable, List, Optional

from faker import Faker

from fakescan.models import SEVERITY_ORDER, Severity, VulnerabilityItem

FIRST_YEAR = 1999
LAST_YEAR = 2021

MAX_IDS_PER_YEAR: Dict[int, int] = {
    year: 10_000 if year <= 2014 else 1_000_000
    for year in range(FIRST_YEAR, LAST_YEAR + 1)
}
YEARS: List[int] = sorted(MAX_IDS_PER_YEAR)
TOTAL_IDS: int = sum(MAX_IDS_PER_YEAR.values())


def severity_less(a: Severity, b: Severity) -> bool:
    return a.rank < b.rank


def max_severity(severities: Iterable[Severity]) -> Optional[Severity]:
    """Worst severity of the given ones, or None for an empty input."""
    worst: Optional[Severity] = None
    for s in severities:
        if worst is None or severity_less(worst, s):
            worst = s
    return worst


def random_cve_id(rng: random.Random) -> str:
    year = rng.choice(YEARS)
    limit = MAX_IDS_PER_YEAR[year]
    width = int(math.log10(limit))
    return f"CVE-{year}-{rng.randrange(limit):0{width}d}"


def _app_version(rng: random.Random) -> str:
    return f"{rng.randrange(10)}.{rng.randrange(20)}.{rng.randrange(30)}"


def generate_record(cve_id: str, rng: random.Random, fake: Faker) -> VulnerabilityItem:
    """Fabricate the descriptive fields of one vulnerability."""
    fix_version = _app_version(rng) if rng.random() < 0.5 else None
    return VulnerabilityItem(
        id=cve_id,
        package=fake.domain_word(),
        version=_app_version(rng),
        severity=rng.choice(SEVERITY_ORDER),
        description=fake.sentence(nb_words=10),
        cvss_score_v3=rng.random() * 10,
        fix_version=fix_version,
        links=(f"https://nvd.nist.gov/vuln/detail/{cve_id}", fake.url()),
        cwe_ids=(f"CWE-{rng.randrange(1, 1000)}",),
    )
