# fakescan/vulndb/database.py
from __future__ import annotations

import logging
import random
from typing import List, Optional, Set

from faker import Faker

from fakescan.errors import DatabaseError
from fakescan.models import VulnerabilityItem
from fakescan.vulndb.cve import TOTAL_IDS, generate_record, random_cve_id

logger = logging.getLogger(__name__)


class VulnerabilityDB:
    """
    Fixed pool of synthetic vulnerabilities, built once at startup.

    Read-only after construction, so concurrent `pick()` calls need no
    locking as long as each caller brings its own random source.
    """

    def __init__(self, total: int, rng: Optional[random.Random] = None):
        if total > TOTAL_IDS:
            raise DatabaseError(f"only {TOTAL_IDS} vulnerabilities exist, cannot build {total}")
        if total < 0:
            raise DatabaseError(f"database total must not be negative, got {total}")

        self._rng = rng or random.Random()
        fake = Faker()
        fake.seed_instance(self._rng.getrandbits(32))

        items: List[VulnerabilityItem] = []
        seen: Set[str] = set()
        while len(items) != total:
            cve_id = random_cve_id(self._rng)
            if cve_id in seen:
                continue
            seen.add(cve_id)
            items.append(generate_record(cve_id, self._rng, fake))

        self._items = tuple(items)
        logger.info(f"Vulnerability database built with {total} records")

    @property
    def total(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def pick(self, rng: Optional[random.Random] = None) -> VulnerabilityItem:
        """Uniformly random record. Raises IndexError on an empty database."""
        if not self._items:
            raise IndexError("pick from an empty vulnerability database")
        return self._items[(rng or self._rng).randrange(len(self._items))]
