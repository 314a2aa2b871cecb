"""Tests for the synthetic vulnerability database."""

from __future__ import annotations

import random
import re

import pytest

from fakescan.errors import DatabaseError
from fakescan.models import SEVERITY_ORDER, Severity
from fakescan.vulndb import TOTAL_IDS, VulnerabilityDB, max_severity, severity_less
from fakescan.vulndb.cve import MAX_IDS_PER_YEAR, random_cve_id

CVE_RE = re.compile(r"^CVE-(\d{4})-(\d+)$")


class TestSeverityOrder:

    def test_total_order(self) -> None:
        assert severity_less(Severity.LOW, Severity.MEDIUM)
        assert severity_less(Severity.MEDIUM, Severity.HIGH)
        assert severity_less(Severity.HIGH, Severity.CRITICAL)
        assert not severity_less(Severity.CRITICAL, Severity.LOW)
        assert not severity_less(Severity.HIGH, Severity.HIGH)

    def test_max_severity(self) -> None:
        assert max_severity([Severity.LOW, Severity.CRITICAL, Severity.MEDIUM]) is Severity.CRITICAL
        assert max_severity([Severity.MEDIUM]) is Severity.MEDIUM
        assert max_severity([]) is None

    def test_rank_matches_order(self) -> None:
        assert [s.rank for s in SEVERITY_ORDER] == [0, 1, 2, 3]


class TestCveIds:

    def test_ceiling_is_sum_of_year_ranges(self) -> None:
        assert TOTAL_IDS == 16 * 10_000 + 7 * 1_000_000

    def test_ids_are_year_scoped_and_padded(self) -> None:
        rng = random.Random(3)
        for _ in range(500):
            m = CVE_RE.match(random_cve_id(rng))
            assert m is not None
            year, number = int(m.group(1)), m.group(2)
            assert year in MAX_IDS_PER_YEAR
            assert len(number) == (4 if year <= 2014 else 6)
            assert int(number) < MAX_IDS_PER_YEAR[year]


class TestVulnerabilityDB:

    @pytest.mark.parametrize("total", [1, 10, 250])
    def test_exact_number_of_unique_records(self, total: int) -> None:
        db = VulnerabilityDB(total, rng=random.Random(total))
        ids = [item.id for item in db]
        assert db.total == total
        assert len(db) == total
        assert len(set(ids)) == total

    def test_pick_stays_inside_the_database(self) -> None:
        db = VulnerabilityDB(20, rng=random.Random(1))
        ids = {item.id for item in db}
        rng = random.Random(2)
        for _ in range(200):
            assert db.pick(rng).id in ids
        assert db.pick().id in ids

    def test_records_are_well_formed(self, vulndb) -> None:
        for item in vulndb:
            assert CVE_RE.match(item.id)
            assert 0 <= item.cvss_score_v3 < 10
            assert item.severity in SEVERITY_ORDER
            assert item.description
            assert item.package
            assert item.links

    def test_records_are_immutable(self, vulndb) -> None:
        item = vulndb.pick()
        with pytest.raises(Exception):
            item.severity = Severity.LOW  # type: ignore[misc]

    def test_seeded_databases_are_identical(self) -> None:
        a = VulnerabilityDB(30, rng=random.Random(99))
        b = VulnerabilityDB(30, rng=random.Random(99))
        assert [i.id for i in a] == [i.id for i in b]
        assert [i.description for i in a] == [i.description for i in b]

    def test_total_above_ceiling_is_fatal(self) -> None:
        with pytest.raises(DatabaseError, match="only"):
            VulnerabilityDB(TOTAL_IDS + 1)

    def test_pick_from_empty_database_raises(self) -> None:
        db = VulnerabilityDB(0)
        with pytest.raises(IndexError):
            db.pick()
