"""Tests for the in-memory result store."""

from __future__ import annotations

import threading

import pytest

from fakescan.errors import ReportNotFoundError, SimulatedScanError
from fakescan.models import VulnerabilityReport, now_utc
from fakescan.store import MemoryStore, ReportOrError, new_store
from fakescan.scanner.constants import SCANNER
from tests.helpers import make_request


def _report(req) -> VulnerabilityReport:
    return VulnerabilityReport(generated_at=now_utc(), artifact=req.artifact, scanner=SCANNER)


class TestMemoryStore:

    def test_new_store_is_memory_backed(self) -> None:
        assert isinstance(new_store(), MemoryStore)

    def test_unknown_id_is_not_found(self) -> None:
        store = MemoryStore()
        with pytest.raises(ReportNotFoundError):
            store.get_request("nope")
        with pytest.raises(ReportNotFoundError):
            store.get_report_or_error("nope")

    def test_new_entry_is_pending(self) -> None:
        store = MemoryStore()
        req = make_request()
        store.set_request("id-1", req)

        assert store.get_request("id-1") is req
        result = store.get_report_or_error("id-1")
        assert result.pending
        assert result == ReportOrError()

    def test_result_overwrites_fields_but_not_created_at(self) -> None:
        store = MemoryStore()
        req = make_request()
        store.set_request("id-1", req)
        created = store.created_at("id-1")

        report = _report(req)
        store.set_report_or_error("id-1", ReportOrError(vuln_report=report))

        result = store.get_report_or_error("id-1")
        assert not result.pending
        assert result.vuln_report is report
        assert result.error is None
        assert store.created_at("id-1") == created

    def test_error_result(self) -> None:
        store = MemoryStore()
        store.set_request("id-1", make_request())
        err = SimulatedScanError("boom")
        store.set_report_or_error("id-1", ReportOrError(error=err))

        result = store.get_report_or_error("id-1")
        assert result.error is err
        assert result.vuln_report is None and result.sbom_report is None

    def test_result_for_unknown_id_is_dropped(self) -> None:
        store = MemoryStore()
        store.set_report_or_error("ghost", ReportOrError(error=SimulatedScanError("x")))
        assert "ghost" not in store
        assert len(store) == 0

    def test_remove_request(self) -> None:
        store = MemoryStore()
        store.set_request("id-1", make_request())
        store.remove_request("id-1")
        store.remove_request("id-1")
        assert len(store) == 0

    def test_concurrent_writers(self) -> None:
        store = MemoryStore()
        req = make_request()
        report = _report(req)

        def work(n: int) -> None:
            for i in range(200):
                key = f"{n}-{i}"
                store.set_request(key, req)
                store.set_report_or_error(key, ReportOrError(vuln_report=report))
                assert store.get_report_or_error(key).vuln_report is report

        threads = [threading.Thread(target=work, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store) == 8 * 200
