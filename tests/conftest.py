"""Shared fixtures for the fake scanner tests."""

from __future__ import annotations

import random
from typing import Any, List, Optional

import pytest

from fakescan import create_app
from fakescan.config import Config
from fakescan.scanner import ScanOrchestrator
from fakescan.vulndb import VulnerabilityDB
from tests.helpers import make_config


@pytest.fixture
def config() -> Config:
    return make_config()


@pytest.fixture(scope="session")
def vulndb() -> VulnerabilityDB:
    return VulnerabilityDB(100, rng=random.Random(7))


@pytest.fixture
def orchestrator_factory(vulndb):
    created: List[ScanOrchestrator] = []

    def factory(cfg: Optional[Config] = None, **kwargs: Any) -> ScanOrchestrator:
        kwargs.setdefault("rng", random.Random(11))
        o = ScanOrchestrator(cfg or make_config(), vulndb, **kwargs)
        created.append(o)
        return o

    yield factory

    for o in created:
        o.shutdown()


@pytest.fixture
def orchestrator(orchestrator_factory, config) -> ScanOrchestrator:
    return orchestrator_factory(config)


@pytest.fixture
def app(orchestrator, config):
    app = create_app(config, orchestrator=orchestrator)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
