"""Tests for the registry puller, with the HTTP session mocked out."""

from __future__ import annotations

import base64
import hashlib
import json
from pathlib import Path
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import pytest
import requests

from fakescan.errors import PullError
from fakescan.models import Artifact, Registry, ScanRequest
from fakescan.scanner.puller import (
    RegistryPuller,
    get_cache_dir,
    parse_basic_auth,
    parse_bearer_challenge,
)
from tests.helpers import request_body


def _digest(data: bytes) -> str:
    return "sha256:" + hashlib.sha256(data).hexdigest()


class FakeResponse:

    def __init__(self, status_code: int = 200, content: bytes = b"", headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}
        self.closed = False

    def iter_content(self, chunk_size: int):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def json(self):
        return json.loads(self.content)

    def close(self) -> None:
        self.closed = True


CONFIG_BLOB = b'{"architecture":"amd64"}'
LAYER_BLOB = b"layer-bytes" * 100
MANIFEST = json.dumps({
    "schemaVersion": 2,
    "mediaType": "application/vnd.oci.image.manifest.v1+json",
    "config": {"digest": _digest(CONFIG_BLOB), "size": len(CONFIG_BLOB)},
    "layers": [{"digest": _digest(LAYER_BLOB), "size": len(LAYER_BLOB)}],
}).encode()


def _request(digest: str, authorization: str = "Basic dXNlcjpwYXNz") -> ScanRequest:
    body = request_body()
    body["artifact"]["digest"] = digest
    body["registry"]["authorization"] = authorization
    return ScanRequest.from_dict(body)


def _session(responses: Dict[str, List[FakeResponse]]) -> MagicMock:
    session = MagicMock(spec=requests.Session)
    calls: List[dict] = []

    def get(url, **kwargs):
        calls.append({"url": url, **kwargs})
        queue = responses[url]
        return queue.pop(0) if len(queue) > 1 else queue[0]

    session.get.side_effect = get
    session.calls = calls
    return session


BASE = "https://core.harbor.domain/v2/library/mongo"


def test_helpers() -> None:
    token = base64.b64encode(b"admin:Harbor12345").decode()
    assert parse_basic_auth(f"Basic {token}") == ("admin", "Harbor12345")
    assert parse_basic_auth("Bearer abc") is None
    assert parse_basic_auth("Basic !!!") is None
    assert parse_basic_auth(None) is None

    challenge = 'Bearer realm="https://core.harbor.domain/service/token",service="harbor-registry",scope="repository:library/mongo:pull"'
    assert parse_bearer_challenge(challenge) == {
        "realm": "https://core.harbor.domain/service/token",
        "service": "harbor-registry",
        "scope": "repository:library/mongo:pull",
    }
    assert parse_bearer_challenge('Basic realm="x"') is None


def test_cache_dir_respects_xdg(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))
    assert get_cache_dir() == str(tmp_path / "fake-scanner")


def test_pull_stores_manifest_and_blobs(tmp_path: Path) -> None:
    manifest_digest = _digest(MANIFEST)
    session = _session({
        f"{BASE}/manifests/{manifest_digest}": [FakeResponse(content=MANIFEST)],
        f"{BASE}/blobs/{_digest(CONFIG_BLOB)}": [FakeResponse(content=CONFIG_BLOB)],
        f"{BASE}/blobs/{_digest(LAYER_BLOB)}": [FakeResponse(content=LAYER_BLOB)],
    })
    puller = RegistryPuller(cache_dir=str(tmp_path), session=session)

    puller.pull(_request(manifest_digest))

    blob_dir = tmp_path / "docker" / "registry" / "v2" / "blobs" / "sha256"
    for data in (MANIFEST, CONFIG_BLOB, LAYER_BLOB):
        assert (blob_dir / hashlib.sha256(data).hexdigest()).read_bytes() == data
    assert len(list(blob_dir.iterdir())) == 3
    assert session.calls[0]["auth"] == ("user", "pass")
    assert "application/vnd.oci.image.manifest.v1+json" in session.calls[0]["headers"]["Accept"]


def test_cached_blobs_are_not_fetched_again(tmp_path: Path) -> None:
    manifest_digest = _digest(MANIFEST)
    responses = {
        f"{BASE}/manifests/{manifest_digest}": [FakeResponse(content=MANIFEST)],
        f"{BASE}/blobs/{_digest(CONFIG_BLOB)}": [FakeResponse(content=CONFIG_BLOB)],
        f"{BASE}/blobs/{_digest(LAYER_BLOB)}": [FakeResponse(content=LAYER_BLOB)],
    }
    session = _session(responses)
    puller = RegistryPuller(cache_dir=str(tmp_path), session=session)

    puller.pull(_request(manifest_digest))
    first = len(session.calls)
    puller.pull(_request(manifest_digest))

    assert first == 3
    assert len(session.calls) == 4


def test_bearer_token_flow(tmp_path: Path) -> None:
    index = json.dumps({"schemaVersion": 2, "manifests": []}).encode()
    digest = _digest(index)
    realm = "https://core.harbor.domain/service/token"
    challenge = f'Bearer realm="{realm}",service="harbor-registry"'
    session = _session({
        f"{BASE}/manifests/{digest}": [
            FakeResponse(401, headers={"WWW-Authenticate": challenge}),
            FakeResponse(content=index),
        ],
        realm: [FakeResponse(content=b'{"token": "t0k3n"}')],
    })
    puller = RegistryPuller(cache_dir=str(tmp_path), session=session)

    puller.pull(_request(digest))

    token_call = session.calls[1]
    assert token_call["url"] == realm
    assert token_call["params"] == {"service": "harbor-registry", "scope": "repository:library/mongo:pull"}
    assert token_call["auth"] == ("user", "pass")
    assert session.calls[2]["headers"]["Authorization"] == "Bearer t0k3n"


def test_bearer_authorization_is_forwarded(tmp_path: Path) -> None:
    index = json.dumps({"manifests": []}).encode()
    digest = _digest(index)
    session = _session({f"{BASE}/manifests/{digest}": [FakeResponse(content=index)]})
    puller = RegistryPuller(cache_dir=str(tmp_path), session=session)

    puller.pull(_request(digest, authorization="Bearer robot-token"))

    assert session.calls[0]["headers"]["Authorization"] == "Bearer robot-token"
    assert session.calls[0]["auth"] is None


def test_http_error_becomes_pull_error(tmp_path: Path) -> None:
    digest = _digest(MANIFEST)
    session = _session({f"{BASE}/manifests/{digest}": [FakeResponse(404)]})
    puller = RegistryPuller(cache_dir=str(tmp_path), session=session)

    with pytest.raises(PullError, match="404"):
        puller.pull(_request(digest))


def test_unauthorized_without_challenge(tmp_path: Path) -> None:
    digest = _digest(MANIFEST)
    session = _session({f"{BASE}/manifests/{digest}": [FakeResponse(401)]})
    puller = RegistryPuller(cache_dir=str(tmp_path), session=session)

    with pytest.raises(PullError, match="unauthorized"):
        puller.pull(_request(digest))


def test_digest_mismatch(tmp_path: Path) -> None:
    digest = "sha256:" + "b" * 64
    session = _session({f"{BASE}/manifests/{digest}": [FakeResponse(content=MANIFEST)]})
    puller = RegistryPuller(cache_dir=str(tmp_path), session=session)

    with pytest.raises(PullError, match="digest mismatch"):
        puller.pull(_request(digest))


def test_connection_error(tmp_path: Path) -> None:
    session = MagicMock(spec=requests.Session)
    session.get.side_effect = requests.ConnectionError("connection refused")
    puller = RegistryPuller(cache_dir=str(tmp_path), session=session)

    with pytest.raises(PullError, match="connection refused"):
        puller.pull(_request(_digest(MANIFEST)))


def test_request_without_registry_url(tmp_path: Path) -> None:
    session = MagicMock(spec=requests.Session)
    puller = RegistryPuller(cache_dir=str(tmp_path), session=session)
    req = ScanRequest(
        registry=Registry(url=""),
        artifact=Artifact(repository="library/mongo", digest=_digest(MANIFEST)),
    )

    with pytest.raises(PullError, match="registry url required"):
        puller.pull(req)
    session.get.assert_not_called()
