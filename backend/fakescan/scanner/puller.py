# fakescan/scanner/puller.py
"""
Registry puller: fetches the scanned artifact before a report is generated.

Talks the OCI distribution API directly with requests:

    1. GET /v2/<repository>/manifests/<digest>
       (on 401 with a Bearer challenge: fetch a token from the realm, retry once)
    2. Store the manifest and each referenced blob (config + layers) in a
       content-addressed cache (<cache>/docker/registry/v2/blobs/sha256/<hex>),
       verifying sha256 digests
    3. Index manifests are stored as-is without descending into children

The only thing the scanner cares about is whether this succeeds: any
failure is raised as PullError and becomes the stored scan result.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
import logging
import os
import re
import tempfile
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse

import requests
import urllib3

from fakescan.errors import PullError
from fakescan.models import ScanRequest
from fakescan.scanner.constants import (
    MIME_TYPE_DOCKER_ARTIFACT,
    MIME_TYPE_DOCKER_MANIFEST_LIST,
    MIME_TYPE_OCI_ARTIFACT,
    MIME_TYPE_OCI_INDEX,
)

logger = logging.getLogger(__name__)

APP_NAME = "fake-scanner"

MANIFEST_ACCEPT = ", ".join([
    MIME_TYPE_OCI_ARTIFACT,
    MIME_TYPE_DOCKER_ARTIFACT,
    MIME_TYPE_OCI_INDEX,
    MIME_TYPE_DOCKER_MANIFEST_LIST,
])

_CHALLENGE_PARAM = re.compile(r'(\w+)="([^"]*)"')
_CHUNK_SIZE = 1024 * 1024


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def get_cache_dir() -> str:
    """`$XDG_CACHE_HOME/fake-scanner`, falling back to `~/.cache/fake-scanner`."""
    base = os.getenv("XDG_CACHE_HOME") or os.path.join(os.path.expanduser("~"), ".cache")
    return os.path.join(base, APP_NAME)


def parse_basic_auth(header: Optional[str]) -> Optional[Tuple[str, str]]:
    """Decode `Basic base64(user:password)`. Returns None for anything else."""
    if not header:
        return None
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


def parse_bearer_challenge(header: str) -> Optional[Dict[str, str]]:
    """Parse `Bearer realm="...",service="...",scope="..."`."""
    scheme, _, params = (header or "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return dict(_CHALLENGE_PARAM.findall(params))


def _split_digest(digest: str) -> Tuple[str, str]:
    algorithm, sep, hexdigest = digest.partition(":")
    if not sep or algorithm != "sha256" or not re.fullmatch(r"[a-f0-9]{64}", hexdigest):
        raise PullError(f"unsupported digest: {digest}")
    return algorithm, hexdigest


def _referenced_digests(manifest: Dict[str, Any]) -> List[str]:
    """Digests of the config and layer blobs of an image manifest."""
    digests: List[str] = []
    config = manifest.get("config")
    if isinstance(config, dict) and config.get("digest"):
        digests.append(config["digest"])
    for layer in manifest.get("layers") or []:
        if isinstance(layer, dict) and layer.get("digest"):
            digests.append(layer["digest"])
    return digests


# ---------------------------------------------------------------------------
# Puller
# ---------------------------------------------------------------------------

class RegistryPuller:

    def __init__(
        self,
        cache_dir: Optional[str] = None,
        insecure: bool = True,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        self.cache_dir = cache_dir or get_cache_dir()
        self.root = os.path.join(self.cache_dir, "docker", "registry", "v2")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.verify = not insecure
        if insecure:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def pull(self, req: ScanRequest) -> None:
        """
        Pull the artifact of a scan request. Raises PullError.

        Requests decoded by ScanRequest.from_dict always carry a registry URL;
        ones built directly in code may not, so it is checked again here.
        """
        if not req.registry or not req.registry.url:
            raise PullError("bad scan request, registry url required")

        try:
            self._pull(req)
        except PullError:
            raise
        except requests.RequestException as e:
            raise PullError(f"pull {req.reference} failed: {e}") from e
        except OSError as e:
            raise PullError(f"pull {req.reference} failed, cannot write cache: {e}") from e

    def _pull(self, req: ScanRequest) -> None:
        u = urlparse(req.registry.url)
        base_url = f"{u.scheme}://{u.netloc}"
        repository = req.artifact.repository
        digest = req.artifact.digest

        logger.debug(f"Pull artifact {req.reference}")

        client = _RegistryClient(
            self.session,
            base_url,
            repository,
            req.registry.authorization,
            self.timeout,
        )

        resp = client.get(f"/v2/{repository}/manifests/{digest}", headers={"Accept": MANIFEST_ACCEPT})
        body = resp.content
        self._verify(digest, body)
        self._write_blob(digest, [body])

        try:
            manifest = json.loads(body)
        except ValueError as e:
            raise PullError(f"invalid manifest for {req.reference}: {e}") from e
        if not isinstance(manifest, dict):
            raise PullError(f"invalid manifest for {req.reference}")

        if "manifests" in manifest:
            logger.debug(f"{req.reference} is an index, skipping child manifests")
            return

        for blob_digest in _referenced_digests(manifest):
            if self._has_blob(blob_digest):
                continue
            blob = client.get(f"/v2/{repository}/blobs/{blob_digest}", stream=True)
            try:
                self._write_blob(blob_digest, blob.iter_content(_CHUNK_SIZE), verify=True)
            finally:
                blob.close()

        logger.debug(f"Pulled artifact {req.reference}")

    # -- cache --------------------------------------------------------------

    def _blob_path(self, digest: str) -> str:
        algorithm, hexdigest = _split_digest(digest)
        return os.path.join(self.root, "blobs", algorithm, hexdigest)

    def _has_blob(self, digest: str) -> bool:
        return os.path.exists(self._blob_path(digest))

    @staticmethod
    def _verify(digest: str, data: bytes) -> None:
        _, hexdigest = _split_digest(digest)
        actual = hashlib.sha256(data).hexdigest()
        if actual != hexdigest:
            raise PullError(f"digest mismatch: expected {digest}, got sha256:{actual}")

    def _write_blob(self, digest: str, chunks: Iterable[bytes], verify: bool = False) -> None:
        path = self._blob_path(digest)
        os.makedirs(os.path.dirname(path), exist_ok=True)

        h = hashlib.sha256()
        fd, tmp = tempfile.mkstemp(dir=os.path.dirname(path))
        try:
            with os.fdopen(fd, "wb") as f:
                for chunk in chunks:
                    if chunk:
                        h.update(chunk)
                        f.write(chunk)
            if verify and "sha256:" + h.hexdigest() != digest:
                raise PullError(f"digest mismatch: expected {digest}, got sha256:{h.hexdigest()}")
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise


class _RegistryClient:
    """Per-pull HTTP helper that handles the registry token dance."""

    def __init__(
        self,
        session: requests.Session,
        base_url: str,
        repository: str,
        authorization: Optional[str],
        timeout: float,
    ):
        self.session = session
        self.base_url = base_url
        self.repository = repository
        self.timeout = timeout
        self.basic = parse_basic_auth(authorization)
        self.auth_header: Optional[str] = None
        if authorization and authorization.lower().startswith("bearer "):
            self.auth_header = authorization

    def get(self, path: str, headers: Optional[Dict[str, str]] = None, stream: bool = False) -> requests.Response:
        resp = self._request(path, headers, stream)
        if resp.status_code == 401:
            challenge = resp.headers.get("WWW-Authenticate", "")
            resp.close()
            self._authorize(challenge)
            resp = self._request(path, headers, stream)

        if resp.status_code != 200:
            status = resp.status_code
            resp.close()
            raise PullError(f"GET {self.base_url}{path} returned {status}")
        return resp

    def _request(self, path: str, headers: Optional[Dict[str, str]], stream: bool) -> requests.Response:
        h = dict(headers or {})
        auth = None
        if self.auth_header:
            h["Authorization"] = self.auth_header
        elif self.basic:
            auth = self.basic
        return self.session.get(
            self.base_url + path,
            headers=h,
            auth=auth,
            stream=stream,
            timeout=self.timeout,
        )

    def _authorize(self, challenge: str) -> None:
        params = parse_bearer_challenge(challenge)
        if not params or not params.get("realm"):
            raise PullError(f"unauthorized by {self.base_url}: {challenge or 'no challenge'}")

        query = {k: v for k, v in params.items() if k in ("service", "scope") and v}
        query.setdefault("scope", f"repository:{self.repository}:pull")

        resp = self.session.get(params["realm"], params=query, auth=self.basic, timeout=self.timeout)
        if resp.status_code != 200:
            raise PullError(f"token request to {params['realm']} returned {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as e:
            raise PullError(f"invalid token response from {params['realm']}: {e}") from e

        token = (data.get("token") or data.get("access_token")) if isinstance(data, dict) else None
        if not token:
            raise PullError(f"no token in response from {params['realm']}")
        self.auth_header = f"Bearer {token}"
