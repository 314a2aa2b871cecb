# fakescan/scanner/constants.py
from __future__ import annotations

from fakescan.models import Scanner

SCANNER = Scanner(name="Fake", vendor="Fake Scanner", version="v1.0.0")

# Metadata property keys
VULNERABILITY_DATABASE_UPDATED_AT = "harbor.scanner-adapter/vulnerability-database-updated-at"
SCANNER_TYPE = "harbor.scanner-adapter/scanner-type"

# Artifact manifests the scanner accepts
MIME_TYPE_OCI_ARTIFACT = "application/vnd.oci.image.manifest.v1+json"
MIME_TYPE_DOCKER_ARTIFACT = "application/vnd.docker.distribution.manifest.v2+json"
MIME_TYPE_OCI_INDEX = "application/vnd.oci.image.index.v1+json"
MIME_TYPE_DOCKER_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"

# Reports the scanner produces
MIME_TYPE_NATIVE_REPORT = "application/vnd.scanner.adapter.vuln.report.harbor+json; version=1.0"
MIME_TYPE_GENERIC_VULNERABILITY_REPORT = "application/vnd.security.vulnerability.report; version=1.1"
MIME_TYPE_SBOM_REPORT = "application/vnd.security.sbom.report+json; version=1.0"
MEDIA_TYPE_SPDX_JSON = "application/spdx+json"

# API envelopes
MIME_TYPE_METADATA = "application/vnd.scanner.adapter.metadata+json; version=1.1"
MIME_TYPE_SCAN_RESPONSE = "application/vnd.scanner.adapter.scan.response+json; version=1.0"
MIME_TYPE_ERROR = "application/vnd.scanner.adapter.error+json; version=1.0"

SBOM_LICENSES = (
    "GPL-2.0-only",
    "MIT",
    "MPL-2.0 AND MIT",
    "BSD-2-Clause AND BSD-3-Clause",
    "BSD-3-Clause AND MIT",
    "MIT AND BSD-3-Clause AND GPL-2.0-only",
)
