# fakescan/models.py
"""
Wire data model of the Harbor scanner adapter API.

Everything the scanner receives or returns lives here as a dataclass:

    ScanRequest            - decoded from the POST /scan body (from_dict)
    VulnerabilityItem      - one record of the synthetic database
    VulnerabilityReport    - vulnerability report for one artifact
    SbomReport             - SPDX-style SBOM report for one artifact
    ScannerAdapterMetadata - static descriptor served by GET /metadata

Requests are parsed with `from_dict()`, which raises ValidationError on
missing or mistyped fields. Responses are serialized with `to_dict()`,
which produces the JSON shapes Harbor expects (snake_case keys for the
adapter envelope, camelCase keys inside the SPDX document).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from fakescan.errors import ValidationError


def now_utc() -> datetime:
    """Timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _drop_none(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


# ---------------------------------------------------------------------------
# Severity
# ---------------------------------------------------------------------------

class Severity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        return SEVERITY_ORDER.index(self)


# Low < Medium < High < Critical
SEVERITY_ORDER: Tuple[Severity, ...] = (
    Severity.LOW,
    Severity.MEDIUM,
    Severity.HIGH,
    Severity.CRITICAL,
)


class CapabilityType(str, Enum):
    VULNERABILITY = "vulnerability"
    SBOM = "sbom"


# ---------------------------------------------------------------------------
# Scan request
# ---------------------------------------------------------------------------

def _require_dict(body: Any, name: str) -> Dict[str, Any]:
    if not isinstance(body, dict):
        raise ValidationError(f"{name} must be an object")
    return body


def _require_str(body: Dict[str, Any], key: str, name: str) -> str:
    value = body.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name}.{key} is required")
    return value.strip()


def _optional_str(body: Dict[str, Any], key: str, name: str) -> Optional[str]:
    value = body.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name}.{key} must be a string")
    return value


@dataclass
class Registry:
    url: str
    authorization: Optional[str] = None

    @property
    def host(self) -> str:
        return urlparse(self.url).netloc

    @classmethod
    def from_dict(cls, body: Any) -> "Registry":
        body = _require_dict(body, "registry")
        url = _require_str(body, "url", "registry")
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError(f"registry.url is not a valid http(s) URL: {url}")
        return cls(url=url, authorization=_optional_str(body, "authorization", "registry"))

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({"url": self.url, "authorization": self.authorization})


@dataclass
class Artifact:
    repository: str
    digest: str
    tag: Optional[str] = None
    mime_type: Optional[str] = None
    namespace_id: Optional[int] = None
    size: Optional[int] = None

    @property
    def name(self) -> str:
        """`repository:tag` when tagged, `repository:digest` otherwise."""
        return f"{self.repository}:{self.tag or self.digest}"

    @classmethod
    def from_dict(cls, body: Any) -> "Artifact":
        body = _require_dict(body, "artifact")
        namespace_id = body.get("namespace_id")
        size = body.get("size")
        for key, value in (("namespace_id", namespace_id), ("size", size)):
            if value is not None and (not isinstance(value, int) or isinstance(value, bool)):
                raise ValidationError(f"artifact.{key} must be an integer")
        return cls(
            repository=_require_str(body, "repository", "artifact"),
            digest=_require_str(body, "digest", "artifact"),
            tag=_optional_str(body, "tag", "artifact") or None,
            mime_type=_optional_str(body, "mime_type", "artifact"),
            namespace_id=namespace_id,
            size=size,
        )

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "namespace_id": self.namespace_id,
            "repository": self.repository,
            "digest": self.digest,
            "tag": self.tag,
            "mime_type": self.mime_type,
            "size": self.size,
        })


@dataclass
class Capability:
    """
    A capability declared on a scan request.

    `type` stays the raw string from the request; the report generator maps it
    onto CapabilityType and rejects anything it does not know.
    """
    type: str
    produces_mime_types: List[str] = field(default_factory=list)
    parameters: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, body: Any) -> "Capability":
        body = _require_dict(body, "enabled_capabilities[]")
        produces = body.get("produces_mime_types") or []
        parameters = body.get("parameters") or {}
        if not isinstance(produces, list) or not all(isinstance(m, str) for m in produces):
            raise ValidationError("enabled_capabilities[].produces_mime_types must be a list of strings")
        if not isinstance(parameters, dict):
            raise ValidationError("enabled_capabilities[].parameters must be an object")
        return cls(
            type=_require_str(body, "type", "enabled_capabilities[]"),
            produces_mime_types=list(produces),
            parameters=dict(parameters),
        )


@dataclass
class ScanRequest:
    registry: Registry
    artifact: Artifact
    enabled_capabilities: List[Capability] = field(default_factory=list)

    @property
    def reference(self) -> str:
        """`host/repository@digest`, the form used in logs and registry pulls."""
        return f"{self.registry.host}/{self.artifact.repository}@{self.artifact.digest}"

    @classmethod
    def from_dict(cls, body: Any) -> "ScanRequest":
        """Decode a scan request body. Raises ValidationError on bad input."""
        body = _require_dict(body, "scan request")
        if "registry" not in body:
            raise ValidationError("registry is required")
        if "artifact" not in body:
            raise ValidationError("artifact is required")

        capabilities = body.get("enabled_capabilities") or []
        if not isinstance(capabilities, list):
            raise ValidationError("enabled_capabilities must be a list")

        return cls(
            registry=Registry.from_dict(body["registry"]),
            artifact=Artifact.from_dict(body["artifact"]),
            enabled_capabilities=[Capability.from_dict(c) for c in capabilities],
        )


# ---------------------------------------------------------------------------
# Vulnerability records and reports
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Scanner:
    name: str
    vendor: str
    version: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "vendor": self.vendor, "version": self.version}


@dataclass(frozen=True)
class VulnerabilityItem:
    """One synthetic vulnerability. Immutable; owned by the database."""
    id: str
    package: str
    version: str
    severity: Severity
    description: str
    cvss_score_v3: float
    fix_version: Optional[str] = None
    links: Tuple[str, ...] = ()
    cwe_ids: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "id": self.id,
            "package": self.package,
            "version": self.version,
            "fix_version": self.fix_version,
            "severity": self.severity.value,
            "description": self.description,
            "links": list(self.links),
            "preferred_cvss": {"score_v3": math.floor(self.cvss_score_v3 * 10) / 10},
            "cwe_ids": list(self.cwe_ids),
        })


@dataclass
class VulnerabilityReport:
    generated_at: datetime
    artifact: Artifact
    scanner: Scanner
    vulnerabilities: List[VulnerabilityItem] = field(default_factory=list)
    severity: Optional[Severity] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "generated_at": _ts(self.generated_at),
            "artifact": self.artifact.to_dict(),
            "scanner": self.scanner.to_dict(),
            "severity": self.severity.value if self.severity else None,
            "vulnerabilities": [v.to_dict() for v in self.vulnerabilities],
        })


# ---------------------------------------------------------------------------
# SBOM
# ---------------------------------------------------------------------------

@dataclass
class SbomPackage:
    name: str
    spdx_id: str
    version_info: str
    license_concluded: str
    license_declared: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "SPDXID": self.spdx_id,
            "versionInfo": self.version_info,
            "downloadLocation": "NONE",
            "licenseConcluded": self.license_concluded,
            "licenseDeclared": self.license_declared,
        }


@dataclass
class SbomDocument:
    """SPDX 2.3 document envelope around the fabricated package list."""
    name: str
    document_namespace: str
    created: datetime
    creators: List[str]
    packages: List[SbomPackage] = field(default_factory=list)
    spdx_version: str = "SPDX-2.3"
    data_license: str = "CC0-1.0"
    spdx_id: str = "SPDXRef-DOCUMENT"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spdxVersion": self.spdx_version,
            "dataLicense": self.data_license,
            "SPDXID": self.spdx_id,
            "name": self.name,
            "documentNamespace": self.document_namespace,
            "creationInfo": {
                "created": _ts(self.created),
                "creators": list(self.creators),
            },
            "packages": [p.to_dict() for p in self.packages],
        }


@dataclass
class SbomReport:
    generated_at: datetime
    artifact: Artifact
    scanner: Scanner
    media_type: str
    sbom: SbomDocument

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generated_at": _ts(self.generated_at),
            "artifact": self.artifact.to_dict(),
            "scanner": self.scanner.to_dict(),
            "media_type": self.media_type,
            "sbom": self.sbom.to_dict(),
        }


# ---------------------------------------------------------------------------
# Adapter metadata
# ---------------------------------------------------------------------------

@dataclass
class ScannerCapability:
    type: CapabilityType
    consumes_mime_types: List[str]
    produces_mime_types: List[str]
    additional_attributes: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "type": self.type.value,
            "consumes_mime_types": list(self.consumes_mime_types),
            "produces_mime_types": list(self.produces_mime_types),
        }
        if self.additional_attributes:
            d["additional_attributes"] = dict(self.additional_attributes)
        return d


@dataclass
class ScannerAdapterMetadata:
    scanner: Scanner
    capabilities: List[ScannerCapability]
    properties: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scanner": self.scanner.to_dict(),
            "capabilities": [c.to_dict() for c in self.capabilities],
            "properties": dict(self.properties),
        }
