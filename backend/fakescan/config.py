# fakescan/config.py
"""
Configuration loading.

Precedence (highest to lowest):
    1. Environment variables (DB_TOTAL, SCANNER_WORKERS, ...)
    2. YAML config files, later paths overriding earlier ones
    3. Built-in defaults

Example config file:

    db:
      total: 10000
    scanner:
      workers: 100
      skipPulling: true
      errorRate: 0
      vulnerableRate: 1
      vulnerabilitiesPerReport: 100
      sbomPackagesPerReport: 10
      reportGeneratingDuration: 0s
    server:
      address: 0.0.0.0:8080
      accessLog: true
      timeout: 0s
      delay:
        metadata: 0s
        acceptScanRequest: 0s
        getScanReport: 0s
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import yaml

from fakescan.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.getenv("FAKE_SCANNER_CONFIG") or "/etc/fake-scanner/config.yaml"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: Any) -> float:
    """
    Parse a duration into seconds.

    Accepts numbers (seconds) and Go-style strings: "0s", "250ms", "1.5s",
    "2m", "1h30m".
    """
    if isinstance(value, bool):
        raise ConfigError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip()
    if not text:
        raise ConfigError("invalid duration: empty string")
    try:
        return float(text)
    except ValueError:
        pass

    total = 0.0
    pos = 0
    for m in _DURATION_PART.finditer(text):
        if m.start() != pos:
            break
        total += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
        pos = m.end()
    if pos != len(text):
        raise ConfigError(f"invalid duration: {value!r}")
    return total


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off", ""):
        return False
    raise ConfigError(f"invalid boolean: {value!r}")


# ---------------------------------------------------------------------------
# Config tree
# ---------------------------------------------------------------------------

@dataclass
class DBConfig:
    # The total count of the vulnerabilities in db
    total: int = 10000


@dataclass
class ScannerConfig:
    workers: int = 100
    # Skip pulling the artifact from the registry when true
    skip_pulling: bool = True
    # Probability that a scan fails
    error_rate: float = 0.0
    # Probability that an artifact has vulnerabilities at all
    vulnerable_rate: float = 1.0
    # 0 means a random count in [0, db.total)
    vulnerabilities_per_report: int = 100
    sbom_packages_per_report: int = 10
    # Simulated scan duration, seconds
    report_generating_duration: float = 0.0
    # Skip TLS verification when pulling from registries
    insecure_registry: bool = True


@dataclass
class DelayConfig:
    metadata: float = 0.0
    accept_scan_request: float = 0.0
    get_scan_report: float = 0.0


@dataclass
class ServerConfig:
    address: str = "0.0.0.0:8080"
    access_log: bool = True
    timeout: float = 0.0
    delay: DelayConfig = field(default_factory=DelayConfig)

    @property
    def host_port(self) -> Tuple[str, int]:
        host, sep, port = self.address.rpartition(":")
        if not sep or not port.isdigit():
            raise ConfigError(f"server.address must be host:port, got {self.address!r}")
        return host or "0.0.0.0", int(port)


@dataclass
class Config:
    db: DBConfig = field(default_factory=DBConfig)
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    def validate(self) -> None:
        s = self.scanner
        if not 0 <= s.error_rate <= 1:
            raise ConfigError(f"scanner.errorRate must be in [0, 1], but got {s.error_rate}")
        if not 0 <= s.vulnerable_rate <= 1:
            raise ConfigError(f"scanner.vulnerableRate must be in [0, 1], but got {s.vulnerable_rate}")
        if self.db.total <= 0:
            raise ConfigError(f"db.total must be larger than 0, but got {self.db.total}")
        if s.vulnerabilities_per_report < 0:
            raise ConfigError(
                f"scanner.vulnerabilitiesPerReport must not be negative, but got {s.vulnerabilities_per_report}"
            )
        if s.vulnerabilities_per_report > self.db.total:
            raise ConfigError(
                f"scanner.vulnerabilitiesPerReport {s.vulnerabilities_per_report} "
                f"must be less than or equal to db.total {self.db.total}"
            )
        if s.sbom_packages_per_report <= 0:
            raise ConfigError(
                f"scanner.sbomPackagesPerReport {s.sbom_packages_per_report} must be larger than 0"
            )
        if s.workers <= 0:
            raise ConfigError(f"scanner.workers must be larger than 0, but got {s.workers}")

        durations = {
            "scanner.reportGeneratingDuration": s.report_generating_duration,
            "server.timeout": self.server.timeout,
            "server.delay.metadata": self.server.delay.metadata,
            "server.delay.acceptScanRequest": self.server.delay.accept_scan_request,
            "server.delay.getScanReport": self.server.delay.get_scan_report,
        }
        for key, value in durations.items():
            if value < 0:
                raise ConfigError(f"{key} must not be negative, but got {value}")

        _host, port = self.server.host_port
        if not 0 < port < 65536:
            raise ConfigError(f"server.address port out of range: {port}")


# ---------------------------------------------------------------------------
# Key table: (yaml path, env var, attribute path, parser)
# ---------------------------------------------------------------------------

def _int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"not an integer: {value!r}")
    return int(value)


_FIELDS: List[Tuple[str, str, str, Callable[[Any], Any]]] = [
    ("db.total", "DB_TOTAL", "db.total", _int),
    ("scanner.workers", "SCANNER_WORKERS", "scanner.workers", _int),
    ("scanner.skipPulling", "SCANNER_SKIP_PULLING", "scanner.skip_pulling", parse_bool),
    ("scanner.errorRate", "SCANNER_ERROR_RATE", "scanner.error_rate", float),
    ("scanner.vulnerableRate", "SCANNER_VULNERABLE_RATE", "scanner.vulnerable_rate", float),
    ("scanner.vulnerabilitiesPerReport", "SCANNER_VULNERABILITIES_PER_REPORT",
     "scanner.vulnerabilities_per_report", _int),
    ("scanner.sbomPackagesPerReport", "SBOM_PACKAGES_PER_REPORT",
     "scanner.sbom_packages_per_report", _int),
    ("scanner.reportGeneratingDuration", "SCANNER_REPORT_GENERATING_DURATION",
     "scanner.report_generating_duration", parse_duration),
    ("scanner.insecureRegistry", "SCANNER_INSECURE_REGISTRY", "scanner.insecure_registry", parse_bool),
    ("server.address", "SERVER_ADDRESS", "server.address", str),
    ("server.accessLog", "SERVER_ACCESS_LOG", "server.access_log", parse_bool),
    ("server.timeout", "SERVER_TIMEOUT", "server.timeout", parse_duration),
    ("server.delay.metadata", "SERVER_DELAY_METADATA", "server.delay.metadata", parse_duration),
    ("server.delay.acceptScanRequest", "SERVER_DELAY_ACCEPT_SCAN_REQUEST",
     "server.delay.accept_scan_request", parse_duration),
    ("server.delay.getScanReport", "SERVER_DELAY_GET_SCAN_REPORT",
     "server.delay.get_scan_report", parse_duration),
]


def _lookup(data: Mapping[str, Any], dotted: str) -> Tuple[bool, Any]:
    node: Any = data
    for part in dotted.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return False, None
        node = node[part]
    return True, node


def _assign(cfg: Config, dotted: str, value: Any) -> None:
    *parents, leaf = dotted.split(".")
    target: Any = cfg
    for part in parents:
        target = getattr(target, part)
    setattr(target, leaf, value)


def _apply(cfg: Config, key: str, attr: str, parse: Callable[[Any], Any], raw: Any, source: str) -> None:
    try:
        value = parse(raw)
    except (TypeError, ValueError, ConfigError) as e:
        raise ConfigError(f"invalid value for {key} from {source}: {raw!r} ({e})") from e
    _assign(cfg, attr, value)


def load_yaml_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping at the top level")
    return data


def load_config(*paths: str, environ: Optional[Mapping[str, str]] = None) -> Config:
    """
    Build a validated Config from defaults, the given YAML files and the
    environment. Missing files are skipped.

    Raises ConfigError on unreadable files, bad values or failed validation.
    """
    cfg = Config()
    env = os.environ if environ is None else environ

    for path in paths:
        if not path or not os.path.exists(path):
            logger.debug(f"Config file {path} does not exist, skipping")
            continue
        data = load_yaml_file(path)
        for key, _env, attr, parse in _FIELDS:
            found, raw = _lookup(data, key)
            if found and raw is not None:
                _apply(cfg, key, attr, parse, raw, path)
        logger.debug(f"Loaded config from {path}")

    for key, env_name, attr, parse in _FIELDS:
        raw = env.get(env_name)
        if raw is not None and raw != "":
            _apply(cfg, key, attr, parse, raw, f"${env_name}")

    cfg.validate()
    return cfg
