# fakescan/errors.py
"""
Error kinds raised by the fake scanner.

Synchronous errors (ValidationError, QueueSaturatedError, ReportNotFoundError)
reach the HTTP caller directly. Worker-side errors (PullError,
SimulatedScanError, UnsupportedCapabilityError) are captured by the worker
and stored as the terminal result of a scan request, so callers only see
them on a later poll.

`status_code` is what the API blueprint answers with when the error
surfaces through an HTTP route.
"""

from __future__ import annotations


class FakeScannerError(Exception):
    """Base class for every error the scanner raises on purpose."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__

    def __str__(self) -> str:
        return self.message


class ConfigError(FakeScannerError):
    """Configuration loading or validation error."""


class DatabaseError(FakeScannerError):
    """The vulnerability database could not be built."""


class ValidationError(FakeScannerError):
    """Malformed or incomplete scan request."""

    status_code = 400


class ReportNotFoundError(FakeScannerError):
    """No scan request exists for the given id."""

    status_code = 404

    def __init__(self, message: str = "report not found"):
        super().__init__(message)


class QueueSaturatedError(FakeScannerError):
    """The job queue is full; the scan request was not accepted."""

    status_code = 503


class SimulatedScanError(FakeScannerError):
    """Randomly injected backend failure."""


class UnsupportedCapabilityError(FakeScannerError):
    """The scan request declared a capability the scanner cannot produce."""

    def __init__(self, capability: str):
        super().__init__(f"unsupported capability: {capability}")
        self.capability = capability


class PullError(FakeScannerError):
    """Pulling the artifact from the registry failed."""
