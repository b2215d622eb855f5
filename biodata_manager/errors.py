"""Exception hierarchy shared by every layer of the dataset manager."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class BiodataError(Exception):
    """Base class for all errors surfaced to callers."""

    exit_code = 1


class InvalidIdentifier(BiodataError, ValueError):
    """An accession failed its kind-specific grammar."""

    def __init__(self, kind: str, value: str) -> None:
        self.kind = kind
        self.value = value
        super().__init__(f"invalid {kind} identifier: {value!r}")


class InvalidSpecifier(InvalidIdentifier):
    """A dataset specifier did not name a known kind."""

    def __init__(self, value: str) -> None:
        super().__init__("specifier", value)


class MissingConfigError(BiodataError):
    exit_code = 2

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"missing config file {path} in current directory")


class ConfigReadError(BiodataError):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"unable to read config file {path}")


class ConfigParseError(BiodataError):
    pass


class RegistryError(BiodataError):
    """Failure talking to an external registry."""

    exit_code = 3

    def __init__(self, registry: str, message: str) -> None:
        self.registry = registry
        super().__init__(f"{registry}: {message}")


class RegistryTransportError(RegistryError):
    """The request never produced a response (timeout, DNS, reset)."""


class RegistryStatusError(RegistryError):
    """The registry answered with a non-success status."""

    def __init__(self, registry: str, status: int, body: str = "") -> None:
        self.status = status
        self.body = body
        summary = body.strip()[:200] if body else "request failed"
        super().__init__(registry, f"status {status}: {summary}")


class DatasetNotFound(BiodataError):
    exit_code = 2

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"dataset not found: {key}")


class FilesystemError(BiodataError):
    pass


class UnsupportedFormatError(BiodataError):
    pass


class InvalidIncludeError(BiodataError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"invalid genome include type: {value!r}")


class DoiResolutionError(BiodataError):
    exit_code = 2


class MissingToolError(BiodataError):
    exit_code = 3

    def __init__(self, tool: str, hint: Optional[str] = None) -> None:
        self.tool = tool
        message = f"missing external tool: {tool}"
        if hint:
            message = f"{message} ({hint})"
        super().__init__(message)


class ConversionError(BiodataError):
    exit_code = 3


class GeoResolutionError(BiodataError):
    pass


__all__ = [
    "BiodataError",
    "ConfigParseError",
    "ConfigReadError",
    "ConversionError",
    "DatasetNotFound",
    "DoiResolutionError",
    "FilesystemError",
    "GeoResolutionError",
    "InvalidIdentifier",
    "InvalidIncludeError",
    "InvalidSpecifier",
    "MissingConfigError",
    "MissingToolError",
    "RegistryError",
    "RegistryStatusError",
    "RegistryTransportError",
    "UnsupportedFormatError",
]
