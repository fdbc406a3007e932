from __future__ import annotations

from typing import Optional


class BalError(Exception):
    """Base class for pipeline errors."""


class InvalidCoordinate(BalError, ValueError):
    """Geodetic input is non-finite or out of range."""

    def __init__(self, longitude: object, latitude: object, reason: str = "out of range"):
        self.longitude = longitude
        self.latitude = latitude
        self.reason = reason
        super().__init__(f"Invalid coordinate ({longitude}, {latitude}): {reason}")


class InvalidRow(BalError, ValueError):
    """A single CSV row failed validation. Never fatal for an import."""

    def __init__(self, line: int, reason: str):
        self.line = line
        self.reason = reason
        super().__init__(f"line {line}: {reason}")


class SourceUnavailable(BalError):
    """Fetching or decoding an external source failed."""

    def __init__(self, url: str, reason: str, cause: Optional[BaseException] = None):
        self.url = url
        self.reason = reason
        self.cause = cause
        super().__init__(f"{url}: {reason}")


class MalformedInput(BalError, ValueError):
    """The CSV input as a whole is unusable (missing header columns, bad encoding)."""


__all__ = [
    "BalError",
    "InvalidCoordinate",
    "InvalidRow",
    "SourceUnavailable",
    "MalformedInput",
]
