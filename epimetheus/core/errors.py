from __future__ import annotations


class EpimetheusError(Exception):
    """Base class for exporter errors."""


class SourceError(EpimetheusError):
    """A refresh step failed for one source; carries the source id and cause."""

    kind = "source"

    def __init__(self, source: str, cause: object) -> None:
        self.source = source
        self.cause = cause
        super().__init__(f"{self.kind} error source={source} cause={cause}")


class FetchError(SourceError):
    """Source could not be read: unreachable, non-2xx, missing file, timeout."""

    kind = "fetch"


class DecodeError(SourceError):
    """Source content is malformed or its format cannot be determined."""

    kind = "decode"


class ConfigError(EpimetheusError):
    """Startup configuration is unusable."""
