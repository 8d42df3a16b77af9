from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from pathlib import PurePosixPath
from typing import Iterable, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict

from epimetheus.core.errors import ConfigError

LOG = logging.getLogger(__name__)

SourceFormat = Literal["json", "yaml", "csv"]
SourceOrigin = Literal["file", "http"]

_EXTENSIONS: dict[str, SourceFormat] = {
    "json": "json",
    "yaml": "yaml",
    "yml": "yaml",
    "csv": "csv",
}


class SourceState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    DECODING = "decoding"
    FLATTENING = "flattening"
    COMMITTING = "committing"
    FAILED = "failed"


CSV_TYPES = ("text/csv",)
JSON_TYPES = ("application/json",)
YAML_TYPES = ("application/yaml", "application/x-yaml", "text/x-yaml", "text/yaml")


class SourceDescriptor(BaseModel):
    """One configured source: where to read it and, if declared, its format."""

    model_config = ConfigDict(frozen=True)

    location: str
    origin: SourceOrigin
    format: SourceFormat | None = None

    @property
    def id(self) -> str:
        return self.location

    @property
    def is_remote(self) -> bool:
        return self.origin == "http"

    def path_format(self) -> SourceFormat | None:
        """Format implied by the extension of the file path or URL path."""
        path = urlparse(self.location).path if self.is_remote else self.location
        suffix = PurePosixPath(path.replace("\\", "/")).suffix.lstrip(".").lower()
        return _EXTENSIONS.get(suffix)


def format_from_content_type(content_type: str | None) -> SourceFormat | None:
    ct = (content_type or "").lower()
    if any(t in ct for t in JSON_TYPES):
        return "json"
    if any(t in ct for t in YAML_TYPES):
        return "yaml"
    if any(t in ct for t in CSV_TYPES):
        return "csv"
    return None


def parse_source(raw: str) -> SourceDescriptor:
    """Build a descriptor from ``location`` or ``location#format``.

    A trailing ``#json``/``#yaml``/``#yml``/``#csv`` declares the format; any
    other fragment is left as part of the location.
    """
    location = raw.strip()
    if not location:
        raise ConfigError("empty source location")
    declared: SourceFormat | None = None
    head, sep, tail = location.rpartition("#")
    if sep and head and tail.lower() in _EXTENSIONS:
        location = head
        declared = _EXTENSIONS[tail.lower()]
    lowered = location.lower()
    origin: SourceOrigin = "http" if lowered.startswith(("http://", "https://")) else "file"
    return SourceDescriptor(location=location, origin=origin, format=declared)


def parse_sources(raw_sources: Iterable[str]) -> list[SourceDescriptor]:
    """Parse the configured source list, keeping order and dropping duplicates."""
    out: list[SourceDescriptor] = []
    seen: set[str] = set()
    for raw in raw_sources:
        src = parse_source(raw)
        if src.id in seen:
            LOG.warning("duplicate source ignored source=%s", src.id)
            continue
        seen.add(src.id)
        out.append(src)
    if not out:
        raise ConfigError("no sources configured; set EPI_FILES or pass --files")
    return out


class SourceStatusOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    source_id: str
    origin: SourceOrigin
    format: SourceFormat | None = None
    state: SourceState
    last_attempt: datetime | None = None
    last_success: datetime | None = None
    last_error: str | None = None
    consecutive_failures: int = 0
    metric_count: int = 0
