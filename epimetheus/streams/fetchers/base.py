from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from epimetheus.schemas.source import SourceDescriptor, SourceFormat


@dataclass(frozen=True)
class FetchResult:
    content: bytes
    format: SourceFormat | None = None


class Fetcher(Protocol):
    name: str

    def __init__(self, config: dict[str, Any]):
        ...

    async def fetch(self, source: SourceDescriptor) -> FetchResult:
        ...

    async def aclose(self) -> None:
        ...
