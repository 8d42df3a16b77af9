from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import aiofiles

from epimetheus.core.errors import FetchError
from epimetheus.schemas.source import SourceDescriptor
from epimetheus.streams.fetchers.base import FetchResult
from epimetheus.streams.fetchers.registry import register


LOG = logging.getLogger(__name__)


class LocalFileFetcher:
    name = "file"

    async def fetch(self, source: SourceDescriptor) -> FetchResult:
        path = Path(source.location).expanduser()
        try:
            async with aiofiles.open(path, mode="rb") as f:
                content = await f.read()
        except OSError as exc:
            raise FetchError(source.id, exc) from exc
        fmt = source.format or source.path_format()
        LOG.debug("file: read source=%s bytes=%d format=%s", source.id, len(content), fmt)
        return FetchResult(content=content, format=fmt)

    async def aclose(self) -> None:
        return None


@register("file")
def _factory(cfg: dict[str, Any]) -> LocalFileFetcher:
    return LocalFileFetcher()
