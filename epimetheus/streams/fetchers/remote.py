from __future__ import annotations

import logging
from typing import Any

import httpx

from epimetheus.core.config import VERSION
from epimetheus.core.errors import FetchError
from epimetheus.schemas.source import SourceDescriptor, format_from_content_type
from epimetheus.streams.fetchers.base import FetchResult
from epimetheus.streams.fetchers.registry import register


LOG = logging.getLogger(__name__)


class HttpFetcher:
    name = "http"

    def __init__(self, config: dict[str, Any]):
        self.verify_ssl: bool = bool(config.get("verify_ssl", True))
        self.timeout: float | None = config.get("timeout")
        self.transport: httpx.AsyncBaseTransport | None = config.get("transport")
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        # one pooled client for all remote sources
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=self.verify_ssl,
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": f"epimetheus/{VERSION}"},
                transport=self.transport,
            )
        return self._client

    async def fetch(self, source: SourceDescriptor) -> FetchResult:
        client = self._get_client()
        try:
            resp = await client.get(source.location)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(source.id, f"status {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(source.id, exc) from exc
        detected = format_from_content_type(resp.headers.get("content-type"))
        fmt = source.format or detected or source.path_format()
        LOG.debug(
            "http: fetched source=%s status=%s bytes=%d content_type=%s format=%s",
            source.id,
            resp.status_code,
            len(resp.content),
            resp.headers.get("content-type", "-"),
            fmt,
        )
        return FetchResult(content=resp.content, format=fmt)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


@register("http")
def _factory(cfg: dict[str, Any]) -> HttpFetcher:
    return HttpFetcher(cfg)
