from __future__ import annotations

from typing import Any, Callable, Dict

from epimetheus.streams.fetchers.base import Fetcher

FetcherFactory = Callable[[Dict[str, Any]], Fetcher]

_factories: Dict[str, FetcherFactory] = {}


def register(origin: str):
    """Register a fetcher factory for sources of the given origin."""
    def deco(factory: FetcherFactory) -> FetcherFactory:
        _factories[origin] = factory
        return factory
    return deco


def get_factory(origin: str) -> FetcherFactory:
    if origin not in _factories:
        raise KeyError(f"no fetcher registered for origin={origin} (known: {', '.join(sorted(_factories))})")
    return _factories[origin]


def create_fetcher(origin: str, config: Dict[str, Any]) -> Fetcher:
    return get_factory(origin)(dict(config))
