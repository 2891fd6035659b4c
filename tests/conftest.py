"""Shared fixtures for relmap tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine

from relmap.schema import Resolver, ResolverConfig, SnakeCaseNaming, clear_cache


@pytest.fixture(autouse=True)
def _isolated_default_cache() -> Iterator[None]:
    """Every test starts with an empty process-wide descriptor cache."""
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def resolver() -> Resolver:
    return Resolver()


@pytest.fixture
def snake_resolver() -> Resolver:
    return Resolver(ResolverConfig(naming=SnakeCaseNaming()))


@pytest.fixture
def engine() -> Iterator[Engine]:
    """In-memory SQLite engine for running generated statements."""
    eng = create_engine("sqlite://")
    yield eng
    eng.dispose()


@pytest.fixture
def connection(engine: Engine) -> Iterator[Connection]:
    with engine.begin() as conn:
        yield conn
