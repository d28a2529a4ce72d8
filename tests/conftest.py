"""Shared fixtures for quotadash tests."""

import asyncio

import pytest

from quotadash.config import Settings
from quotadash.models import Provider, QueryFailure, QuerySuccess


def make_provider(provider_id: str, output: str | None = None, error: str | None = None, delay: float = 0.0) -> Provider:
    """Build a provider answering with fixed output, or failing with error."""

    async def query():
        if delay:
            await asyncio.sleep(delay)
        if error is not None:
            return QueryFailure(error=error)
        return QuerySuccess(output=output or "")

    return Provider(id=provider_id, label=provider_id.capitalize(), query=query)


@pytest.fixture
def three_providers() -> list[Provider]:
    return [
        make_provider("alpha", "Weekly       80% remaining\nDaily        60% remaining\nRate         40% remaining"),
        make_provider("beta", "Quota        skipped (no token)"),
        make_provider("gamma", error="timeout"),
    ]


@pytest.fixture
def fast_settings() -> Settings:
    return Settings(refresh_ms=60_000)


@pytest.fixture
def provider_factory():
    return make_provider
