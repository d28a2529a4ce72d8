"""Concurrent fan-out across all providers."""

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime

from quotadash.models import AppStatus, Provider, QueryFailure, QueryResult, Snapshot

logger = logging.getLogger(__name__)


async def _settle(provider: Provider) -> QueryResult:
    """Run one provider query, turning an escaped exception into a failure."""
    try:
        return await provider.query()
    except Exception as exc:
        logger.warning("provider %s raised: %s", provider.id, exc)
        return QueryFailure(error=str(exc) or type(exc).__name__)


def _format_block(provider: Provider, result: QueryResult) -> str:
    if isinstance(result, QueryFailure):
        return f"## {provider.label}\nERROR: {result.error}"
    return f"## {provider.label}\n{result.output}"


async def query_providers(providers: Sequence[Provider]) -> Snapshot:
    """
    Query every provider concurrently and merge the outcomes into one Snapshot.

    All queries are awaited; a failing provider never cancels the others. No
    master timeout is applied, each provider is trusted to bound itself.
    """
    try:
        ordered = list(providers)
        results = await asyncio.gather(*(_settle(provider) for provider in ordered))

        blocks: list[str] = []
        failures: list[str] = []
        for provider, result in zip(ordered, results):
            blocks.append(_format_block(provider, result))
            if isinstance(result, QueryFailure):
                failures.append(f"{provider.label}: {result.error}")

        if failures:
            logger.info("fan-out finished with %d failure(s): %s", len(failures), "; ".join(failures))

        return Snapshot(
            last_updated=datetime.now(),
            status=AppStatus.ERROR if failures else AppStatus.OK,
            content="\n\n".join(blocks),
            message=f"{len(failures)} provider(s) failed." if failures else "",
        )
    except Exception as exc:
        logger.exception("fan-out failed")
        return Snapshot(
            last_updated=None,
            status=AppStatus.ERROR,
            content="",
            message=str(exc),
        )


class RefreshCoordinator:
    """
    Owns the single in-flight flag that keeps fan-out cycles from overlapping.

    The flag is claimed synchronously by begin() so the caller can switch the
    dashboard to its loading state before the first suspension point, and it
    is released by run() on every exit path.
    """

    def __init__(self, providers: Sequence[Provider]) -> None:
        """
        Initialize the RefreshCoordinator.

        Args:
            providers: Provider registry, queried in order on every cycle.
        """
        self._providers = providers
        self._in_flight = False

    @property
    def providers(self) -> Sequence[Provider]:
        """Get the provider registry."""
        return self._providers

    @property
    def in_flight(self) -> bool:
        """Check if a fan-out cycle is currently running."""
        return self._in_flight

    def begin(self) -> bool:
        """Claim the in-flight flag. Returns False if a cycle is already running."""
        if self._in_flight:
            return False
        self._in_flight = True
        return True

    async def run(self) -> Snapshot:
        """Run a claimed cycle and release the flag once every outcome is in."""
        try:
            return await query_providers(self._providers)
        finally:
            self._in_flight = False

    async def refresh(self) -> Snapshot | None:
        """Claim and run a cycle; a request during an active cycle is a no-op."""
        if not self.begin():
            logger.debug("refresh skipped, fan-out already in flight")
            return None
        return await self.run()
