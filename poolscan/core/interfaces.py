"""Core interfaces for the pool scanner."""

from typing import Protocol, runtime_checkable

from .raw import PoolDocument, PoolPage
from .types import AlertCandidate, FilterDecision, ScoredPool, SecurityResult


class PoolDataProvider(Protocol):
    """New pool listing provider protocol."""

    async def list_new_pools(self, network: str, page: int) -> PoolPage:
        """Fetch one page of newly created pools for a network."""
        ...

    async def get_pool(self, network: str, address: str) -> PoolDocument:
        """Fetch a single pool with its base token."""
        ...


@runtime_checkable
class SecurityChecker(Protocol):
    """Contract safety audit protocol.

    Implementations must not raise; failures map to a neutral result.
    """

    async def check_security(self, network: str, address: str) -> SecurityResult:
        """Audit a token contract and return its trust score."""
        ...


class Filter(Protocol):
    """Scored pool filter protocol."""

    def evaluate(self, scored: ScoredPool) -> FilterDecision:
        """Evaluate a scored pool and return filter decision."""
        ...


@runtime_checkable
class Notifier(Protocol):
    """Alert delivery protocol."""

    async def notify(self, candidate: AlertCandidate) -> bool:
        """Deliver an alert, returning whether delivery succeeded."""
        ...
