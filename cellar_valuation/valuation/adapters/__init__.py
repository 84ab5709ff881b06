"""
Adapter Registry Module
=======================

Central registry for external source adapters.
Provides factory functions for creating adapters by type name.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from cellar_valuation.valuation.adapters.base import (
    BaseSourceAdapter,
    CandidateSourceAdapter,
    CriticScoreAdapter,
    CriticScorePage,
    ScrapedCriticScore,
    SingleResult,
    SingleResultSourceAdapter,
    SourceOutcome,
    ValuationAdapter,
)
from cellar_valuation.valuation.adapters.critic_scores import WineSearcherCriticScoresAdapter
from cellar_valuation.valuation.adapters.vivino import VivinoAdapter
from cellar_valuation.valuation.adapters.wine_searcher import WineSearcherAdapter

if TYPE_CHECKING:
    from cellar_valuation.valuation.config import MatchingConfig
    from cellar_valuation.valuation.crawler import Crawler


# Registry mapping adapter type names to their classes
ADAPTER_REGISTRY: dict[str, type[BaseSourceAdapter]] = {
    "vivino": VivinoAdapter,
    "wine-searcher": WineSearcherAdapter,
    "wine-searcher-critics": WineSearcherCriticScoresAdapter,
}


def get_adapter(
    adapter_type: str,
    crawler: Crawler,
    config: dict[str, Any] | None = None,
    base_url: str | None = None,
    matching: MatchingConfig | None = None,
    name: str | None = None,
) -> BaseSourceAdapter | None:
    """
    Get an adapter instance by type name.

    Args:
        adapter_type: Name of the adapter (e.g., "vivino")
        crawler: HTTP client the adapter fetches through
        config: Optional custom configuration
        base_url: Optional override for the site root
        matching: Matching thresholds
        name: Source name recorded on persisted rows

    Returns:
        Adapter instance, or None if type not found
    """
    adapter_class = ADAPTER_REGISTRY.get(adapter_type)
    if adapter_class is None:
        return None
    return adapter_class(
        crawler,
        config=config,
        base_url=base_url,
        matching=matching,
        name=name,
    )


def register_adapter(name: str, adapter_class: type[BaseSourceAdapter]) -> None:
    """
    Register a new adapter type.

    Args:
        name: Name to register the adapter under
        adapter_class: Adapter class (must inherit from BaseSourceAdapter)
    """
    if not issubclass(adapter_class, BaseSourceAdapter):
        raise TypeError(f"{adapter_class} must inherit from BaseSourceAdapter")
    ADAPTER_REGISTRY[name] = adapter_class


def list_adapters() -> list[str]:
    """List all registered adapter names."""
    return list(ADAPTER_REGISTRY.keys())


def get_adapter_info(adapter_type: str) -> dict[str, str] | None:
    """
    Get information about an adapter type.

    Returns:
        Dict with adapter info, or None if not found
    """
    adapter_class = ADAPTER_REGISTRY.get(adapter_type)
    if adapter_class is None:
        return None

    return {
        "name": adapter_class.ADAPTER_NAME,
        "version": adapter_class.ADAPTER_VERSION,
        "class": adapter_class.__name__,
    }


__all__ = [
    # Registry functions
    "get_adapter",
    "register_adapter",
    "list_adapters",
    "get_adapter_info",
    "ADAPTER_REGISTRY",
    # Base classes
    "BaseSourceAdapter",
    "ValuationAdapter",
    "CandidateSourceAdapter",
    "SingleResultSourceAdapter",
    "CriticScoreAdapter",
    "SourceOutcome",
    "SingleResult",
    "ScrapedCriticScore",
    "CriticScorePage",
    # Concrete adapters
    "VivinoAdapter",
    "WineSearcherAdapter",
    "WineSearcherCriticScoresAdapter",
]
