"""
Valuation Config Module
=======================

Loads reconciliation settings from YAML: HTTP client settings, matching
thresholds, staleness windows, batch pacing and the ordered list of
external sources.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from cellar_valuation.core.enums import ValuationStatus

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class GlobalConfig:
    """HTTP client settings shared by all sources."""

    user_agent: str = DEFAULT_USER_AGENT
    request_timeout: float = 30.0
    max_retries: int = 1

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> GlobalConfig:
        """Create from dictionary, using defaults for missing values."""
        if data is None:
            return cls()
        return cls(
            user_agent=data.get("user_agent", DEFAULT_USER_AGENT),
            request_timeout=float(data.get("request_timeout", 30.0)),
            max_retries=int(data.get("max_retries", 1)),
        )


@dataclass
class MatchingConfig:
    """Confidence thresholds for accepting source results."""

    confidence_threshold: float = 0.85
    review_threshold: float = 0.60
    single_result_confidence: float = 0.90

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> MatchingConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        return cls(
            confidence_threshold=float(data.get("confidence_threshold", 0.85)),
            review_threshold=float(data.get("review_threshold", 0.60)),
            single_result_confidence=float(data.get("single_result_confidence", 0.90)),
        )


@dataclass
class StalenessConfig:
    """Maximum record age, in days, before a pair is refreshed."""

    valuation_days: int = 7
    critic_score_days: int = 30

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> StalenessConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        return cls(
            valuation_days=int(data.get("valuation_days", 7)),
            critic_score_days=int(data.get("critic_score_days", 30)),
        )


@dataclass
class BatchConfig:
    """Pacing of sequential batch runs."""

    delay_seconds: float = 5.0
    api_delay_seconds: float = 3.0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BatchConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        return cls(
            delay_seconds=float(data.get("delay_seconds", 5.0)),
            api_delay_seconds=float(data.get("api_delay_seconds", 3.0)),
        )


@dataclass
class SourceConfig:
    """Configuration for a single external source."""

    name: str
    adapter: str
    enabled: bool = True
    description: str = ""
    base_url: str | None = None
    custom_config: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SourceConfig:
        """Create from dictionary."""
        return cls(
            name=data["name"],
            adapter=data.get("adapter", data["name"]),
            enabled=data.get("enabled", True),
            description=data.get("description", ""),
            base_url=data.get("base_url"),
            custom_config=data.get("custom_config", {}),
        )


def _default_valuation_sources() -> list[SourceConfig]:
    return [
        SourceConfig(name="vivino", adapter="vivino"),
        SourceConfig(name="wine-searcher", adapter="wine-searcher"),
    ]


def _default_critic_source() -> SourceConfig:
    return SourceConfig(name="wine-searcher", adapter="wine-searcher-critics")


@dataclass
class ValuationConfig:
    """Complete reconciliation configuration."""

    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    staleness: StalenessConfig = field(default_factory=StalenessConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    protected_statuses: set[ValuationStatus] = field(default_factory=set)
    valuation_sources: list[SourceConfig] = field(default_factory=_default_valuation_sources)
    critic_score_source: SourceConfig = field(default_factory=_default_critic_source)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ValuationConfig:
        """Create from the parsed YAML document."""
        if data is None:
            return cls()

        sources_data = data.get("sources") or {}
        valuation_sources = [
            SourceConfig.from_dict(s) for s in sources_data.get("valuations", [])
        ] or _default_valuation_sources()
        critic_data = sources_data.get("critic_scores")
        critic_source = (
            SourceConfig.from_dict(critic_data) if critic_data else _default_critic_source()
        )

        return cls(
            global_config=GlobalConfig.from_dict(data.get("global")),
            matching=MatchingConfig.from_dict(data.get("matching")),
            staleness=StalenessConfig.from_dict(data.get("staleness")),
            batch=BatchConfig.from_dict(data.get("batch")),
            protected_statuses={
                ValuationStatus(s) for s in data.get("protected_statuses") or []
            },
            valuation_sources=valuation_sources,
            critic_score_source=critic_source,
        )

    @classmethod
    def load(cls, config_path: Path | str) -> ValuationConfig:
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the valuation.yaml file

        Raises:
            FileNotFoundError: If the file does not exist
        """
        config_path = Path(config_path).expanduser().resolve()
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data)

    def list_enabled_valuation_sources(self) -> list[SourceConfig]:
        """Enabled valuation sources in priority order."""
        return [s for s in self.valuation_sources if s.enabled]


# Global config instance
_default_config: ValuationConfig | None = None


def get_default_config() -> ValuationConfig:
    """
    Get the default configuration instance.

    Loads configuration from the path in the VALUATION_CONFIG_PATH
    environment variable, or falls back to config/valuation.yaml. Missing
    files leave the built-in defaults in place.
    """
    global _default_config

    if _default_config is None:
        config_path = os.environ.get("VALUATION_CONFIG_PATH")
        if config_path:
            path = Path(config_path)
        else:
            project_root = Path(__file__).parent.parent.parent
            path = project_root / "config" / "valuation.yaml"

        _default_config = ValuationConfig.load(path) if path.exists() else ValuationConfig()

    return _default_config


def reset_default_config() -> None:
    """Reset the default config (useful for testing)."""
    global _default_config
    _default_config = None
