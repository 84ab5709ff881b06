"""
Valuation Module
================

External valuation and critic score reconciliation:

- similarity: text normalization and edit-distance similarity
- matcher: confidence scoring of source candidates
- adapters: external source fetch and extraction
- critics: critic name taxonomy
- orchestrator: per-pair pipelines and user-driven changes
- staleness: refresh set computation
- jobs: sequential batch runner and scheduled tasks
"""

from cellar_valuation.valuation.config import ValuationConfig, get_default_config, reset_default_config
from cellar_valuation.valuation.critics import map_critic_name
from cellar_valuation.valuation.matcher import (
    CONFIDENCE_THRESHOLD,
    REVIEW_THRESHOLD,
    ConfidenceMatcher,
    MatchCandidate,
    MatchResult,
    calculate_match_confidence,
    find_best_match,
)
from cellar_valuation.valuation.orchestrator import ValuationService
from cellar_valuation.valuation.similarity import levenshtein_distance, normalize_text, similarity

__all__ = [
    "CONFIDENCE_THRESHOLD",
    "REVIEW_THRESHOLD",
    "ConfidenceMatcher",
    "MatchCandidate",
    "MatchResult",
    "ValuationConfig",
    "ValuationService",
    "calculate_match_confidence",
    "find_best_match",
    "get_default_config",
    "levenshtein_distance",
    "map_critic_name",
    "normalize_text",
    "reset_default_config",
    "similarity",
]
