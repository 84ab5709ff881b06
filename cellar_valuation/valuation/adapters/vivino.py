"""
Vivino Adapter
==============

Structured-data source. The search results page embeds one JSON object
per result (vintage, wine, winery, price); each is decoded and turned
into a MatchCandidate for the ConfidenceMatcher to rank.
"""

from __future__ import annotations

import html
import json
import logging
import re
from collections.abc import Iterator
from typing import Any
from urllib.parse import urlencode

from cellar_valuation.valuation.adapters.base import CandidateSourceAdapter
from cellar_valuation.valuation.matcher import MatchCandidate

logger = logging.getLogger(__name__)

# Start of an embedded search result object
_RESULT_START = re.compile(r'\{"vintage":\{"id":\d+')


def iter_result_objects(page: str) -> Iterator[dict[str, Any]]:
    """
    Yield every embedded result object found in a search page.

    Objects that fail to decode are skipped.
    """
    decoder = json.JSONDecoder()
    decoded = html.unescape(page)
    for match in _RESULT_START.finditer(decoded):
        try:
            obj, _ = decoder.raw_decode(decoded, match.start())
        except json.JSONDecodeError:
            continue
        if isinstance(obj, dict):
            yield obj


def _to_float(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


class VivinoAdapter(CandidateSourceAdapter):
    """Multi-candidate valuation source backed by vivino.com search."""

    ADAPTER_NAME = "vivino"
    ADAPTER_VERSION = "1.0.0"
    DEFAULT_BASE_URL = "https://www.vivino.com"

    def build_search_url(self, query: str, vintage: int | None = None) -> str:
        """Search URL; the vintage is appended to the query text."""
        terms = f"{query} {vintage}" if vintage else query
        return f"{self.base_url}/search/wines?{urlencode({'q': terms})}"

    def wine_url(self, wine_id: str) -> str:
        return f"{self.base_url}/w/{wine_id}"

    async def _fetch_candidates(
        self,
        query: str,
        vintage: int | None,
    ) -> list[MatchCandidate] | None:
        url = self.build_search_url(query, vintage)
        result = await self.crawler.fetch(url)

        if not result.success:
            logger.warning(
                f"Vivino search error for '{query}': {result.error or result.status_code}"
            )
            return None

        return self.extract_candidates(result.text)

    def extract_candidates(self, page: str) -> list[MatchCandidate]:
        """
        Extract candidates from a search results page.

        Args:
            page: Raw HTML

        Returns:
            Candidates in page order (empty if nothing parsable)
        """
        candidates: list[MatchCandidate] = []
        for obj in iter_result_objects(page):
            candidate = self._parse_result(obj)
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    def _parse_result(self, obj: dict[str, Any]) -> MatchCandidate | None:
        vintage_data = obj.get("vintage") or {}
        wine_data = vintage_data.get("wine") or {}
        wine_id = wine_data.get("id")
        name = wine_data.get("name")
        if not wine_id or not name:
            return None

        winery = (wine_data.get("winery") or {}).get("name") or ""
        year = vintage_data.get("year")
        price_data = obj.get("price") or {}

        return MatchCandidate(
            source_id=str(wine_id),
            source_name=name,
            source_winery=winery,
            source_vintage=int(year) if isinstance(year, int) and year > 0 else None,
            price=_to_float(price_data.get("amount")),
            source_url=self.wine_url(str(wine_id)),
        )
