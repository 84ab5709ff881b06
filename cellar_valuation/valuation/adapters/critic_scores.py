"""
Wine-Searcher Critic Scores Adapter
===================================

Extracts published critic scores from a wine-searcher results page.

The page is processed as a small pipeline:

1. Split the HTML into repeating ``info-card__item`` blocks.
2. Pull the critic name, score, optional ``/ max`` denominator, optional
   tasting note and link out of each block.
3. Normalize scores to a 0-100 scale.

When no per-critic block can be parsed, the page-level aggregate
(``"criticScore":N`` in the embedded product JSON) is returned as a single
pseudo-critic entry.
"""

from __future__ import annotations

import logging
import math
import re

from cellar_valuation.valuation.adapters.base import (
    CriticScoreAdapter,
    CriticScorePage,
    ScrapedCriticScore,
)
from cellar_valuation.valuation.adapters.html import (
    decode_html_entities,
    extract_canonical_url,
    strip_html,
)
from cellar_valuation.valuation.adapters.wine_searcher import build_find_path

logger = logging.getLogger(__name__)

AGGREGATE_CRITIC_NAME = "Wine-Searcher Aggregate"

_ITEM_BLOCK = re.compile(
    r'<div class="info-card__item">(.*?)(?=<div class="info-card__item">|</section>|</body>|\Z)',
    re.DOTALL,
)
_SCORE = re.compile(
    r'info-card__critic-score.*?<span class="font-strong-bold">([^<]+)</span>',
    re.DOTALL,
)
_MAX_SCORE = re.compile(r"\A(?:&nbsp;|\s|<[^>]+>)*/(?:&nbsp;|\s)*(\d+)")
_AWARD = re.compile(r'data-award="([^"]+)"')
_NOTE = re.compile(r'<div class="pt-2">(.*?)</div>', re.DOTALL)
_CRITICS_LINK = re.compile(r'<a[^>]*data-event="critics"[^>]*>')
_HREF = re.compile(r'href="([^"]+)"')
_PRODUCT_NAME = re.compile(r'"product":\{[^}]*"name":"([^"]+)"')
_AGGREGATE_SCORE = re.compile(r'"criticScore":(\d+)')


def normalize_score(score: int, max_score: int) -> int:
    """Scale a score to 0-100, rounding halves up."""
    if max_score <= 0 or max_score == 100:
        return score
    return math.floor(score / max_score * 100 + 0.5)


def _critic_link(block: str) -> str | None:
    anchor = _CRITICS_LINK.search(block)
    if not anchor:
        return None
    href = _HREF.search(anchor.group(0))
    if not href or "wine-searcher.com" in href.group(1):
        return None
    return decode_html_entities(href.group(1))


def parse_score_block(block: str, fallback_url: str) -> ScrapedCriticScore | None:
    """
    Extract one critic score from an ``info-card__item`` block.

    Returns:
        The score, or None when the block lacks a critic, a numeric score,
        or normalizes outside 0-100
    """
    award = _AWARD.search(block)
    score_match = _SCORE.search(block)
    if not award or not score_match:
        return None

    raw_score = strip_html(score_match.group(1))
    if not raw_score.isdigit():
        return None

    max_match = _MAX_SCORE.search(block[score_match.end():])
    max_score = int(max_match.group(1)) if max_match else 100
    score = normalize_score(int(raw_score), max_score)
    if not 0 <= score <= 100:
        return None

    note_match = _NOTE.search(block)
    note = strip_html(note_match.group(1)) if note_match else ""

    return ScrapedCriticScore(
        critic_name=decode_html_entities(award.group(1)),
        score=score,
        max_score=max_score,
        source_url=_critic_link(block) or fallback_url,
        note=note or None,
    )


def extract_critic_scores(page: str, fallback_url: str) -> list[ScrapedCriticScore]:
    """Parse every critic score block on a page, skipping malformed ones."""
    scores: list[ScrapedCriticScore] = []
    for block in _ITEM_BLOCK.findall(page):
        parsed = parse_score_block(block, fallback_url)
        if parsed is not None:
            scores.append(parsed)
    return scores


def extract_aggregate_score(page: str, url: str) -> ScrapedCriticScore | None:
    match = _AGGREGATE_SCORE.search(page)
    if not match:
        return None
    score = int(match.group(1))
    if not 0 < score <= 100:
        return None
    return ScrapedCriticScore(
        critic_name=AGGREGATE_CRITIC_NAME,
        score=score,
        max_score=100,
        source_url=url,
    )


def extract_wine_name(page: str) -> str:
    match = _PRODUCT_NAME.search(page)
    return decode_html_entities(match.group(1)) if match else ""


class WineSearcherCriticScoresAdapter(CriticScoreAdapter):
    """Critic score source backed by wine-searcher.com result pages."""

    ADAPTER_NAME = "wine-searcher-critics"
    ADAPTER_VERSION = "1.0.0"
    DEFAULT_BASE_URL = "https://www.wine-searcher.com"

    def build_search_url(self, query: str, vintage: int | None = None) -> str:
        """Critic pages take the vintage as a path segment; ``1`` means any."""
        return f"{self.base_url}/find/{build_find_path(query)}/{vintage or 1}"

    async def _fetch_critic_scores(
        self,
        query: str,
        vintage: int | None,
    ) -> CriticScorePage | None:
        url = self.build_search_url(query, vintage)
        result = await self.crawler.fetch_with_session(url)

        if not result.success:
            logger.warning(
                f"Wine-Searcher critic search error for '{query}': "
                f"{result.error or result.status_code}"
            )
            return None

        return self.extract_page(result.text, page_url=result.url)

    def extract_page(self, page: str, page_url: str) -> CriticScorePage:
        """Run the extraction pipeline over a fetched page."""
        canonical_url = extract_canonical_url(page) or page_url
        scores = extract_critic_scores(page, fallback_url=canonical_url)

        if not scores:
            aggregate = extract_aggregate_score(page, canonical_url)
            if aggregate is not None:
                scores = [aggregate]

        return CriticScorePage(
            wine_name=extract_wine_name(page),
            url=canonical_url,
            scores=scores,
        )
