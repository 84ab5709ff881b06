"""
Wine-Searcher Adapter
=====================

Scrape-and-regex source. A search for "<producer> <wine> <vintage>" sets
a session cookie and redirects to the wine's price page; the average
price, page title and canonical link are pulled out with regexes.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import quote

from cellar_valuation.valuation.adapters.base import SingleResult, SingleResultSourceAdapter
from cellar_valuation.valuation.adapters.html import decode_html_entities, extract_canonical_url

logger = logging.getLogger(__name__)

_TITLE = re.compile(r"<title>\s*Best local price for ([^<]+)</title>", re.IGNORECASE)
_AVG_PRICE = re.compile(r"Avg Price \(ex-tax\)\s*(?:€|&euro;)\s*([0-9][0-9,]*(?:\.[0-9]+)?)")
_STORES_SUFFIX = re.compile(r"\s+-\s+stores near you.*$", re.IGNORECASE)


def build_find_path(query: str) -> str:
    """Path segment for /find/: whitespace runs become ``+``."""
    return quote(re.sub(r"\s+", "+", query.strip()), safe="+")


def parse_price(raw: str) -> float | None:
    try:
        return float(raw.replace(",", ""))
    except ValueError:
        return None


class WineSearcherAdapter(SingleResultSourceAdapter):
    """Single-result valuation source backed by wine-searcher.com."""

    ADAPTER_NAME = "wine-searcher"
    ADAPTER_VERSION = "1.0.0"
    DEFAULT_BASE_URL = "https://www.wine-searcher.com"

    def build_search_url(self, query: str, vintage: int | None = None) -> str:
        terms = f"{query} {vintage}" if vintage else query
        return f"{self.base_url}/find/{build_find_path(terms)}"

    async def _fetch_single_result(
        self,
        query: str,
        vintage: int | None,
    ) -> SingleResult | None:
        url = self.build_search_url(query, vintage)
        result = await self.crawler.fetch_with_session(url)

        if not result.success:
            logger.warning(
                f"Wine-Searcher search error for '{query}': {result.error or result.status_code}"
            )
            return None

        return self.extract_result(result.text, query=query, page_url=result.url)

    def extract_result(self, page: str, query: str, page_url: str) -> SingleResult | None:
        """
        Extract the average price from a wine page.

        Args:
            page: Raw HTML
            query: Search text, used as the name when the title is missing
            page_url: Final URL, used when there is no canonical link

        Returns:
            SingleResult, or None when no price is shown
        """
        price_match = _AVG_PRICE.search(page)
        if not price_match:
            return None

        price = parse_price(price_match.group(1))
        if price is None:
            return None

        title_match = _TITLE.search(page)
        raw_name = title_match.group(1) if title_match else query
        name = _STORES_SUFFIX.sub("", decode_html_entities(raw_name))

        return SingleResult(
            name=name,
            price=price,
            url=extract_canonical_url(page) or page_url,
        )
