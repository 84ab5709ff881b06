"""
HTML Extraction Helpers
=======================

Small regex-based helpers shared by the scraping adapters. Source pages
carry no stable schema, so every helper tolerates missing markup.
"""

from __future__ import annotations

import html
import re

_TAG = re.compile(r"<[^>]+>")
_BR = re.compile(r"<br\s*/?\s*>", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_LINK_TAG = re.compile(r"<link\b[^>]*>", re.IGNORECASE)
_HREF = re.compile(r'href="([^"]+)"')
_REL_CANONICAL = re.compile(r'rel="canonical"', re.IGNORECASE)


def decode_html_entities(value: str) -> str:
    """Unescape entities and collapse whitespace (``&nbsp;`` becomes a space)."""
    unescaped = html.unescape(value).replace("\xa0", " ")
    return _WHITESPACE.sub(" ", unescaped).strip()


def strip_html(value: str) -> str:
    """Drop tags, keeping line breaks as spaces, then decode entities."""
    return decode_html_entities(_TAG.sub(" ", _BR.sub(" ", value)))


def extract_canonical_url(page: str) -> str | None:
    """Return the ``<link rel="canonical">`` href, whatever the attribute order."""
    for tag in _LINK_TAG.findall(page):
        if _REL_CANONICAL.search(tag):
            href = _HREF.search(tag)
            if href:
                return html.unescape(href.group(1))
    return None
