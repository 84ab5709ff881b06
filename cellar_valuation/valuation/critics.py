"""
Critic Taxonomy Module
======================

Maps free-text critic names scraped from score pages onto the closed
``Critic`` enum.
"""

from __future__ import annotations

import re

from cellar_valuation.core.enums import Critic

# Critic aliases: maps normalized names to canonical critics
CRITIC_ALIASES: dict[str, Critic] = {
    "robert parker the wine advocate": Critic.ROBERT_PARKER,
    "robert parker's wine advocate": Critic.ROBERT_PARKER,
    "robert parker": Critic.ROBERT_PARKER,
    "wine advocate": Critic.ROBERT_PARKER,
    "the wine advocate": Critic.ROBERT_PARKER,
    "wine spectator": Critic.WINE_SPECTATOR,
    "james suckling": Critic.JAMES_SUCKLING,
    "jamessuckling.com": Critic.JAMES_SUCKLING,
    "decanter": Critic.DECANTER,
    "decanter magazine": Critic.DECANTER,
    "jancis robinson": Critic.JANCIS_ROBINSON,
    "jancisrobinson.com": Critic.JANCIS_ROBINSON,
    "wine enthusiast": Critic.WINE_ENTHUSIAST,
    "vinous": Critic.VINOUS,
    "vinous media": Critic.VINOUS,
    "antonio galloni": Critic.VINOUS,
    "jeb dunnuck": Critic.JEB_DUNNUCK,
    "jebdunnuck.com": Critic.JEB_DUNNUCK,
}

_WHITESPACE = re.compile(r"\s+")


def normalize_critic_name(raw: str) -> str:
    """Lower-case, collapse whitespace and trim."""
    return _WHITESPACE.sub(" ", raw.lower()).strip()


def map_critic_name(raw: str) -> Critic:
    """
    Map a scraped critic name to a canonical critic.

    Args:
        raw: Critic name as shown on the source page

    Returns:
        The matching Critic, or Critic.OTHER when the name is unknown
    """
    return CRITIC_ALIASES.get(normalize_critic_name(raw), Critic.OTHER)
