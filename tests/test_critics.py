"""Tests for the critic name taxonomy."""

import pytest

from cellar_valuation.core.enums import Critic
from cellar_valuation.valuation.adapters.critic_scores import AGGREGATE_CRITIC_NAME
from cellar_valuation.valuation.critics import map_critic_name, normalize_critic_name


class TestMapCriticName:
    """Tests for map_critic_name."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Robert Parker", Critic.ROBERT_PARKER),
            ("Wine Advocate", Critic.ROBERT_PARKER),
            ("Robert Parker The Wine Advocate", Critic.ROBERT_PARKER),
            ("Wine Spectator", Critic.WINE_SPECTATOR),
            ("James Suckling", Critic.JAMES_SUCKLING),
            ("Decanter", Critic.DECANTER),
            ("Jancis Robinson", Critic.JANCIS_ROBINSON),
            ("Wine Enthusiast", Critic.WINE_ENTHUSIAST),
            ("Vinous", Critic.VINOUS),
            ("Antonio Galloni", Critic.VINOUS),
            ("Jeb Dunnuck", Critic.JEB_DUNNUCK),
        ],
    )
    def test_known_aliases(self, raw: str, expected: Critic) -> None:
        assert map_critic_name(raw) == expected

    def test_case_and_whitespace_insensitive(self) -> None:
        assert map_critic_name("  WINE   advocate ") == Critic.ROBERT_PARKER

    def test_unknown_falls_back_to_other(self) -> None:
        assert map_critic_name("Falstaff") == Critic.OTHER
        assert map_critic_name("") == Critic.OTHER

    def test_aggregate_pseudo_critic(self) -> None:
        assert map_critic_name(AGGREGATE_CRITIC_NAME) == Critic.OTHER


class TestNormalizeCriticName:
    def test_normalize(self) -> None:
        assert normalize_critic_name("Jancis\n Robinson ") == "jancis robinson"
