"""Tests for source adapters and the adapter registry."""

import html
import json

import httpx
import pytest

from cellar_valuation.core.enums import ValuationStatus
from cellar_valuation.core.schema import WineIdentity
from cellar_valuation.valuation.adapters import (
    ADAPTER_REGISTRY,
    BaseSourceAdapter,
    VivinoAdapter,
    WineSearcherAdapter,
    WineSearcherCriticScoresAdapter,
    get_adapter,
    get_adapter_info,
    list_adapters,
    register_adapter,
)
from cellar_valuation.valuation.adapters.critic_scores import (
    AGGREGATE_CRITIC_NAME,
    extract_aggregate_score,
    extract_critic_scores,
    extract_wine_name,
    normalize_score,
    parse_score_block,
)
from cellar_valuation.valuation.adapters.html import extract_canonical_url, strip_html
from cellar_valuation.valuation.adapters.vivino import iter_result_objects
from cellar_valuation.valuation.adapters.wine_searcher import build_find_path, parse_price
from cellar_valuation.valuation.crawler import Crawler


@pytest.fixture
def chateau_x() -> WineIdentity:
    return WineIdentity(wine_id=1, name="Château X", producer_name="X Estate")


def _crawler(handler) -> Crawler:
    return Crawler(transport=httpx.MockTransport(handler))


def _vivino_page(*results: dict) -> str:
    state = {"search": {"matches": list(results)}}
    return f'<div id="search-page" data-preloaded-state="{html.escape(json.dumps(state, separators=(",", ":")))}"></div>'


def _vivino_result(wine_id: int, name: str, winery: str, year: int, price: float | None) -> dict:
    result = {
        "vintage": {
            "id": wine_id * 10,
            "year": year,
            "wine": {"id": wine_id, "name": name, "winery": {"name": winery}},
        }
    }
    if price is not None:
        result["price"] = {"amount": price, "currency": {"code": "EUR"}}
    return result


WINE_SEARCHER_PAGE = """
<html><head>
<title>Best local price for X Estate Ch&acirc;teau X 2015 - Stores near you &amp; more</title>
<link href="https://www.wine-searcher.com/find/x+estate+chateau+x/2015" rel="canonical">
</head>
<body><div class="price">Avg Price (ex-tax) €1,234</div></body></html>
"""

CRITIC_PAGE = """
<html><head>
<link rel="canonical" href="https://www.wine-searcher.com/find/x+estate+chateau+x/2015">
<script>{"product":{"id":7,"name":"X Estate Ch&acirc;teau X"},"criticScore":93}</script>
</head><body><section>
<div class="info-card__item">
  <span data-award="Robert Parker's Wine Advocate"></span>
  <div class="info-card__critic-score"><span class="font-strong-bold">90</span></div>
  <div class="pt-2">Dense and ripe.<br>Long finish.</div>
  <a href="https://www.robertparker.com/wines/1" data-event="critics">Read review</a>
</div>
<div class="info-card__item">
  <span data-award="Wine Spectator"></span>
  <div class="info-card__critic-score"><span class="font-strong-bold">95</span></div>
  <a href="https://www.wine-searcher.com/critics-1" data-event="critics">More</a>
</div>
<div class="info-card__item">
  <span data-award="Jancis Robinson"></span>
  <div class="info-card__critic-score"><span class="font-strong-bold">17</span><span>&nbsp;/&nbsp;20</span></div>
</div>
<div class="info-card__item">
  <span data-award="Decanter"></span>
  <div class="info-card__critic-score"><span class="font-strong-bold">NR</span></div>
</div>
<div class="info-card__item">
  <span data-award="Vinous"></span>
  <div class="info-card__critic-score"><span class="font-strong-bold">150</span></div>
</div>
</section></body></html>
"""

CANONICAL = "https://www.wine-searcher.com/find/x+estate+chateau+x/2015"


class TestAdapterRegistry:
    """Tests for the adapter registry."""

    def test_list_adapters(self) -> None:
        adapters = list_adapters()
        assert "vivino" in adapters
        assert "wine-searcher" in adapters
        assert "wine-searcher-critics" in adapters

    def test_get_adapter(self) -> None:
        adapter = get_adapter("vivino", Crawler(), name="vivino-eu", base_url="https://vivino.test/")
        assert isinstance(adapter, VivinoAdapter)
        assert adapter.source_name == "vivino-eu"
        assert adapter.base_url == "https://vivino.test"

    def test_get_adapter_defaults_name_to_type(self) -> None:
        adapter = get_adapter("wine-searcher", Crawler())
        assert adapter.source_name == "wine-searcher"
        assert adapter.base_url == "https://www.wine-searcher.com"

    def test_get_unknown_adapter(self) -> None:
        assert get_adapter("nonexistent", Crawler()) is None
        assert get_adapter_info("nonexistent") is None

    def test_get_adapter_info(self) -> None:
        info = get_adapter_info("wine-searcher-critics")
        assert info == {
            "name": "wine-searcher-critics",
            "version": "1.0.0",
            "class": "WineSearcherCriticScoresAdapter",
        }

    def test_register_adapter(self) -> None:
        class CustomAdapter(VivinoAdapter):
            ADAPTER_NAME = "custom"

        register_adapter("custom", CustomAdapter)
        try:
            assert isinstance(get_adapter("custom", Crawler()), CustomAdapter)
        finally:
            ADAPTER_REGISTRY.pop("custom", None)

    def test_register_rejects_non_adapter(self) -> None:
        with pytest.raises(TypeError):
            register_adapter("bad", dict)  # type: ignore[arg-type]

    def test_concrete_adapters_are_source_adapters(self) -> None:
        for adapter_class in ADAPTER_REGISTRY.values():
            assert issubclass(adapter_class, BaseSourceAdapter)


class TestHtmlHelpers:
    """Tests for the shared HTML helpers."""

    def test_strip_html(self) -> None:
        assert strip_html("Dense&nbsp;and <b>ripe</b><br/>finish") == "Dense and ripe finish"

    def test_canonical_url_any_attribute_order(self) -> None:
        assert extract_canonical_url('<link rel="canonical" href="https://a.test/x">') == "https://a.test/x"
        assert extract_canonical_url('<link href="https://a.test/y" rel="canonical">') == "https://a.test/y"

    def test_canonical_url_missing(self) -> None:
        assert extract_canonical_url('<link rel="stylesheet" href="/s.css">') is None


class TestVivinoAdapter:
    """Tests for the Vivino candidate source."""

    def test_build_search_url(self) -> None:
        adapter = VivinoAdapter(Crawler(), base_url="https://vivino.test")
        assert adapter.build_search_url("X Estate Chateau X", 2015) == (
            "https://vivino.test/search/wines?q=X+Estate+Chateau+X+2015"
        )
        assert adapter.build_search_url("Maison Y Brut") == "https://vivino.test/search/wines?q=Maison+Y+Brut"

    def test_iter_result_objects_skips_broken_json(self) -> None:
        page = '{"vintage":{"id":1,"broken" <p>{"vintage":{"id":2,"year":2015}}</p>'
        objects = list(iter_result_objects(page))
        assert objects == [{"vintage": {"id": 2, "year": 2015}}]

    def test_extract_candidates(self) -> None:
        adapter = VivinoAdapter(Crawler(), base_url="https://vivino.test")
        page = _vivino_page(
            _vivino_result(101, "Château X", "X Estate", 2015, 52.5),
            _vivino_result(102, "Château X Reserve", "X Estate", 2015, None),
        )

        candidates = adapter.extract_candidates(page)

        assert [c.source_id for c in candidates] == ["101", "102"]
        first = candidates[0]
        assert first.source_name == "Château X"
        assert first.source_winery == "X Estate"
        assert first.source_vintage == 2015
        assert first.price == 52.5
        assert first.source_url == "https://vivino.test/w/101"
        assert candidates[1].price is None

    def test_extract_candidates_empty_page(self) -> None:
        adapter = VivinoAdapter(Crawler())
        assert adapter.extract_candidates("<html>no results</html>") == []

    @pytest.mark.asyncio
    async def test_try_resolve_matched(self, chateau_x: WineIdentity) -> None:
        page = _vivino_page(
            _vivino_result(102, "Something Else", "Other Winery", 2015, 12.0),
            _vivino_result(101, "Château X", "X Estate", 2015, 52.5),
        )
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text=page)

        adapter = VivinoAdapter(_crawler(handler), base_url="https://vivino.test")
        outcome = await adapter.try_resolve(chateau_x, 2015)

        assert outcome is not None
        assert outcome.status == ValuationStatus.MATCHED
        assert outcome.confidence == 1.0
        assert outcome.source == "vivino"
        assert outcome.price_estimate == 52.5
        assert outcome.source_wine_id == "101"
        assert outcome.source_url == "https://vivino.test/w/101"
        assert outcome.source_name == "X Estate Château X"
        assert seen[0].url.params["q"] == "X Estate Château X 2015"

    @pytest.mark.asyncio
    async def test_try_resolve_needs_review(self, chateau_x: WineIdentity) -> None:
        page = _vivino_page(_vivino_result(103, "Chateau X Reserve", "X Estate", 2015, 80.0))
        adapter = VivinoAdapter(_crawler(lambda request: httpx.Response(200, text=page)))

        outcome = await adapter.try_resolve(chateau_x, 2015)

        assert outcome is not None
        assert outcome.status == ValuationStatus.NEEDS_REVIEW
        assert 0.60 <= outcome.confidence < 0.85

    @pytest.mark.asyncio
    async def test_try_resolve_below_review_threshold(self, chateau_x: WineIdentity) -> None:
        page = _vivino_page(_vivino_result(104, "Something Else", "Other Winery", 2001, 9.0))
        adapter = VivinoAdapter(_crawler(lambda request: httpx.Response(200, text=page)))

        assert await adapter.try_resolve(chateau_x, 2015) is None

    @pytest.mark.asyncio
    async def test_try_resolve_http_error(self, chateau_x: WineIdentity) -> None:
        adapter = VivinoAdapter(_crawler(lambda request: httpx.Response(503, text="busy")))

        assert await adapter.fetch_candidates(chateau_x.search_query, 2015) is None
        assert await adapter.try_resolve(chateau_x, 2015) is None

    @pytest.mark.asyncio
    async def test_try_resolve_swallows_exceptions(self, chateau_x: WineIdentity) -> None:
        adapter = VivinoAdapter(Crawler())

        async def boom(query, vintage):
            raise RuntimeError("parser exploded")

        adapter._fetch_candidates = boom  # type: ignore[method-assign]
        assert await adapter.try_resolve(chateau_x, 2015) is None


class TestWineSearcherAdapter:
    """Tests for the Wine-Searcher single-result source."""

    def test_build_find_path(self) -> None:
        assert build_find_path("  X Estate   Chateau X 2015 ") == "X+Estate+Chateau+X+2015"
        assert build_find_path("Château X") == "Ch%C3%A2teau+X"

    def test_build_search_url(self) -> None:
        adapter = WineSearcherAdapter(Crawler(), base_url="https://ws.test")
        assert adapter.build_search_url("X Estate Chateau X", 2015) == "https://ws.test/find/X+Estate+Chateau+X+2015"
        assert adapter.build_search_url("Maison Y Brut") == "https://ws.test/find/Maison+Y+Brut"

    def test_parse_price(self) -> None:
        assert parse_price("1,234") == 1234.0
        assert parse_price("45.50") == 45.5
        assert parse_price("") is None

    def test_extract_result(self) -> None:
        adapter = WineSearcherAdapter(Crawler())
        result = adapter.extract_result(WINE_SEARCHER_PAGE, query="q", page_url="https://ws.test/final")

        assert result is not None
        assert result.name == "X Estate Château X 2015"
        assert result.price == 1234.0
        assert result.url == CANONICAL

    def test_extract_result_euro_entity(self) -> None:
        adapter = WineSearcherAdapter(Crawler())
        page = "<body>Avg Price (ex-tax) &euro; 45.50</body>"
        result = adapter.extract_result(page, query="Maison Y Brut", page_url="https://ws.test/final")

        assert result is not None
        assert result.price == 45.5
        assert result.name == "Maison Y Brut"
        assert result.url == "https://ws.test/final"

    def test_extract_result_without_price(self) -> None:
        adapter = WineSearcherAdapter(Crawler())
        page = "<title>Best local price for Chateau X</title><body>No prices</body>"
        assert adapter.extract_result(page, query="q", page_url="https://ws.test") is None

    @pytest.mark.asyncio
    async def test_try_resolve_follows_session_redirect(self, chateau_x: WineIdentity) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.path.startswith("/find/"):
                return httpx.Response(
                    302,
                    headers=[("location", "/wine/x-estate-chateau-x"), ("set-cookie", "sid=1; Path=/")],
                )
            return httpx.Response(200, text=WINE_SEARCHER_PAGE)

        adapter = WineSearcherAdapter(_crawler(handler), base_url="https://ws.test")
        outcome = await adapter.try_resolve(chateau_x, 2015)

        assert outcome is not None
        assert outcome.status == ValuationStatus.MATCHED
        assert outcome.confidence == 0.90
        assert outcome.price_estimate == 1234.0
        assert outcome.price_low is None
        assert outcome.source == "wine-searcher"
        assert outcome.source_url == CANONICAL
        assert requests[1].headers["cookie"] == "sid=1"

    @pytest.mark.asyncio
    async def test_try_resolve_without_price(self, chateau_x: WineIdentity) -> None:
        adapter = WineSearcherAdapter(_crawler(lambda request: httpx.Response(200, text="<html></html>")))
        assert await adapter.try_resolve(chateau_x, 2015) is None

    @pytest.mark.asyncio
    async def test_try_resolve_network_error(self, chateau_x: WineIdentity) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        adapter = WineSearcherAdapter(_crawler(handler))
        assert await adapter.try_resolve(chateau_x, 2015) is None


class TestCriticScoreExtraction:
    """Tests for the critic score block pipeline."""

    def test_normalize_score(self) -> None:
        assert normalize_score(92, 100) == 92
        assert normalize_score(17, 20) == 85
        assert normalize_score(4, 5) == 80
        # 12.5 rounds up
        assert normalize_score(1, 8) == 13

    def test_extract_critic_scores(self) -> None:
        scores = extract_critic_scores(CRITIC_PAGE, fallback_url=CANONICAL)

        assert [(s.critic_name, s.score) for s in scores] == [
            ("Robert Parker's Wine Advocate", 90),
            ("Wine Spectator", 95),
            ("Jancis Robinson", 85),
        ]

    def test_note_and_external_link(self) -> None:
        parker = extract_critic_scores(CRITIC_PAGE, fallback_url=CANONICAL)[0]
        assert parker.note == "Dense and ripe. Long finish."
        assert parker.source_url == "https://www.robertparker.com/wines/1"
        assert parker.max_score == 100

    def test_internal_link_falls_back_to_page_url(self) -> None:
        spectator = extract_critic_scores(CRITIC_PAGE, fallback_url=CANONICAL)[1]
        assert spectator.source_url == CANONICAL
        assert spectator.note is None

    def test_twenty_point_scale(self) -> None:
        jancis = extract_critic_scores(CRITIC_PAGE, fallback_url=CANONICAL)[2]
        assert jancis.max_score == 20
        assert jancis.score == 85

    def test_block_without_critic_is_skipped(self) -> None:
        block = '<div class="info-card__critic-score"><span class="font-strong-bold">91</span></div>'
        assert parse_score_block(block, CANONICAL) is None

    def test_aggregate_score(self) -> None:
        aggregate = extract_aggregate_score(CRITIC_PAGE, CANONICAL)
        assert aggregate is not None
        assert aggregate.critic_name == AGGREGATE_CRITIC_NAME
        assert aggregate.score == 93

    def test_aggregate_score_out_of_range(self) -> None:
        assert extract_aggregate_score('"criticScore":0', CANONICAL) is None
        assert extract_aggregate_score('"criticScore":101', CANONICAL) is None

    def test_extract_wine_name(self) -> None:
        assert extract_wine_name(CRITIC_PAGE) == "X Estate Château X"
        assert extract_wine_name("<html></html>") == ""


class TestWineSearcherCriticScoresAdapter:
    """Tests for the critic score adapter."""

    def test_build_search_url(self) -> None:
        adapter = WineSearcherCriticScoresAdapter(Crawler(), base_url="https://ws.test")
        assert adapter.build_search_url("X Estate Chateau X", 2015) == "https://ws.test/find/X+Estate+Chateau+X/2015"
        assert adapter.build_search_url("Maison Y Brut", None) == "https://ws.test/find/Maison+Y+Brut/1"

    def test_extract_page(self) -> None:
        adapter = WineSearcherCriticScoresAdapter(Crawler())
        page = adapter.extract_page(CRITIC_PAGE, page_url="https://ws.test/final")

        assert page.wine_name == "X Estate Château X"
        assert page.url == CANONICAL
        assert len(page.scores) == 3

    def test_extract_page_falls_back_to_aggregate(self) -> None:
        adapter = WineSearcherCriticScoresAdapter(Crawler())
        raw = '<script>{"product":{"name":"Maison Y Brut"},"criticScore":88}</script>'
        page = adapter.extract_page(raw, page_url="https://ws.test/final")

        assert page.url == "https://ws.test/final"
        assert [(s.critic_name, s.score) for s in page.scores] == [(AGGREGATE_CRITIC_NAME, 88)]

    def test_extract_page_without_scores(self) -> None:
        adapter = WineSearcherCriticScoresAdapter(Crawler())
        page = adapter.extract_page("<html></html>", page_url="https://ws.test/final")
        assert page.scores == []

    @pytest.mark.asyncio
    async def test_fetch_critic_scores(self) -> None:
        adapter = WineSearcherCriticScoresAdapter(
            _crawler(lambda request: httpx.Response(200, text=CRITIC_PAGE)),
            base_url="https://ws.test",
        )
        page = await adapter.fetch_critic_scores("X Estate Chateau X", 2015)

        assert page is not None
        assert [s.score for s in page.scores] == [90, 95, 85]

    @pytest.mark.asyncio
    async def test_fetch_critic_scores_http_error(self) -> None:
        adapter = WineSearcherCriticScoresAdapter(_crawler(lambda request: httpx.Response(404)))
        assert await adapter.fetch_critic_scores("X Estate Chateau X", 2015) is None
