import asyncio

import pytest

from conftest import FakeSearchClient, make_record
from orchestrator.cancellation import CancellationToken
from orchestrator.errors import SearchCancelledError
from orchestrator.search_fanout import SearchFanOut, dedupe_hits, expand_query
from models.search_types import SearchHit


def _hits(prefix: str, count: int) -> list[dict]:
    return [make_record(f"https://docs.example.com/{prefix}/{i}") for i in range(count)]


class TestSearchFanOut:
    def test_one_search_per_variant_with_params(self):
        client = FakeSearchClient(default=[])
        fanout = SearchFanOut(hits_per_page=7)

        asyncio.run(fanout.search(["a", "b", "c"], client, "docs"))

        assert sorted(call[0] for call in client.calls) == ["a", "b", "c"]
        for _, index, params in client.calls:
            assert index == "docs"
            assert params["hitsPerPage"] == 7
            assert params["attributesToRetrieve"] == ["*"]
            assert params["attributesToHighlight"] == ["*"]

    def test_hits_per_page_is_clamped(self):
        assert SearchFanOut(hits_per_page=1).hits_per_page == 5
        assert SearchFanOut(hits_per_page=50).hits_per_page == 10

    def test_merge_dedupes_by_url_keeping_first_seen(self):
        first = make_record("https://docs.example.com/shared", lvl1="From first")
        second = make_record("https://docs.example.com/shared", lvl1="From second")
        client = FakeSearchClient(
            {
                "q1": [first, make_record("https://docs.example.com/only-1")],
                "q2": [second, make_record("https://docs.example.com/only-2")],
            }
        )

        hits = asyncio.run(SearchFanOut().search(["q1", "q2"], client, "docs"))

        urls = [hit.url for hit in hits]
        assert urls == [
            "https://docs.example.com/shared",
            "https://docs.example.com/only-1",
            "https://docs.example.com/only-2",
        ]
        assert hits[0].hierarchy["lvl1"] == "From first"

    def test_three_variants_with_overlap(self):
        shared = [make_record("https://docs.example.com/shared/0"), make_record("https://docs.example.com/shared/1")]
        client = FakeSearchClient(
            {
                "v1": _hits("v1", 5),
                "v2": shared + _hits("v2", 3),
                "v3": shared + _hits("v3", 3),
            }
        )

        hits = asyncio.run(SearchFanOut().search(["v1", "v2", "v3"], client, "docs"))

        assert len(hits) == 13
        assert len({hit.url for hit in hits}) == 13

    def test_failing_variant_contributes_zero_hits(self):
        client = FakeSearchClient(
            {"ok": _hits("ok", 2)},
            errors={"broken": ConnectionError("index unreachable")},
        )

        hits = asyncio.run(SearchFanOut().search(["broken", "ok"], client, "docs"))

        assert [hit.url for hit in hits] == [
            "https://docs.example.com/ok/0",
            "https://docs.example.com/ok/1",
        ]

    def test_timeout_is_a_failed_variant(self):
        client = FakeSearchClient(default=_hits("slow", 1))
        client.delay_s = 0.2
        hits = asyncio.run(SearchFanOut(timeout_s=0.01).search(["slow"], client, "docs"))
        assert hits == []

    def test_records_without_url_are_ignored(self):
        client = FakeSearchClient(default=[{"content": "no url"}, "junk", make_record("https://x/1")])
        hits = asyncio.run(SearchFanOut().search(["q"], client, "docs"))
        assert [hit.url for hit in hits] == ["https://x/1"]

    def test_cancelled_token_raises(self):
        token = CancellationToken()
        token.cancel("stop")
        client = FakeSearchClient(default=_hits("a", 1))

        with pytest.raises(SearchCancelledError):
            asyncio.run(SearchFanOut().search(["a"], client, "docs", token))
        assert client.calls == []

    def test_expansion_issues_variants_after_original(self):
        fanout = SearchFanOut(enable_expansion=True)
        assert fanout.plan(["auth config"]) == [
            "auth config",
            "auth configuration",
            "authentication config",
        ]

    def test_expansion_disabled_by_default(self):
        assert SearchFanOut().plan(["auth config", "auth config"]) == ["auth config"]


def test_expand_query_both_directions():
    assert expand_query("database setup") == ["db setup"]
    assert expand_query("sidebar") == []


def test_dedupe_hits_skips_empty_urls():
    hits = [[SearchHit(url=""), SearchHit(url="a")], [SearchHit(url="a"), SearchHit(url="b")]]
    assert [hit.url for hit in dedupe_hits(hits)] == ["a", "b"]
