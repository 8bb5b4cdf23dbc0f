from dataclasses import replace

from config.ranking import DEFAULT_WEIGHTS, RankingWeights
from models.search_types import DocumentContent, SearchHit
from orchestrator.relevance_ranker import RelevanceRanker, detect_technologies


def _doc(url: str, title: str, content: str = "", hit: SearchHit | None = None) -> DocumentContent:
    return DocumentContent(url=url, title=title, content=content, hit=hit)


class TestRelevanceRanker:
    def test_title_with_query_word_ranks_higher(self):
        other = _doc("https://docs.example.com/a", "Overview", "General information")
        install = _doc("https://docs.example.com/b", "Install the CLI", "General information")

        ranked = RelevanceRanker().rank([other, install], "how to install")

        assert [doc.url for doc in ranked] == ["https://docs.example.com/b", "https://docs.example.com/a"]
        assert ranked[0].relevance_score > ranked[1].relevance_score

    def test_ranking_is_deterministic(self):
        docs = [
            _doc(f"https://docs.example.com/{i}", f"Page {i}", "install guide " * (i % 3))
            for i in range(8)
        ]
        ranker = RelevanceRanker()

        first = ranker.rank(docs, "install guide")
        second = ranker.rank(docs, "install guide")

        assert [d.url for d in first] == [d.url for d in second]
        assert [d.relevance_score for d in first] == [d.relevance_score for d in second]

    def test_ties_keep_input_order(self):
        docs = [_doc(f"https://docs.example.com/{i}/", "Same", "same") for i in range(5)]
        ranked = RelevanceRanker().rank(docs, "unrelated words")
        assert [d.url for d in ranked] == [d.url for d in docs]

    def test_inputs_are_not_mutated(self):
        doc = _doc("https://docs.example.com/x", "Install", "install")
        RelevanceRanker().rank([doc], "install")
        assert doc.relevance_score == 0.0

    def test_exact_title_beats_substring(self):
        ranker = RelevanceRanker()
        exact = _doc("https://d/1/", "Deploying", "")
        contains = _doc("https://d/2/", "Deploying to Vercel", "")
        assert ranker.score(exact, "deploying") > ranker.score(contains, "deploying")

    def test_keyword_stuffing_is_capped(self):
        ranker = RelevanceRanker()
        normal = _doc("https://d/1/", "Page", "install " * DEFAULT_WEIGHTS.content_word_cap)
        stuffed = _doc("https://d/2/", "Page", "install " * 500)
        assert ranker.score(normal, "zzz install") == ranker.score(stuffed, "zzz install")

    def test_wrong_technology_variant_is_penalized(self):
        ranker = RelevanceRanker()
        web = _doc("https://docs.example.com/react/setup", "Set up React", "Use React in the browser.")
        mobile = _doc(
            "https://docs.example.com/react-native/setup",
            "Set up React Native",
            "Use React Native on iOS and Android.",
        )
        neutral = _doc("https://docs.example.com/setup", "Set up", "Generic setup.")

        mobile_score = ranker.score(mobile, "react native setup")
        web_score = ranker.score(web, "react native setup")
        neutral_score = ranker.score(neutral, "react native setup")

        assert mobile_score > web_score
        assert web_score < neutral_score

    def test_react_query_penalizes_react_native_page(self):
        ranker = RelevanceRanker()
        mobile = _doc("https://d/rn/", "React Native", "React Native components")
        plain = _doc("https://d/p/", "Components", "Components")
        assert ranker.score(mobile, "react components") < ranker.score(plain, "react components")

    def test_highlight_markers_add_bonus(self):
        ranker = RelevanceRanker()
        plain = _doc("https://d/1/", "Page", "text", hit=SearchHit(url="https://d/1/"))
        marked = _doc(
            "https://d/2/",
            "Page",
            "text",
            hit=SearchHit(url="https://d/2/", highlighted="<em>a</em> <em>b</em>"),
        )
        difference = ranker.score(marked, "xyz") - ranker.score(plain, "xyz")
        assert difference == 2 * DEFAULT_WEIGHTS.highlight

    def test_how_to_query_prefers_guides(self):
        ranker = RelevanceRanker()
        guide = _doc("https://d/guides/x/", "Page", "")
        reference = _doc("https://d/x/", "Page", "")
        assert ranker.score(guide, "how to deploy") > ranker.score(reference, "how to deploy")

    def test_api_query_prefers_reference(self):
        ranker = RelevanceRanker()
        reference = _doc("https://d/api/router/", "Router", "")
        guide = _doc("https://d/docs/router/", "Router", "")
        assert ranker.score(reference, "router api methods") > ranker.score(guide, "router api methods")

    def test_leaf_page_bonus(self):
        ranker = RelevanceRanker()
        leaf = _doc("https://d/docs/page", "T", "")
        index = _doc("https://d/docs/index.html", "T", "")
        assert ranker.score(leaf, "nothing") - ranker.score(index, "nothing") == DEFAULT_WEIGHTS.url_leaf

    def test_hierarchy_depth_weights_title_words(self):
        ranker = RelevanceRanker()
        outer = _doc(
            "https://d/1/",
            "Overview",
            "",
            hit=SearchHit(url="https://d/1/", hierarchy={"lvl0": "Plugins", "lvl1": "Overview"}),
        )
        inner = _doc(
            "https://d/2/",
            "Overview",
            "",
            hit=SearchHit(url="https://d/2/", hierarchy={"lvl0": "Guides", "lvl1": "Overview", "lvl2": "Plugins"}),
        )
        assert ranker.score(outer, "plugins") > ranker.score(inner, "plugins")

    def test_custom_weights(self):
        weights = replace(DEFAULT_WEIGHTS, url_leaf=100.0)
        leaf = _doc("https://d/docs/page", "T", "")
        assert RelevanceRanker(weights).score(leaf, "nothing") >= 100.0

    def test_rank_hits(self):
        hits = [
            SearchHit(url="https://d/other/", hierarchy={"lvl0": "Other"}),
            SearchHit(url="https://d/install/", hierarchy={"lvl0": "Install"}),
        ]
        ranked = RelevanceRanker().rank_hits(hits, "install")
        assert ranked[0].url == "https://d/install/"


def test_detect_technologies_excludes_competitors():
    assert [t.name for t in detect_technologies("react native navigation")] == ["react-native"]
    assert [t.name for t in detect_technologies("react hooks")] == ["react"]
    assert [t.name for t in detect_technologies("angular.js directives")] == ["angularjs"]
    assert [t.name for t in detect_technologies("Angular JS directives")] == ["angularjs"]
    assert [t.name for t in detect_technologies("angular-js services")] == ["angularjs"]
    assert [t.name for t in detect_technologies("angular signals")] == ["angular"]
    assert [t.name for t in detect_technologies("java streams")] == ["java"]
    assert [t.name for t in detect_technologies("javascript promises")] == ["javascript"]


def test_weights_from_env(monkeypatch):
    monkeypatch.setenv("RANK_TITLE_EXACT", "20")
    monkeypatch.setenv("RANK_HIGHLIGHT_CAP", "3")
    weights = RankingWeights.from_env()
    assert weights.title_exact == 20.0
    assert weights.highlight_cap == 3


def test_spaced_angularjs_page_is_penalized_for_angular_query():
    angular = _doc("https://docs.example.com/a", "Directives", "Angular directives overview")
    angularjs = _doc("https://docs.example.com/b", "Directives", "Angular JS directives overview")
    ranker = RelevanceRanker()

    gap = ranker.score(angular, "angular directives") - ranker.score(angularjs, "angular directives")

    assert gap >= DEFAULT_WEIGHTS.tech_match - DEFAULT_WEIGHTS.tech_mismatch
