import asyncio

import pytest

from models.search_types import DocumentContent, SearchHit
from orchestrator.cancellation import CancellationToken
from orchestrator.content_extractor import (
    ContentExtractor,
    is_thin,
    truncate_content,
)
from orchestrator.errors import SearchCancelledError
from tools.page_fetcher import PageFetcher, PageRecord


def _hit(**overrides) -> SearchHit:
    base = {
        "url": "https://docs.example.com/guides/install",
        "hierarchy": {
            "lvl0": "Guides",
            "lvl1": "Installation",
            "lvl2": "Requirements",
            "lvl3": None,
            "lvl4": None,
            "lvl5": None,
        },
        "content": "Node.js 18 or later is required.",
    }
    base.update(overrides)
    return SearchHit(**base)


class TestExtract:
    def test_breadcrumb_then_content(self):
        document = ContentExtractor().extract(_hit())
        assert document.content.startswith(
            "Guides > Installation > Requirements\n\nNode.js 18 or later is required."
        )

    def test_breadcrumb_skips_repeated_levels(self):
        hierarchy = {"lvl0": "Docs", "lvl1": "Docs", "lvl2": "Search"}
        document = ContentExtractor().extract(_hit(hierarchy=hierarchy, content=None))
        assert document.content == "Docs > Search"

    def test_title_is_most_specific_level_without_markup(self):
        hierarchy = {"lvl0": "Guides", "lvl1": "<span>Install</span> <em>CLI</em>"}
        document = ContentExtractor().extract(_hit(hierarchy=hierarchy))
        assert document.title == "Install CLI"

    def test_title_placeholder(self):
        document = ContentExtractor().extract(_hit(hierarchy={}, content="Some text"))
        assert document.title == "Documentation"

    def test_excerpt_converted_to_emphasis(self):
        document = ContentExtractor().extract(
            _hit(highlighted="Run the <em>installer</em> from <b>your</b> terminal")
        )
        assert "Relevant excerpt: Run the **installer** from your terminal" in document.content

    def test_snippet_used_when_no_highlight(self):
        document = ContentExtractor().extract(_hit(snippet="Use <em>yarn</em> instead"))
        assert "Relevant excerpt: Use **yarn** instead" in document.content

    def test_excerpt_skipped_when_already_contained(self):
        document = ContentExtractor().extract(
            _hit(highlighted="Node.js 18 or <em>later</em> is required.")
        )
        assert "Relevant excerpt" not in document.content

    def test_inline_code_from_snippet(self):
        document = ContentExtractor().extract(
            _hit(snippet="Run `npm install` or <code>yarn add</code>")
        )
        assert "Code: `npm install`, `yarn add`" in document.content

    def test_document_keeps_source_hit(self):
        hit = _hit()
        assert ContentExtractor().extract(hit).hit is hit

    def test_empty_hit_is_dropped(self):
        assert ContentExtractor().extract(_hit(hierarchy={}, content=None)) is None

    def test_empty_hit_with_related_headings_uses_fallback(self):
        hit = _hit(
            hierarchy={},
            content=None,
            highlighted_hierarchy={"lvl1": "<em>Install</em> steps"},
        )
        document = ContentExtractor().extract(hit)
        assert document is not None
        assert "URL: https://docs.example.com/guides/install" in document.content
        assert "Related headings:\n- **Install** steps" in document.content

    def test_hit_without_url_is_dropped(self):
        assert ContentExtractor().extract(_hit(url="")) is None

    def test_extract_all_drops_empty(self):
        hits = [_hit(), _hit(url="https://x/empty", hierarchy={}, content=None)]
        documents = ContentExtractor().extract_all(hits)
        assert [doc.url for doc in documents] == ["https://docs.example.com/guides/install"]


def test_fallback_content_headings():
    content = ContentExtractor.fallback_content(_hit(content=None))
    assert content.startswith("# Guides\n## Installation\n### Requirements\n\nURL: ")


class TestTruncate:
    def test_short_text_unchanged(self):
        assert truncate_content("short", 100) == "short"

    def test_prefers_paragraph_break(self):
        text = "a" * 150 + "\n\n" + "b" * 100
        assert truncate_content(text, 200) == "a" * 150

    def test_falls_back_to_sentence_end(self):
        text = "x" * 150 + ". " + "y" * 100
        assert truncate_content(text, 200) == "x" * 150 + "."

    def test_hard_cut(self):
        assert truncate_content("z" * 300, 200) == "z" * 200

    def test_long_content_truncated_on_extract(self):
        document = ContentExtractor(max_content_chars=200).extract(_hit(content="word " * 200))
        assert len(document.content) <= 200


def test_is_thin():
    assert is_thin("one line")
    assert is_thin("\n".join(["line"] * 10))
    assert not is_thin("\n".join(["a reasonably long line of documentation"] * 6))


class _Fetcher(PageFetcher):
    def __init__(self, records=None, errors=None):
        self.records = records or {}
        self.errors = errors or {}
        self.fetched: list[str] = []

    async def fetch(self, url):
        self.fetched.append(url)
        if url in self.errors:
            raise self.errors[url]
        return self.records.get(url)


class TestEnhance:
    def test_thin_documents_get_page_content(self):
        thin = DocumentContent(url="https://x/thin", title="Thin", content="Guides > Thin")
        rich = DocumentContent(
            url="https://x/rich",
            title="Rich",
            content="\n".join(["a reasonably long line of documentation"] * 6),
        )
        fetcher = _Fetcher(
            {"https://x/thin": PageRecord(url="https://x/thin", text="Full page text", code_blocks=("npm i",))}
        )

        enhanced = asyncio.run(ContentExtractor().enhance([thin, rich], fetcher))

        assert fetcher.fetched == ["https://x/thin"]
        assert enhanced[0].content.startswith("Guides > Thin\n\nAdditional content:\nFull page text")
        assert "CODE EXAMPLES:\n```\nnpm i\n```" in enhanced[0].content
        assert enhanced[1] is rich
        assert thin.content == "Guides > Thin"

    def test_failed_fetch_leaves_document(self):
        thin = DocumentContent(url="https://x/thin", title="Thin", content="tiny")
        fetcher = _Fetcher(errors={"https://x/thin": ConnectionError("refused")})

        enhanced = asyncio.run(ContentExtractor().enhance([thin], fetcher))

        assert enhanced == [thin]

    def test_missing_record_leaves_document(self):
        thin = DocumentContent(url="https://x/thin", title="Thin", content="tiny")
        enhanced = asyncio.run(ContentExtractor().enhance([thin], _Fetcher()))
        assert enhanced[0].content == "tiny"

    def test_cancelled_token_raises(self):
        token = CancellationToken()
        token.cancel()
        thin = DocumentContent(url="https://x/thin", title="Thin", content="tiny")

        with pytest.raises(SearchCancelledError):
            asyncio.run(ContentExtractor().enhance([thin], _Fetcher(), token))
