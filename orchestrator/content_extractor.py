"""
ContentExtractor - builds DocumentContent from raw search hits.

Extraction itself is synchronous and never touches the network. Thin
documents can optionally be enhanced with page records via ``enhance``.
"""

import asyncio
import re
from dataclasses import replace

from models.search_types import DocumentContent, SearchHit
from orchestrator.cancellation import CancellationToken
from orchestrator.errors import SearchCancelledError
from tools.page_fetcher import PageFetcher, PageRecord
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TITLE = "Documentation"
THIN_MIN_LINES = 5
THIN_MIN_CHARS = 100

_TAG_RE = re.compile(r"<[^>]*>")
_EM_RE = re.compile(r"</?em>", re.I)
_INLINE_CODE_RE = re.compile(r"`([^`\n]+)`|<code>(.*?)</code>", re.I | re.S)


def strip_markup(text: str) -> str:
    return _TAG_RE.sub("", text or "").strip()


def to_emphasis(text: str) -> str:
    """Highlight markup to markdown: <em> becomes **, every other tag is dropped."""
    return _TAG_RE.sub("", _EM_RE.sub("**", text or "")).strip()


def inline_code(text: str) -> list[str]:
    fragments = []
    for backtick, tagged in _INLINE_CODE_RE.findall(text or ""):
        fragment = strip_markup(backtick or tagged)
        if fragment and fragment not in fragments:
            fragments.append(fragment)
    return fragments


def truncate_content(text: str, max_chars: int) -> str:
    """
    First chunk of ``text`` no longer than ``max_chars``.

    Prefers a paragraph break within the last 200 characters of the window,
    then a sentence end within the last 100, else cuts hard.
    """
    if not text or len(text) <= max_chars:
        return text

    end = max_chars
    paragraph = text.rfind("\n\n", 0, end)
    if paragraph > 0 and paragraph > end - 200:
        return text[:paragraph].rstrip()

    sentence = max(text.rfind(". ", 0, end), text.rfind("! ", 0, end), text.rfind("? ", 0, end))
    if sentence > 0 and sentence > end - 100:
        return text[: sentence + 1]
    return text[:end]


def is_thin(content: str) -> bool:
    non_blank = [line for line in (content or "").splitlines() if line.strip()]
    return len(non_blank) < THIN_MIN_LINES or len((content or "").strip()) < THIN_MIN_CHARS


def format_page_record(record: PageRecord) -> str:
    parts = []
    if record.text:
        parts.append(record.text)
    if record.code_blocks:
        blocks = "\n\n".join(f"```\n{block}\n```" for block in record.code_blocks)
        parts.append(f"CODE EXAMPLES:\n{blocks}")
    return "\n\n".join(parts)


class ContentExtractor:
    """Turns search hits into documents the ranker and synthesizer can use."""

    def __init__(self, max_content_chars: int = 2000):
        self.max_content_chars = max(1, max_content_chars)

    @staticmethod
    def title_for(hit: SearchHit) -> str:
        for _, value in reversed(hit.levels()):
            title = strip_markup(value)
            if title:
                return title
        return DEFAULT_TITLE

    def build_content(self, hit: SearchHit) -> str:
        sections: list[str] = []

        breadcrumb: list[str] = []
        for _, value in hit.levels():
            if value not in breadcrumb:
                breadcrumb.append(value)
        if breadcrumb:
            sections.append(" > ".join(breadcrumb))

        if hit.content and hit.content.strip():
            sections.append(hit.content.strip())

        excerpt_source = hit.highlighted or hit.snippet
        if excerpt_source:
            plain = strip_markup(_EM_RE.sub("", excerpt_source))
            accumulated = "\n\n".join(sections)
            if plain and plain not in accumulated:
                sections.append(f"Relevant excerpt: {to_emphasis(excerpt_source)}")

        fragments = inline_code(hit.snippet or "")
        if fragments:
            sections.append("Code: " + ", ".join(f"`{fragment}`" for fragment in fragments))

        return "\n\n".join(sections).strip()

    @staticmethod
    def fallback_content(hit: SearchHit) -> str | None:
        """
        Placeholder content from hit metadata alone.

        Returns None when the hit carries nothing descriptive beyond its URL.
        """
        lines: list[str] = []
        for depth, value in hit.levels()[:4]:
            lines.append(f"{'#' * (depth + 1)} {strip_markup(value)}")

        related = []
        for level in ("lvl1", "lvl2", "lvl3", "lvl4"):
            heading = to_emphasis(hit.highlighted_hierarchy.get(level, ""))
            if heading:
                related.append(f"- {heading}")

        snippet = to_emphasis(hit.snippet or "")
        if not lines and not related and not snippet:
            return None

        blocks = []
        if lines:
            blocks.append("\n".join(lines))
        blocks.append(f"URL: {hit.url}")
        if snippet:
            blocks.append(snippet)
        if related:
            blocks.append("Related headings:\n" + "\n".join(related))
        return "\n\n".join(blocks)

    def extract(self, hit: SearchHit) -> DocumentContent | None:
        """Extract one document; None when no content can be produced."""
        if not hit.url:
            return None

        content = self.build_content(hit) or self.fallback_content(hit)
        if not content:
            logger.debug(f"Dropping hit with no extractable content: {hit.url}")
            return None

        return DocumentContent(
            url=hit.url,
            title=self.title_for(hit),
            content=truncate_content(content, self.max_content_chars),
            hit=hit,
        )

    def extract_all(self, hits: list[SearchHit]) -> list[DocumentContent]:
        documents = []
        for hit in hits:
            document = self.extract(hit)
            if document is not None:
                documents.append(document)
        dropped = len(hits) - len(documents)
        if dropped:
            logger.info(
                f"Dropped {dropped} hits without content",
                extra={"extra_fields": {"hits": len(hits), "documents": len(documents)}},
            )
        return documents

    async def _enhance_one(
        self,
        document: DocumentContent,
        fetcher: PageFetcher,
        token: CancellationToken | None,
    ) -> DocumentContent:
        try:
            if token is not None:
                record = await token.guard(lambda: fetcher.fetch(document.url), "page_fetch")
            else:
                record = await fetcher.fetch(document.url)
        except SearchCancelledError:
            raise
        except Exception as e:
            logger.warning(
                f"Page fetch failed for {document.url}: {e}",
                extra={"extra_fields": {"url": document.url, "error_type": type(e).__name__}},
            )
            return document

        if record is None or record.is_empty:
            return document

        extra_text = format_page_record(record)
        if not extra_text or extra_text in document.content:
            return document

        content = f"{document.content}\n\nAdditional content:\n{extra_text}"
        return replace(document, content=truncate_content(content, self.max_content_chars))

    async def enhance(
        self,
        documents: list[DocumentContent],
        fetcher: PageFetcher,
        token: CancellationToken | None = None,
    ) -> list[DocumentContent]:
        """
        Append page content to thin documents, concurrently.

        Each fetch fails soft and leaves its document unchanged. Order and
        document count are preserved.

        Raises:
            SearchCancelledError: If the run was cancelled
        """
        thin = [i for i, document in enumerate(documents) if is_thin(document.content)]
        if not thin:
            return list(documents)

        results = await asyncio.gather(
            *(self._enhance_one(documents[i], fetcher, token) for i in thin),
            return_exceptions=True,
        )

        enhanced = list(documents)
        for i, result in zip(thin, results):
            if isinstance(result, BaseException):
                raise result
            enhanced[i] = result

        logger.info(
            f"Enhanced {sum(1 for i in thin if enhanced[i] is not documents[i])} of {len(thin)} thin documents",
            extra={"extra_fields": {"thin_documents": len(thin)}},
        )
        return enhanced
