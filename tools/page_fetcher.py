"""Page-record acquisition for thin documents (network fetch + structural parsing)."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from html.parser import HTMLParser
from urllib.parse import urldefrag, urljoin

import httpx

from utils.logger import get_logger

logger = get_logger(__name__)

SKIP_TAGS = frozenset({"script", "style", "nav", "footer", "aside", "noscript", "svg", "header"})
SKIP_CLASS_MARKERS = ("navbar", "sidebar", "pagination", "toccollapsible", "tableofcontents", "footer")
BLOCK_TAGS = frozenset(
    {"p", "div", "li", "tr", "pre", "br", "section", "h1", "h2", "h3", "h4", "h5", "h6", "table", "ul", "ol"}
)
VOID_TAGS = frozenset({"br", "img", "hr", "input", "meta", "link", "source", "wbr", "area", "col"})
HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")


@dataclass(frozen=True)
class PageRecord:
    """Structured view of one documentation page."""

    url: str
    headings: tuple[str, ...] = ()
    text: str = ""
    code_blocks: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.text.strip() and not self.code_blocks


class _ContentParser(HTMLParser):
    """Collects main-content text, headings and code blocks from an HTML page."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self._stack: list[tuple[str, bool]] = []
        self._skip_depth = 0
        self._article_depth = 0
        self._main_depth = 0
        self._pre_depth = 0
        self._heading: list[str] | None = None
        self._code: list[str] = []
        self.article: list[str] = []
        self.main: list[str] = []
        self.body: list[str] = []
        self.headings: list[str] = []
        self.code_blocks: list[str] = []

    def _emit(self, text: str) -> None:
        self.body.append(text)
        if self._main_depth:
            self.main.append(text)
        if self._article_depth:
            self.article.append(text)

    def handle_starttag(self, tag, attrs):
        if tag in VOID_TAGS:
            if tag == "br" and not self._skip_depth:
                self._emit("\n")
            return

        classes = (dict(attrs).get("class") or "").lower()
        skip = tag in SKIP_TAGS or any(marker in classes for marker in SKIP_CLASS_MARKERS)
        self._stack.append((tag, skip))
        if skip:
            self._skip_depth += 1
            return
        if self._skip_depth:
            return

        if tag == "article":
            self._article_depth += 1
        elif tag == "main":
            self._main_depth += 1
        elif tag == "pre":
            self._pre_depth += 1
            self._code = []
        elif tag in HEADING_TAGS:
            self._heading = []
        if tag in BLOCK_TAGS:
            self._emit("\n")

    def handle_endtag(self, tag):
        if tag in VOID_TAGS or not any(open_tag == tag for open_tag, _ in self._stack):
            return
        while self._stack:
            open_tag, skip = self._stack.pop()
            self._close(open_tag, skip)
            if open_tag == tag:
                break

    def _close(self, tag: str, skip: bool) -> None:
        if skip:
            self._skip_depth -= 1
            return
        if self._skip_depth:
            return
        if tag == "article":
            self._article_depth -= 1
        elif tag == "main":
            self._main_depth -= 1
        elif tag == "pre":
            self._pre_depth -= 1
            code = "".join(self._code).strip("\n")
            if code.strip() and code not in self.code_blocks:
                self.code_blocks.append(code)
        elif tag in HEADING_TAGS and self._heading is not None:
            heading = " ".join("".join(self._heading).split())
            if heading:
                self.headings.append(heading)
            self._heading = None
        if tag in BLOCK_TAGS:
            self._emit("\n")

    def handle_data(self, data):
        if self._skip_depth:
            return
        if self._pre_depth:
            self._code.append(data)
        if self._heading is not None:
            self._heading.append(data)
        self._emit(data)

    def best_text(self) -> str:
        for parts in (self.article, self.main, self.body):
            text = _collapse("".join(parts))
            if text:
                return text
        return ""


def _collapse(text: str) -> str:
    lines = [" ".join(line.split()) for line in text.splitlines()]
    return "\n".join(line for line in lines if line)


def parse_page(url: str, html: str) -> PageRecord:
    """Parse HTML into a PageRecord, preferring <article>, then <main>, then <body>."""
    parser = _ContentParser()
    parser.feed(html or "")
    parser.close()
    return PageRecord(
        url=url,
        headings=tuple(parser.headings),
        text=parser.best_text(),
        code_blocks=tuple(parser.code_blocks),
    )


class PageFetcher(ABC):
    """Swappable source of page records."""

    @abstractmethod
    async def fetch(self, url: str) -> PageRecord | None:
        """Return the page record, or None when the page could not be read."""


class HttpPageFetcher(PageFetcher):
    """Fetches pages over HTTP and parses them with the standard-library HTML parser."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout_s: float = 8.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url
        self.timeout_s = timeout_s
        self._http_client = http_client

    def resolve(self, url: str) -> str:
        absolute = urljoin(self.base_url, url) if self.base_url else url
        without_fragment, _ = urldefrag(absolute)
        return without_fragment.split("?", 1)[0]

    async def _get(self, url: str) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.get(url, timeout=self.timeout_s, follow_redirects=True)
        async with httpx.AsyncClient(timeout=self.timeout_s, follow_redirects=True) as client:
            return await client.get(url)

    async def fetch(self, url: str) -> PageRecord | None:
        target = self.resolve(url)
        if not target.startswith(("http://", "https://")):
            logger.debug(f"Skipping non-HTTP page url: {url}")
            return None

        response = await self._get(target)
        if not response.is_success:
            logger.info(
                f"Page fetch failed with status {response.status_code}",
                extra={"extra_fields": {"url": target, "status_code": response.status_code}},
            )
            return None

        record = parse_page(url, response.text)
        return None if record.is_empty else record
