"""Readable content extraction for story pages.

Extraction runs in three passes over one parsed lxml tree, none of which
modify it:

1. ``_collect_stripped`` marks boilerplate subtrees (scripts, navigation,
   ads, share widgets...) to be ignored.
2. ``_score_candidates`` credits paragraph-like nodes to their parent and
   grandparent and ranks containers by density, tag and semantic markers.
3. ``_BlockWalker`` maps the winning container to ContentBlocks in document
   order.
"""

import re
from urllib.parse import urljoin

import trafilatura
from lxml import etree
from readability import Document

from hndaily.models import (
    Code,
    ContentBlock,
    ExtractedArticle,
    ExtractError,
    ExtractErrorKind,
    Heading,
    Image,
    ListBlock,
    Paragraph,
    Quote,
    Table,
)
from hndaily.utils.html import (
    HIDDEN_TAGS,
    MalformedHTMLError,
    class_tokens,
    decode_body,
    is_element,
    iter_text,
    link_text_length,
    normalize_space,
    parse_document,
    tag_name,
    visible_text,
)
from hndaily.utils.logging import get_logger

logger = get_logger(__name__)

STRIP_TAGS = HIDDEN_TAGS | {
    "nav",
    "footer",
    "form",
    "aside",
    "iframe",
    "svg",
    "button",
    "input",
    "select",
    "textarea",
    "object",
    "embed",
    "canvas",
    "dialog",
    "menu",
}

# class/id tokens of ads, trackers and page furniture
UNLIKELY_TOKENS = frozenset(
    {
        "ad",
        "ads",
        "adsbygoogle",
        "advert",
        "advertisement",
        "banner",
        "breadcrumb",
        "breadcrumbs",
        "comment",
        "comments",
        "cookie",
        "cookies",
        "disqus",
        "menu",
        "modal",
        "newsletter",
        "outbrain",
        "pager",
        "pagination",
        "popup",
        "promo",
        "related",
        "share",
        "sharing",
        "sidebar",
        "social",
        "sponsor",
        "sponsored",
        "taboola",
        "tracking",
        "widget",
    }
)

ARTICLE_TOKENS = frozenset(
    {"article", "articlebody", "content", "entry", "main", "post", "prose", "story"}
)

# Only these may be credited with paragraph scores
CANDIDATE_TAGS = frozenset({"div", "section", "article", "main", "td", "body", "blockquote", "pre"})
NEVER_STRIPPED = frozenset({"html", "body", "article", "main"})
PARAGRAPH_TAGS = frozenset({"p", "pre", "blockquote"})
TEXT_ONLY_TAGS = frozenset({"div", "section", "article", "main", "td"})

TAG_WEIGHTS = {
    "div": 5,
    "article": 5,
    "main": 5,
    "section": 3,
    "pre": 3,
    "td": 3,
    "blockquote": 3,
}

INLINE_TAGS = frozenset(
    {
        "a",
        "abbr",
        "b",
        "bdi",
        "bdo",
        "big",
        "cite",
        "code",
        "data",
        "del",
        "dfn",
        "em",
        "font",
        "i",
        "ins",
        "kbd",
        "label",
        "mark",
        "q",
        "s",
        "samp",
        "small",
        "span",
        "strike",
        "strong",
        "sub",
        "sup",
        "time",
        "tt",
        "u",
        "var",
        "wbr",
    }
)

BLOCK_TAGS = frozenset(
    {
        "address",
        "article",
        "blockquote",
        "dd",
        "details",
        "div",
        "dl",
        "dt",
        "figcaption",
        "figure",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "header",
        "hr",
        "img",
        "li",
        "main",
        "ol",
        "p",
        "picture",
        "pre",
        "section",
        "table",
        "ul",
    }
)

HEADING_TAGS = {f"h{n}": n for n in range(1, 7)}
LANG_CLASS = re.compile(r"(?:^|\s)(?:language|lang)-([\w+#.-]+)")

MIN_PARAGRAPH_CHARS = 25
SEMANTIC_BOOST = 1.25
MAX_BYLINE_CHARS = 100
BYLINE_PREFIX = re.compile(r"^by\s+", re.IGNORECASE)


class ContentExtractor:
    """Isolates the main article of an HTML page."""

    def __init__(self, min_score: float = 10.0) -> None:
        self._min_score = min_score

    def extract(
        self,
        html: bytes | str,
        base_url: str = "",
        fallback_title: str = "",
        encoding: str | None = None,
    ) -> ExtractedArticle:
        """Extract the readable article from a page.

        Args:
            html: The page body.
            base_url: URL the page was served from, used to resolve images.
            fallback_title: Title to use when the page has none.
            encoding: Charset from the Content-Type header, if any.

        Returns:
            The ExtractedArticle.

        Raises:
            ExtractError: If the page cannot be parsed, has no container
                scoring above the threshold, or yields no words.
        """
        try:
            tree = parse_document(html, encoding)
        except MalformedHTMLError as e:
            logger.debug("Unparseable document", url=base_url, error=str(e))
            raise ExtractError(ExtractErrorKind.MALFORMED_DOCUMENT) from e

        stripped = _collect_stripped(tree)
        scores = _score_candidates(tree, stripped)
        if not scores:
            raise ExtractError(ExtractErrorKind.NO_CONTENT_FOUND)

        top, top_score = _best_candidate(scores)
        if top_score < self._min_score:
            logger.debug("No container above threshold", url=base_url, top_score=top_score)
            raise ExtractError(ExtractErrorKind.NO_CONTENT_FOUND)

        selection = _with_siblings(top, top_score, scores, stripped)
        title_node = _find_title_node(selection, stripped)

        walker = _BlockWalker(_base_href(tree, base_url), stripped, title_node)
        for node in selection:
            walker.walk(node)
        blocks = tuple(walker.blocks)

        word_count = count_words(blocks)
        if word_count == 0:
            raise ExtractError(ExtractErrorKind.EMPTY_ARTICLE)

        text = decode_body(html, encoding)
        if title_node is not None:
            title = visible_text(title_node, stripped)
        else:
            title = _document_title(text) or fallback_title

        return ExtractedArticle(
            title=title,
            byline=_find_byline(tree, stripped) or _metadata_byline(text),
            blocks=blocks,
            word_count=word_count,
        )


def count_words(blocks: tuple[ContentBlock, ...]) -> int:
    """Whitespace tokens across paragraphs, headings and quotes."""
    return sum(
        len(block.text.split())
        for block in blocks
        if isinstance(block, Paragraph | Heading | Quote)
    )


def _iter_elements(node: etree._Element, stripped: set[etree._Element]):
    """Elements under ``node`` in document order, not descending into stripped ones."""
    for child in node:
        if not is_element(child) or child in stripped:
            continue
        yield child
        yield from _iter_elements(child, stripped)


def _collect_stripped(tree: etree._Element) -> set[etree._Element]:
    stripped: set[etree._Element] = set()

    def visit(node: etree._Element) -> None:
        for child in node:
            if not is_element(child):
                continue
            if _is_boilerplate(child):
                stripped.add(child)
                continue
            visit(child)

    visit(tree)
    return stripped


def _is_boilerplate(node: etree._Element) -> bool:
    tag = tag_name(node)
    if tag in STRIP_TAGS:
        return True
    if tag in NEVER_STRIPPED:
        return False
    if node.get("aria-hidden") == "true" or node.get("hidden") is not None:
        return True
    if node.get("role") in ("navigation", "complementary", "banner", "contentinfo"):
        return True
    tokens = class_tokens(node)
    return bool(tokens & UNLIKELY_TOKENS) and not tokens & ARTICLE_TOKENS


def _is_text_only(node: etree._Element, stripped: set[etree._Element]) -> bool:
    for child in node:
        if is_element(child) and child not in stripped and tag_name(child) in BLOCK_TAGS:
            return False
    return True


def _paragraph_score(node: etree._Element, stripped: set[etree._Element]) -> float:
    text = visible_text(node, stripped)
    if len(text) < MIN_PARAGRAPH_CHARS:
        return 0.0
    net = max(len(text) - link_text_length(node, stripped), 0)
    return 1 + text.count(",") + min(net / 100, 3)


def _score_candidates(
    tree: etree._Element, stripped: set[etree._Element]
) -> dict[etree._Element, float]:
    """Score every container credited by at least one paragraph-like node."""
    credit: dict[etree._Element, float] = {}

    for node in _iter_elements(tree, stripped):
        tag = tag_name(node)
        paragraph_like = tag in PARAGRAPH_TAGS or (
            tag in TEXT_ONLY_TAGS and _is_text_only(node, stripped)
        )
        if not paragraph_like:
            continue
        score = _paragraph_score(node, stripped)
        if not score:
            continue
        parent = node.getparent()
        if parent is None or tag_name(parent) not in CANDIDATE_TAGS:
            continue
        credit[parent] = credit.get(parent, 0.0) + score
        grandparent = parent.getparent()
        if grandparent is not None and tag_name(grandparent) in CANDIDATE_TAGS:
            credit[grandparent] = credit.get(grandparent, 0.0) + score / 2

    scores: dict[etree._Element, float] = {}
    for node in _iter_elements(tree, stripped):
        if node not in credit:
            continue
        text_len = len(visible_text(node, stripped))
        density = link_text_length(node, stripped) / text_len if text_len else 1.0
        score = (credit[node] + TAG_WEIGHTS.get(tag_name(node), 0)) * (1 - min(density, 1.0))
        if _has_semantic_marker(node):
            score *= SEMANTIC_BOOST
        scores[node] = score
    return scores


def _has_semantic_marker(node: etree._Element | None) -> bool:
    while node is not None:
        if tag_name(node) in ("article", "main"):
            return True
        if node.get("role") == "main" or node.get("itemprop") == "articleBody":
            return True
        if class_tokens(node) & ARTICLE_TOKENS:
            return True
        node = node.getparent()
    return False


def _best_candidate(scores: dict[etree._Element, float]) -> tuple[etree._Element, float]:
    best: etree._Element | None = None
    best_score = float("-inf")
    # Document order, so ties go to the earliest container
    for node, score in scores.items():
        if score > best_score:
            best, best_score = node, score
    assert best is not None
    return best, best_score


def _with_siblings(
    top: etree._Element,
    top_score: float,
    scores: dict[etree._Element, float],
    stripped: set[etree._Element],
) -> list[etree._Element]:
    """The top container plus siblings that look like more of the same article."""
    parent = top.getparent()
    if parent is None or tag_name(top) == "body":
        return [top]

    threshold = max(10.0, top_score * 0.2)
    selected = []
    for sibling in parent:
        if not is_element(sibling) or sibling in stripped:
            continue
        if sibling is top:
            selected.append(sibling)
        elif scores.get(sibling, 0.0) >= threshold:
            selected.append(sibling)
        elif tag_name(sibling) == "p":
            text = visible_text(sibling, stripped)
            density = link_text_length(sibling, stripped) / len(text) if text else 1.0
            if len(text) > 80 and density < 0.25:
                selected.append(sibling)
            elif text and density == 0 and text.endswith("."):
                selected.append(sibling)
    return selected


def _find_title_node(
    selection: list[etree._Element], stripped: set[etree._Element]
) -> etree._Element | None:
    for root in selection:
        if tag_name(root) == "h1":
            return root
        for node in _iter_elements(root, stripped):
            if tag_name(node) == "h1" and visible_text(node, stripped):
                return node
    return None


def _document_title(html: bytes | str) -> str:
    """The <title> element with site-name suffixes trimmed by readability."""
    try:
        return normalize_space(Document(html).short_title())
    except (etree.LxmlError, ValueError) as e:
        logger.debug("Readability title extraction failed", error=str(e))
        return ""


def _base_href(tree: etree._Element, page_url: str) -> str:
    for base in tree.iter("base"):
        href = (base.get("href") or "").strip()
        if href:
            return urljoin(page_url, href)
    return page_url


def _find_byline(tree: etree._Element, stripped: set[etree._Element]) -> str | None:
    for expr in (
        '//meta[@name="author"]/@content',
        '//meta[@property="article:author"]/@content',
        '//meta[@name="byl"]/@content',
        '//meta[@name="parsely-author"]/@content',
    ):
        for value in tree.xpath(expr):
            byline = _clean_byline(str(value))
            if byline and not byline.startswith(("http://", "https://")):
                return byline

    for node in _iter_elements(tree, stripped):
        tokens = class_tokens(node)
        if node.get("rel") == "author" or node.get("itemprop") == "author" or tokens & {
            "byline",
            "author",
        }:
            byline = _clean_byline(visible_text(node, stripped))
            if byline:
                return byline
    return None


def _metadata_byline(html: bytes | str) -> str | None:
    """Fall back to trafilatura's metadata heuristics for the author."""
    try:
        metadata = trafilatura.extract_metadata(html)
    except Exception as e:
        logger.debug("Trafilatura metadata extraction failed", error=str(e))
        return None
    if metadata is None or not metadata.author:
        return None
    return _clean_byline(metadata.author)


def _clean_byline(text: str) -> str | None:
    byline = BYLINE_PREFIX.sub("", normalize_space(text))
    if not byline or len(byline) > MAX_BYLINE_CHARS:
        return None
    return byline


class _BlockWalker:
    """Maps a subtree to ContentBlocks in document order."""

    def __init__(
        self,
        base_url: str,
        stripped: set[etree._Element],
        title_node: etree._Element | None,
    ) -> None:
        self._base_url = base_url
        self._stripped = stripped
        self._title_node = title_node
        self.blocks: list[ContentBlock] = []

    def walk(self, node: etree._Element) -> None:
        if not is_element(node) or node in self._stripped or node is self._title_node:
            return
        tag = tag_name(node)

        if tag in HEADING_TAGS:
            self._add_text(Heading, self._text(node), level=HEADING_TAGS[tag])
        elif tag == "p":
            self._add_text(Paragraph, self._text(node))
            self._add_images(node)
        elif tag == "pre":
            self._add_code(node)
        elif tag == "blockquote":
            self._add_text(Quote, self._text(node))
        elif tag in ("ul", "ol", "dl"):
            self._add_list(node, ordered=tag == "ol")
        elif tag == "table":
            if self._is_layout_table(node):
                self._walk_container(node)
            else:
                self._add_table(node)
        elif tag == "img":
            self._add_image(node)
        elif tag in ("figure", "picture"):
            self._add_figure(node)
        elif tag in ("hr", "br"):
            return
        else:
            self._walk_container(node)

    def _walk_container(self, node: etree._Element) -> None:
        """Walk block children, gathering loose inline text into paragraphs."""
        buffer: list[str] = []
        pending: list[etree._Element] = []

        def flush() -> None:
            self._add_text(Paragraph, normalize_space(" ".join(buffer)))
            for img in pending:
                self._add_image(img)
            buffer.clear()
            pending.clear()

        if node.text:
            buffer.append(node.text)
        for child in node:
            if is_element(child) and child not in self._stripped:
                tag = tag_name(child)
                if tag in INLINE_TAGS or tag == "br":
                    buffer.extend(iter_text(child, self._stripped))
                    pending.extend(self._images_in(child))
                elif tag not in HIDDEN_TAGS:
                    flush()
                    self.walk(child)
            if child.tail:
                buffer.append(child.tail)
        flush()

    def _text(self, node: etree._Element) -> str:
        return visible_text(node, self._stripped)

    def _add_text(self, kind: type, text: str, **kwargs: int) -> None:
        if text:
            self.blocks.append(kind(text=text, **kwargs))

    def _add_code(self, node: etree._Element) -> None:
        text = "".join(iter_text(node, self._stripped)).strip("\n").rstrip()
        if not text.strip():
            return
        lang = _code_language(node)
        if lang is None:
            for code in node.iter("code"):
                lang = _code_language(code)
                break
        self.blocks.append(Code(text=text, lang=lang))

    def _add_list(self, node: etree._Element, ordered: bool) -> None:
        items = tuple(
            text
            for child in node
            if is_element(child)
            and child not in self._stripped
            and tag_name(child) in ("li", "dt", "dd")
            and (text := self._text(child))
        )
        if items:
            self.blocks.append(ListBlock(items=items, ordered=ordered))

    def _is_layout_table(self, node: etree._Element) -> bool:
        for child in _iter_elements(node, self._stripped):
            if tag_name(child) in ("table", "p", "div", "pre", "ul", "ol", "h1", "h2", "h3"):
                return True
        return False

    def _add_table(self, node: etree._Element) -> None:
        rows = []
        for row in _iter_elements(node, self._stripped):
            if tag_name(row) != "tr":
                continue
            cells = tuple(
                self._text(cell)
                for cell in row
                if is_element(cell) and cell not in self._stripped and tag_name(cell) in ("td", "th")
            )
            if any(cells):
                rows.append(cells)
        if rows:
            self.blocks.append(Table(rows=tuple(rows)))

    def _images_in(self, node: etree._Element) -> list[etree._Element]:
        if tag_name(node) == "img":
            return [node]
        return [n for n in _iter_elements(node, self._stripped) if tag_name(n) == "img"]

    def _add_images(self, node: etree._Element) -> None:
        for img in self._images_in(node):
            self._add_image(img)

    def _add_image(self, node: etree._Element, caption: str | None = None) -> None:
        src = ""
        for attr in ("src", "data-src", "data-original"):
            src = (node.get(attr) or "").strip()
            if src:
                break
        if not src or src.startswith("data:"):
            return
        alt = normalize_space(node.get("alt") or "") or caption
        resolved = urljoin(self._base_url, src) if self._base_url else src
        self.blocks.append(Image(src=resolved, alt=alt))

    def _add_figure(self, node: etree._Element) -> None:
        caption = None
        for child in _iter_elements(node, self._stripped):
            if tag_name(child) == "figcaption":
                caption = self._text(child) or None
                break
        for img in self._images_in(node):
            self._add_image(img, caption)
        for child in node:
            if not is_element(child) or child in self._stripped:
                continue
            if tag_name(child) in ("figcaption", "img", "picture") or self._images_in(child):
                continue
            self.walk(child)


def _code_language(node: etree._Element) -> str | None:
    match = LANG_CLASS.search(node.get("class") or "")
    return match.group(1) if match else None
