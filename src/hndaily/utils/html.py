"""lxml helpers shared by the paywall classifier and the content extractor.

Nothing here mutates a parsed tree. Elements to ignore are collected into a
set and skipped while walking, so the same tree can be scored, walked and
inspected repeatedly with identical results.
"""

import codecs
import re
from collections.abc import Collection, Iterator

from lxml import etree
from lxml import html as lxml_html

# Never visible to a reader
HIDDEN_TAGS = frozenset({"script", "style", "noscript", "template", "head", "title", "meta", "link"})

TOKEN_SPLIT = re.compile(r"[\s\-_]+")


class MalformedHTMLError(ValueError):
    """Raised when a body cannot be parsed as an HTML document."""


def parse_document(body: bytes | str, encoding: str | None = None) -> etree._Element:
    """Parse a page into an lxml tree rooted at <html>.

    Args:
        body: The page, raw or decoded.
        encoding: Charset from the HTTP headers. It takes precedence over
            any <meta charset> in raw bodies; without it lxml sniffs the
            document itself.

    Raises:
        MalformedHTMLError: If the body is empty or not parseable.
    """
    if not body or not body.strip():
        raise MalformedHTMLError("document is empty")
    parser = _parser_for(encoding) if isinstance(body, bytes) else None
    try:
        return lxml_html.document_fromstring(body, parser=parser)
    except (etree.LxmlError, ValueError) as e:
        raise MalformedHTMLError(str(e)) from e


def _parser_for(encoding: str | None) -> lxml_html.HTMLParser | None:
    if not encoding:
        return None
    try:
        codecs.lookup(encoding)
        return lxml_html.HTMLParser(encoding=encoding)
    except LookupError:
        return None


def decode_body(body: bytes | str, encoding: str | None = None) -> bytes | str:
    """Decode ``body`` with the header charset, or return it untouched if there is none."""
    if isinstance(body, str) or not encoding:
        return body
    try:
        return body.decode(encoding, errors="replace")
    except LookupError:
        return body


def is_element(node: object) -> bool:
    """True for real elements, False for comments and processing instructions."""
    return isinstance(node, etree._Element) and isinstance(node.tag, str)


def tag_name(node: etree._Element) -> str:
    if not is_element(node):
        return ""
    tag = node.tag
    # Strip XHTML namespaces
    if "}" in tag:
        tag = tag.rsplit("}", 1)[1]
    return tag.lower()


def class_id_string(node: etree._Element) -> str:
    """Lowercased class and id attributes joined by a space."""
    return f"{node.get('class', '')} {node.get('id', '')}".lower().strip()


def class_tokens(node: etree._Element) -> set[str]:
    """Whole class/id tokens plus their hyphen and underscore separated parts."""
    raw = class_id_string(node)
    tokens = set(raw.split())
    tokens.update(t for t in TOKEN_SPLIT.split(raw) if t)
    return tokens


def collect_hidden(root: etree._Element, tags: Collection[str] = HIDDEN_TAGS) -> set[etree._Element]:
    """Top-most elements whose tag is in ``tags``."""
    hidden: set[etree._Element] = set()
    for node in root.iter():
        if tag_name(node) in tags and not _has_ancestor_in(node, hidden):
            hidden.add(node)
    return hidden


def _has_ancestor_in(node: etree._Element, nodes: set[etree._Element]) -> bool:
    parent = node.getparent()
    while parent is not None:
        if parent in nodes:
            return True
        parent = parent.getparent()
    return False


def iter_text(node: etree._Element, skip: Collection[etree._Element] = ()) -> Iterator[str]:
    """Yield text fragments of ``node`` in document order, skipping subtrees in ``skip``.

    The tail of a skipped element still belongs to its parent and is yielded.
    """
    if node in skip:
        return
    if is_element(node) and node.text:
        yield node.text
    for child in node:
        if is_element(child):
            yield from iter_text(child, skip)
        if child.tail:
            yield child.tail


def normalize_space(text: str) -> str:
    return " ".join(text.split())


def visible_text(node: etree._Element, skip: Collection[etree._Element] = ()) -> str:
    """Whitespace-normalized text of ``node`` excluding ``skip`` subtrees."""
    return normalize_space(" ".join(iter_text(node, skip)))


def link_text_length(node: etree._Element, skip: Collection[etree._Element] = ()) -> int:
    """Characters of text inside <a> descendants of ``node``."""
    skipped = skip if isinstance(skip, set) else set(skip)
    total = 0
    for anchor in node.iter("a"):
        if anchor in skipped or _has_ancestor_in(anchor, skipped):
            continue
        total += len(visible_text(anchor, skipped))
    return total
