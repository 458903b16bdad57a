"""Paywall classification for fetched pages."""

import json
from collections.abc import Iterable, Iterator

from lxml import etree

from hndaily.config import (
    DEFAULT_PAYWALL_KEYWORDS,
    DEFAULT_PAYWALL_MARKERS,
    DEFAULT_PAYWALL_PHRASES,
    Settings,
)
from hndaily.models import AccessVerdict, Accessible, FetchOutcome, Restricted, Unknown
from hndaily.utils.html import (
    MalformedHTMLError,
    class_id_string,
    collect_hidden,
    is_element,
    parse_document,
    visible_text,
)
from hndaily.utils.logging import get_logger

logger = get_logger(__name__)

RESTRICTED_STATUSES = frozenset({401, 402, 403, 451})
HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")
CONTENT_WALL = "content wall detected"

# Declared word count this many times the visible one means a truncated body
TRUNCATION_RATIO = 4
MIN_DECLARED_WORDS = 100


class PaywallClassifier:
    """Decides whether a fetched page is readable or behind a wall.

    The keyword, phrase and marker lists are policy, not logic: callers tune
    them through Settings. Classification never raises.
    """

    def __init__(
        self,
        keywords: Iterable[str] = DEFAULT_PAYWALL_KEYWORDS,
        phrases: Iterable[str] = DEFAULT_PAYWALL_PHRASES,
        markers: Iterable[str] = DEFAULT_PAYWALL_MARKERS,
        min_body_chars: int = 500,
    ) -> None:
        self._keywords = tuple(sorted(k.lower() for k in keywords))
        self._phrases = tuple(sorted(p.lower() for p in phrases))
        self._markers = frozenset(m.lower() for m in markers)
        self._min_body_chars = min_body_chars

    @classmethod
    def from_settings(cls, settings: Settings) -> "PaywallClassifier":
        return cls(
            keywords=settings.paywall_keywords,
            phrases=settings.paywall_phrases,
            markers=settings.paywall_markers,
            min_body_chars=settings.min_body_chars_for_paywall_heuristic,
        )

    def classify(self, outcome: FetchOutcome) -> AccessVerdict:
        """Classify a fetch outcome.

        Args:
            outcome: The result of fetching a story page.

        Returns:
            Restricted for wall statuses or wall signals in the body, Unknown
            for errors and non-HTML bodies, Accessible otherwise.
        """
        if outcome.http_status in RESTRICTED_STATUSES:
            return Restricted(f"http status {outcome.http_status}")

        if outcome.error is not None or outcome.body is None:
            return Unknown()

        if not _is_html(outcome.content_type):
            logger.info("Non-HTML content", url=outcome.url, content_type=outcome.content_type)
            return Unknown()

        try:
            tree = parse_document(outcome.body, outcome.encoding)
        except MalformedHTMLError:
            # The extractor reports unparseable bodies
            return Accessible()

        signal = self._wall_signal(tree)
        if signal is not None:
            logger.info("Content wall detected", url=outcome.url, signal=signal)
            return Restricted(CONTENT_WALL)
        return Accessible()

    def _wall_signal(self, tree: etree._Element) -> str | None:
        """Return the name of the first wall signal found, if any."""
        hidden = collect_hidden(tree)

        marker = self._find_marker(tree, hidden)
        if marker is not None:
            return f"marker:{marker}"

        text = visible_text(tree, hidden)
        lowered = text.lower()

        ld_signal = _structured_data_signal(tree, len(text.split()))
        if ld_signal is not None:
            return ld_signal

        for phrase in self._phrases:
            if phrase in lowered:
                return f"phrase:{phrase}"

        if len(text) < self._min_body_chars:
            for keyword in self._keywords:
                if keyword in lowered:
                    return f"short-body-keyword:{keyword}"

        return None

    def _find_marker(self, tree: etree._Element, hidden: set[etree._Element]) -> str | None:
        """First configured marker equal to a whole class or id token, in document order."""
        stack = [tree]
        while stack:
            node = stack.pop()
            hits = self._markers.intersection(class_id_string(node).split())
            if hits:
                return min(hits)
            children = [c for c in node if is_element(c) and c not in hidden]
            stack.extend(reversed(children))
        return None


def _is_html(content_type: str | None) -> bool:
    if not content_type:
        return True
    lowered = content_type.lower()
    return any(t in lowered for t in HTML_CONTENT_TYPES)


def _structured_data_signal(tree: etree._Element, visible_words: int) -> str | None:
    """Check JSON-LD for paywall markup or a body truncated against its declared length."""
    for script in tree.iter("script"):
        if (script.get("type") or "").lower() != "application/ld+json" or not script.text:
            continue
        try:
            data = json.loads(script.text)
        except ValueError:
            continue
        for obj in _walk_json(data):
            free = obj.get("isAccessibleForFree")
            if free is False or (isinstance(free, str) and free.strip().lower() == "false"):
                return "ld+json:isAccessibleForFree"
            declared = _as_int(obj.get("wordCount"))
            if (
                declared is not None
                and declared >= MIN_DECLARED_WORDS
                and declared > TRUNCATION_RATIO * visible_words
            ):
                return "ld+json:wordCount"
    return None


def _walk_json(data: object) -> Iterator[dict]:
    if isinstance(data, dict):
        yield data
        for value in data.values():
            yield from _walk_json(value)
    elif isinstance(data, list):
        for item in data:
            yield from _walk_json(item)


def _as_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None
