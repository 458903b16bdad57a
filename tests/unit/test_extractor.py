"""Unit tests for the content extractor."""

import pytest

from hndaily.models import (
    Code,
    ExtractError,
    ExtractErrorKind,
    Heading,
    Image,
    ListBlock,
    Paragraph,
    Quote,
    Table,
)
from hndaily.services.extractor import ContentExtractor, count_words

BASE_URL = "https://example.com/posts/event-loops"


class TestContentExtractor:
    """Tests for ContentExtractor.extract."""

    @pytest.fixture
    def extractor(self) -> ContentExtractor:
        return ContentExtractor()

    def test_extracts_blocks_in_document_order(
        self, extractor: ContentExtractor, article_html: str
    ) -> None:
        """Should map the article body to typed blocks in source order."""
        article = extractor.extract(article_html, base_url=BASE_URL)

        kinds = [type(b) for b in article.blocks]
        assert kinds == [
            Paragraph,
            Paragraph,
            Heading,
            Paragraph,
            Code,
            ListBlock,
            Quote,
            Image,
            Table,
            Paragraph,
            Paragraph,
            Paragraph,
        ]
        assert article.blocks[0].text.startswith("An event loop is the heart")
        assert article.blocks[2] == Heading(level=2, text="How scheduling works")

    def test_title_comes_from_h1_and_is_not_repeated(
        self, extractor: ContentExtractor, article_html: str
    ) -> None:
        """The h1 should become the title rather than a heading block."""
        article = extractor.extract(article_html, base_url=BASE_URL)

        assert article.title == "Understanding Event Loops"
        assert all(
            not (isinstance(b, Heading) and b.text == article.title) for b in article.blocks
        )

    def test_byline_from_meta_author(self, extractor: ContentExtractor, article_html: str) -> None:
        article = extractor.extract(article_html, base_url=BASE_URL)
        assert article.byline == "Jane Doe"

    def test_byline_from_author_class(self, extractor: ContentExtractor) -> None:
        """Should fall back to elements marked as the author."""
        html = f"""<html><body><article>
        <p class="byline">By Sam Smith</p>
        <p>{"A sentence about compilers, parsers and type systems. " * 8}</p>
        <p>{"Another sentence about memory, caches and pipelines. " * 8}</p>
        </article></body></html>"""

        article = extractor.extract(html, base_url=BASE_URL)

        assert article.byline == "Sam Smith"

    def test_boilerplate_is_stripped(self, extractor: ContentExtractor, article_html: str) -> None:
        """Navigation, ads, footers and scripts should not leak into blocks."""
        article = extractor.extract(article_html, base_url=BASE_URL)

        text = " ".join(getattr(b, "text", "") for b in article.blocks)
        assert "Buy our product" not in text
        assert "Copyright" not in text
        assert "analytics" not in text
        assert "Archive" not in text

    def test_code_block_keeps_language_and_whitespace(
        self, extractor: ContentExtractor, article_html: str
    ) -> None:
        article = extractor.extract(article_html, base_url=BASE_URL)

        code = next(b for b in article.blocks if isinstance(b, Code))
        assert code.lang == "python"
        assert code.text.startswith("import asyncio\n\nasync def main():")
        assert "    await asyncio.sleep(1)" in code.text

    def test_lists_quotes_and_tables(
        self, extractor: ContentExtractor, article_html: str
    ) -> None:
        article = extractor.extract(article_html, base_url=BASE_URL)

        listing = next(b for b in article.blocks if isinstance(b, ListBlock))
        assert listing.items == ("Tasks yield at await points", "Timers live in a heap")
        assert listing.ordered is False

        quote = next(b for b in article.blocks if isinstance(b, Quote))
        assert quote.text == "Concurrency is about dealing with lots of things at once."

        table = next(b for b in article.blocks if isinstance(b, Table))
        assert table.rows == (("Task", "Time"), ("fetch", "10 ms"))

    def test_image_src_is_resolved_against_page_url(
        self, extractor: ContentExtractor, article_html: str
    ) -> None:
        article = extractor.extract(article_html, base_url=BASE_URL)

        image = next(b for b in article.blocks if isinstance(b, Image))
        assert image.src == "https://example.com/images/loop.png"
        assert image.alt == "Event loop diagram"

    def test_word_count_matches_text_blocks(
        self, extractor: ContentExtractor, article_html: str
    ) -> None:
        article = extractor.extract(article_html, base_url=BASE_URL)

        assert article.word_count == count_words(article.blocks)
        assert article.word_count > 200

    def test_extraction_is_deterministic(
        self, extractor: ContentExtractor, article_html: str
    ) -> None:
        """The same input should always produce the same article."""
        first = extractor.extract(article_html, base_url=BASE_URL)
        second = extractor.extract(article_html.encode(), base_url=BASE_URL)

        assert first == second

    def test_blank_page_has_no_content(self, extractor: ContentExtractor, blank_html: str) -> None:
        with pytest.raises(ExtractError) as exc_info:
            extractor.extract(blank_html, base_url=BASE_URL)

        assert exc_info.value.kind is ExtractErrorKind.NO_CONTENT_FOUND
        assert exc_info.value.reason == "no content found"

    def test_code_only_page_is_empty_article(self, extractor: ContentExtractor) -> None:
        """A container of code alone scores but yields no prose words."""
        code = "values = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]\n" * 12
        html = f"<html><body><article><pre>{code}</pre></article></body></html>"

        with pytest.raises(ExtractError) as exc_info:
            extractor.extract(html, base_url=BASE_URL)

        assert exc_info.value.kind is ExtractErrorKind.EMPTY_ARTICLE

    def test_empty_body_is_malformed(self, extractor: ContentExtractor) -> None:
        with pytest.raises(ExtractError) as exc_info:
            extractor.extract(b"", base_url=BASE_URL)

        assert exc_info.value.reason == "malformed document"

    def test_threshold_rejects_thin_pages(self) -> None:
        """A higher minimum score should reject an otherwise valid page."""
        html = (
            "<html><body><div><p>Just one short paragraph that is long enough to count.</p>"
            "</div></body></html>"
        )

        with pytest.raises(ExtractError) as exc_info:
            ContentExtractor(min_score=50.0).extract(html, base_url=BASE_URL)

        assert exc_info.value.kind is ExtractErrorKind.NO_CONTENT_FOUND

    def test_title_falls_back_to_shortened_document_title(
        self, extractor: ContentExtractor
    ) -> None:
        """Without an h1, the <title> minus its site suffix is used."""
        html = f"""<html><head><title>Why Rust Compiles Slowly Today | Example</title></head>
        <body><div class="post">
        <p>{"Monomorphization, linking and borrow checking all take time. " * 6}</p>
        <p>{"Incremental builds help, but generics still multiply work. " * 6}</p>
        </div></body></html>"""

        article = extractor.extract(html, base_url=BASE_URL)

        assert article.title == "Why Rust Compiles Slowly Today"

    def test_title_falls_back_to_story_title(self, extractor: ContentExtractor) -> None:
        html = f"""<html><body><div class="post">
        <p>{"Monomorphization, linking and borrow checking all take time. " * 6}</p>
        <p>{"Incremental builds help, but generics still multiply work. " * 6}</p>
        </div></body></html>"""

        article = extractor.extract(html, base_url=BASE_URL, fallback_title="Story title")

        assert article.title == "Story title"

    def test_header_charset_decodes_raw_body(self, extractor: ContentExtractor) -> None:
        """A charset from the headers is honored when the page declares none."""
        html = f"""<html><head><title>Notes from the corner café downtown | Example</title></head>
        <body><div class="post">
        <p>{"Café naïve résumé, written over crème brûlée and coffee. " * 6}</p>
        <p>{"The façade, the théâtre and the piñata all made the list. " * 6}</p>
        </div></body></html>"""

        article = extractor.extract(html.encode("utf-8"), base_url=BASE_URL, encoding="utf-8")

        assert article.title == "Notes from the corner café downtown"
        assert article.blocks[0].text.startswith("Café naïve résumé, written over crème brûlée")

    def test_unknown_header_charset_is_ignored(self, extractor: ContentExtractor) -> None:
        html = f"""<html><body><div class="post">
        <p>{"Monomorphization, linking and borrow checking all take time. " * 6}</p>
        <p>{"Incremental builds help, but generics still multiply work. " * 6}</p>
        </div></body></html>"""

        article = extractor.extract(html.encode(), base_url=BASE_URL, encoding="x-no-such-charset")

        assert article.blocks[0].text.startswith("Monomorphization, linking")

    def test_data_uri_images_are_skipped(self, extractor: ContentExtractor) -> None:
        html = f"""<html><body><article>
        <p>{"Lazy loading swaps placeholders for real images, later on. " * 6}</p>
        <img src="data:image/gif;base64,R0lGODlhAQABAAAAACw=" alt="placeholder">
        <img data-src="/img/real.jpg" alt="real">
        <p>{"The real source sits in a data attribute, until scrolled. " * 6}</p>
        </article></body></html>"""

        article = extractor.extract(html, base_url=BASE_URL)

        images = [b for b in article.blocks if isinstance(b, Image)]
        assert images == [Image(src="https://example.com/img/real.jpg", alt="real")]


class TestCountWords:
    """Tests for count_words."""

    def test_counts_only_prose_blocks(self) -> None:
        blocks = (
            Heading(level=2, text="Two words"),
            Paragraph(text="three more words"),
            Code(text="not counted at all"),
            Quote(text="one"),
            ListBlock(items=("also", "ignored")),
        )
        assert count_words(blocks) == 6
