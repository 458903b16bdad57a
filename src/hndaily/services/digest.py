"""Digest rendering for hn-daily."""

import html
import textwrap
from collections.abc import Sequence
from datetime import date

from hndaily.models import (
    ArticleResult,
    Code,
    ContentBlock,
    Failed,
    Heading,
    Image,
    ListBlock,
    Paragraph,
    Paywalled,
    Quote,
    Table,
)
from hndaily.utils.logging import get_logger

logger = get_logger(__name__)

TEXT_WIDTH = 80
DIGEST_NAME = "Hacker News Daily"


def format_date(day: date) -> str:
    """Format a date like "March 5, 2025"."""
    return f"{day:%B} {day.day}, {day.year}"


def unavailable_message(result: ArticleResult) -> str | None:
    """Placeholder text for a story without extracted content."""
    if isinstance(result.status, Paywalled):
        return f"Unavailable: behind a paywall ({result.status.reason})"
    if isinstance(result.status, Failed):
        return f"Unavailable: could not retrieve content ({result.status.reason})"
    return None


class DigestRenderer:
    """Renders article results as HTML and plain-text digests."""

    def render_html(self, results: Sequence[ArticleResult], day: date) -> str:
        """Render the digest as a standalone HTML page.

        Args:
            results: Article results in rank order.
            day: The digest date.

        Returns:
            The HTML document.
        """
        logger.info("Rendering HTML digest", entries=len(results))
        date_str = format_date(day)
        index_html = "\n".join(self._render_index_entry(r) for r in results)
        articles_html = "\n".join(self._render_article(r) for r in results)
        if not results:
            articles_html = "<p>No stories were available today.</p>"

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{DIGEST_NAME} – {date_str}</title>
<style>
body {{
    font-family: Georgia, serif;
    margin: 0;
    padding: 0;
    display: flex;
    flex-direction: column;
}}
h1 {{
    text-align: center;
    margin: 0;
    padding: 20px 0 10px 0;
}}
.date {{
    text-align: center;
    margin: 0 0 20px 0;
}}
.main-container {{
    display: flex;
    flex: 1;
}}
.sidebar {{
    position: sticky;
    top: 0;
    width: 280px;
    height: 100vh;
    overflow-y: auto;
    background: #f8f8f8;
    padding: 15px;
    box-sizing: border-box;
    border-right: 1px solid #ddd;
}}
.sidebar h2 {{
    text-align: center;
    margin-top: 0;
}}
.story-index {{
    padding-left: 20px;
}}
.story-index li {{
    margin-bottom: 0.8em;
    font-size: 0.9em;
}}
.articles {{
    flex: 1;
    padding: 20px 40px;
    max-width: 800px;
    margin: 0 auto;
}}
.story {{
    margin-bottom: 1.5em;
    padding-bottom: 1.5em;
    border-bottom: 1px solid #ddd;
}}
.story h2 {{
    font-size: 1.3em;
    margin: 1em 0 .1em 0;
}}
.meta {{
    font-size: .8em;
    color: #555;
    margin: 0 0 .5em 0;
}}
.domain {{
    color: #888;
    font-size: 0.8em;
}}
.byline {{
    font-style: italic;
    color: #555;
}}
.content {{
    line-height: 1.5;
    margin-top: 1em;
}}
.content img {{
    max-width: 100%;
    height: auto;
}}
.content pre {{
    background: #f4f4f4;
    padding: 10px;
    overflow-x: auto;
    font-size: 0.85em;
}}
.content table {{
    border-collapse: collapse;
}}
.content td, .content th {{
    border: 1px solid #ddd;
    padding: 4px 8px;
}}
.unavailable {{
    color: #aa3300;
    font-style: italic;
}}
a {{
    color: #000;
    text-decoration: none;
}}
a:hover {{
    text-decoration: underline;
}}
a.active {{
    font-weight: bold;
    color: #ff6600;
}}
@media print {{
    .sidebar {{
        display: none;
    }}
    .articles {{
        margin: 0;
        max-width: none;
    }}
}}
@media (max-width: 800px) {{
    .main-container {{
        flex-direction: column;
    }}
    .sidebar {{
        position: static;
        width: 100%;
        height: auto;
    }}
}}
</style>
<script>
document.addEventListener('DOMContentLoaded', function () {{
  const links = document.querySelectorAll('.story-index a');
  const observer = new IntersectionObserver(function (entries) {{
    entries.forEach(function (entry) {{
      if (!entry.isIntersecting) return;
      links.forEach(function (link) {{
        link.classList.toggle('active', link.getAttribute('href') === '#' + entry.target.id);
      }});
    }});
  }}, {{ threshold: 0.5 }});
  document.querySelectorAll('.story').forEach(function (story) {{
    observer.observe(story);
  }});
}});
</script>
</head>
<body>
<h1>{DIGEST_NAME}</h1>
<p class="date">{date_str}</p>

<div class="main-container">
<nav class="sidebar">
<h2>Article Index</h2>
<ol class="story-index">
{index_html}
</ol>
</nav>

<div class="articles">
{articles_html}
</div>
</div>
</body>
</html>"""

    def _render_index_entry(self, result: ArticleResult) -> str:
        safe_title = html.escape(result.story.title)
        return f'<li><a href="#article-{result.story.rank}">{safe_title}</a></li>'

    def _render_article(self, result: ArticleResult) -> str:
        """Render a single story entry."""
        story = result.story
        safe_title = html.escape(story.title)
        safe_url = html.escape(story.url)
        safe_comments = html.escape(story.comments_url)
        meta = (
            f"{story.points} points • by {html.escape(story.by)} • "
            f'<a href="{safe_comments}">{story.comment_count} comments</a>'
        )

        message = unavailable_message(result)
        if message is not None:
            content_html = f'<p class="unavailable">{html.escape(message)}</p>'
        else:
            article = result.article
            assert article is not None
            byline_html = ""
            if article.byline:
                byline_html = f'<p class="byline">by {html.escape(article.byline)}</p>'
            blocks_html = "\n".join(self._render_block(b) for b in article.blocks)
            content_html = f"""{byline_html}
<div class="content">
{blocks_html}
</div>"""

        return f"""<article id="article-{story.rank}" class="story">
<h2><a href="{safe_url}">{safe_title}</a></h2>
<p class="meta">{meta} <span class="domain">({html.escape(story.domain)})</span></p>
{content_html}
</article>"""

    def _render_block(self, block: ContentBlock) -> str:
        if isinstance(block, Heading):
            # Story titles are h2, so article headings start at h3
            level = min(block.level + 2, 6)
            return f"<h{level}>{html.escape(block.text)}</h{level}>"
        if isinstance(block, Paragraph):
            return f"<p>{html.escape(block.text)}</p>"
        if isinstance(block, Code):
            lang_attr = f' class="language-{html.escape(block.lang)}"' if block.lang else ""
            return f"<pre><code{lang_attr}>{html.escape(block.text)}</code></pre>"
        if isinstance(block, Image):
            alt = html.escape(block.alt or "")
            return f'<img src="{html.escape(block.src)}" alt="{alt}" loading="lazy">'
        if isinstance(block, Quote):
            return f"<blockquote>{html.escape(block.text)}</blockquote>"
        if isinstance(block, ListBlock):
            tag = "ol" if block.ordered else "ul"
            items = "".join(f"<li>{html.escape(item)}</li>" for item in block.items)
            return f"<{tag}>{items}</{tag}>"
        if isinstance(block, Table):
            rows = "".join(
                "<tr>" + "".join(f"<td>{html.escape(cell)}</td>" for cell in row) + "</tr>"
                for row in block.rows
            )
            return f"<table>{rows}</table>"
        raise TypeError(f"unknown content block: {block!r}")

    def render_text(self, results: Sequence[ArticleResult], day: date) -> str:
        """Render the digest as wrapped plain text.

        Args:
            results: Article results in rank order.
            day: The digest date.

        Returns:
            The text document.
        """
        logger.info("Rendering text digest", entries=len(results))
        lines = [f"{DIGEST_NAME} – {format_date(day)}", "=" * TEXT_WIDTH, ""]

        lines.append("Article Index")
        lines.append("")
        for result in results:
            lines.extend(_wrap(result.story.title, f"{result.story.rank:>3}. ", "     "))
        lines.append("")

        for result in results:
            lines.extend(self._render_text_entry(result))
        if not results:
            lines.append("No stories were available today.")

        return "\n".join(lines).rstrip() + "\n"

    def _render_text_entry(self, result: ArticleResult) -> list[str]:
        story = result.story
        lines = ["-" * TEXT_WIDTH]
        lines.extend(_wrap(f"{story.rank}. {story.title}"))
        lines.append(story.url)
        lines.append(
            f"{story.points} points | by {story.by} | {story.comment_count} comments"
            f" | {story.comments_url}"
        )
        lines.append("")

        message = unavailable_message(result)
        if message is not None:
            lines.extend(_wrap(f"[{message}]"))
            lines.append("")
            return lines

        article = result.article
        assert article is not None
        if article.byline:
            lines.append(f"by {article.byline}")
            lines.append("")
        for block in article.blocks:
            lines.extend(_text_block(block))
            lines.append("")
        return lines


def _wrap(text: str, initial: str = "", subsequent: str = "") -> list[str]:
    return textwrap.wrap(
        text,
        width=TEXT_WIDTH,
        initial_indent=initial,
        subsequent_indent=subsequent,
        break_long_words=False,
        break_on_hyphens=False,
    ) or [initial.rstrip()]


def _text_block(block: ContentBlock) -> list[str]:
    if isinstance(block, Heading):
        return [block.text.upper()] if block.level <= 2 else [block.text]
    if isinstance(block, Paragraph):
        return _wrap(block.text)
    if isinstance(block, Code):
        return ["    " + line for line in block.text.splitlines()]
    if isinstance(block, Image):
        label = f"[Image: {block.alt}]" if block.alt else "[Image]"
        return [f"{label} {block.src}"]
    if isinstance(block, Quote):
        return _wrap(block.text, "  > ", "  > ")
    if isinstance(block, ListBlock):
        lines: list[str] = []
        for n, item in enumerate(block.items, start=1):
            bullet = f"{n}. " if block.ordered else "* "
            lines.extend(_wrap(item, "  " + bullet, " " * (2 + len(bullet))))
        return lines
    if isinstance(block, Table):
        return [" | ".join(row) for row in block.rows]
    raise TypeError(f"unknown content block: {block!r}")
