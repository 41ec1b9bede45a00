"""Word counting for chapter markup.

Block-level elements and line breaks separate words; inline elements
(``<strong>``, ``<em>`` …) do not, so ``hel<b>lo</b>`` stays one word.
The parser decodes entities, which makes ``&nbsp;`` count as whitespace.
"""
import math

from bs4 import BeautifulSoup

BLOCK_TAGS = [
    "p", "div", "br", "hr", "h1", "h2", "h3", "h4", "h5", "h6", "li", "ul", "ol",
    "blockquote", "pre", "table", "thead", "tbody", "tr", "td", "th",
    "section", "article", "header", "footer",
]
_VOID_TAGS = {"br", "hr"}


def markup_to_text(markup: str | None) -> str:
    """Rendered text of *markup*, with block boundaries kept as spaces."""
    if not markup:
        return ""
    soup = BeautifulSoup(markup, "html.parser")
    for tag in soup.find_all(BLOCK_TAGS):
        if tag.name in _VOID_TAGS:
            tag.replace_with(" ")
        else:
            tag.insert_before(" ")
            tag.insert_after(" ")
    return soup.get_text()


def count_words(markup: str | None) -> int:
    """Number of whitespace-separated tokens in the rendered text of *markup*."""
    return len(markup_to_text(markup).split())


def count_characters(markup: str | None) -> int:
    """Number of characters in the rendered text, whitespace included."""
    return len(markup_to_text(markup))


def estimate_reading_time(word_count: int, words_per_minute: int = 200) -> int:
    """Reading time in whole minutes, never less than one."""
    return max(1, math.ceil(word_count / words_per_minute))
