"""Filing HTML to markdown/plain text conversion.

Uses BeautifulSoup with the stdlib ``html.parser`` backend so inline XBRL
tag names (``ix:header`` and friends) survive parsing unchanged.
"""

from __future__ import annotations

import logging
import re
from typing import List

from bs4 import BeautifulSoup, Tag

from edgarlens.utils.text import normalize_whitespace

LOGGER = logging.getLogger(__name__)

DROPPED_TAGS = ["script", "style", "noscript", "iframe", "canvas"]
INLINE_XBRL_BLOCKS = re.compile(
    r"<ix:(header|hidden|resources)\b[\s\S]*?</ix:\1>", re.IGNORECASE
)
BLOCK_TAGS = ["p", "div", "section", "article", "tr", "blockquote", "pre", "ul", "ol", "center"]


def strip_inline_xbrl_headers(content: str) -> str:
    return INLINE_XBRL_BLOCKS.sub("", content)


def _cell_text(cell: Tag) -> str:
    return re.sub(r"\s+", " ", cell.get_text(" ", strip=True)).replace("|", "\\|")


def table_to_markdown(table: Tag) -> str:
    """Render a table as a pipe table, or as plain lines for layout tables."""
    rows: List[List[str]] = []
    for tr in table.find_all("tr"):
        cells = [_cell_text(cell) for cell in tr.find_all(["td", "th"])]
        if cells:
            rows.append(cells)
    if not rows:
        return ""

    filled = [len([cell for cell in row if cell]) for row in rows]
    if max(filled) <= 1 or sum(filled) / len(filled) <= 1.2:
        flattened = [" ".join(cell for cell in row if cell) for row in rows]
        return "\n".join(line for line in flattened if line)

    width = max(len(row) for row in rows)
    padded = [row + [""] * (width - len(row)) for row in rows]
    lines = ["| " + " | ".join(padded[0]) + " |", "| " + " | ".join(["---"] * width) + " |"]
    lines.extend("| " + " | ".join(row) + " |" for row in padded[1:])
    return "\n".join(lines)


def _prepare(content: str) -> BeautifulSoup:
    soup = BeautifulSoup(strip_inline_xbrl_headers(content), "html.parser")
    for tag in soup(DROPPED_TAGS):
        tag.decompose()
    return soup


def _tidy(text: str) -> str:
    text = text.replace("\u00a0", " ").replace("\r", "")
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n[ \t]+", "\n", text)
    text = re.sub(r"[ \t]{2,}", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def html_to_markdown(content: str) -> str:
    """Convert filing HTML into compact markdown."""
    soup = _prepare(content)

    for table in soup.find_all("table"):
        table.replace_with(f"\n\n{table_to_markdown(table)}\n\n")
    for level in range(1, 7):
        for heading in soup.find_all(f"h{level}"):
            text = heading.get_text(" ", strip=True)
            heading.replace_with(f"\n\n{'#' * level} {text}\n\n" if text else "\n")
    for item in soup.find_all("li"):
        item.insert_before("\n- ")
        item.insert_after("\n")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(BLOCK_TAGS):
        block.insert_before("\n\n")
        block.insert_after("\n\n")

    markdown = _tidy(soup.get_text())
    LOGGER.debug("Converted %d HTML characters to %d markdown characters", len(content), len(markdown))
    return markdown


def html_to_text(content: str) -> str:
    """Extract plain text lines from filing HTML."""
    soup = _prepare(content)
    text = soup.get_text("\n").replace("\u00a0", " ")
    return normalize_whitespace(text.splitlines())
