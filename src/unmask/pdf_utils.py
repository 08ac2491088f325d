"""PDF resume to markdown conversion."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Sequence

import pymupdf4llm

# Page footers that resume templates and export tools stamp on every page.
PAGE_COUNTER_PATTERNS: tuple[str, ...] = (
    r"^\s*Page\s+\d+\s*(?:of|/)\s*\d+\s*$",
    r"^\s*\d+\s*/\s*\d+\s*$",
    r"^\s*-\s*\d+\s*-\s*$",
)

_BULLETS = re.compile(r"^(\s*)[•▪◦●■]\s*")


class LineFilter:
    """Drop lines matching any pattern and squeeze runs of blank lines."""

    def __init__(self, patterns: Sequence[str]):
        self._patterns = [re.compile(text, re.IGNORECASE) for text in patterns]

    def drops(self, line: str) -> bool:
        return any(pattern.search(line) for pattern in self._patterns)

    def apply(self, markdown: str) -> str:
        kept: list[str] = []
        for line in markdown.splitlines():
            if not line.strip():
                if kept and not kept[-1].strip():
                    continue
                kept.append("")
                continue
            if self.drops(line):
                continue
            kept.append(_BULLETS.sub(r"\1- ", line.rstrip()))
        return "\n".join(kept).strip("\n")


def extract_markdown(
    pdf_path: str | Path,
    *,
    exclude_patterns: Sequence[str] | None = None,
) -> str:
    """Return the resume as markdown with page footers removed.

    ``exclude_patterns`` replaces the default page-counter patterns; each is a
    case-insensitive regular expression matched against single lines. Glyph
    bullets are rewritten as markdown list items.
    """

    path = Path(pdf_path)
    if not path.exists():
        raise FileNotFoundError(path)

    patterns = PAGE_COUNTER_PATTERNS if exclude_patterns is None else tuple(exclude_patterns)
    return LineFilter(patterns).apply(pymupdf4llm.to_markdown(str(path)))


__all__ = ["LineFilter", "PAGE_COUNTER_PATTERNS", "extract_markdown"]
