"""Stylesheet `url(...)` reference scanning and in-place rewriting."""

from __future__ import annotations

import re
from typing import Callable


CSS_URL_RE = re.compile(r"url\(\s*([\"']?)([^)\"']+)\1\s*\)", re.IGNORECASE)


def find_url_references(text: str) -> list[str]:
    """Return every `url()` reference in `text`, in order, duplicates kept."""

    return [match.group(2).strip() for match in CSS_URL_RE.finditer(text)]


def rewrite_url_references(text: str, replace: Callable[[str], str]) -> str:
    """Rewrite each `url()` reference through `replace`, keeping quoting intact.

    `replace` receives the reference text and returns the text to put in its
    place; returning the input unchanged leaves that occurrence untouched.
    """

    def substitute(match: re.Match[str]) -> str:
        quote = match.group(1)
        reference = match.group(2).strip()
        replacement = replace(reference)
        if replacement == reference:
            return match.group(0)
        return f"url({quote}{replacement}{quote})"

    return CSS_URL_RE.sub(substitute, text)


class CSSParser:
    """Line-oriented stylesheet processing."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def decode(self, body: bytes) -> str:
        return body.decode(self.encoding, errors="replace")

    def rewrite(self, text: str, replace: Callable[[str], str]) -> str:
        """Apply `replace` to every reference, one line at a time."""

        lines = text.splitlines(keepends=True)
        return "".join(rewrite_url_references(line, replace) for line in lines)


__all__ = [
    "CSSParser",
    "CSS_URL_RE",
    "find_url_references",
    "rewrite_url_references",
]
