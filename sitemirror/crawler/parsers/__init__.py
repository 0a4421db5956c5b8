"""Parser package exports."""

from .css_parser import CSSParser, CSS_URL_RE, find_url_references, rewrite_url_references
from .html_parser import ExtractedLinks, HTMLParser, extract_links

__all__ = [
    "CSSParser",
    "CSS_URL_RE",
    "ExtractedLinks",
    "HTMLParser",
    "extract_links",
    "find_url_references",
    "rewrite_url_references",
]
