"""HTML link discovery split into page links and auxiliary links."""

from __future__ import annotations

from dataclasses import dataclass, field

from bs4 import BeautifulSoup

from ..types import ResourceKind


# (tag, attribute, kind): anchors are followed, everything else is only fetched.
LINK_ATTRIBUTES: tuple[tuple[str, str, ResourceKind], ...] = (
    ("a", "href", ResourceKind.PAGE),
    ("area", "href", ResourceKind.PAGE),
    ("link", "href", ResourceKind.AUXILIARY),
    ("script", "src", ResourceKind.AUXILIARY),
    ("img", "src", ResourceKind.AUXILIARY),
)


@dataclass(slots=True)
class ExtractedLinks:
    """Raw (unresolved) link values found in one document."""

    page_links: list[str] = field(default_factory=list)
    auxiliary_links: list[str] = field(default_factory=list)
    base_href: str | None = None

    def __len__(self) -> int:
        return len(self.page_links) + len(self.auxiliary_links)


class HTMLParser:
    """Extract link attribute values from HTML documents."""

    def __init__(self, features: str = "lxml") -> None:
        self.features = features

    def extract_links(self, html: str | bytes) -> ExtractedLinks:
        """Return page and auxiliary links in document order, deduplicated per kind."""

        soup = BeautifulSoup(html, self.features)
        extracted = ExtractedLinks()

        base_tag = soup.find("base", href=True)
        if base_tag is not None:
            extracted.base_href = str(base_tag["href"]).strip() or None

        seen: dict[ResourceKind, set[str]] = {kind: set() for kind in ResourceKind}
        targets = {
            ResourceKind.PAGE: extracted.page_links,
            ResourceKind.AUXILIARY: extracted.auxiliary_links,
        }

        tag_names = sorted({tag for tag, _, _ in LINK_ATTRIBUTES})
        for element in soup.find_all(tag_names):
            for tag, attribute, kind in LINK_ATTRIBUTES:
                if element.name != tag:
                    continue
                value = element.get(attribute)
                if not isinstance(value, str):
                    continue
                value = value.strip()
                if not value or value in seen[kind]:
                    continue
                seen[kind].add(value)
                targets[kind].append(value)

        return extracted


def extract_links(html: str | bytes) -> ExtractedLinks:
    """Module-level convenience wrapper around `HTMLParser.extract_links`."""

    return HTMLParser().extract_links(html)


__all__ = [
    "ExtractedLinks",
    "HTMLParser",
    "LINK_ATTRIBUTES",
    "extract_links",
]
