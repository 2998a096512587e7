"""
Identifier extraction from rendered page content.

The extractor is a pure function of the HTML it is given: it reduces the
page to visible text (optionally restricted to a scope selector, minus excluded
elements) and collects every numeric identifier matched by the configured
patterns.
"""

import re
from typing import Iterable, List, Optional, Set

from bs4 import BeautifulSoup

from src.harvester.markup import DEFAULT_ID_PATTERNS, SiteMarkup

# Elements whose text never contains member identifiers
_NON_CONTENT_TAGS = ["script", "style", "noscript", "template", "head"]


def visible_text(html: str, scope: Optional[str] = None, exclude: Iterable[str] = ()) -> str:
    """
    Text content of an HTML document, one block per line.

    Args:
        html: Page HTML
        scope: Optional CSS selector; only matching elements are read
        exclude: CSS selectors of elements dropped before reading

    Returns:
        Newline-separated text
    """
    soup = BeautifulSoup(html or "", "html.parser")
    for element in soup(_NON_CONTENT_TAGS):
        element.decompose()
    for selector in exclude:
        for element in soup.select(selector):
            element.decompose()

    if scope:
        roots = soup.select(scope)
    else:
        roots = [soup.body or soup]

    return "\n".join(root.get_text("\n") for root in roots)


class IdExtractor:
    """Collects member identifiers from page content."""

    def __init__(
        self,
        patterns: Optional[Iterable[str]] = None,
        scope: Optional[str] = None,
        exclude: Iterable[str] = (),
    ):
        self._patterns = [re.compile(p, re.I) for p in (patterns or DEFAULT_ID_PATTERNS)]
        self._scope = scope
        self._exclude = list(exclude)

    @classmethod
    def from_markup(cls, markup: SiteMarkup) -> "IdExtractor":
        return cls(patterns=markup.id_patterns, scope=markup.id_scope, exclude=markup.id_exclude)

    def extract_from_text(self, text: str) -> List[str]:
        """Identifiers in first-seen order, without duplicates."""
        seen: Set[str] = set()
        out: List[str] = []
        for pattern in self._patterns:
            for m in pattern.finditer(text or ""):
                value = next((g for g in m.groups() if g), None)
                if value and value not in seen:
                    seen.add(value)
                    out.append(value)
        return out

    def extract_ordered(self, html: str) -> List[str]:
        """Identifiers on the page in first-seen order."""
        return self.extract_from_text(visible_text(html, self._scope, self._exclude))

    def extract_ids(self, html: str) -> Set[str]:
        """Set of identifiers visible on the page."""
        return set(self.extract_ordered(html))

    def count(self, html: str) -> int:
        return len(self.extract_ordered(html))
