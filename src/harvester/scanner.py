"""
Target discovery over rendered markup.

These functions take page HTML (as returned by the browser session) and
apply the declarative rules from SiteMarkup. They never touch the browser,
so they are covered by fixture tests over captured snapshots.
"""

import re
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup, Tag

from src.core.logging import get_logger
from src.harvester.markup import DropdownMarkup, SiteMarkup, TargetRule
from src.harvester.models import CommunityInfo, Target, TargetLevel
from src.utils.text_utils import first_label_line, normalize_text

logger = get_logger(__name__)


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def dedupe_by_key(targets: Iterable[Target]) -> List[Target]:
    """
    Drop targets whose key was already seen, keeping first-seen order.

    Example:
        >>> a = Target(level="community", key="A", label="Alpha")
        >>> dup = Target(level="community", key="A", label="Alpha again")
        >>> [t.label for t in dedupe_by_key([a, dup])]
        ['Alpha']
    """
    seen = set()
    out: List[Target] = []
    for t in targets:
        if t.key in seen:
            continue
        seen.add(t.key)
        out.append(t)
    return out


def _label_for(element: Tag, rule: TargetRule) -> str:
    label = ""
    if rule.label_selector:
        nested = element.select_one(rule.label_selector)
        if nested is not None:
            label = first_label_line(nested.get_text("\n"), rule.label_skip_pattern)
    if not label:
        label = first_label_line(element.get_text("\n"), rule.label_skip_pattern)
    return normalize_text(label)


def scan_targets(html: str, rule: TargetRule, level: TargetLevel) -> List[Target]:
    """
    Apply a TargetRule to a page.

    Elements without an extractable key are ignored; duplicates are removed
    by key, first seen wins.
    """
    soup = parse_html(html)
    found: List[Target] = []
    for element in soup.select(rule.selector):
        key = rule.extract_key(element.get(rule.attribute))
        if not key:
            continue
        label = _label_for(element, rule) or key
        found.append(Target(level=level, key=key, label=label))

    targets = dedupe_by_key(found)
    if len(targets) != len(found):
        logger.debug(f"[scan] {level.value}: dropped {len(found) - len(targets)} duplicate keys")
    return targets


def scan_communities(html: str, markup: SiteMarkup) -> List[Target]:
    return scan_targets(html, markup.community_rule, TargetLevel.COMMUNITY)


def scan_segments(html: str, markup: SiteMarkup) -> List[Target]:
    return scan_targets(html, markup.segment_rule, TargetLevel.SEGMENT)


def _item_targets(items: Iterable[Tag], dropdown: DropdownMarkup, level: TargetLevel) -> List[Target]:
    found: List[Target] = []
    for item in items:
        label = normalize_text(item.get_text(" "))
        if not label:
            continue
        key = None
        if dropdown.item_key_attribute:
            key = item.get(dropdown.item_key_attribute)
        found.append(Target(level=level, key=key or label, label=label))
    return dedupe_by_key(found)


def scan_dropdown_group(
    html: str,
    dropdown: DropdownMarkup,
    group_label: str,
    level: TargetLevel = TargetLevel.BOT,
) -> Optional[List[Target]]:
    """
    Items of the dropdown group whose header contains ``group_label``.

    Returns:
        None when no such group is rendered, an empty list when the group is
        present but its nested list is not materialized yet, else the items.
    """
    if not dropdown.group or not dropdown.group_header:
        raise ValueError("dropdown has no group selectors")

    soup = parse_html(html)
    wanted = group_label.strip().lower()
    for group in soup.select(dropdown.group):
        header = group.select_one(dropdown.group_header)
        if header is None or wanted not in normalize_text(header.get_text(" ")).lower():
            continue
        return _item_targets(group.select(dropdown.item), dropdown, level)
    return None


def filter_by_keywords(targets: List[Target], keywords: Optional[Iterable[str]]) -> List[Target]:
    """
    Keep targets whose label contains any keyword (case-insensitive).

    An empty keyword list keeps everything. When nothing matches, the full
    list is returned instead of an empty one.
    """
    words = [k.strip().lower() for k in (keywords or []) if k and k.strip()]
    if not words:
        return list(targets)

    selected = [t for t in targets if any(w in t.display_label.lower() for w in words)]
    if not selected:
        logger.warning("[filter] no segment matched the filters, using all available segments")
        return list(targets)
    return selected


def scan_community_info(html: str, markup: SiteMarkup) -> CommunityInfo:
    """Name, VK link and numeric id of the selected community."""
    soup = parse_html(html)

    name_el = soup.select_one(markup.community_name_selector)
    name = normalize_text(name_el.get_text(" ")) if name_el is not None else ""

    link_el = soup.select_one(markup.community_link_selector)
    url = link_el.get("href", "") if link_el is not None else ""

    body_text = (soup.body or soup).get_text(" ")
    m = re.search(markup.community_id_pattern, body_text)
    identifier = next((g for g in m.groups() if g), "") if m else ""

    return CommunityInfo(name=name or "Unknown Community", url=url, identifier=identifier)
