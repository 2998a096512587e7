"""
Markup conventions of the BotHunter console.

Everything the harvester knows about the remote site's HTML lives in a
SiteMarkup document: page paths, CSS selectors, key-extraction rules and the
small scripts evaluated in the page. The defaults match the console as it is
rendered today; a JSON file (MARKUP_FILE) can override any field when the
site changes.
"""

import re
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from src.core.logging import get_logger

logger = get_logger(__name__)


class TargetRule(BaseModel):
    """
    Declarative rule for discovering targets in markup.

    ``selector`` matches the element carrying the target, ``attribute`` holds
    the raw key source (usually an inline handler), and the first capture group
    of ``pattern`` is the key. The label is read from ``label_selector`` inside
    the element (falling back to the element text), skipping lines that match
    ``label_skip_pattern``.
    """

    selector: str
    attribute: str = "onclick"
    pattern: str
    label_selector: Optional[str] = None
    label_skip_pattern: Optional[str] = None

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        compiled = re.compile(v)
        if compiled.groups < 1:
            raise ValueError("pattern must contain a capture group for the key")
        return v

    def extract_key(self, raw: Optional[str]) -> Optional[str]:
        """
        Pull the key out of an attribute value.

        Example:
            >>> rule = TargetRule(selector="a", pattern=r"nav\\('([^']+)'\\)")
            >>> rule.extract_key("nav('/contacts/lists/1/42')")
            '/contacts/lists/1/42'
        """
        if not raw:
            return None
        m = re.search(self.pattern, raw)
        if not m:
            return None
        key = next((g for g in m.groups() if g), None)
        return key.strip() if key else None


class DropdownMarkup(BaseModel):
    """A searchable dropdown (select2-style), optionally grouped."""

    toggle: str
    menu: str = Field(..., description="Selector visible only while the dropdown is open")
    group: Optional[str] = None
    group_header: Optional[str] = None
    item: str
    item_key_attribute: Optional[str] = None


class DateFilterMarkup(BaseModel):
    """Date-range inputs of the funnel-completion filter."""

    toggle: Optional[str] = None
    date_from: str
    date_to: str
    apply: Optional[str] = None
    date_format: str = "%d.%m.%Y"


DEFAULT_ID_PATTERNS = [
    r"\bID\s*[:\s]*(\d+)",
    r"@id(\d+)",
]

AUTH_CHECK_SCRIPT = """
() => {
  const hasUserMenu = document.querySelector('[class*="user"]') !== null;
  const hasLogout = document.querySelector('a[href*="logout"]') !== null;
  const onLoginPage = window.location.pathname.includes('login');
  return (hasUserMenu || hasLogout) && !onLoginPage;
}
"""

COMMUNITY_SWITCH_SCRIPT = """
([id, channel]) => {
  const fn = window.smm && window.smm.change_group_with_channel;
  if (typeof fn === 'function') { fn(id, channel); return true; }
  return false;
}
"""

NAV_SCRIPT = """
(href) => {
  if (typeof window.nav === 'function') { window.nav(href); return 'nav'; }
  window.location.href = href;
  return 'location';
}
"""

SCRIPTED_CLICK = "(el) => el.click()"


class SiteMarkup(BaseModel):
    """Markup conventions for the whole console."""

    # Site paths
    groups_path: str = "/groups"
    contacts_path: str = "/contacts"
    lists_path: str = "/contacts/lists"
    funnels_path: str = "/funnels"

    # Authentication
    login_button: str = 'button:has-text("ВКонтакте"), a:has-text("ВКонтакте"), [href*="vk.com/authorize"]'
    auth_check_script: str = AUTH_CHECK_SCRIPT

    # Communities
    community_rule: TargetRule = TargetRule(
        selector='a[onclick*="change_group_with_channel"]',
        attribute="onclick",
        pattern=r"change_group_with_channel\('([^']+)'",
        label_selector="div div div div",
        label_skip_pattern=r"^#",
    )
    community_switch_selectors: List[str] = [
        'a.btn.btn-light[onclick*="{key}"]',
        'a.width-adaptive[onclick*="{key}"]',
        'a.d-flex[onclick*="{key}"]',
    ]
    community_switch_script: str = COMMUNITY_SWITCH_SCRIPT
    community_channel: str = "VK"

    # Current community header
    community_name_selector: str = "a.dark-link"
    community_link_selector: str = 'a.dark-link[href*="vk.com"]'
    community_id_pattern: str = r"ID:\s*(\d+)|Идентификатор:\s*(\d+)"

    # Segments (contact lists)
    segment_rule: TargetRule = TargetRule(
        selector='a.link-dark-primary[onclick*="/contacts/lists/"]',
        attribute="onclick",
        pattern=r"nav\('([^']+)'\)",
        label_selector="h5",
    )
    segment_nav_script: str = NAV_SCRIPT

    # Result view
    pagination_markers: List[str] = ["#followers-list-pagination", "#followers-pagination"]
    next_button: str = (
        "#followers-list-pagination .btn.btn-primary.pagination-btn:not(.me-1), "
        "#followers-pagination .btn.btn-primary.pagination-btn:not(.me-1)"
    )
    id_scope: Optional[str] = None
    # Removed before extraction; the header shows the community ID
    id_exclude: List[str] = ["header"]
    id_patterns: List[str] = Field(default_factory=lambda: list(DEFAULT_ID_PATTERNS))

    # Funnels (bots and steps)
    bot_dropdown: DropdownMarkup = DropdownMarkup(
        toggle="#funnel-bot-select + .select2 .select2-selection",
        menu=".select2-container--open .select2-results__options",
        group=".select2-results__option[role='group']",
        group_header=".select2-results__group",
        item=".select2-results__option[role='option']",
        item_key_attribute="data-select2-id",
    )
    active_group_label: str = "Активные"
    step_dropdown: DropdownMarkup = DropdownMarkup(
        toggle="#funnel-step-select + .select2 .select2-selection",
        menu=".select2-container--open .select2-results__options",
        item=".select2-results__option[role='option']",
    )
    start_step_marker: str = "Старт"
    show_results_button: str = "#funnel-show-btn"
    date_filter: DateFilterMarkup = DateFilterMarkup(
        toggle="#funnel-finished-filter",
        date_from="input[name='finished_from']",
        date_to="input[name='finished_to']",
    )

    scripted_click: str = SCRIPTED_CLICK

    @field_validator("id_patterns")
    @classmethod
    def validate_id_patterns(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("id_patterns must not be empty")
        for p in v:
            if re.compile(p).groups < 1:
                raise ValueError(f"id pattern {p!r} needs a capture group")
        return v

    @property
    def pagination_selector(self) -> str:
        """Either pagination-region marker, as one selector."""
        return ", ".join(self.pagination_markers)

    def switch_selectors_for(self, key: str) -> List[str]:
        """Community switch selectors with the key substituted."""
        safe = key.replace("\\", "\\\\").replace('"', '\\"')
        return [s.format(key=safe) for s in self.community_switch_selectors]


def load_markup(path: Optional[Path] = None) -> SiteMarkup:
    """
    Load site markup, applying overrides from a JSON file when given.

    Args:
        path: Optional JSON file with any subset of SiteMarkup fields

    Returns:
        SiteMarkup instance
    """
    if path is None:
        return SiteMarkup()
    logger.info(f"Loading markup overrides from {path}")
    return SiteMarkup.model_validate_json(Path(path).read_text("utf-8"))
