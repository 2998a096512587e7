"""
Target enumeration and selection.

The enumerator discovers the targets of each hierarchy level from rendered
markup (communities, segments, active bots) and performs the actions that
make a target current in the console: switching community, opening a
segment, picking a bot and its start step, applying the date filter.
"""

from datetime import date
from typing import Any, Callable, List, Optional, Tuple

from src.core.config import Config
from src.core.exceptions import SelectionError
from src.core.logging import get_logger
from src.harvester.markup import DropdownMarkup, SiteMarkup
from src.harvester.models import CommunityInfo, Target, TargetLevel
from src.harvester.scanner import (
    filter_by_keywords,
    scan_communities,
    scan_community_info,
    scan_dropdown_group,
    scan_segments,
)
from src.utils.date_utils import yesterday_range
from src.utils.pacing import Pacer
from src.utils.text_utils import normalize_text

logger = get_logger(__name__)

# How many times a dropdown is (re)opened before a selection fails
OPEN_ATTEMPTS = 3
MENU_WAIT_MS = 3000
SEGMENT_MARKER_WAIT_MS = 5000


class TargetEnumerator:
    """Discovers targets and makes them current."""

    def __init__(self, session, markup: SiteMarkup, config: Config, pacer: Optional[Pacer] = None):
        self.session = session
        self.markup = markup
        self.config = config
        self.pacer = pacer or Pacer()

    # ---------------
    # Views
    # ---------------
    async def _open(self, path: str) -> None:
        await self.session.navigate(path)
        await self.session.wait_for_load_settled(self.config.nav_timeout_ms)

    async def open_communities(self) -> None:
        await self._open(self.markup.groups_path)

    async def open_contacts(self) -> None:
        await self._open(self.markup.contacts_path)

    async def open_segments(self) -> None:
        await self._open(self.markup.lists_path)
        await self.pacer.sleep_ms(500)

    async def open_funnels(self) -> None:
        await self._open(self.markup.funnels_path)

    # ---------------
    # Enumeration
    # ---------------
    async def list_communities(self) -> List[Target]:
        """Communities on the groups page, in page order."""
        await self.open_communities()
        targets = scan_communities(await self.session.content(), self.markup)
        logger.info(f"Found {len(targets)} communities")
        return targets

    async def list_segments(self, filters: Optional[List[str]] = None) -> List[Target]:
        """
        Contact segments of the current community, narrowed by keywords.

        Args:
            filters: Case-insensitive substrings; when none match, every
                segment is returned

        Returns:
            Ordered list of segment targets
        """
        await self.open_segments()
        available = scan_segments(await self.session.content(), self.markup)
        targets = filter_by_keywords(available, filters)
        logger.info(f"Found {len(available)} segments, {len(targets)} selected by filter")
        return targets

    async def read_community_info(self) -> CommunityInfo:
        """Header details of the current community."""
        await self.session.navigate(self.config.base_url, wait_until="networkidle")
        info = scan_community_info(await self.session.content(), self.markup)
        logger.info(f"Community: {info.name}" + (f" ({info.url})" if info.url else ""))
        return info

    async def list_active_bots(self) -> List[Target]:
        """
        Bots in the "active" group of the funnel bot dropdown.

        Returns:
            Ordered list of bot targets; empty when the group is missing
        """
        dropdown = self.markup.bot_dropdown
        label = self.markup.active_group_label

        menu = await self._open_dropdown(dropdown)
        if menu is None:
            raise SelectionError("bot dropdown did not open", target=dropdown.toggle)

        bots = scan_dropdown_group(await self.session.content(), dropdown, label, TargetLevel.BOT)
        if bots == []:
            await self._force_expand_group(dropdown, menu, label)
            bots = scan_dropdown_group(await self.session.content(), dropdown, label, TargetLevel.BOT)

        await self._close_dropdown()
        if bots is None:
            logger.warning(f"No '{label}' group in the bot dropdown")
            return []
        logger.info(f"Found {len(bots)} active bots")
        return bots

    # ---------------
    # Selection
    # ---------------
    async def select_community(self, target: Target) -> None:
        """
        Make a community current.

        Tries each switch-control selector in order, then the page's switch
        hook, and waits the configured settle delay.

        Raises:
            SelectionError: If neither a control nor the hook is available
        """
        switched = False
        for selector in self.markup.switch_selectors_for(target.key):
            handle = await self.session.query(selector)
            if handle is None:
                continue
            try:
                await self.session.click(handle)
                switched = True
                break
            except SelectionError as e:
                logger.debug(f"[switch] {selector} not clickable: {e}")

        if not switched:
            logger.debug(f"[switch] no control for {target.key}, calling switch hook")
            ok = await self.session.evaluate(
                self.markup.community_switch_script,
                [target.key, self.markup.community_channel],
            )
            if not ok:
                raise SelectionError("community switch hook unavailable", target=target.display_label)

        wait = self.config.wait_after_switch_ms
        await self.pacer.human_delay(wait, wait + 500)

    async def select_segment(self, target: Target) -> None:
        """Open a segment through the in-page router, else by full navigation."""
        how = await self.session.evaluate(self.markup.segment_nav_script, target.key)
        logger.debug(f"[segment] opened {target.key} via {how}")
        await self.session.wait_for_load_settled(self.config.nav_timeout_ms)
        await self.pacer.sleep_ms(800)
        if not await self.session.wait_for_selector(self.markup.pagination_selector, SEGMENT_MARKER_WAIT_MS):
            logger.debug(f"[segment] no pagination marker for {target.display_label}")

    async def apply_yesterday_filter(self, today: Optional[date] = None) -> Tuple[str, str]:
        """
        Set both bounds of the funnel-completion filter to yesterday.

        Returns:
            The (from, to) strings typed into the filter
        """
        df = self.markup.date_filter
        if df.toggle:
            toggle = await self.session.query(df.toggle)
            if toggle is not None:
                await self.session.click(toggle)

        date_from, date_to = yesterday_range(today, df.date_format)
        await self.session.type_or_set_value(df.date_from, date_from)
        await self.session.type_or_set_value(df.date_to, date_to)

        if df.apply:
            await self.session.click(df.apply)
            await self.session.wait_for_load_settled(self.config.nav_timeout_ms)

        logger.info(f"Date filter set to {date_from} - {date_to}")
        return date_from, date_to

    async def select_bot_and_step(self, bot_label: str, step_marker: Optional[str] = None) -> None:
        """
        Pick a bot from the active group, then its start step.

        Raises:
            SelectionError: If either dropdown cannot be opened or the item
                is not found after OPEN_ATTEMPTS tries
        """
        marker = (step_marker or self.markup.start_step_marker).lower()
        wanted = normalize_text(bot_label)

        await self._pick(
            self.markup.bot_dropdown,
            lambda text: text == wanted,
            description=f"bot '{bot_label}'",
            group_label=self.markup.active_group_label,
        )
        await self.pacer.sleep_ms(500)
        await self._pick(
            self.markup.step_dropdown,
            lambda text: marker in text.lower(),
            description=f"step '{marker}'",
        )
        await self.pacer.sleep_ms(500)

    # ---------------
    # Dropdown helpers
    # ---------------
    async def _open_dropdown(self, dropdown: DropdownMarkup) -> Any:
        """Open a dropdown; returns the menu handle or None."""
        if await self.session.is_visible(dropdown.menu):
            return await self.session.query(dropdown.menu)
        try:
            await self.session.click(dropdown.toggle)
        except SelectionError as e:
            logger.debug(f"[dropdown] toggle not clickable: {e}")
            return None
        await self.session.wait_for_selector(dropdown.menu, MENU_WAIT_MS)
        if not await self.session.is_visible(dropdown.menu):
            return None
        return await self.session.query(dropdown.menu)

    async def _close_dropdown(self) -> None:
        await self.session.press("Escape")

    async def _find_group(self, dropdown: DropdownMarkup, menu: Any, label: str) -> Tuple[Any, Any]:
        """(group handle, header handle) of the group whose header contains label."""
        wanted = label.lower()
        for group in await self.session.query_all(dropdown.group, within=menu):
            header = await self.session.query(dropdown.group_header, within=group)
            if header is None:
                continue
            if wanted in normalize_text(await self.session.inner_text(header)).lower():
                return group, header
        return None, None

    async def _force_expand_group(self, dropdown: DropdownMarkup, menu: Any, label: str) -> None:
        _, header = await self._find_group(dropdown, menu, label)
        if header is None:
            return
        logger.debug(f"[dropdown] expanding group '{label}'")
        await self.session.scripted_click(header)
        await self.pacer.sleep_ms(300)

    async def _items(self, dropdown: DropdownMarkup, menu: Any, group_label: Optional[str]) -> List[Any]:
        if not group_label or not dropdown.group:
            return await self.session.query_all(dropdown.item, within=menu)

        group, header = await self._find_group(dropdown, menu, group_label)
        if group is None:
            return []
        items = await self.session.query_all(dropdown.item, within=group)
        if not items:
            await self.session.scripted_click(header)
            await self.pacer.sleep_ms(300)
            items = await self.session.query_all(dropdown.item, within=group)
        return items

    async def _pick(
        self,
        dropdown: DropdownMarkup,
        matches: Callable[[str], bool],
        description: str,
        group_label: Optional[str] = None,
    ) -> str:
        for attempt in range(1, OPEN_ATTEMPTS + 1):
            menu = await self._open_dropdown(dropdown)
            if menu is None:
                logger.debug(f"[dropdown] {description}: menu not open (attempt {attempt}/{OPEN_ATTEMPTS})")
                continue

            for handle in await self._items(dropdown, menu, group_label):
                text = normalize_text(await self.session.inner_text(handle))
                if not matches(text):
                    continue
                # The menu can close under us while items are read
                if not await self.session.is_visible(dropdown.menu):
                    break
                try:
                    await self.session.click(handle)
                except SelectionError as e:
                    logger.debug(f"[dropdown] {description}: click failed, reopening: {e}")
                    break
                logger.info(f"Selected {description}")
                return text

            logger.debug(f"[dropdown] {description}: not selected (attempt {attempt}/{OPEN_ATTEMPTS})")
            await self.pacer.sleep_ms(300)

        raise SelectionError(f"could not select {description}", target=description)
