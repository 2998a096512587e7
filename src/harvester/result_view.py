"""
Probes over the paginated result view.

ResultView binds a browser session, the site markup and the extractor into
the handful of questions the traversal engine asks: how many identifiers are
rendered, which ones, and what state the advance control is in.
"""

from enum import Enum
from typing import Any, List, Optional, Tuple

from src.core.exceptions import SelectionError
from src.core.logging import get_logger
from src.harvester.extractor import IdExtractor
from src.harvester.markup import SiteMarkup

logger = get_logger(__name__)


class AdvanceState(str, Enum):
    """State of the advance (next page) control."""
    ABSENT = "absent"
    DISABLED = "disabled"
    ENABLED = "enabled"


class ResultView:
    """The result list of the current target."""

    def __init__(self, session, markup: SiteMarkup, extractor: Optional[IdExtractor] = None):
        self.session = session
        self.markup = markup
        self.extractor = extractor or IdExtractor.from_markup(markup)

    async def content(self) -> str:
        return await self.session.content()

    async def current_identifiers(self) -> List[str]:
        """Identifiers rendered right now, in page order."""
        return self.extractor.extract_ordered(await self.content())

    async def identifier_count(self) -> int:
        """Readiness probe: number of identifiers rendered."""
        return len(await self.current_identifiers())

    async def pagination_present(self) -> bool:
        """Structural readiness shortcut: a pagination region is rendered."""
        return await self.session.query(self.markup.pagination_selector) is not None

    async def find_advance(self) -> Tuple[AdvanceState, Any]:
        """
        Locate the advance control.

        Returns:
            (state, handle); handle is None when the control is absent
        """
        handles = await self.session.query_all(self.markup.next_button)
        if not handles:
            return AdvanceState.ABSENT, None
        for handle in handles:
            if await self.session.is_enabled(handle):
                return AdvanceState.ENABLED, handle
        return AdvanceState.DISABLED, handles[0]

    async def advance(self, handle: Any, settle_timeout_ms: int) -> None:
        """Click the advance control and wait for the reload to settle."""
        await self.session.click(handle)
        if not await self.session.wait_for_load_settled(settle_timeout_ms):
            logger.debug("[view] load did not settle after advancing, continuing")

    async def show_results(self) -> None:
        """
        Press the "show" button of the funnel view.

        Raises:
            SelectionError: If the button is not rendered
        """
        handle = await self.session.query(self.markup.show_results_button)
        if handle is None:
            raise SelectionError("show-results button not found", target=self.markup.show_results_button)
        await self.session.click(handle)
