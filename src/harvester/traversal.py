"""
Pagination traversal engine.

Runs the paginated extraction loop for one leaf target:

    Init -> Extracting -> SeekingAdvance -> Advancing -> (Extracting | Done)

The engine has no explicit "last page" signal to rely on. A page is read
once the readiness poller reports it stable; pagination ends when the advance
control is absent, stays disabled for the whole seek window, or the page
ceiling is reached.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Optional, Set, Tuple

from src.core.config import Config
from src.core.exceptions import HarvestError, SessionFatalError
from src.core.logging import get_logger
from src.harvester.readiness import DEFAULT_POLL_INTERVAL, ReadinessSettings, await_stable
from src.harvester.result_view import AdvanceState, ResultView
from src.utils.pacing import Pacer

logger = get_logger(__name__)

# Seek-and-click attempts before a page transition is given up
ADVANCE_ATTEMPTS = 3


class StopReason(str, Enum):
    """Why a traversal ended."""
    NO_NEXT = "no_next"
    ADVANCE_DISABLED = "advance_disabled"
    ADVANCE_FAILED = "advance_failed"
    PAGES_CAP = "pages_cap"


@dataclass
class TraversalState:
    """Mutable state of one leaf traversal. Never shared between targets."""

    accumulator: Set[str] = field(default_factory=set)
    order: List[str] = field(default_factory=list)
    page_index: int = 0
    last_probe_value: Optional[int] = None
    last_probe_change: Optional[float] = None
    stop_reason: Optional[StopReason] = None

    def merge(self, identifiers: Iterable[str]) -> int:
        """
        Union identifiers into the accumulator.

        Returns:
            Number of identifiers not seen before
        """
        added = 0
        for value in identifiers:
            if value not in self.accumulator:
                self.accumulator.add(value)
                self.order.append(value)
                added += 1
        return added

    def note_probe(self, value: int, timestamp: float) -> None:
        if value != self.last_probe_value:
            self.last_probe_value = value
            self.last_probe_change = timestamp


@dataclass
class TraversalResult:
    """Identifiers collected for one leaf target."""

    label: str
    identifiers: List[str]
    pages: int
    stop_reason: StopReason
    initial_ready: bool = True

    @property
    def count(self) -> int:
        return len(self.identifiers)

    @property
    def ids(self) -> Set[str]:
        return set(self.identifiers)


class PaginationTraversal:
    """Paginated extraction loop over a ResultView."""

    def __init__(
        self,
        view: ResultView,
        readiness: Optional[ReadinessSettings] = None,
        max_pages: int = 10000,
        advance_timeout: float = 3.0,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        page_delay_ms: Tuple[int, int] = (1000, 2000),
        settle_timeout_ms: int = 45000,
        pacer: Optional[Pacer] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_pages <= 0:
            raise ValueError("max_pages must be positive")
        self.view = view
        self.readiness = readiness or ReadinessSettings()
        self.max_pages = max_pages
        self.advance_timeout = advance_timeout
        self.poll_interval = poll_interval
        self.page_delay_ms = page_delay_ms
        self.settle_timeout_ms = settle_timeout_ms
        self.pacer = pacer or Pacer()
        self.clock = clock

    @classmethod
    def from_config(
        cls,
        view: ResultView,
        config: Config,
        pacer: Optional[Pacer] = None,
        bots: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> "PaginationTraversal":
        return cls(
            view,
            readiness=ReadinessSettings.from_config(config, bots=bots),
            max_pages=config.max_pages,
            advance_timeout=config.advance_timeout_ms / 1000.0,
            page_delay_ms=(config.page_delay_min_ms, config.page_delay_max_ms),
            settle_timeout_ms=config.nav_timeout_ms,
            pacer=pacer,
            clock=clock,
        )

    async def wait_ready(self, state: Optional[TraversalState] = None) -> bool:
        """Poll the view once with this traversal's readiness settings."""
        settings = self.readiness
        return await await_stable(
            self.view.identifier_count,
            max_wait=settings.max_wait,
            min_stable_window=settings.min_stable_window,
            min_acceptable_value=settings.min_acceptable_value,
            shortcut=self.view.pagination_present if settings.use_shortcut else None,
            interval=settings.interval,
            clock=self.clock,
            sleep=self.pacer.sleep,
            observer=state.note_probe if state is not None else None,
        )

    async def _seek_advance(self) -> Tuple[AdvanceState, object]:
        ticks = int(self.advance_timeout / self.poll_interval) + 1
        state, handle = AdvanceState.ABSENT, None
        for tick in range(ticks):
            state, handle = await self.view.find_advance()
            if state != AdvanceState.DISABLED:
                return state, handle
            if tick < ticks - 1:
                await self.pacer.sleep(self.poll_interval)
        return state, handle

    async def _next_page(self, label: str) -> Optional[StopReason]:
        """
        Seek the advance control and click it.

        A failed seek or click is retried up to ADVANCE_ATTEMPTS times.

        Returns:
            None when the next page was requested, else why pagination ends

        Raises:
            SessionFatalError: If the browser session is lost
        """
        for attempt in range(1, ADVANCE_ATTEMPTS + 1):
            try:
                advance, handle = await self._seek_advance()
                if advance == AdvanceState.ABSENT:
                    return StopReason.NO_NEXT
                if advance == AdvanceState.DISABLED:
                    return StopReason.ADVANCE_DISABLED
                await self.view.advance(handle, self.settle_timeout_ms)
                return None
            except SessionFatalError:
                raise
            except HarvestError as e:
                logger.warning(f"[{label}] advance failed (attempt {attempt}/{ADVANCE_ATTEMPTS}): {e}")
                await self.pacer.sleep(self.poll_interval)
        return StopReason.ADVANCE_FAILED

    async def run(self, label: str, await_initial: bool = True) -> TraversalResult:
        """
        Traverse every page of the current target.

        Args:
            label: Target label for log lines
            await_initial: Poll readiness before the first page. Callers that
                already awaited readiness (bots-and-steps) pass False.

        Returns:
            TraversalResult with identifiers in first-seen order
        """
        state = TraversalState()

        ready = True
        if await_initial:
            ready = await self.wait_ready(state)
            if not ready:
                logger.warning(f"[{label}] result view not stable, proceeding after grace delay")
                await self.pacer.sleep(self.readiness.post_ready_delay)

        while True:
            page_ids = await self.view.current_identifiers()
            added = state.merge(page_ids)
            state.page_index += 1
            logger.info(
                f"[{label}] page {state.page_index}: {len(page_ids)} ids "
                f"({added} new, {len(state.accumulator)} total)"
            )

            if state.page_index >= self.max_pages:
                logger.warning(f"[{label}] page ceiling {self.max_pages} reached")
                state.stop_reason = StopReason.PAGES_CAP
                break

            stop = await self._next_page(label)
            if stop is not None:
                if stop == StopReason.ADVANCE_FAILED:
                    logger.error(f"[{label}] could not leave page {state.page_index}, keeping collected ids")
                state.stop_reason = stop
                break

            await self.pacer.human_delay(*self.page_delay_ms)

        logger.info(
            f"[{label}] done after {state.page_index} pages: "
            f"{len(state.accumulator)} ids ({state.stop_reason.value})"
        )
        return TraversalResult(
            label=label,
            identifiers=list(state.order),
            pages=state.page_index,
            stop_reason=state.stop_reason,
            initial_ready=ready,
        )
