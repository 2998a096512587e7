"""
Run orchestration.

Dispatches a run mode to its handler and owns the outer target loops. Every
target is processed inside a guard: a failure is logged, recorded in the run
summary and the error log, and the loop moves on. Only SessionFatalError
escapes a run.
"""

import time
from dataclasses import dataclass
from datetime import date
from typing import Awaitable, Callable, List, Optional, Union

from src.core.config import Config
from src.core.error_logger import ErrorLogger, get_error_logger
from src.core.error_models import ErrorComponent, ErrorSeverity, ErrorStage
from src.core.exceptions import (
    EmptyEnumerationError,
    HarvestError,
    RenderDelayError,
    SessionFatalError,
)
from src.core.logging import get_logger
from src.harvester.enumerator import TargetEnumerator
from src.harvester.file_manager import ArtifactSink, unique_in_order
from src.harvester.models import RunMode, RunSummary, Target, TargetLevel
from src.harvester.result_view import ResultView
from src.harvester.traversal import PaginationTraversal
from src.utils.pacing import Pacer
from src.utils.retry import perform_with_retries

logger = get_logger(__name__)

_STAGE_COMPONENTS = {
    ErrorStage.LIST_COMMUNITIES: ErrorComponent.ENUMERATOR,
    ErrorStage.LIST_SEGMENTS: ErrorComponent.ENUMERATOR,
    ErrorStage.LIST_BOTS: ErrorComponent.ENUMERATOR,
    ErrorStage.SELECT_COMMUNITY: ErrorComponent.ENUMERATOR,
    ErrorStage.SELECT_SEGMENT: ErrorComponent.ENUMERATOR,
    ErrorStage.SELECT_BOT: ErrorComponent.ENUMERATOR,
    ErrorStage.APPLY_DATE_FILTER: ErrorComponent.ENUMERATOR,
    ErrorStage.NAVIGATE: ErrorComponent.SESSION,
    ErrorStage.AWAIT_READY: ErrorComponent.TRAVERSAL,
    ErrorStage.SHOW_RESULTS: ErrorComponent.TRAVERSAL,
    ErrorStage.PAGINATE: ErrorComponent.TRAVERSAL,
    ErrorStage.WRITE_ARTIFACT: ErrorComponent.SINK,
}


@dataclass
class TargetStep:
    """Where processing of the current target has got to."""
    stage: str = ErrorStage.NAVIGATE


class RunOrchestrator:
    """Runs one mode end to end over a single browser session."""

    def __init__(
        self,
        config: Config,
        session,
        enumerator: TargetEnumerator,
        view: ResultView,
        sink: ArtifactSink,
        error_logger: Optional[ErrorLogger] = None,
        pacer: Optional[Pacer] = None,
        clock: Callable[[], float] = time.monotonic,
        today: Optional[date] = None,
    ):
        self.config = config
        self.session = session
        self.enumerator = enumerator
        self.view = view
        self.sink = sink
        self.error_logger = error_logger or get_error_logger()
        self.pacer = pacer or Pacer()
        self.today = today
        self.traversal = PaginationTraversal.from_config(view, config, pacer=self.pacer, clock=clock)
        self.bots_traversal = PaginationTraversal.from_config(
            view, config, pacer=self.pacer, bots=True, clock=clock
        )

    async def run(self, mode: Union[RunMode, str]) -> RunSummary:
        """
        Run a mode and return its summary.

        The summary is logged and written as a manifest even when the run is
        cut short by a SessionFatalError, which is then re-raised.
        """
        if not isinstance(mode, RunMode):
            mode = RunMode.parse(mode)

        handlers = {
            RunMode.SINGLE: self._run_single,
            RunMode.ALL_COMMUNITIES: self._run_all_communities,
            RunMode.SEGMENTS: self._run_segments,
            RunMode.BOTS_AND_STEPS: self._run_bots_and_steps,
        }

        summary = RunSummary(mode=mode)
        logger.info(f"Run mode: {mode.value}")
        try:
            await handlers[mode](summary)
        finally:
            summary.finish()
            for line in summary.summary_lines():
                logger.info(line)
            try:
                manifest = self.sink.write_manifest(summary)
                logger.info(f"Run manifest: {manifest}")
            except OSError as e:
                logger.error(f"Could not write run manifest: {e}")
        return summary

    # ---------------
    # Guards
    # ---------------
    def _skip(self, summary: RunSummary, label: str, level: TargetLevel, stage: str, exc: Exception) -> None:
        reason = f"{type(exc).__name__}: {exc}"
        logger.warning(f"[skip] {label}: {reason}")
        summary.record_skip(label, level, reason)
        self.error_logger.log_exception(
            exc,
            component=_STAGE_COMPONENTS.get(stage, ErrorComponent.UNKNOWN),
            stage=stage,
            target=label,
            url=getattr(self.session, "url", None),
            severity=ErrorSeverity.WARNING,
            metadata={"level": level.value},
        )

    async def _attempt(
        self,
        summary: RunSummary,
        label: str,
        level: TargetLevel,
        action: Callable[[TargetStep], Awaitable[None]],
    ) -> bool:
        """
        Run one target's work, turning any non-fatal failure into a skip.

        Returns:
            True if the action completed
        """
        step = TargetStep()
        try:
            await action(step)
            return True
        except SessionFatalError:
            raise
        except HarvestError as e:
            self._skip(summary, label, level, step.stage, e)
        except Exception as e:
            if self.session.is_closed():
                raise SessionFatalError(f"browser session lost while processing {label}: {e}") from e
            self._skip(summary, label, level, step.stage, e)
        return False

    async def _enumerate(
        self,
        summary: RunSummary,
        label: str,
        level: TargetLevel,
        stage: str,
        lister: Callable[[], Awaitable[List[Target]]],
    ) -> List[Target]:
        found: List[Target] = []

        async def action(step: TargetStep) -> None:
            step.stage = stage
            found.extend(await lister())
            if not found:
                raise EmptyEnumerationError(f"no {level.value} targets found", target=label)

        await self._attempt(summary, label, level, action)
        return found

    # ---------------
    # Modes
    # ---------------
    async def _run_single(self, summary: RunSummary) -> None:
        async def action(step: TargetStep) -> None:
            step.stage = ErrorStage.NAVIGATE
            info = await self.enumerator.read_community_info()
            label = f"contacts_{info.name}"

            await self.enumerator.open_contacts()
            step.stage = ErrorStage.PAGINATE
            result = await self.traversal.run(label)

            step.stage = ErrorStage.WRITE_ARTIFACT
            path = self.sink.write(label, result.identifiers)
            self.sink.write_result(info, result.identifiers, self.config.output_file)
            summary.record_success(label, TargetLevel.COMMUNITY, result.count, result.pages, str(path))

        await self._attempt(summary, "contacts_current_community", TargetLevel.COMMUNITY, action)

    async def _run_all_communities(self, summary: RunSummary) -> None:
        communities = await self._enumerate(
            summary, "communities", TargetLevel.COMMUNITY,
            ErrorStage.LIST_COMMUNITIES, self.enumerator.list_communities,
        )

        for i, community in enumerate(communities, 1):
            label = f"group_{community.display_label}"
            logger.info(f"[{i}/{len(communities)}] community {community.display_label} (#{community.key})")

            async def action(step: TargetStep, community=community, label=label, first=(i == 1)) -> None:
                if not first:
                    step.stage = ErrorStage.NAVIGATE
                    await self.enumerator.open_communities()
                step.stage = ErrorStage.SELECT_COMMUNITY
                await self.enumerator.select_community(community)

                step.stage = ErrorStage.NAVIGATE
                await self.enumerator.open_contacts()

                step.stage = ErrorStage.PAGINATE
                result = await self.traversal.run(label)

                step.stage = ErrorStage.WRITE_ARTIFACT
                path = self.sink.write(label, result.identifiers)
                summary.record_success(label, TargetLevel.COMMUNITY, result.count, result.pages, str(path))

            await self._attempt(summary, label, TargetLevel.COMMUNITY, action)

    async def _run_segments(self, summary: RunSummary) -> None:
        segments = await self._enumerate(
            summary, "segments", TargetLevel.SEGMENT, ErrorStage.LIST_SEGMENTS,
            lambda: self.enumerator.list_segments(self.config.list_filters),
        )

        for i, segment in enumerate(segments, 1):
            label = f"list_{segment.display_label}"
            logger.info(f"[{i}/{len(segments)}] segment {segment.display_label}")

            async def action(step: TargetStep, segment=segment, label=label, first=(i == 1)) -> None:
                if not first:
                    step.stage = ErrorStage.NAVIGATE
                    await self.enumerator.open_segments()
                step.stage = ErrorStage.SELECT_SEGMENT
                await self.enumerator.select_segment(segment)

                step.stage = ErrorStage.PAGINATE
                result = await self.traversal.run(label)

                step.stage = ErrorStage.WRITE_ARTIFACT
                path = self.sink.write(label, result.identifiers)
                summary.record_success(label, TargetLevel.SEGMENT, result.count, result.pages, str(path))

            await self._attempt(summary, label, TargetLevel.SEGMENT, action)

    async def _run_bots_and_steps(self, summary: RunSummary) -> None:
        communities = await self._enumerate(
            summary, "communities", TargetLevel.COMMUNITY,
            ErrorStage.LIST_COMMUNITIES, self.enumerator.list_communities,
        )

        for i, community in enumerate(communities, 1):
            label = f"newsubs_{community.display_label}"
            logger.info(f"[{i}/{len(communities)}] community {community.display_label} (#{community.key})")

            async def action(step: TargetStep, community=community, label=label, first=(i == 1)) -> None:
                if not first:
                    step.stage = ErrorStage.NAVIGATE
                    await self.enumerator.open_communities()
                step.stage = ErrorStage.SELECT_COMMUNITY
                await self.enumerator.select_community(community)

                step.stage = ErrorStage.NAVIGATE
                await self.enumerator.open_funnels()

                step.stage = ErrorStage.APPLY_DATE_FILTER
                await self.enumerator.apply_yesterday_filter(self.today)

                step.stage = ErrorStage.LIST_BOTS
                bots = await self.enumerator.list_active_bots()
                if not bots:
                    raise EmptyEnumerationError("no active bots", target=community.display_label)

                collected: List[str] = []
                completed = 0
                for bot in bots:
                    if await self._run_bot(summary, label, bot, collected):
                        completed += 1

                if completed == 0:
                    raise HarvestError("no bot traversal completed", target=community.display_label)

                step.stage = ErrorStage.WRITE_ARTIFACT
                ids = unique_in_order(collected)
                path = self.sink.write(label, ids)
                summary.record_success(label, TargetLevel.COMMUNITY, len(ids), artifact=str(path))

            await self._attempt(summary, label, TargetLevel.COMMUNITY, action)

    async def _run_bot(self, summary: RunSummary, community_label: str, bot: Target, collected: List[str]) -> bool:
        """Traverse one bot's start-step results into the community accumulator."""
        label = f"{community_label}/{bot.display_label}"
        settings = self.bots_traversal.readiness

        async def action(step: TargetStep) -> None:
            step.stage = ErrorStage.SELECT_BOT
            await self.enumerator.select_bot_and_step(bot.display_label)

            step.stage = ErrorStage.SHOW_RESULTS
            ready = await perform_with_retries(
                trigger=self.view.show_results,
                readiness=self.bots_traversal.wait_ready,
                max_attempts=self.config.bots_max_attempts,
                post_ready_delay=settings.post_ready_delay,
                sleep=self.pacer.sleep,
                label=label,
            )
            if not ready:
                raise RenderDelayError(
                    f"result view not ready after {self.config.bots_max_attempts} attempts",
                    target=bot.display_label,
                )

            step.stage = ErrorStage.PAGINATE
            result = await self.bots_traversal.run(label, await_initial=False)
            collected.extend(result.identifiers)
            summary.record_success(label, TargetLevel.BOT, result.count, result.pages)

        return await self._attempt(summary, label, TargetLevel.BOT, action)
