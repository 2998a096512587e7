"""
Harvester module for collecting member IDs from the BotHunter console.

Module Structure:
- models: Targets, run modes and run summaries
- markup: Site markup conventions (selectors, key rules, in-page scripts)
- scanner: Target discovery over rendered HTML
- extractor: Identifier extraction from page content
- readiness: Stability polling for result views
- result_view: Probes over the paginated result list
- traversal: Pagination traversal engine
- enumerator: Target enumeration and selection
- file_manager: Artifact files and run manifests
- orchestrator: Mode dispatch and target loops
- session: Playwright browser session (requires playwright)
- main: CLI entry point (requires playwright; import the module directly)
"""

# Export browser-independent pieces directly
from src.harvester.models import (
    TargetLevel,
    RunMode,
    Target,
    CommunityInfo,
    HarvestResult,
    TargetOutcome,
    RunSummary,
)
from src.harvester.markup import SiteMarkup, TargetRule, DropdownMarkup, load_markup
from src.harvester.extractor import IdExtractor
from src.harvester.readiness import ReadinessSettings, await_stable
from src.harvester.traversal import PaginationTraversal, TraversalState, TraversalResult, StopReason
from src.harvester.file_manager import ArtifactSink
from src.harvester.enumerator import TargetEnumerator
from src.harvester.result_view import ResultView, AdvanceState
from src.harvester.orchestrator import RunOrchestrator


# Lazy loading for playwright-dependent names
def __getattr__(name):
    """Lazy loading for playwright-dependent functions."""
    if name in ("BrowserSession", "open_session"):
        from src.harvester.session import BrowserSession, open_session
        return {"BrowserSession": BrowserSession, "open_session": open_session}[name]

    if name == "harvest":
        from src.harvester.main import harvest
        return harvest

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # Models
    "TargetLevel",
    "RunMode",
    "Target",
    "CommunityInfo",
    "HarvestResult",
    "TargetOutcome",
    "RunSummary",
    # Markup
    "SiteMarkup",
    "TargetRule",
    "DropdownMarkup",
    "load_markup",
    # Engine
    "IdExtractor",
    "ReadinessSettings",
    "await_stable",
    "PaginationTraversal",
    "TraversalState",
    "TraversalResult",
    "StopReason",
    "ResultView",
    "AdvanceState",
    "TargetEnumerator",
    "ArtifactSink",
    "RunOrchestrator",
    # Browser (require playwright - lazy loaded)
    "BrowserSession",
    "open_session",
    "harvest",
]
