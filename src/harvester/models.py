"""
Pydantic models for targets, run modes and run results.

Targets are immutable once enumerated; outcomes and the run summary
are collected by the orchestrator and written to the run manifest.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class TargetLevel(str, Enum):
    """Hierarchy level a target belongs to."""
    COMMUNITY = "community"
    SEGMENT = "segment"
    BOT = "bot"
    STEP = "step"


class RunMode(str, Enum):
    """Top-level run modes."""
    SINGLE = "single"
    ALL_COMMUNITIES = "all-communities"
    SEGMENTS = "segments"
    BOTS_AND_STEPS = "bots-and-steps"

    @classmethod
    def parse(cls, value: str) -> "RunMode":
        """
        Parse a mode name, accepting the legacy MODE values.

        Example:
            >>> RunMode.parse("groups")
            <RunMode.ALL_COMMUNITIES: 'all-communities'>
        """
        key = (value or "").strip().lower().replace("_", "-")
        if key in MODE_ALIASES:
            return MODE_ALIASES[key]
        try:
            return cls(key)
        except ValueError:
            allowed = sorted({m.value for m in cls} | set(MODE_ALIASES))
            raise ValueError(f"Unknown mode {value!r}; expected one of {', '.join(allowed)}")


MODE_ALIASES = {
    "contacts": RunMode.SINGLE,
    "groups": RunMode.ALL_COMMUNITIES,
    "communities": RunMode.ALL_COMMUNITIES,
    "lists": RunMode.SEGMENTS,
    "newsubs": RunMode.BOTS_AND_STEPS,
    "bots": RunMode.BOTS_AND_STEPS,
}


class Target(BaseModel):
    """One addressable unit of work at a hierarchy level."""

    level: TargetLevel
    key: str = Field(..., min_length=1, description="Key extracted from markup")
    label: str = Field(default="", description="Display label")

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @property
    def display_label(self) -> str:
        return self.label or self.key


class CommunityInfo(BaseModel):
    """Header details of the currently selected community."""

    name: str = "Unknown Community"
    url: str = ""
    identifier: str = ""


class HarvestResult(BaseModel):
    """JSON result document written in single mode."""

    community: CommunityInfo
    user_ids: List[str]
    total_users: int
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class TargetOutcome(BaseModel):
    """What happened to one target during a run."""

    label: str
    level: TargetLevel
    count: int = Field(default=0, ge=0)
    pages: int = Field(default=0, ge=0)
    artifact: Optional[str] = None
    skipped_reason: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None


class RunSummary(BaseModel):
    """Per-target counts and skips for one run."""

    mode: RunMode
    started_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    finished_at: Optional[str] = None
    outcomes: List[TargetOutcome] = Field(default_factory=list)

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("mode", mode="before")
    @classmethod
    def parse_mode(cls, v):
        if isinstance(v, RunMode):
            return v
        return RunMode.parse(str(v))

    def record_success(
        self,
        label: str,
        level: TargetLevel,
        count: int,
        pages: int = 0,
        artifact: Optional[str] = None,
    ) -> TargetOutcome:
        outcome = TargetOutcome(label=label, level=level, count=count, pages=pages, artifact=artifact)
        self.outcomes.append(outcome)
        return outcome

    def record_skip(self, label: str, level: TargetLevel, reason: str) -> TargetOutcome:
        outcome = TargetOutcome(label=label, level=level, skipped_reason=reason or "unknown")
        self.outcomes.append(outcome)
        return outcome

    def finish(self) -> None:
        self.finished_at = datetime.now(timezone.utc).isoformat()

    @property
    def collected(self) -> List[TargetOutcome]:
        return [o for o in self.outcomes if not o.skipped]

    @property
    def skipped(self) -> List[TargetOutcome]:
        return [o for o in self.outcomes if o.skipped]

    def summary_lines(self) -> List[str]:
        """Human-readable lines for the end-of-run log."""
        lines = [f"Run summary ({self.mode}): {len(self.collected)} collected, {len(self.skipped)} skipped"]
        for o in self.collected:
            where = f" -> {o.artifact}" if o.artifact else ""
            lines.append(f"  [ok]   {o.level:<9} {o.label}: {o.count} ids{where}")
        for o in self.skipped:
            lines.append(f"  [skip] {o.level:<9} {o.label}: {o.skipped_reason}")
        return lines
