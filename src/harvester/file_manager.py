"""
Artifact writing for harvest outputs.

Every leaf target (or community, in bots-and-steps mode) produces one text
file with one identifier per line. Names carry a timestamp, a slug of the
target label and a short random suffix, so reruns never overwrite earlier
output:

    out/bothunter_ids_06112025225301_group_Alpha_ab12cd.txt
"""

import json
import random
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from src.core.logging import get_logger
from src.harvester.models import CommunityInfo, HarvestResult, RunSummary
from src.utils.date_utils import filename_timestamp
from src.utils.text_utils import random_suffix, slugify

logger = get_logger(__name__)

DEFAULT_PREFIX = "bothunter_ids"


def unique_in_order(values: Iterable[str]) -> List[str]:
    """
    Drop repeated values, keeping first-seen order.

    Example:
        >>> unique_in_order(["2", "1", "2", "3"])
        ['2', '1', '3']
    """
    seen = set()
    out = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


class ArtifactSink:
    """Writes identifier sets to uniquely named files."""

    def __init__(
        self,
        out_dir: Path,
        prefix: str = DEFAULT_PREFIX,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.out_dir = Path(out_dir)
        self.prefix = prefix
        self._rng = rng or random.Random()
        self._clock = clock

    def artifact_name(self, label: str) -> str:
        """File name for a label: <prefix>_<ddMMyyyyHHmmss>_<slug>_<suffix>.txt"""
        ts = filename_timestamp(self._clock())
        return f"{self.prefix}_{ts}_{slugify(label)}_{random_suffix(6, self._rng)}.txt"

    def write(self, label: str, identifiers: Iterable[str]) -> Path:
        """
        Write identifiers (deduplicated, first-seen order) for one target.

        Args:
            label: Target label, e.g. "group_Alpha"
            identifiers: Identifiers to write

        Returns:
            Path of the new file
        """
        self.out_dir.mkdir(parents=True, exist_ok=True)
        path = self.out_dir / self.artifact_name(label)
        while path.exists():
            path = self.out_dir / self.artifact_name(label)

        ids = unique_in_order(identifiers)
        path.write_text("\n".join(ids), "utf-8")
        logger.info(f"[saved] {path} ({len(ids)} ids)")
        return path

    def write_result(self, info: CommunityInfo, identifiers: Iterable[str], filename: str) -> Path:
        """
        Write the single-mode JSON result document and its ``_ids.txt`` twin.

        Returns:
            Path of the JSON document
        """
        ids = unique_in_order(identifiers)
        result = HarvestResult(community=info, user_ids=ids, total_users=len(ids))

        json_path = Path(filename)
        if not json_path.is_absolute():
            json_path = self.out_dir / json_path
        json_path.parent.mkdir(parents=True, exist_ok=True)
        json_path.write_text(json.dumps(result.model_dump(), ensure_ascii=False, indent=2), "utf-8")

        ids_path = json_path.with_name(f"{json_path.stem}_ids.txt")
        ids_path.write_text("\n".join(ids), "utf-8")

        logger.info(f"[saved] {json_path} and {ids_path.name}")
        return json_path

    def write_manifest(self, summary: RunSummary) -> Path:
        """Write the run summary as JSON next to the artifacts."""
        self.out_dir.mkdir(parents=True, exist_ok=True)
        ts = filename_timestamp(self._clock())
        path = self.out_dir / f"{self.prefix}_{ts}_{summary.mode}.manifest.json"
        path.write_text(json.dumps(summary.model_dump(), ensure_ascii=False, indent=2), "utf-8")
        return path
