"""
Command-line entry point for the BotHunter ID harvester.

Usage:
    bothunter-harvest --mode all-communities --headless
    python -m src.harvester.main --mode segments --filters "в работе,отказ"

Exit codes: 0 on completion (skipped targets included), 1 when the browser
session became unusable, 2 on invalid configuration.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from src.core.config import Config
from src.core.error_logger import get_error_logger
from src.core.error_models import ErrorComponent, ErrorSeverity, ErrorStage, ErrorType
from src.core.exceptions import SessionFatalError
from src.core.logging import get_logger, init_harvest_logging
from src.harvester.enumerator import TargetEnumerator
from src.harvester.file_manager import ArtifactSink
from src.harvester.markup import load_markup
from src.harvester.models import RunMode, RunSummary
from src.harvester.orchestrator import RunOrchestrator
from src.harvester.result_view import ResultView
from src.harvester.session import open_session
from src.utils.pacing import Pacer

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Harvest member IDs from the BotHunter console.")
    ap.add_argument("--mode", help="single | all-communities | segments | bots-and-steps "
                                   "(or contacts | groups | lists | newsubs); default: MODE")
    headless = ap.add_mutually_exclusive_group()
    headless.add_argument("--headless", dest="headless", action="store_true", default=None,
                          help="Run Chromium headless")
    headless.add_argument("--headed", dest="headless", action="store_false",
                          help="Run Chromium with a window (needed for first login)")
    ap.add_argument("--max-pages", type=int, help="Page ceiling per target (default: MAX_PAGES)")
    ap.add_argument("--filters", help="Comma separated segment keywords (default: LISTS_FILTER)")
    ap.add_argument("--out", help="Output directory (default: OUTPUT_DIR)")
    ap.add_argument("--env", default="configs/.env", help="Path to .env file")
    ap.add_argument("--markup", help="JSON file overriding site markup (default: MARKUP_FILE)")
    ap.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return ap


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """CLI flags take precedence over the environment."""
    if args.mode:
        config.mode = args.mode
    if args.headless is not None:
        config.headless = args.headless
    if args.max_pages is not None:
        config.max_pages = args.max_pages
    if args.filters:
        config.list_filters = [s.strip() for s in args.filters.split(",") if s.strip()]
    if args.out:
        config.output_dir = Path(args.out)
    if args.markup:
        config.markup_file = Path(args.markup)
    return config


async def harvest(config: Config, mode: RunMode) -> RunSummary:
    """Open a browser session, authenticate and run one mode."""
    markup = load_markup(config.markup_file)
    pacer = Pacer()

    async with open_session(config, markup) as session:
        await session.ensure_authenticated()
        orchestrator = RunOrchestrator(
            config=config,
            session=session,
            enumerator=TargetEnumerator(session, markup, config, pacer),
            view=ResultView(session, markup),
            sink=ArtifactSink(config.output_dir),
            error_logger=get_error_logger(config.log_dir / "errors"),
            pacer=pacer,
        )
        return await orchestrator.run(mode)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = apply_overrides(Config(env_path=Path(args.env)), args)
    init_harvest_logging(verbose=args.verbose, log_dir=config.log_dir, level=config.log_level)

    try:
        config.validate()
        mode = RunMode.parse(config.mode)
    except ValueError as e:
        logger.error(str(e))
        get_error_logger(config.log_dir / "errors").log_error(
            component=ErrorComponent.CONFIG,
            stage=ErrorStage.LOAD_CONFIG,
            error_type=ErrorType.CONFIG_ERROR,
            target="config",
            message=str(e),
        )
        return 2

    logger.info(f"Configuration: {config!r}")

    try:
        summary = asyncio.run(harvest(config, mode))
    except SessionFatalError as e:
        logger.critical(f"Browser session unusable, aborting run: {e}")
        get_error_logger(config.log_dir / "errors").log_exception(
            e,
            component=ErrorComponent.SESSION,
            stage=ErrorStage.NAVIGATE,
            target=e.target or config.mode,
            severity=ErrorSeverity.CRITICAL,
        )
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130

    logger.info(f"Finished: {len(summary.collected)} collected, {len(summary.skipped)} skipped")
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
