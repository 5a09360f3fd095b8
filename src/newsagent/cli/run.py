import argparse
import asyncio
import json
import logging
import time
from typing import Dict, List, Optional

from newsagent.core.entities import Source, Trigger
from newsagent.services.config import load_config
from newsagent.services.logging import setup_logging
from newsagent.services.scheduler import next_run_time, seconds_until
from newsagent.workflows.pipeline_factory import create_pipeline_from_config

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="newsagent",
        description="Fetch, summarize, narrate and email the daily digest.",
    )
    parser.add_argument(
        "--schedule",
        action="store_true",
        help="Keep running and trigger a digest every day at --hour (local time)",
    )
    parser.add_argument("--hour", type=int, default=8, help="Hour of day for scheduled runs (0-23)")
    parser.add_argument("--hn-limit", type=int, help="Max Hacker News stories")
    parser.add_argument("--github-limit", type=int, help="Max GitHub trending repositories")
    parser.add_argument("--arxiv-limit", type=int, help="Max arXiv papers")
    args = parser.parse_args(argv)

    if not 0 <= args.hour <= 23:
        parser.error("--hour must be between 0 and 23")
    return args


def limits_from_args(args: argparse.Namespace) -> Dict[str, int]:
    limits = {}
    if args.hn_limit is not None:
        limits[Source.HACKER_NEWS.value] = args.hn_limit
    if args.github_limit is not None:
        limits[Source.GITHUB_TRENDING.value] = args.github_limit
    if args.arxiv_limit is not None:
        limits[Source.ARXIV.value] = args.arxiv_limit
    return limits


async def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = load_config()
    setup_logging(config.LOG_LEVEL)

    pipeline = create_pipeline_from_config(config)
    limits = limits_from_args(args)

    if not await pipeline.clients.summarizer.llm.health_check():
        logger.warning("LLM server unreachable, items will be delivered without summaries")

    if not args.schedule:
        start_time = time.perf_counter()
        result = await pipeline.run(Trigger.DIRECT, limits)
        logger.info(f"Total time: {time.perf_counter() - start_time:.1f}s")
        print(json.dumps(result.to_dict(), indent=2))
        return 0 if result.succeeded else 1

    logger.info(f"Scheduler started, daily run at {args.hour:02d}:00")
    while True:
        moment = next_run_time(args.hour)
        wait = seconds_until(moment)
        logger.info(f"Next run at {moment.isoformat()} (in {wait:.0f}s)")
        await asyncio.sleep(wait)

        result = await pipeline.run(Trigger.SCHEDULED, limits)
        if not result.succeeded:
            logger.error(f"Scheduled run failed: {result.error}")


def cli() -> None:
    try:
        raise SystemExit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")


if __name__ == "__main__":
    cli()
