#!/usr/bin/env python3
"""HN Brief: Hacker News ingestion and analysis pipeline.

This CLI tool pulls the newest Hacker News stories, analyzes each one with
a language model exactly once, and stores the result as a brief.

Commands:
    run         Execute the pipeline (once or continuously)
    check       Report whether the source has new work, without processing
    status      Show configuration, run statistics and cache size
    briefs      List or search stored briefs
    trends      Show top trends across stored briefs
    analyze     Analyze a single item by ID and print the result

Examples:
    python main.py run                    # Single run
    python main.py run -c                 # Continuous polling
    python main.py run --lang zh          # Chinese analyses
    python main.py briefs --search rust   # Keyword search
    python main.py trends --report        # Model-written trend report
    python main.py analyze 8863

Environment:
    ANTHROPIC_API_KEY: Required unless ANALYZER_MODEL points at a local server
    See config.py for all configuration options
"""

import argparse
import asyncio
import json
import logging
import sys

from config import Config
from observability.logging import setup_logging

logger = logging.getLogger(__name__)


def cmd_run(args: argparse.Namespace, config: Config) -> int:
    """Execute the ingestion pipeline.

    Returns:
        Exit code (0 for success, 1 on failure, 130 on Ctrl+C)
    """
    from pipeline import run_continuous, run_once

    if args.lang:
        config.language = args.lang
    if args.interval:
        config.poll_interval_seconds = args.interval

    try:
        if args.continuous:
            asyncio.run(run_continuous(config, max_stories=args.max_stories))
        else:
            stats = asyncio.run(run_once(config, max_stories=args.max_stories))
            logger.info("Run complete | stats=%s", json.dumps(stats))
        return 0
    except KeyboardInterrupt:
        logger.info("Stopped by user (Ctrl+C)")
        return 130
    except Exception as e:
        logger.error("Pipeline failed | error=%s type=%s", e, type(e).__name__, exc_info=True)
        return 1


def cmd_check(args: argparse.Namespace, config: Config) -> int:
    """Compare the source against the last run's stats."""
    from hn_client import HNClient
    from storage.tracker import ProgressTracker

    async def check() -> dict:
        async with HNClient(config.hn_api_base_url, timeout=config.http_timeout_seconds) as client:
            max_id = await client.get_max_item_id()
            new_ids = await client.get_new_story_ids()
        tracker = ProgressTracker(config.tracker_dir)
        stats = tracker.get_stats()
        return {
            "max_item_id": max_id,
            "new_stories_count": len(new_ids),
            "last_max_item_id": stats.last_max_item_id,
            "last_new_stories_count": stats.last_new_stories_count,
            "has_new_work": tracker.has_new_work(max_id, len(new_ids)),
        }

    print(json.dumps(asyncio.run(check()), indent=2))
    return 0


def cmd_status(args: argparse.Namespace, config: Config) -> int:
    """Display configuration, run statistics and storage sizes."""
    from storage.cache import RawCache
    from storage.tracker import ProgressTracker

    tracker = ProgressTracker(config.tracker_dir)
    stats = tracker.get_stats()
    recent = tracker.recent_activity(hours=args.hours)
    cache_stats = RawCache(config.data_dir).stats()

    by_status: dict[str, int] = {}
    for record in recent:
        key = f"{record.type.value}/{record.status.value}"
        by_status[key] = by_status.get(key, 0) + 1

    status = {
        "config": {
            "language": config.language,
            "analyzer_model": config.analyzer_model,
            "max_stories": config.max_stories,
            "batch_size": config.batch_size,
            "poll_interval": config.poll_interval_seconds,
            "data_dir": str(config.data_dir),
            "posts_dir": str(config.posts_dir),
            "enable_logfire": config.enable_logfire,
        },
        "stats": stats.model_dump(mode="json"),
        "recent_activity": {
            "hours": args.hours,
            "records": len(recent),
            "by_type_status": by_status,
        },
        "cache": {
            "items": cache_stats.count,
            "min_id": cache_stats.min_id,
            "max_id": cache_stats.max_id,
            "size_mb": round(cache_stats.total_mb, 2),
        },
    }

    print(json.dumps(status, indent=2))
    return 0


def cmd_briefs(args: argparse.Namespace, config: Config) -> int:
    """List, search or filter stored briefs."""
    from storage.brief_store import BriefStore

    store = BriefStore(config.data_dir, config.posts_dir)
    if args.search:
        briefs = store.search_briefs(args.search)
    elif args.tag:
        briefs = store.briefs_by_tag(args.tag)
    else:
        briefs = store.load_all_briefs()

    briefs = briefs[:args.limit]
    if args.json:
        print(json.dumps([b.metadata().model_dump(mode="json", by_alias=True) for b in briefs], indent=2, ensure_ascii=False))
        return 0

    if not briefs:
        print("No briefs found.")
        return 0

    for brief in briefs:
        summary = brief.summary
        if len(summary) > 200:
            summary = summary[:200] + "..."
        print(f"{brief.title}")
        print(f"   ID: {brief.id}")
        print(f"   Created: {brief.created_at.strftime('%Y-%m-%d %H:%M')}")
        print(f"   Tags: {', '.join(brief.tags)}")
        print(f"   Summary: {summary}")
        print()
    return 0


def cmd_trends(args: argparse.Namespace, config: Config) -> int:
    """Show top trends, or generate a model-written trend report."""
    from storage.brief_store import BriefStore
    from trends import TagBlacklist, aggregate_trends

    briefs = BriefStore(config.data_dir, config.posts_dir).load_all_briefs()

    if args.report:
        from agents.analyzer import AnalyzerAgent

        error = config.validate()
        if error:
            print(f"Configuration error: {error}", file=sys.stderr)
            return 1
        analyses = [b.analysis for b in briefs if not b.is_sentinel][:args.limit]
        report = asyncio.run(AnalyzerAgent(config).generate_trend_report(analyses))
        print(report)
        return 0

    blacklist = TagBlacklist() if config.trends_blacklist else None
    summary = aggregate_trends(briefs, max_trends=args.limit, blacklist=blacklist)
    print(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False))
    return 0


def cmd_analyze(args: argparse.Namespace, config: Config) -> int:
    """Fetch one item and print its analysis without touching the tracker."""
    from agents.analyzer import AnalyzerAgent
    from hn_client import HNClient

    if args.lang:
        config.language = args.lang

    async def analyze_item() -> int:
        async with HNClient(config.hn_api_base_url, timeout=config.http_timeout_seconds) as client:
            item = await client.get_item(args.item_id)
        if item is None:
            print(f"Item {args.item_id} not found", file=sys.stderr)
            return 1

        result = await AnalyzerAgent(config).analyze(item)
        if args.json:
            print(json.dumps(result.to_json_dict(), indent=2, ensure_ascii=False))
            return 0

        print(f"\n=== {result.title} ===")
        print(f"\n{result.summary}")
        for heading, values in (
            ("Key Points", result.key_points),
            ("Technical Insights", result.technical_insights),
            ("Trends", result.trends),
        ):
            if values:
                print(f"\n--- {heading} ---")
                for value in values:
                    print(f"• {value}")
        print(f"\nTags: {', '.join(result.tags)}")
        return 0

    return asyncio.run(analyze_item())


def main() -> int:
    """Main entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="HN Brief: Hacker News analysis pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser("run", help="Run the pipeline")
    run_parser.add_argument(
        "-c", "--continuous",
        action="store_true",
        help="Run continuously with polling",
    )
    run_parser.add_argument(
        "--lang",
        choices=["en", "zh"],
        help="Analysis language (default: LANGUAGE or en)",
    )
    run_parser.add_argument(
        "--interval",
        type=int,
        help="Poll interval in seconds (continuous mode)",
    )
    run_parser.add_argument(
        "--max-stories",
        type=int,
        default=0,
        help="Newest story IDs to consider (0 = MAX_STORIES)",
    )

    # check command
    subparsers.add_parser("check", help="Check the source for new work")

    # status command
    status_parser = subparsers.add_parser("status", help="Show configuration and statistics")
    status_parser.add_argument(
        "--hours",
        type=int,
        default=24,
        help="Recent activity window in hours (default: 24)",
    )

    # briefs command
    briefs_parser = subparsers.add_parser("briefs", help="List or search stored briefs")
    briefs_parser.add_argument("--search", help="Keyword to search for")
    briefs_parser.add_argument("--tag", help="Only briefs with this tag")
    briefs_parser.add_argument("--limit", type=int, default=20, help="Max briefs to show (default: 20)")
    briefs_parser.add_argument("--json", action="store_true", help="Print metadata as JSON")

    # trends command
    trends_parser = subparsers.add_parser("trends", help="Show top trends across briefs")
    trends_parser.add_argument("--limit", type=int, default=10, help="Number of trends (default: 10)")
    trends_parser.add_argument(
        "--report",
        action="store_true",
        help="Generate a markdown trend report with the analyzer model",
    )

    # analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Analyze a single item")
    analyze_parser.add_argument("item_id", type=int, help="Hacker News item ID")
    analyze_parser.add_argument("--lang", choices=["en", "zh"], help="Analysis language")
    analyze_parser.add_argument("--json", action="store_true", help="Print the analysis as JSON")

    args = parser.parse_args()

    try:
        config = Config.load()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config, verbose=args.verbose)

    if args.command in ("run", "analyze"):
        error = config.validate()
        if error:
            print(f"Configuration error: {error}", file=sys.stderr)
            return 1

    commands = {
        "run": cmd_run,
        "check": cmd_check,
        "status": cmd_status,
        "briefs": cmd_briefs,
        "trends": cmd_trends,
        "analyze": cmd_analyze,
    }

    if args.command in commands:
        try:
            return commands[args.command](args, config)
        except KeyboardInterrupt:
            return 130
        except Exception as e:
            logger.error("Command failed | cmd=%s error=%s", args.command, e, exc_info=True)
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
