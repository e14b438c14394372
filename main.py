# main.py

import argparse
import logging
import sys

from codetrack.config import build_storage, load_settings
from codetrack.models import PLATFORM_LABELS
from codetrack.problem_manager import ProblemManager
from codetrack.recommender import GeminiRecommender, RecommendationService
from codetrack.stats import StatsAggregator
from codetrack.sync import SyncService, SyncValidationError, build_default_clients

DEFAULT_USER = "local"


def _safe_print(message: str) -> None:
    """Print with Unicode fallback for restricted terminal encodings."""
    try:
        print(message)
    except UnicodeEncodeError:
        fallback = (
            message.replace("✅", "[OK]")
            .replace("⚠️", "[WARN]")
            .replace("❌", "[ERROR]")
        )
        print(fallback)


def _print_stats(stats: dict) -> None:
    print(f"Total solved: {stats['total']} (E:{stats['easy']}, M:{stats['medium']}, H:{stats['hard']})")
    for row in stats['platform_stats']:
        label = PLATFORM_LABELS.get(row['platform'], row['platform'])
        print(f"  {label:<14} {row['count']:>5}  (E:{row['easy']}, M:{row['medium']}, H:{row['hard']})")
    if stats['category_stats']:
        print("Categories:")
        for row in stats['category_stats']:
            print(f"  {row['category']:<24} {row['count']:>4}")


def cmd_sync(args, storage, settings) -> int:
    service = SyncService(storage, build_default_clients(settings))
    handles = {
        platform: handle
        for platform, handle in (("leetcode", args.leetcode), ("gfg", args.gfg), ("tuf", args.tuf))
        if handle
    }
    try:
        if handles:
            report = service.sync_user_data(args.user, handles)
        else:
            report = service.sync_saved_credentials(args.user)
    except SyncValidationError as e:
        _safe_print(f"❌ {e}")
        return 2

    for item in report.synced:
        label = PLATFORM_LABELS.get(item.platform, item.platform)
        _safe_print(f"✅ {label}: {item.total_solved} solved, {item.problems_added} new")
    if report.errors:
        print("Sync warnings:")
        for err in report.errors:
            print(f"  - {err}")
    print(report.message)
    return 0 if report.success else 1


def cmd_stats(args, storage, settings) -> int:
    _print_stats(StatsAggregator(storage).get_stats(args.user))
    return 0


def cmd_clear(args, storage, settings) -> int:
    if not args.yes:
        answer = input(f"Delete all data for '{args.user}'? (y/n): ").strip().lower()
        if answer != 'y':
            print("Cancelled.")
            return 1
    ProblemManager(storage).clear_all(args.user)
    _safe_print("✅ All data cleared")
    return 0


def cmd_recommend(args, storage, settings) -> int:
    recommender = GeminiRecommender(settings.gemini_api_key, settings.gemini_model)
    service = RecommendationService(storage, StatsAggregator(storage), recommender)
    stored = service.refresh(args.user)
    if not stored:
        print("No recommendations available.")
        return 1
    for rec in stored:
        print(f"[{rec.score:>3}] {rec.problem_name} ({rec.platform}, {rec.difficulty or '-'}) - {rec.reason or ''}")
    return 0


def cmd_export(args, storage, settings) -> int:
    content = ProblemManager(storage).export_csv(args.user)
    if args.output == "-":
        sys.stdout.write(content)
    else:
        with open(args.output, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        _safe_print(f"✅ Exported to {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="codetrack: coding practice tracker")
    parser.add_argument("--user", default=DEFAULT_USER, help="User id to operate on")
    sub = parser.add_subparsers(dest="command", required=True)

    sync = sub.add_parser("sync", help="Pull platform profiles (saved handles when none are given)")
    sync.add_argument("--leetcode", default="", help="LeetCode username")
    sync.add_argument("--gfg", default="", help="GeeksforGeeks username")
    sync.add_argument("--tuf", default="", help="TUF+ username")
    sync.set_defaults(func=cmd_sync)

    stats = sub.add_parser("stats", help="Show solved counts")
    stats.set_defaults(func=cmd_stats)

    clear = sub.add_parser("clear", help="Delete all records, stats and recommendations")
    clear.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    clear.set_defaults(func=cmd_clear)

    recommend = sub.add_parser("recommend", help="Generate next-problem recommendations")
    recommend.set_defaults(func=cmd_recommend)

    export = sub.add_parser("export", help="Write problems as CSV")
    export.add_argument("--output", "-o", default="-", help="Output file ('-' for stdout)")
    export.set_defaults(func=cmd_export)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    storage = build_storage(settings)
    try:
        return args.func(args, storage, settings)
    finally:
        storage.close()


if __name__ == '__main__':
    raise SystemExit(main())
