"""CLI entry point for inbox-signals.

Usage:
    inbox-signals analyze emails.json            # Analyze a JSON array of emails
    inbox-signals analyze emails.json --rank     # ... sorted by priority
    inbox-signals adaptations --user USER_ID     # Learned recommendations
    inbox-signals profile --user USER_ID         # Learned business profile
    inbox-signals --help                         # Show all options
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from inbox_signals.core.config import Config
from inbox_signals.core.database import Database
from inbox_signals.core.logging import configure_logging
from inbox_signals.repositories.pattern import PatternRepository
from inbox_signals.schemas.analysis import EmailSignal
from inbox_signals.services.adaptation_engine import AdaptationEngine
from inbox_signals.services.analyzer import EmailAnalyzerService

_signals_adapter: TypeAdapter[list[EmailSignal]] = TypeAdapter(list[EmailSignal])


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Email signal scoring and learned workflow patterns",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to .env file (default: .env in project root)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    analyze = subparsers.add_parser("analyze", help="Score and classify emails")
    analyze.add_argument("file", type=Path, help="JSON file with an array of emails")
    analyze.add_argument(
        "--now",
        type=datetime.fromisoformat,
        default=None,
        metavar="ISO",
        help="Evaluation time (default: current time)",
    )
    analyze.add_argument(
        "--rank",
        action="store_true",
        help="Sort results by priority, most urgent first",
    )

    for name, help_text in (
        ("adaptations", "Show recommendations learned for a user"),
        ("profile", "Show the business profile learned for a user"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--user", type=str, required=True, metavar="USER_ID", help="User ID")

    return parser.parse_args(argv)


def get_env_file(args: argparse.Namespace) -> Path | None:
    """Get the .env file path from args or default location."""
    env_file = args.env_file
    if env_file is None:
        # Try project root
        cli_module = Path(__file__).resolve()
        project_root = cli_module.parent.parent.parent
        env_file = project_root / ".env"
    return env_file if env_file.exists() else None


def print_json(data: Any) -> None:
    """Write JSON to stdout."""
    print(json.dumps(data, indent=2))


def run_analyze(args: argparse.Namespace) -> None:
    """Analyze emails from a JSON file and print the results."""
    try:
        signals = _signals_adapter.validate_json(args.file.read_bytes())
    except OSError as e:
        print(f"Cannot read {args.file}: {e}", file=sys.stderr)
        sys.exit(1)
    except ValidationError as e:
        print(f"Invalid email data in {args.file}:\n{e}", file=sys.stderr)
        sys.exit(1)

    analyzer = EmailAnalyzerService()
    results = analyzer.analyze_emails(signals, now=args.now)
    if args.rank:
        results = analyzer.rank_by_priority(results)
    print_json([r.model_dump(mode="json") for r in results])


def run_patterns(args: argparse.Namespace, config: Config) -> None:
    """Print adaptations or the business profile read from the database."""
    if not config.database_url:
        print("DATABASE_URL is required for this command", file=sys.stderr)
        sys.exit(1)

    database_url = config.database_url

    async def _read() -> Any:  # pragma: no cover
        database = Database(database_url)
        await database.connect()
        try:
            async with database.session() as session:
                engine = AdaptationEngine(PatternRepository(session), config)
                if args.command == "profile":
                    profile = await engine.get_business_profile(args.user)
                    return profile.model_dump(mode="json")
                adaptations = await engine.list_adaptations(args.user)
                return [a.model_dump(mode="json") for a in adaptations]
        finally:
            await database.disconnect()

    print_json(asyncio.run(_read()))


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    args = parse_args(argv)

    env_file = get_env_file(args)
    try:
        config = Config.from_env(env_file)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    errors = config.validate()
    if errors:
        print("Configuration errors:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config.log_level, config.log_format)

    if args.command == "analyze":
        run_analyze(args)
    elif args.command in ("adaptations", "profile"):
        run_patterns(args, config)
    else:
        print("Usage: inbox-signals {analyze|adaptations|profile} ...")
        sys.exit(1)


if __name__ == "__main__":
    main()
