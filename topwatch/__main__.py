"""CLI entry point for Topwatch."""

import argparse
import json
import logging
import sys
from pathlib import Path

from . import Config, ExitCode, RunOptions, TopwatchError, __version__, run_once
from .template import render

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="topwatch",
        description="Topwatch - post new CoinMarketCap top-N entrants to Telegram",
    )
    parser.add_argument("--version", action="version", version=f"topwatch {__version__}")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Version command
    subparsers.add_parser("version", help="Show version")

    # Run command
    run_parser = subparsers.add_parser("run", help="Poll CoinMarketCap once and post new entrants")
    run_parser.add_argument(
        "--dry-run", action="store_true", help="Print the final message without sending or persisting"
    )
    run_parser.add_argument(
        "--notify-exits", action="store_true", help="Include coins that left the top-N"
    )
    run_parser.add_argument("--convert", default="USD", help="Currency for market cap (default: USD)")
    run_parser.add_argument(
        "--skip-mongo", action="store_true", help="Test the posting flow without MongoDB"
    )
    run_parser.add_argument("--test-message", default="", help="Message to post in --skip-mongo mode")
    run_parser.add_argument("--test-image-url", default="", help="Image for --test-message")
    run_parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    # Render command
    render_parser = subparsers.add_parser("render", help="Render a template against a JSON context")
    render_parser.add_argument("template", help="Template file, or - for stdin")
    render_parser.add_argument("--context", "-c", help="Path to JSON context file")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.INFO,
        format=LOG_FORMAT,
    )

    try:
        if args.command == "version":
            return cmd_version()
        elif args.command == "run":
            return cmd_run(args)
        elif args.command == "render":
            return cmd_render(args)
    except TopwatchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        return ExitCode.RUNTIME_ERROR

    return 0


def cmd_version() -> int:
    """Show version."""
    print(f"topwatch {__version__}")
    return 0


def cmd_run(args) -> int:
    """Run one poll/diff/post cycle."""
    config = Config.from_env(dry_run=args.dry_run, skip_mongo=args.skip_mongo)
    options = RunOptions(
        dry_run=args.dry_run,
        notify_exits=args.notify_exits,
        convert=args.convert,
        skip_mongo=args.skip_mongo,
        test_message=args.test_message,
        test_image_url=args.test_image_url,
    )
    run_once(config, options)
    return 0


def cmd_render(args) -> int:
    """Render a template file against a JSON context."""
    if args.template == "-":
        template = sys.stdin.read()
    else:
        try:
            template = Path(args.template).read_text(encoding="utf-8")
        except OSError as e:
            print(f"Error: cannot read template: {e}", file=sys.stderr)
            return ExitCode.CONFIG_ERROR

    context = {}
    if args.context:
        try:
            context = json.loads(Path(args.context).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            print(f"Error: cannot load context: {e}", file=sys.stderr)
            return ExitCode.CONFIG_ERROR

    sys.stdout.write(render(template, context))
    return 0


if __name__ == "__main__":
    sys.exit(main())
