#!/usr/bin/env python3
"""
Signal Dispatch - Scheduled digest mailer.

Command-line entry point for running one evaluate-and-send cycle:
  - Read pending submissions and the last send time
  - Decide whether a digest is due (urgency / volume / staleness)
  - Fetch link previews, render the newsletter, send it via Resend
  - Mark the covered entries as sent
  - Print execution summary

Usage:
    python main.py                      # Run one cycle
    python main.py --dry-run            # Evaluate and render only, no send
    python main.py --dry-run -o out.html  # Also write the rendered HTML
    python main.py --verbose            # Show detailed progress

The web server (submission form + daily scheduler) is started with:
    python -m web.app
"""

import argparse
import sys

from src.config import (
    configure_logging,
    print_config_summary,
    validate_config,
)
from src.pipeline import (
    CycleConfig,
    CycleResult,
    DigestCycle,
)


def create_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="signal-dispatch",
        description="Evaluate pending submissions and send the digest when it is due.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                           Run one cycle with configured backends
  %(prog)s --dry-run                 Evaluate and render, skip sending
  %(prog)s -n -o preview.html        Dry run and save the HTML digest
  %(prog)s --show-config             Print configuration and exit
        """,
    )

    parser.add_argument(
        "--dry-run", "-n",
        action="store_true",
        help="Evaluate and render the digest but do not send it or change state",
    )

    parser.add_argument(
        "--output", "-o",
        metavar="FILE",
        help="Write the rendered HTML digest to FILE (when one is produced)",
    )

    # Output options
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed progress and debug info",
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only show errors and final summary",
    )

    # Info options
    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Show current configuration and exit",
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0",
    )

    return parser


def show_config() -> None:
    """Display current configuration."""
    print("=" * 60)
    print("Signal Dispatch Configuration")
    print("=" * 60)
    print_config_summary()

    errors = validate_config()
    if errors:
        print("\nConfiguration warnings:")
        for error in errors:
            print(f"  ⚠️  {error}")
    else:
        print("\n✓ Configuration valid")
    print("=" * 60)


def print_result_summary(result: CycleResult, verbose: bool = False) -> None:
    """Print the cycle result summary."""
    print(result.to_summary())

    if verbose and result.decision is not None and result.decision.entries:
        print("\nEntries in this digest:")
        for entry in result.decision.entries:
            print(f"  {entry}")


def main(argv: list = None) -> int:
    """
    Main entry point.

    Args:
        argv: Command-line arguments (default: sys.argv[1:]).

    Returns:
        Exit code (0 = cycle completed, 1 = cycle failed).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Handle --show-config
    if args.show_config:
        show_config()
        return 0

    if args.verbose:
        configure_logging("DEBUG")
    elif args.quiet:
        configure_logging("ERROR")
    else:
        configure_logging()

    # Print header (unless quiet)
    if not args.quiet:
        print("=" * 60)
        print("Signal Dispatch")
        print("=" * 60)

        if args.dry_run:
            print("Mode: DRY RUN (nothing is sent)")

        if args.verbose:
            print("\nConfiguration:")
            print_config_summary()
        print()

    config = CycleConfig.from_args(args)

    try:
        cycle = DigestCycle(config)
        result = cycle.run()

        if args.output and result.digest is not None:
            path = result.digest.save(args.output)
            if not args.quiet:
                print(f"Digest HTML written to: {path}")

        # Print summary
        if not args.quiet or result.failed:
            print_result_summary(result, args.verbose)

        return 1 if result.failed else 0

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130
    except Exception as e:
        print(f"\n❌ Cycle error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
