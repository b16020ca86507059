"""
Argument parsing functions for the snippet-viewer CLI.
"""

import argparse
from pathlib import Path

from ..config.models import THEME_STYLES


def add_source_arguments(parser: argparse.ArgumentParser) -> None:
    """Add resource host discovery arguments."""
    parser.add_argument(
        "--host",
        help="Snippet host serving snippets.json (default: configured or discovered host)",
    )
    parser.add_argument(
        "--page",
        type=Path,
        help='HTML page whose <meta name="snippet-host"> tag supplies the host',
    )


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Add configuration and verbosity arguments."""
    parser.add_argument("--config", type=Path, help="Configuration file (YAML or JSON)")
    parser.add_argument(
        "--timeout", type=float, help="Request timeout in seconds (default: 30)"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )


def add_show_subparser(subparsers: "argparse._SubParsersAction[argparse.ArgumentParser]") -> None:
    parser = subparsers.add_parser("show", help="Display one or more snippets")
    parser.add_argument("snippets", nargs="+", help='Snippet keys, e.g. "counter@counter.ts"')
    add_source_arguments(parser)
    parser.add_argument(
        "--theme",
        choices=sorted(THEME_STYLES),
        help="Highlighting theme (default: tomorrow)",
    )
    parser.add_argument(
        "--format",
        choices=["console", "html", "raw"],
        default="console",
        help="Output format (default: console)",
    )
    parser.add_argument(
        "--no-line-numbers", action="store_true", help="Hide line numbers in console output"
    )
    add_common_arguments(parser)


def add_list_subparser(subparsers: "argparse._SubParsersAction[argparse.ArgumentParser]") -> None:
    parser = subparsers.add_parser("list", help="List the snippets served by a host")
    add_source_arguments(parser)
    add_common_arguments(parser)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="snippet-viewer",
        description="Display code snippets from a shared snippets.json resource",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s show counter-model@counter-model.ts --host https://example.com/snippets
  %(prog)s show a@a.ts b@b.py --page index.html --theme okaidia
  %(prog)s show a@a.ts --format html > snippet.html
  %(prog)s list --host https://example.com/snippets
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    add_show_subparser(subparsers)
    add_list_subparser(subparsers)
    return parser
