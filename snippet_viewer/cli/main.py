#!/usr/bin/env python3
"""
Command-line interface for the snippet_viewer library.

Renders snippets to the terminal, to HTML or as raw text, and lists the
snippets a host serves.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..cache import FetchCoordinator
from ..config.ambient import AmbientConfig
from ..config.loader import ConfigLoader
from ..config.models import GlobalConfig, LogLevel
from ..config.sources import SNIPPET_HOST, EnvironmentSource
from ..exceptions import ConfigurationError, SnippetViewerError
from ..http import SnippetFetcher
from ..languages import resolve_snippet_key
from ..logging import cleanup_logging, setup_logging
from ..models import Failed
from ..provider import Provider
from ..render import ConsoleRenderer, HtmlRenderer, PlainRenderer, Renderer
from ..viewer import Viewer
from .parsers import create_parser

logger = logging.getLogger(__name__)


def build_ambient(args: argparse.Namespace, config: GlobalConfig) -> AmbientConfig:
    """Ambient defaults for this invocation: config file/env, then page metadata."""
    ambient = AmbientConfig(discovered=[EnvironmentSource()])
    ambient.apply(config)
    if getattr(args, "page", None):
        ambient.discover_page_file(args.page)
    if getattr(args, "theme", None):
        ambient.set_theme(args.theme)
    return ambient


async def show_command(
    args: argparse.Namespace,
    config: GlobalConfig,
    ambient: AmbientConfig,
    coordinator: FetchCoordinator,
    console: Console,
) -> int:
    """Render every requested snippet through viewers grouped under one provider."""
    host = args.host or ambient.lookup(SNIPPET_HOST)
    logger.debug(f"Showing {len(args.snippets)} snippets from {host!r}")
    provider = Provider(host, coordinator=coordinator)
    await provider.prefetch()

    renderers: List[Renderer] = []
    viewers: List[Viewer] = []
    for key in args.snippets:
        renderer: Renderer
        if args.format == "html":
            renderer = HtmlRenderer()
        elif args.format == "raw":
            renderer = PlainRenderer()
        else:
            renderer = ConsoleRenderer(console, line_numbers=not args.no_line_numbers)
        viewer = Viewer(key, coordinator=coordinator, renderer=renderer, ambient=ambient)
        provider.add_viewer(viewer)
        renderers.append(renderer)
        viewers.append(viewer)

    # Attach one at a time so console output keeps the requested order
    for viewer in viewers:
        viewer.attach()
        await viewer.wait()

    if args.format == "html":
        print(f"<style>{HtmlRenderer().stylesheet(ambient.theme)}</style>")
        for renderer in renderers:
            if isinstance(renderer, HtmlRenderer):
                print(renderer.markup)

    return 1 if any(isinstance(viewer.state, Failed) for viewer in viewers) else 0


async def list_command(
    args: argparse.Namespace,
    config: GlobalConfig,
    ambient: AmbientConfig,
    coordinator: FetchCoordinator,
    console: Console,
) -> int:
    """Print the keys served by a host with their display names and languages."""
    host = args.host or ambient.lookup(SNIPPET_HOST)
    if not host:
        raise ConfigurationError("No snippet host configured; use --host or --page")

    mapping = await coordinator.resolve(host)

    table = Table(title=coordinator.url_for(host))
    table.add_column("Snippet", style="cyan")
    table.add_column("File")
    table.add_column("Language", style="green")
    table.add_column("Lines", justify="right")
    for key in sorted(mapping):
        info = resolve_snippet_key(key)
        table.add_row(key, info.display_name, info.language, str(len(mapping[key].splitlines())))
    console.print(table)
    return 0


COMMANDS = {
    "show": show_command,
    "list": list_command,
}


async def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI function."""
    parser = create_parser()
    args = parser.parse_args(argv)
    console = Console()
    err_console = Console(stderr=True)

    try:
        config = ConfigLoader().load_config(args.config)
        if args.verbose:
            config.logging.level = LogLevel.DEBUG
        if args.timeout:
            config.http.timeout = args.timeout
        setup_logging(config.logging)

        ambient = build_ambient(args, config)
        async with SnippetFetcher(config.http) as fetcher:
            coordinator = FetchCoordinator(
                fetcher.fetch, resource_path=config.snippets.resource_path
            )
            return await COMMANDS[args.command](args, config, ambient, coordinator, console)

    except KeyboardInterrupt:
        err_console.print("Operation cancelled by user")
        return 1
    except SnippetViewerError as e:
        err_console.print(f"[red]Error:[/red] {escape(e.message)}")
        return 1
    finally:
        cleanup_logging()


def run(argv: Optional[Sequence[str]] = None) -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main(argv)))


if __name__ == "__main__":
    run()
