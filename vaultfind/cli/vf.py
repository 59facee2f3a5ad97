#!/usr/bin/env python3
"""
Command line interface for vaultfind.

Usage:
    vaultfind search "query"                          - Find matches in the vault
    vaultfind replace "query" "new" --path P --line N - Replace one match
    vaultfind config init PATH                        - Write a default config
    vaultfind config show                             - Print the active config
"""

import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import click
import yaml
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from ..engine.backend import DocumentRef
from ..engine.bus import Event, EventBus, REPLACE_ABANDONED
from ..engine.config import Config
from ..engine.errors import InvalidPatternError, PersistFailure, ReadFailure
from ..engine.front_matter import read_properties
from ..engine.models import MatchRecord, SearchOutcome
from ..engine.replace import ReplaceService
from ..engine.search import SearchService
from ..engine.vault import VaultBackend

console = Console()

EXIT_FAILURE = 1
EXIT_INVALID_PATTERN = 2


def configure_logging(config: Config, verbose: bool = False) -> None:
    """Route loguru output according to the config."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level="DEBUG" if verbose else config.logging.level
    )
    if config.logging.file:
        logger.add(
            config.logging.file,
            rotation="1 day",
            retention="7 days",
            level="DEBUG"
        )


def load_config(config_path: Optional[str], vault: Optional[str]) -> Config:
    """Config from --config or the default locations, with --vault applied on top."""
    try:
        if config_path:
            config = Config.load(Path(config_path))
        elif vault:
            return Config(vault_path=Path(vault))
        else:
            config = Config.load()
    except FileNotFoundError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(EXIT_FAILURE)
    if vault:
        # Re-validate so the override is resolved and created like a loaded path
        config = Config.model_validate({**config.model_dump(), "vault_path": vault})
    return config


def search_options(f):
    """Flags shared by search and replace; unset flags fall back to config."""
    f = click.option("--ignore-front-matter/--include-front-matter", default=None,
                     help="Skip the leading --- block of each note")(f)
    f = click.option("--case-sensitive/--ignore-case", default=None,
                     help="Match case exactly")(f)
    f = click.option("--regex/--literal", default=None,
                     help="Treat the query as a regular expression")(f)
    f = click.option("--config", "config_path", type=click.Path(exists=True),
                     help="Config file path")(f)
    f = click.option("--vault", "-V", type=click.Path(file_okay=False),
                     help="Vault directory (overrides config)")(f)
    f = click.option("--verbose", "-v", is_flag=True, help="Debug logging")(f)
    return f


def resolve_flags(config: Config, regex, case_sensitive, ignore_front_matter):
    return (
        config.search.regex if regex is None else regex,
        config.search.case_sensitive if case_sensitive is None else case_sensitive,
        config.search.ignore_front_matter if ignore_front_matter is None else ignore_front_matter,
    )


@click.group()
def cli():
    """vaultfind - search and replace across a notes vault."""


@cli.command()
@click.argument("query")
@search_options
def search(query, vault, config_path, regex, case_sensitive, ignore_front_matter, verbose):
    """Find every match of QUERY in the vault."""
    config = load_config(config_path, vault)
    configure_logging(config, verbose)
    flags = resolve_flags(config, regex, case_sensitive, ignore_front_matter)

    try:
        outcome, titles = asyncio.run(run_search(config, query, *flags))
    except InvalidPatternError as e:
        console.print(f"[red]Invalid pattern:[/red] {e.reason}")
        sys.exit(EXIT_INVALID_PATTERN)
    except ReadFailure as e:
        console.print(f"[red]Search aborted:[/red] {e}")
        sys.exit(EXIT_FAILURE)

    display_search_results(outcome, titles)


async def run_search(
    config: Config,
    query: str,
    regex_enabled: bool,
    case_sensitive: bool,
    ignore_front_matter: bool
) -> Tuple[SearchOutcome, Dict[str, str]]:
    """Run the search, then look up the title property of each matching note."""
    backend = VaultBackend(config)
    service = SearchService(backend, event_bus=EventBus())
    outcome = await service.search(query, regex_enabled, case_sensitive, ignore_front_matter)

    titles = {}
    for path in dict.fromkeys(r.path for r in outcome.results):
        properties = read_properties(await backend.read_document(DocumentRef(path)))
        if properties.get("title"):
            titles[path] = str(properties["title"])
    return outcome, titles


def highlight(record: MatchRecord) -> Text:
    """Line text with the matched range emphasised."""
    text = Text(record.line)
    text.stylize("bold black on yellow", record.start, record.end + 1)
    return text


def display_search_results(outcome: SearchOutcome, titles: Optional[Dict[str, str]] = None):
    """Display matches in a table."""
    if not outcome.results:
        console.print("[yellow]No matches found[/yellow]")
        return

    table = Table(title="Matches")
    table.add_column("File", style="cyan", no_wrap=True)
    table.add_column("Line", justify="right")
    table.add_column("Col", justify="right")
    table.add_column("Text", no_wrap=False)

    for r in outcome.results:
        label = r.path
        if titles and r.path in titles:
            label = f"{r.path} ({titles[r.path]})"
        table.add_row(Text(label), str(r.line_number), str(r.column), highlight(r))

    console.print(table)
    console.print(
        f"[bold]{outcome.match_count}[/bold] match(es) in "
        f"[bold]{outcome.files_with_matches}[/bold] file(s)"
    )


@cli.command()
@click.argument("query")
@click.argument("replacement")
@click.option("--path", "-p", "target_path", required=True, help="Vault-relative note path")
@click.option("--line", "-l", "line_number", required=True, type=click.IntRange(min=1),
              help="1-based line number")
@click.option("--occurrence", "-n", default=1, type=click.IntRange(min=1),
              help="Which match on the line (1-based)")
@search_options
def replace(query, replacement, target_path, line_number, occurrence,
            vault, config_path, regex, case_sensitive, ignore_front_matter, verbose):
    """Replace one match of QUERY with REPLACEMENT."""
    config = load_config(config_path, vault)
    configure_logging(config, verbose)
    flags = resolve_flags(config, regex, case_sensitive, ignore_front_matter)

    try:
        done = asyncio.run(run_replace(
            config, query, replacement, target_path, line_number, occurrence, *flags
        ))
    except InvalidPatternError as e:
        console.print(f"[red]Invalid pattern:[/red] {e.reason}")
        sys.exit(EXIT_INVALID_PATTERN)
    except (ReadFailure, PersistFailure) as e:
        console.print(f"[red]Replace failed:[/red] {e}")
        sys.exit(EXIT_FAILURE)

    if not done:
        sys.exit(EXIT_FAILURE)


async def run_replace(
    config: Config,
    query: str,
    replacement: str,
    target_path: str,
    line_number: int,
    occurrence: int,
    regex_enabled: bool,
    case_sensitive: bool,
    ignore_front_matter: bool
) -> bool:
    """Search, pick the requested match, replace it. Returns False if nothing was replaced."""
    bus = EventBus()
    backend = VaultBackend(config)
    outcome = await SearchService(backend, event_bus=bus).search(
        query, regex_enabled, case_sensitive, ignore_front_matter
    )

    candidates: List[MatchRecord] = [
        r for r in outcome.for_path(target_path) if r.line_number == line_number
    ]
    if len(candidates) < occurrence:
        console.print(
            f"[yellow]No match #{occurrence} on {target_path}:{line_number}[/yellow] "
            f"({len(candidates)} found)"
        )
        return False

    reasons = []

    def on_abandoned(event: Event):
        reasons.append(event.data["reason"])

    bus.subscribe(REPLACE_ABANDONED, on_abandoned)

    result = await ReplaceService(backend, event_bus=bus).replace(
        candidates[occurrence - 1], replacement, query,
        regex_enabled, case_sensitive, ignore_front_matter
    )
    await bus.drain()

    if result is None:
        reason = reasons[-1] if reasons else "unknown reason"
        console.print(f"[yellow]Replace abandoned:[/yellow] {reason}")
        return False

    console.print(f"[green]✓[/green] Replaced in {result.path}:{result.line_number}")
    if result.line_results:
        console.print(f"{len(result.line_results)} more match(es) on this line:")
        for r in result.line_results:
            console.print(Text.assemble(f"  col {r.column}: ", highlight(r)))
    return True


@cli.group()
def config():
    """Manage vaultfind configuration."""


@config.command()
@click.argument("path", type=click.Path(dir_okay=False))
@click.option("--vault", "-V", required=True, type=click.Path(file_okay=False),
              help="Vault directory")
def init(path: str, vault: str):
    """Write a default config file to PATH."""
    Config(vault_path=Path(vault)).save(Path(path))
    console.print(f"[green]✓[/green] Wrote {path}")


@config.command()
@click.option("--config", "config_path", type=click.Path(exists=True), help="Config file path")
def show(config_path: Optional[str]):
    """Print the active configuration."""
    try:
        cfg = Config.load(Path(config_path) if config_path else None)
    except FileNotFoundError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(EXIT_FAILURE)
    console.print(yaml.safe_dump(cfg.model_dump(mode="json"), default_flow_style=False),
                  markup=False, highlight=False, soft_wrap=True)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
