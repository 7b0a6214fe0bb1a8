"""CLI interface for domain checker."""

import asyncio
import json
import logging
from pathlib import Path
from typing import List

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn, TimeRemainingColumn
from rich.table import Table

from . import __version__
from .checkers import AvailabilityService
from .config import DEFAULT_CONFIG_PATH, Settings
from .exceptions import DomainCheckError
from .registry import generate_tld_config, load_registry


console = Console()


def setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)]
    )
    # dnspython is noisy at debug level
    logging.getLogger("dns").setLevel(logging.WARNING)


def split_words(values) -> List[str]:
    """Split comma-separated arguments into clean, non-empty words."""
    words = []
    for value in values:
        words.extend(w.strip() for w in value.split(',') if w.strip())
    return words


def read_wordlist(path: str) -> List[str]:
    """Read a JSON array or a one-word-per-line file."""
    with open(path) as f:
        content = f.read()
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        return [line.strip() for line in content.splitlines() if line.strip()]
    if not isinstance(data, list):
        raise click.BadParameter("JSON wordlist must be an array", param_hint='--wordlist')
    return [str(w).strip() for w in data if str(w).strip()]


def build_service(ctx: click.Context) -> AvailabilityService:
    settings: Settings = ctx.obj['settings']
    registry = load_registry(settings.tld_config)
    return AvailabilityService.from_settings(settings, registry)


@click.group()
@click.version_option(version=__version__)
@click.option('--config', 'config_path', default=DEFAULT_CONFIG_PATH, show_default=True, help='YAML settings file')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, config_path, verbose):
    """domaincheck - check domain availability over WHOIS."""
    setup_logging(verbose)
    try:
        settings = Settings.load(config_path)
    except (DomainCheckError, TypeError) as e:
        raise click.ClickException(f"Invalid configuration in {config_path}: {e}")
    ctx.ensure_object(dict)
    ctx.obj['settings'] = settings


@cli.command()
@click.argument('words', nargs=-1)
@click.option('--wordlist', '-w', default=None, help='Path to wordlist file')
@click.option('--tlds', '-t', default='com,net,org', help='TLDs to check (comma-separated)')
@click.option('--output', '-o', default=None, help='Output file (JSON)')
@click.option('--available-only', is_flag=True, help='Only show available domains')
@click.option('--deadline', type=float, default=None, help='Stop after this many seconds and report partial results')
@click.pass_context
def check(ctx, words, wordlist, tlds, output, available_only, deadline):
    """Check domain availability."""
    tld_list = split_words([tlds])
    word_list = split_words(words)
    if wordlist:
        word_list.extend(read_wordlist(wordlist))

    if not word_list:
        console.print("[red]No words provided. Use arguments or --wordlist[/red]")
        ctx.exit(1)

    service = build_service(ctx)
    console.print(f"[bold]Checking {len(word_list)} words across {len(tld_list)} TLDs...[/bold]")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeRemainingColumn(),
        console=console
    ) as progress:
        whois_task = progress.add_task("[yellow]WHOIS lookup...", total=None)

        def update(current, total):
            progress.update(whois_task, completed=current, total=total)

        try:
            results = service.run_check(word_list, tld_list, progress_callback=update, deadline=deadline)
        except DomainCheckError as e:
            raise click.ClickException(str(e))

    shown = [r for r in results if r.available] if available_only else results

    if shown:
        table = Table(title="Domain Availability")
        table.add_column("Domain", style="cyan")
        table.add_column("TLD", style="dim")
        table.add_column("Status", justify="center")
        table.add_column("Error", style="red")

        for r in shown:
            if r.error:
                status = "[yellow]?[/yellow]"
            elif r.available:
                status = "[green]available[/green]"
            else:
                status = "[red]taken[/red]"
            table.add_row(r.domain, r.tld, status, r.error or "")

        console.print(table)

    available = sum(1 for r in results if r.available)
    errors = sum(1 for r in results if r.error)
    console.print(f"\n[bold green]Available: {available}[/bold green]  "
                  f"Taken: {len(results) - available - errors}  "
                  f"[yellow]Errors: {errors}[/yellow]")

    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w') as f:
            json.dump([r.to_dict() for r in results], f, indent=2)
        console.print(f"[green]Saved to {output}[/green]")


@cli.command()
@click.argument('domain')
@click.pass_context
def lookup(ctx, domain):
    """Check a single domain, retrying transient failures."""
    service = build_service(ctx)

    with console.status(f"[bold green]Querying WHOIS for {domain}..."):
        try:
            result = asyncio.run(service.check_single(domain.strip()))
        except DomainCheckError as e:
            raise click.ClickException(str(e))

    if result.error:
        console.print(f"[yellow]Error checking {result.domain}: {result.error}[/yellow]")
        ctx.exit(1)
    elif result.available:
        console.print(f"[bold green]{result.domain} is available for registration![/bold green]")
    else:
        console.print(f"[red]{result.domain} is not available.[/red]")


@cli.command()
@click.pass_context
def tlds(ctx):
    """List enabled TLDs."""
    service = build_service(ctx)
    enabled = service.get_enabled_tlds()

    table = Table(title=f"Enabled TLDs ({len(enabled)})")
    table.add_column("TLD", style="cyan")
    table.add_column("Display")
    table.add_column("WHOIS Server", style="dim")
    for tld in enabled:
        table.add_row(tld.name, tld.display_name, tld.server)

    console.print(table)


@cli.command('generate-config')
@click.argument('tld_data', type=click.Path(exists=True, dir_okay=False))
@click.option('--output', '-o', default='config/tld-config.json', show_default=True, help='Output file (JSON)')
def generate_config(tld_data, output):
    """Generate tld-config.json from a TLD_DATA file."""
    try:
        configs = generate_tld_config(tld_data, output)
    except DomainCheckError as e:
        raise click.ClickException(str(e))

    console.print(f"[green]Successfully generated TLD config with {len(configs)} TLDs.[/green]")
    console.print(f"Config file saved to: {output}")


def main():
    cli()


if __name__ == '__main__':
    main()
