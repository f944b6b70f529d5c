"""CLI entry point for the canonical redirect resolver."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from redirect_canonical.models.config import ResolverConfig, RewriteConfig, SiteConfig
from redirect_canonical.models.content import ContentSnapshot
from redirect_canonical.models.scenario import ScenarioSet
from redirect_canonical.orchestrator import Orchestrator
from redirect_canonical.reporter.json_report import generate_json_report
from redirect_canonical.updates.checker import VERSION, UpdateStatus
from redirect_canonical.updates.manifest import build_manifest

console = Console()

DEFAULT_CONFIG = "redirect-canonical.json"


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(path: str) -> ResolverConfig:
    try:
        return ResolverConfig.load(path)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {path}[/red]")
        console.print("Run 'redirect-canonical init' to create a default config.")
        sys.exit(1)
    except (ValidationError, ValueError) as e:
        console.print(f"[red]Invalid config {path}:[/red] {e}")
        sys.exit(1)


def _print_update_notice(orchestrator: Orchestrator) -> bool:
    """Show the notice left by the last update check. Returns True if one was shown."""
    state = orchestrator.stored_update_state()
    if state is None:
        return False
    if state.disabled:
        console.print(
            f"[red]Host branch {state.branch} no longer needs redirect-canonical "
            f"(disabled from {state.disable_from}). It can be removed.[/red]"
        )
        return True
    if state.has_new_version():
        console.print(
            f"[yellow]There is a new version of redirect-canonical ({state.recommended_version}). "
            "Please update as soon as possible.[/yellow]"
        )
        return True
    return False


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(VERSION, prog_name="redirect-canonical")
def cli(verbose: bool) -> None:
    """Canonical URL redirect resolver"""
    setup_logging(verbose)


@cli.command()
@click.option("--home-url", prompt="Home URL", help="Public home URL of the site")
@click.option(
    "--permalink-structure",
    default="/%year%/%monthnum%/%day%/%postname%/",
    show_default=True,
    help="Permalink structure; empty for plain ?p= links",
)
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def init(home_url: str, permalink_structure: str, config: str) -> None:
    """Create a default configuration file."""
    config_path = Path(config)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    cfg = ResolverConfig(
        site=SiteConfig(home_url=home_url),
        rewrite=RewriteConfig(permalink_structure=permalink_structure),
    )
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nDescribe requests in a scenario file and run:")
    console.print("  [blue]redirect-canonical resolve scenarios.json --content content.json[/blue]")


@cli.command()
@click.argument("scenario_file")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
@click.option("--content", "-C", "content_file", default=None, help="Content snapshot JSON")
@click.option("--output", "-o", default=None, help="Write a JSON report here")
def resolve(scenario_file: str, config: str, content_file: str | None, output: str | None) -> None:
    """Resolve every request in a scenario file."""
    cfg = _load_config(config)
    try:
        snapshot = ContentSnapshot.load(content_file) if content_file else ContentSnapshot()
        scenarios = ScenarioSet.load(scenario_file)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    except ValidationError as e:
        console.print(f"[red]Invalid input:[/red] {e}")
        sys.exit(1)

    orchestrator = Orchestrator(cfg, snapshot)
    outcomes = orchestrator.run_scenarios(scenarios.scenarios)

    table = Table(title="Canonical Redirects")
    table.add_column("Scenario", style="bold")
    table.add_column("Request")
    table.add_column("Result")
    table.add_column("Check")
    for o in outcomes:
        if o.redirected:
            result = f"[yellow]{o.status_code}[/yellow] {o.location}"
        else:
            result = f"[dim]none ({o.reason})[/dim]"
        check = {True: "[green]pass[/green]", False: "[red]fail[/red]", None: ""}[o.passed]
        table.add_row(o.name, o.url, result, check)
    console.print(table)

    if output:
        generate_json_report(outcomes, Path(output))
        console.print(f"  JSON report: [blue]{output}[/blue]")

    _print_update_notice(orchestrator)

    failed = [o for o in outcomes if o.passed is False]
    if failed:
        console.print(f"[red]{len(failed)} scenario(s) failed[/red]")
        sys.exit(1)


@cli.command()
@click.argument("link")
@click.option("--page", "-p", "pagenum", type=int, default=1, show_default=True, help="Page number")
@click.option("--request-uri", "-r", default="/", show_default=True, help="Current request path and query")
@click.option("--admin", is_flag=True, help="Treat the request as an admin screen")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def pagenum(link: str, pagenum: int, request_uri: str, admin: bool, config: str) -> None:
    """Print the page-number link for a request."""
    cfg = _load_config(config)
    orchestrator = Orchestrator(cfg)
    click.echo(orchestrator.pagenum_link(link, pagenum, request_uri, is_admin=admin))


@cli.command("check-updates")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def check_updates(config: str) -> None:
    """Check the release manifest for a newer version."""
    cfg = _load_config(config)
    result = Orchestrator(cfg).check_updates()
    if result is None:
        console.print("[yellow]Update checks are disabled in the config[/yellow]")
        return

    colors = {
        UpdateStatus.CURRENT: "green",
        UpdateStatus.NEW_VERSION: "yellow",
        UpdateStatus.DISABLE: "red",
        UpdateStatus.UNKNOWN: "dim",
    }
    table = Table(title="Update Check")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Running", VERSION)
    table.add_row("Host branch", result.branch)
    table.add_row("Status", f"[{colors[result.status]}]{result.status.value}[/{colors[result.status]}]")
    table.add_row("Recommended", result.recommended_version or "-")
    table.add_row("Disabled from", result.disable_from or "-")
    console.print(table)


@cli.command()
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def status(config: str) -> None:
    """Show the result of the last update check without fetching the manifest."""
    cfg = _load_config(config)
    orchestrator = Orchestrator(cfg)
    if orchestrator.stored_update_state() is None:
        console.print("[yellow]Update checks are disabled in the config[/yellow]")
        return
    if not _print_update_notice(orchestrator):
        console.print("[green]redirect-canonical is up to date[/green]")


@cli.command()
@click.option(
    "--recommend", "-r", multiple=True, metavar="BRANCH=VERSION",
    help="Recommended version for a host branch (repeatable)",
)
@click.option("--disable-from", default=None, help="First host branch that no longer needs the resolver")
@click.option("--output", "-o", default=None, help="Write the manifest here instead of stdout")
def manifest(recommend: tuple[str, ...], disable_from: str | None, output: str | None) -> None:
    """Render the release manifest JSON."""
    recommendations = None
    if recommend:
        recommendations = {}
        for item in recommend:
            branch, sep, version = item.partition("=")
            if not sep or not branch or not version:
                raise click.BadParameter(f"expected BRANCH=VERSION, got {item!r}", param_hint="--recommend")
            recommendations[branch] = version

    text = build_manifest(recommendations, disable_from).to_json(indent=2)
    if output:
        Path(output).write_text(text + "\n")
        console.print(f"[green]Wrote {output}[/green]")
    else:
        click.echo(text)


if __name__ == "__main__":
    cli()
