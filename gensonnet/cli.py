"""
Command line interface.
"""

from __future__ import annotations

import json
import logging
import sys

import click

from . import __version__
from .config import Config
from .errors import GensonnetError
from .pipeline import Gensonnet

DEFAULT_CONFIG = "gensonnet.yaml"
DEFAULT_MAX_AGE_HOURS = 168.0


def _load(ctx: click.Context) -> Gensonnet:
    try:
        config = Config.from_file(ctx.obj["config"])
        return Gensonnet(config, lockfile_path=ctx.obj["lockfile"])
    except GensonnetError as e:
        raise click.ClickException(str(e)) from e


def _emit_json(data: dict) -> None:
    click.echo(json.dumps(data, indent=2, sort_keys=False, default=str))


@click.group()
@click.option("--config", "-c", default=DEFAULT_CONFIG, show_default=True, type=click.Path(dir_okay=False), help="Configuration file")
@click.option("--lockfile", default=None, type=click.Path(dir_okay=False), help="Override the configured lockfile path")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging")
@click.version_option(__version__, prog_name="gensonnet")
@click.pass_context
def cli(ctx, config, lockfile, verbose):
    """Generate Jsonnet libraries from CRDs and OpenAPI schemas."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["lockfile"] = lockfile


@cli.command()
@click.option("--force", is_flag=True, default=False, help="Regenerate every source regardless of the lockfile")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the run result as JSON")
@click.pass_context
def generate(ctx, force, as_json):
    """Generate libraries for changed sources."""
    runner = _load(ctx)
    try:
        result = runner.generate(force=force)
    except GensonnetError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        _emit_json(result.to_dict())
    else:
        for source in result.results:
            click.echo(f"{source.source_name}: {source.status.value} ({len(source.generated_files)} files)")
            for warning in source.warnings:
                click.echo(f"  warning: {warning}")
            for error in source.errors:
                click.echo(f"  error: {error}")
        stats = result.statistics
        click.echo(
            f"{stats.sources_processed} sources, {stats.files_generated} files generated, "
            f"{stats.error_count} errors, {stats.warning_count} warnings, "
            f"cache hit rate {stats.cache_hit_rate:.0%} in {stats.total_processing_time_ms:.0f} ms"
        )

    if not result.ok:
        if result.aborted:
            click.echo(f"Aborted: {result.error}", err=True)
        else:
            click.echo(f"Failed sources: {', '.join(result.failed_sources)}", err=True)
        ctx.exit(1)


@cli.command()
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the plan as JSON")
@click.pass_context
def status(ctx, as_json):
    """Show which sources would be regenerated."""
    runner = _load(ctx)
    try:
        current = runner.status()
    except GensonnetError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        _emit_json(current.to_dict())
        return
    for name in current.to_regenerate:
        click.echo(f"stale       {name}")
    for name in current.up_to_date:
        click.echo(f"up-to-date  {name}")
    for name, error in current.errors.items():
        click.echo(f"error       {name}: {error}")


@cli.command()
@click.option("--max-age", "max_age", default=DEFAULT_MAX_AGE_HOURS, show_default=True, type=click.FloatRange(min=0), help="Age in hours after which an unconfigured entry is stale")
@click.option("--dry-run", is_flag=True, default=False, help="Report without deleting anything")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the report as JSON")
@click.pass_context
def cleanup(ctx, max_age, dry_run, as_json):
    """Remove orphaned lockfile entries and their files."""
    runner = _load(ctx)
    try:
        report = runner.cleanup(max_age, dry_run=dry_run)
    except GensonnetError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        _emit_json(report.to_dict())
        return
    verb = "Would remove" if dry_run else "Removed"
    for name in report.stale_sources:
        click.echo(f"stale source  {name}")
    for path in report.stale_files:
        click.echo(f"stale file    {path}")
    if dry_run:
        click.echo(f"{verb} {len(report.stale_sources)} sources and {len(report.stale_files)} files")
    else:
        click.echo(f"{verb} {report.total_sources_removed} sources and {report.total_files_removed} files")


@cli.command()
@click.pass_context
def validate(ctx):
    """Check the configuration file."""
    runner = _load(ctx)
    click.echo(f"Configuration OK: {len(runner.config.sources)} sources")
