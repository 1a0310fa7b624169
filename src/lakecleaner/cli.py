"""Click CLI for lakecleaner."""

from __future__ import annotations

import sys

import click

from lakecleaner import __version__
from lakecleaner.config import CleanerConfig
from lakecleaner.core.reporter import print_listing, print_run_report
from lakecleaner.errors import CleanerError


def _build_config(ctx: click.Context) -> CleanerConfig:
    """Build config from a YAML file (or the environment) and CLI overrides."""
    params = ctx.params
    config_file = params.get("config_file")

    try:
        config = CleanerConfig.from_yaml(config_file) if config_file else CleanerConfig.from_env()
        config = config.merge_cli_overrides(**params)
        config.file.validate()
    except (CleanerError, FileNotFoundError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    return config


def _get_client(config: CleanerConfig):  # noqa: ANN202
    """Create a LakeFsClient from the lakeFS settings."""
    from lakecleaner.utils.lakefs import LakeFsClient

    return LakeFsClient(config.lakefs)


def _get_session(config: CleanerConfig):  # noqa: ANN202
    """Open the DuckDB session with the S3 bootstrap applied."""
    from lakecleaner.engine.duckdb_session import DuckDBSession

    return DuckDBSession.from_config(config)


@click.group()
@click.version_option(version=__version__, prog_name="lakecleaner")
def main() -> None:
    """lakecleaner - Compact small parquet files on a lakeFS branch."""


@main.command()
@click.option("--repo", "-r", help="lakeFS repository.")
@click.option("--branch", "-b", help="Source branch.")
@click.option("--to-branch", help="Branch the compacted files are written to.")
@click.option("--count", "-n", type=int, help="Total files to consume (also the listing size).")
@click.option("--db-path", help="DuckDB database file.")
@click.option("--reseed/--no-reseed", "reseed_after_flush", default=None, help="Re-create the table after each flush.")
@click.option("--mirror-pass/--no-mirror-pass", "mirror_pass", default=None, help="Run the second ingest pass.")
@click.option("--dedupe/--no-dedupe", default=None, help="Skip paths already ingested in this run.")
@click.option("--config-file", "-c", help="YAML configuration file.")
@click.option("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR).")
@click.pass_context
def run(ctx: click.Context, **kwargs: str | None) -> None:
    """Compact files until --count files have been consumed."""
    from lakecleaner.core.compactor import BatchCompactor

    config = _build_config(ctx)
    config.setup_logging()

    click.echo(f"Compacting {config.file.repo}/{config.file.branch} (count={config.file.count})...\n")
    try:
        with _get_session(config) as session:
            compactor = BatchCompactor(session, _get_client(config), config.file)
            report = compactor.run()
    except CleanerError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(print_run_report(report))


@main.command()
@click.option("--repo", "-r", help="lakeFS repository.")
@click.option("--branch", "-b", help="Branch to list.")
@click.option("--amount", "-a", type=int, default=100, show_default=True, help="Maximum objects to list.")
@click.option("--after", default="", help="List only paths after this one.")
@click.option("--config-file", "-c", help="YAML configuration file.")
@click.option("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR).")
@click.pass_context
def ls(ctx: click.Context, **kwargs: str | None) -> None:
    """List objects on the source branch."""
    config = _build_config(ctx)
    config.setup_logging()

    client = _get_client(config)
    try:
        listing = client.list_objects(
            config.file.repo,
            config.file.branch,
            kwargs["amount"],
            after=kwargs.get("after") or "",
        )
    except CleanerError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(print_listing(listing.results))
    if listing.has_more:
        click.echo(f"More objects after {listing.next_offset}")
