# === FILE: bizscout/cli.py ===
#!/usr/bin/env python3
"""
Command-line entry point for BizScout.

Commands:
  crawl URL   Crawl one business website and print/save the result
  config      Show the effective configuration (API keys masked)

Global options:
  --config PATH       YAML/JSON config (default: configs/default.yaml if present)
  --log-level LEVEL   Logging level (DEBUG, INFO, ...)
  --log-file PATH     Log file (stderr only if omitted)
  --log-format FORMAT Logging format string

crawl options:
  --job-id ID         Report progress under this job id
  --json PATH         Save the JSON result to a file
  --pretty            Indent JSON output (2 spaces)

Also:
  --version, -v       Show the BizScout version

Example:
  bizscout --log-level WARNING crawl https://bluebottlecoffee.com --pretty
"""
import sys
import json
from pathlib import Path

import click

from bizscout import __version__
from bizscout.config import CrawlerConfig, load_config
from bizscout.engine import Engine
from bizscout.jobs import InMemoryJobStore
from bizscout.logger import DEFAULT_FORMAT, init_logging
from bizscout.report.json_report import render_json

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def build_engine(cfg: CrawlerConfig, job_store: InMemoryJobStore) -> Engine:
    return Engine(cfg, job_store=job_store)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='BizScout, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Path to a YAML or JSON config file.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
    help='Logging level'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Log file (stderr only if omitted)'
)
@click.option(
    '--log-format', 'log_format',
    default=DEFAULT_FORMAT,
    show_default=True,
    help='Logging format string'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """BizScout command group."""
    init_logging(
        level=log_level.upper(),
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Failed to load configuration: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option(
    '--job-id', 'job_id',
    default=None,
    help='Job id to report progress under'
)
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Save the JSON result to a file'
)
@click.option(
    '--pretty', is_flag=True,
    help='Indent JSON output (2 spaces)'
)
@click.pass_context
def crawl(ctx, url, job_id, json_output, pretty):
    """Crawl URL and print the merged business record."""
    cfg = ctx.obj['config']
    store = InMemoryJobStore()
    engine = build_engine(cfg, store)

    try:
        result = engine.crawl_sync(url, job_id)
    except KeyboardInterrupt:
        print_error('Crawl interrupted')

    if json_output:
        try:
            saved = render_json(result, json_output)
            click.echo(f'JSON report: {saved}')
        except OSError as e:
            print_error(f'Failed to save JSON: {e}')
    else:
        click.echo(result.json(pretty=pretty))

    if job_id is not None:
        last = store.last(job_id)
        if last is not None:
            click.secho(f'Job {job_id}: {last.percent}% {last.note or ""}'.rstrip(), err=True)

    if not result.success:
        click.secho(f'Crawl failed: {result.error}', fg='red', err=True)
        sys.exit(1)


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Show the effective configuration as JSON."""
    cfg = ctx.obj['config']
    click.echo(json.dumps(cfg.public_dict(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    cli()
