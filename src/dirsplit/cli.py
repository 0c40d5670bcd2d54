"""Command line interface for dirsplit."""

import asyncio
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from click.core import ParameterSource
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .core.matcher import PatternFileMatcher
from .core.splitter import DirectorySplitter, cleanup_manifest
from .core.walker import DirectoryWalker
from .exceptions import DirSplitError
from .models.config import SplitConfig, load_config
from .models.split import load_manifest, save_manifest

console = Console()

# CLI options that override a loaded --config when given explicitly
CONFIG_OVERRIDES = {
    "buckets": "bucket_count",
    "output": "output_dir",
    "dir_template": "dir_template",
    "dir_suffix": "dir_suffix",
    "file_template": "file_template",
    "workers": "max_workers",
}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _print_errors(errors) -> None:
    console.print("\n[red]Errors encountered:[/red]")
    for error in errors[:10]:  # Show first 10 errors
        console.print(f"  • {error}")
    if len(errors) > 10:
        console.print(f"  ... and {len(errors) - 10} more errors")


@click.group()
@click.version_option(version=__version__)
def cli():
    """Split matched files of a directory into balanced output directories."""
    pass


@cli.command()
@click.argument('source', type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option('-n', '--buckets', type=int, help='Number of output directories')
@click.option('-o', '--output', type=click.Path(path_type=Path), help='Output root (default: SOURCE)')
@click.option('--config', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='JSON configuration file; SOURCE and explicit options take precedence')
@click.option('--dir-template', default='part_{}', show_default=True,
              help="Directory name template with one '{}' index slot")
@click.option('--dir-suffix', default='', help='Suffix appended to directory names')
@click.option('--file-template', default=None,
              help='File name template using {name}, {stem}, {suffix}, {index}')
@click.option('-p', '--pattern', 'patterns', multiple=True, default=('*',), show_default=True,
              help="Match pattern (glob on file name, or 're:' regex on the path)")
@click.option('-r', '--relation', 'relations', multiple=True,
              help="Related-file template, e.g. '{stem}.meta' or 're:{stem}_\\d+\\.jpg'")
@click.option('--manifest', type=click.Path(dir_okay=False, path_type=Path),
              help='Write the manifest to this JSON file')
@click.option('--workers', default=4, show_default=True, type=int, help='Concurrent workers')
@click.option('--dry-run', is_flag=True, help='Show the assignment without moving files')
@click.option('--verbose', is_flag=True, help='Verbose output')
def split(
    source: Path,
    buckets: Optional[int],
    output: Optional[Path],
    config: Optional[Path],
    dir_template: str,
    dir_suffix: str,
    file_template: Optional[str],
    patterns: Tuple[str, ...],
    relations: Tuple[str, ...],
    manifest: Optional[Path],
    workers: int,
    dry_run: bool,
    verbose: bool
):
    """Split files from SOURCE into balanced directories."""
    _configure_logging(verbose)

    try:
        if config:
            ctx = click.get_current_context()
            overrides = {"source_dir": source}
            for param, field_name in CONFIG_OVERRIDES.items():
                if ctx.get_parameter_source(param) == ParameterSource.COMMANDLINE:
                    overrides[field_name] = ctx.params[param]
            cfg = dataclasses.replace(load_config(config), **overrides)
        else:
            if buckets is None:
                raise click.UsageError("--buckets is required without --config")
            cfg = SplitConfig(
                source_dir=source,
                bucket_count=buckets,
                output_dir=output,
                dir_template=dir_template,
                dir_suffix=dir_suffix,
                file_template=file_template,
                max_workers=workers,
            )

        matcher = PatternFileMatcher(list(patterns), list(relations))
        splitter = DirectorySplitter(cfg, matcher)

        if dry_run:
            planned = asyncio.run(splitter.plan())
            table = Table(title="Planned Split")
            table.add_column("Directory", style="cyan")
            table.add_column("Groups", justify="right")
            table.add_column("Files", justify="right")
            for bucket in planned:
                if not bucket.is_empty:
                    table.add_row(str(bucket.path), str(len(bucket.groups)), str(bucket.file_count))
            console.print(table)
            return

        result = asyncio.run(splitter.split())

        if manifest:
            save_manifest(result.manifest, manifest)
            console.print(f"Manifest written to {manifest}")

        table = Table(title="Results")
        table.add_column("Directory", style="cyan")
        table.add_column("Files", justify="right")
        for directory, files in result.manifest.as_pairs():
            table.add_row(str(directory), str(len(files)))
        console.print(table)

        if result.errors:
            _print_errors(result.errors)
            sys.exit(1)

    except DirSplitError as e:
        console.print(f"\n[red]Error: {e}[/red]")
        sys.exit(1)


@cli.command()
@click.argument('manifest', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--workers', default=4, show_default=True, type=int, help='Concurrent workers')
@click.option('--verbose', is_flag=True, help='Verbose output')
def cleanup(manifest: Path, workers: int, verbose: bool):
    """Remove the files and directories recorded in MANIFEST."""
    _configure_logging(verbose)

    try:
        loaded = load_manifest(manifest)
        report = asyncio.run(cleanup_manifest(loaded, max_workers=workers))
    except DirSplitError as e:
        console.print(f"\n[red]Error: {e}[/red]")
        sys.exit(1)

    console.print(f"Removed {len(report.removed_files)} files "
                  f"and {len(report.removed_directories)} directories")
    for directory in report.skipped_directories:
        console.print(f"[yellow]Kept non-empty directory: {directory}[/yellow]")

    if report.errors:
        _print_errors(report.errors)
        sys.exit(1)


@cli.command()
@click.argument('directory', type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option('-e', '--ext', 'extensions', default='*', show_default=True,
              help='Extension or comma-separated extensions')
def scan(directory: Path, extensions: str):
    """List the files the walker finds under DIRECTORY."""
    try:
        files = list(DirectoryWalker().iter_files(directory, extensions))
    except DirSplitError as e:
        console.print(f"\n[red]Error: {e}[/red]")
        sys.exit(1)

    if not files:
        console.print("[yellow]No files found[/yellow]")
        return

    for path in files:
        console.print(str(path.relative_to(directory)))
    console.print(f"\n[green]Found {len(files)} files[/green]")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
