from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

import typer

from ..core.extractor import extract_fragments
from ..core.orchestrator import SyncOrchestrator
from ..core.properties import PropertiesLoader, parse_overrides
from ..core.settings import Settings
from ..core.types import SyncReport

app = typer.Typer(help="Sync local configuration files with a configuration center")

ConfigOption = typer.Option(None, "--config", help="Properties file (default: confcenter.yaml lookup)")
PropertyOption = typer.Option([], "--property", "-D", help="Process property KEY=VALUE")
VerboseOption = typer.Option(False, "--verbose", "-v")


def _orchestrator(config: Optional[Path], properties: List[str], verbose: bool) -> SyncOrchestrator:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(name)s %(message)s",
        stream=sys.stderr,
    )
    try:
        props = dict(PropertiesLoader(config).load())
        props.update(parse_overrides(properties))
        settings = Settings.from_environment(props)
    except ValueError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)
    return SyncOrchestrator(settings)


def _summary(report: SyncReport) -> str:
    return json.dumps(
        {
            "skipped": report.skipped,
            "written": [str(p) for p in report.written],
            "failures": [
                {"name": f.destination_name, "error": f.error, "reason": f.reason}
                for f in report.failures
            ],
        },
        indent=2,
    )


@app.command()
def pull(
    config: Optional[Path] = ConfigOption,
    properties: List[str] = PropertyOption,
    verbose: bool = VerboseOption,
):
    """Fetch the composite document once and write its files."""
    with _orchestrator(config, properties, verbose) as orchestrator:
        report = orchestrator.pull()
    typer.echo(_summary(report))
    if not report.ok:
        raise typer.Exit(code=1)


@app.command()
def publish(
    config: Optional[Path] = ConfigOption,
    properties: List[str] = PropertyOption,
    verbose: bool = VerboseOption,
):
    """Publish the local composite document to the store."""
    with _orchestrator(config, properties, verbose) as orchestrator:
        published = orchestrator.publish()
    typer.echo("Published" if published else "Publish failed")
    if not published:
        raise typer.Exit(code=1)


@app.command()
def watch(
    config: Optional[Path] = ConfigOption,
    properties: List[str] = PropertyOption,
    verbose: bool = VerboseOption,
    no_initial_pull: bool = typer.Option(False, "--no-initial-pull"),
):
    """Listen for changes and rewrite the files on every update."""
    with _orchestrator(config, properties, verbose) as orchestrator:
        if not orchestrator.subscribe(initial_pull=not no_initial_pull):
            raise typer.Exit(code=1)
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            typer.echo("Stopped")


@app.command()
def split(
    document: Path = typer.Argument(..., exists=True, dir_okay=False, help="Composite document"),
    config: Optional[Path] = ConfigOption,
    properties: List[str] = PropertyOption,
    verbose: bool = VerboseOption,
):
    """Write the files of a local composite document without a store."""
    with _orchestrator(config, properties, verbose) as orchestrator:
        report = orchestrator.materialize(document.read_text(encoding="utf-8"))
    typer.echo(_summary(report))
    if not report.ok:
        raise typer.Exit(code=1)


@app.command()
def fragments(document: Path = typer.Argument(..., exists=True, dir_okay=False)):
    """List the fragments of a composite document."""
    found = extract_fragments(document.read_text(encoding="utf-8"))
    typer.echo(json.dumps([
        {
            "name": f.destination_name,
            "format": f.target_format.value,
            "size": len(f.inner_text),
        }
        for f in found
    ], indent=2))


if __name__ == "__main__":
    app()
