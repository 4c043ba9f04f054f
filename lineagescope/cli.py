"""CLI interface for lineagescope.

Every command reads a dataset (JSON file in either supported shape, or the
built-in first-family dataset when DATA is omitted) and prints JSON on
stdout. Progress and errors go to stderr.
"""

import json
import sys
from pathlib import Path
from typing import Any, NoReturn

import click
from dotenv import load_dotenv

# Load .env before importing other lineagescope modules
load_dotenv()

from lineagescope import __version__  # noqa: E402
from lineagescope.errors import LineageError  # noqa: E402

DATA_ARGUMENT = click.argument(
    "data_path",
    metavar="DATA",
    required=False,
    type=click.Path(exists=True, dir_okay=False, resolve_path=True),
)


def _read_dataset(data_path: str | None) -> Any:
    from lineagescope.graph.loader import fallback_dataset

    if data_path is None:
        click.echo("No DATA given; using the built-in fallback dataset", err=True)
        return fallback_dataset()
    try:
        return json.loads(Path(data_path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        click.echo(f"Could not read {data_path}: {e}", err=True)
        sys.exit(1)


def _load_graph(data_path: str | None):
    from lineagescope.config import load_settings
    from lineagescope.graph.loader import load_dataset

    graph = load_dataset(_read_dataset(data_path), load_settings())
    report = graph.load_report
    click.echo(
        f"Loaded {report.node_count} people, {report.edge_count} relationships"
        f" ({report.dropped_edges} dropped)",
        err=True,
    )
    return graph


def _parse_option(raw: str) -> tuple[str, Any]:
    """Parse ``key=value``; values are read as JSON when possible."""
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise click.BadParameter(f"expected key=value, got '{raw}'", param_hint="--option")
    try:
        return key, json.loads(value)
    except json.JSONDecodeError:
        return key, value


def _fail(command: str, error: Exception) -> NoReturn:
    click.echo(f"{command} failed: {error}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="lineagescope")
def cli() -> None:
    """lineagescope - layout and traversal for genealogical graphs."""
    pass


@cli.command()
@DATA_ARGUMENT
@click.option(
    "--type",
    "layout_type",
    type=click.Choice(
        ["hierarchical", "radial", "circular", "timeline", "grid", "cluster", "force"]
    ),
    default="hierarchical",
    help="Layout strategy (default: hierarchical)",
)
@click.option(
    "--option",
    "raw_options",
    multiple=True,
    help="Layout option as key=value (JSON values allowed). Can specify multiple.",
)
@click.option("--era", "eras", multiple=True, help="Only lay out people from these eras")
def layout(
    data_path: str | None,
    layout_type: str,
    raw_options: tuple[str, ...],
    eras: tuple[str, ...],
) -> None:
    """Compute node positions for a dataset.

    DATA: Path to a JSON dataset.
    """
    from lineagescope.session import LineageSession
    from lineagescope.view.filters import era_filter

    options = dict(_parse_option(raw) for raw in raw_options)
    try:
        session = LineageSession.from_env()
        session.load_graph(_load_graph(data_path))
        if eras:
            session.apply_filters([era_filter(*eras)])
        result = session.layout(layout_type, options or None)
    except LineageError as e:
        _fail("Layout", e)

    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    click.echo(json.dumps({
        "layout_type": result.layout_type,
        "fallback_from": result.fallback_from,
        "elapsed_ms": round(result.elapsed_ms, 3),
        "warnings": result.warnings,
        "positions": result.as_dict(),
    }, indent=2))


@cli.command()
@click.argument(
    "data_path", metavar="DATA", type=click.Path(exists=True, dir_okay=False, resolve_path=True)
)
@click.argument("source")
@click.argument("target")
@click.option("--max-depth", type=int, default=10, help="Maximum hops (default: 10)")
@click.option(
    "--exclude",
    "exclude_types",
    multiple=True,
    help="Relationship types that may not be walked. Can specify multiple.",
)
def path(
    data_path: str,
    source: str,
    target: str,
    max_depth: int,
    exclude_types: tuple[str, ...],
) -> None:
    """Find the shortest relationship path between two people.

    DATA: Path to a JSON dataset.
    SOURCE, TARGET: Person ids.
    """
    from lineagescope.graph.traversal import find_relationship_path

    try:
        graph = _load_graph(data_path)
        for node_id in (source, target):
            graph.require_node(node_id)
        found = find_relationship_path(graph, source, target, exclude_types, max_depth)
    except LineageError as e:
        _fail("Path search", e)

    if found is None:
        click.echo(json.dumps({"found": False, "description": "No relationship found"}, indent=2))
        return
    click.echo(json.dumps({
        "found": True,
        "length": found.length,
        "nodes": found.nodes,
        "steps": [s.model_dump() for s in found.steps],
        "description": found.description,
    }, indent=2))


@cli.command()
@DATA_ARGUMENT
def components(data_path: str | None) -> None:
    """List connected components, largest first.

    DATA: Path to a JSON dataset.
    """
    from lineagescope.graph.traversal import connected_components

    try:
        graph = _load_graph(data_path)
    except LineageError as e:
        _fail("Components", e)

    parts = sorted(
        (graph.ordered(c) for c in connected_components(graph)),
        key=lambda c: (-len(c), graph.index_of(c[0])),
    )
    click.echo(json.dumps({
        "count": len(parts),
        "components": [{"size": len(c), "nodes": c} for c in parts],
    }, indent=2))


@cli.command()
@DATA_ARGUMENT
def stats(data_path: str | None) -> None:
    """Summarize a dataset (counts, eras, generations, most connected).

    DATA: Path to a JSON dataset.
    """
    from lineagescope.graph.analysis import compute_statistics

    try:
        graph = _load_graph(data_path)
    except LineageError as e:
        _fail("Stats", e)
    click.echo(json.dumps(compute_statistics(graph), indent=2))


@cli.command()
@DATA_ARGUMENT
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "csv", "gedcom"]),
    default="json",
    help="Export format (default: json)",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, writable=True),
    help="Write to this file instead of stdout",
)
def export(data_path: str | None, fmt: str, output: str | None) -> None:
    """Export a dataset as JSON, CSV tables or GEDCOM.

    DATA: Path to a JSON dataset.

    CSV output is a JSON object holding the people and relationships tables.
    """
    from lineagescope.export import export_graph

    try:
        exported = export_graph(_load_graph(data_path), fmt)
    except LineageError as e:
        _fail("Export", e)

    text = exported if isinstance(exported, str) else json.dumps(exported, indent=2)
    if output:
        Path(output).write_text(text, encoding="utf-8")
        click.echo(f"Wrote {fmt} export to {output}", err=True)
    else:
        click.echo(text)


@cli.command()
@DATA_ARGUMENT
@click.option("--strict", is_flag=True, help="Exit with status 1 when problems are found")
def check(data_path: str | None, strict: bool) -> None:
    """Report data integrity problems.

    DATA: Path to a JSON dataset.

    Reports relationships dropped at load time, self loops, parent cycles,
    isolated people and children with more than two parents.
    """
    from lineagescope.graph.analysis import integrity_report

    try:
        report = integrity_report(_load_graph(data_path))
    except LineageError as e:
        _fail("Check", e)

    click.echo(json.dumps(report, indent=2))
    if strict and not report["ok"]:
        sys.exit(1)


if __name__ == "__main__":
    cli()
