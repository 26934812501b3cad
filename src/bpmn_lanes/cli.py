"""CLI for bpmn-lanes."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click

from bpmn_lanes import __version__
from bpmn_lanes.layout.config import LayoutConfig
from bpmn_lanes.layout.engine import LayoutResult, layout_process
from bpmn_lanes.layout.preprocess import detect_back_edges, validate_graph
from bpmn_lanes.parser.bpmn import BpmnParseError, parse_bpmn_xml
from bpmn_lanes.parser.model import ProcessGraph
from bpmn_lanes.render.bpmn_di import write_bpmn_di
from bpmn_lanes.render.svg import render_svg
from bpmn_lanes.themes import THEMES

_orientation_option = click.option(
    "--orientation",
    type=click.Choice(["horizontal", "vertical"]),
    default="horizontal",
    help="Lane orientation (default: horizontal)",
)
_keep_merges_option = click.option(
    "--keep-xor-merges", is_flag=True, default=False,
    help="Keep exclusive merge gateways instead of collapsing them",
)


def _load(input_file: Path) -> tuple[str, ProcessGraph]:
    text = input_file.read_text(encoding="utf-8")
    try:
        return text, parse_bpmn_xml(text)
    except BpmnParseError as e:
        click.echo(f"Parse error: {e}", err=True)
        raise SystemExit(1)


def _layout(graph: ProcessGraph, orientation: str, keep_xor_merges: bool) -> LayoutResult:
    config = LayoutConfig(lane_orientation=orientation, xor_merge_gateways=keep_xor_merges)
    result = layout_process(graph, config)
    if not result.success:
        click.echo("Layout failed:", err=True)
        for err in result.errors:
            click.echo(f"  - {err}", err=True)
        raise SystemExit(1)
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    return result


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """bpmn-lanes: automatic swimlane layout for BPMN process diagrams."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None,
              help="Output file path. Defaults to <input>.layout.bpmn")
@_orientation_option
@_keep_merges_option
@click.option("--json", "as_json", is_flag=True, default=False,
              help="Write the computed geometry as JSON instead of BPMN")
def layout(
    input_file: Path,
    output: Path | None,
    orientation: str,
    keep_xor_merges: bool,
    as_json: bool,
) -> None:
    """Lay out a BPMN file and write it back with diagram information."""
    text, graph = _load(input_file)
    result = _layout(graph, orientation, keep_xor_merges)
    assert result.geometry is not None

    if as_json:
        content = json.dumps(result.geometry.as_dict(), indent=2) + "\n"
        suffix = ".layout.json"
    else:
        content = write_bpmn_di(text, result)
        suffix = ".layout.bpmn"

    if output is None:
        output = input_file.with_name(input_file.stem + suffix)
    output.write_text(content, encoding="utf-8")
    click.echo(f"Laid out {len(result.geometry.nodes)} nodes, "
               f"{len(result.geometry.edges)} flows, "
               f"{len(result.geometry.lanes)} lanes -> {output}")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None,
              help="Output SVG file path. Defaults to <input>.svg")
@click.option("--theme", type=click.Choice(list(THEMES.keys())), default="light",
              help="Visual theme (default: light)")
@_orientation_option
@_keep_merges_option
def render(
    input_file: Path,
    output: Path | None,
    theme: str,
    orientation: str,
    keep_xor_merges: bool,
) -> None:
    """Lay out a BPMN file and render an SVG preview."""
    _, graph = _load(input_file)
    result = _layout(graph, orientation, keep_xor_merges)
    assert result.geometry is not None and result.graph is not None

    svg = render_svg(result.graph, result.geometry, THEMES[theme])
    if output is None:
        output = input_file.with_suffix(".svg")
    output.write_text(svg, encoding="utf-8")
    click.echo(f"Rendered {len(result.geometry.nodes)} nodes, "
               f"{len(result.geometry.edges)} flows -> {output}")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
def validate(input_file: Path) -> None:
    """Check that a BPMN file can be laid out."""
    _, graph = _load(input_file)

    errors = validate_graph(graph)
    if errors:
        click.echo("Validation errors:", err=True)
        for err in errors:
            click.echo(f"  - {err}", err=True)
        raise SystemExit(1)

    click.echo(f"Valid: {len(graph.flow_nodes())} nodes, "
               f"{len(graph.sequence_flows())} sequence flows, "
               f"{len(graph.message_flows())} message flows, "
               f"{len(graph.leaf_lanes())} lanes")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
def info(input_file: Path) -> None:
    """Show information about a BPMN file."""
    _, graph = _load(input_file)

    click.echo(f"Nodes: {len(graph.flow_nodes())}")
    click.echo(f"Sequence flows: {len(graph.sequence_flows())}")
    click.echo(f"Message flows: {len(graph.message_flows())}")
    click.echo(f"Pools: {len(graph.pools)}")
    for pool in graph.pools.values():
        click.echo(f"  {pool.name or pool.id}: {len(pool.lanes)} lanes")
    click.echo(f"Lanes: {len(graph.lanes)}")
    for lane_id in graph.ordered_lanes():
        lane = graph.lanes[lane_id]
        indent = "  " * (graph.lane_depth(lane_id) + 1)
        click.echo(f"{indent}{lane.name or lane.id}: {len(lane.elements)} elements")
    loops = detect_back_edges(graph, sweep_unreachable=True)
    click.echo(f"Back-flows: {', '.join(loops) if loops else '(none)'}")
