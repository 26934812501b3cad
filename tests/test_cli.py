"""Tests for the CLI entry points."""

import json
from pathlib import Path

from click.testing import CliRunner

from bpmn_lanes import __version__
from bpmn_lanes.cli import cli

EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"
ORDER_BPMN = EXAMPLES_DIR / "order_fulfillment.bpmn"
REVIEW_BPMN = EXAMPLES_DIR / "review_loop.bpmn"


def test_layout_default_output(tmp_path):
    """layout writes <stem>.layout.bpmn next to the input when no -o given."""
    bpmn = tmp_path / "order.bpmn"
    bpmn.write_text(ORDER_BPMN.read_text())
    runner = CliRunner()
    result = runner.invoke(cli, ["layout", str(bpmn)])
    assert result.exit_code == 0, result.output
    out = tmp_path / "order.layout.bpmn"
    assert out.exists()
    assert "BPMNDiagram" in out.read_text()
    assert "Laid out 9 nodes, 8 flows, 3 lanes" in result.output


def test_layout_json(tmp_path):
    out = tmp_path / "geometry.json"
    runner = CliRunner()
    result = runner.invoke(
        cli, ["layout", str(ORDER_BPMN), "--json", "-o", str(out), "--orientation", "vertical"]
    )
    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text())
    assert data["orientation"] == "vertical"
    assert "Gateway_ok" in data["nodes"]
    assert data["edges"]["Flow_1"]["exitSide"] == "down"


def test_layout_keep_xor_merges(tmp_path):
    out = tmp_path / "review.json"
    runner = CliRunner()
    result = runner.invoke(
        cli, ["layout", str(REVIEW_BPMN), "--json", "--keep-xor-merges", "-o", str(out)]
    )
    assert result.exit_code == 0, result.output
    assert "Merge" in json.loads(out.read_text())["nodes"]


def test_layout_reports_validation_errors(tmp_path):
    bpmn = tmp_path / "broken.bpmn"
    bpmn.write_text(ORDER_BPMN.read_text().replace('targetRef="End_done"', 'targetRef="Nowhere"'))
    runner = CliRunner()
    result = runner.invoke(cli, ["layout", str(bpmn)])
    assert result.exit_code == 1
    assert "Layout failed:" in result.output
    assert "Nowhere" in result.output


def test_render_produces_svg(tmp_path):
    """render command produces an SVG file."""
    out = tmp_path / "output.svg"
    runner = CliRunner()
    result = runner.invoke(cli, ["render", str(ORDER_BPMN), "-o", str(out), "--theme", "dark"])
    assert result.exit_code == 0, result.output
    assert "<svg" in out.read_text()
    assert "Rendered" in result.output


def test_render_default_output(tmp_path):
    """render command uses input stem + .svg when no -o given."""
    bpmn = tmp_path / "review.bpmn"
    bpmn.write_text(REVIEW_BPMN.read_text())
    runner = CliRunner()
    result = runner.invoke(cli, ["render", str(bpmn)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "review.svg").exists()


def test_validate_success():
    """validate command succeeds on valid input."""
    runner = CliRunner()
    result = runner.invoke(cli, ["validate", str(ORDER_BPMN)])
    assert result.exit_code == 0
    assert "Valid: 9 nodes, 8 sequence flows, 0 message flows, 3 lanes" in result.output


def test_validate_bad_xml(tmp_path):
    """validate command reports parse errors."""
    bad = tmp_path / "bad.bpmn"
    bad.write_text("not a bpmn file")
    runner = CliRunner()
    result = runner.invoke(cli, ["validate", str(bad)])
    assert result.exit_code == 1
    assert "Parse error" in result.output


def test_validate_missing_end_event(tmp_path):
    text = """<definitions xmlns="http://www.omg.org/spec/BPMN/20100524/MODEL">
      <process id="P"><startEvent id="s" /><task id="t" />
        <sequenceFlow id="f" sourceRef="s" targetRef="t" /></process>
    </definitions>"""
    bpmn = tmp_path / "noend.bpmn"
    bpmn.write_text(text)
    runner = CliRunner()
    result = runner.invoke(cli, ["validate", str(bpmn)])
    assert result.exit_code == 1
    assert "No end event found in the diagram" in result.output


def test_info():
    runner = CliRunner()
    result = runner.invoke(cli, ["info", str(REVIEW_BPMN)])
    assert result.exit_code == 0, result.output
    assert "Nodes: 7" in result.output
    assert "Lanes: 2" in result.output
    assert "Author: 5 elements" in result.output
    assert "Back-flows: f6" in result.output


def test_nonexistent_file():
    runner = CliRunner()
    result = runner.invoke(cli, ["layout", "no/such/file.bpmn"])
    assert result.exit_code != 0


def test_version():
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
