"""Tests for the command line interface."""

import json
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from conftest import parent

from lineagescope.cli import cli

FAMILY = {
    "nodes": [{"id": "A"}, {"id": "B"}, {"id": "C"}, {"id": "D"}, {"id": "E"}],
    "links": [parent("A", "B"), parent("A", "C"), parent("B", "D")],
}


def write_dataset(tmp_path: Path, data: Any) -> str:
    path = tmp_path / "family.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def family_file(tmp_path: Path) -> str:
    return write_dataset(tmp_path, FAMILY)


class TestLayoutCommand:
    """Tests for the layout command."""

    def test_grid_with_options(self, runner: CliRunner, family_file: str) -> None:
        result = runner.invoke(
            cli, ["layout", family_file, "--type", "grid", "--option", "cell_width=50"]
        )

        assert result.exit_code == 0
        output = json.loads(result.stdout)
        assert output["layout_type"] == "grid"
        assert output["elapsed_ms"] >= 0
        assert set(output["positions"]) == {"A", "B", "C", "D", "E"}
        assert set(output["positions"]["A"]) == {"x", "y"}

    def test_fallback_dataset_with_era_filter(self, runner: CliRunner) -> None:
        """Without DATA the built-in dataset is used."""
        result = runner.invoke(cli, ["layout", "--type", "radial", "--era", "antediluvian"])

        assert result.exit_code == 0
        assert "fallback dataset" in result.stderr
        assert len(json.loads(result.stdout)["positions"]) == 5

    def test_invalid_option_fails(self, runner: CliRunner, family_file: str) -> None:
        result = runner.invoke(
            cli, ["layout", family_file, "--type", "grid", "--option", "cell_width=-1"]
        )

        assert result.exit_code == 1
        assert "Layout failed" in result.stderr

    def test_malformed_option(self, runner: CliRunner, family_file: str) -> None:
        result = runner.invoke(cli, ["layout", family_file, "--option", "novalue"])

        assert result.exit_code == 2


class TestPathCommand:
    """Tests for the path command."""

    def test_found(self, runner: CliRunner, family_file: str) -> None:
        result = runner.invoke(cli, ["path", family_file, "D", "C"])

        assert result.exit_code == 0
        output = json.loads(result.stdout)
        assert output["found"] is True
        assert output["length"] == 3
        assert output["nodes"] == ["D", "B", "A", "C"]

    def test_not_connected(self, runner: CliRunner, family_file: str) -> None:
        result = runner.invoke(cli, ["path", family_file, "A", "E"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["found"] is False

    def test_unknown_person(self, runner: CliRunner, family_file: str) -> None:
        result = runner.invoke(cli, ["path", family_file, "A", "nobody"])

        assert result.exit_code == 1
        assert "Path search failed" in result.stderr


class TestDatasetCommands:
    """Tests for components, stats, export and check."""

    def test_components(self, runner: CliRunner, family_file: str) -> None:
        result = runner.invoke(cli, ["components", family_file])

        output = json.loads(result.stdout)
        assert output["count"] == 2
        assert output["components"][0] == {"size": 4, "nodes": ["A", "B", "C", "D"]}

    def test_stats_on_fallback(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["stats"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["node_count"] == 5

    def test_export_to_file(self, runner: CliRunner, family_file: str, tmp_path: Path) -> None:
        target = tmp_path / "family.ged"

        result = runner.invoke(
            cli, ["export", family_file, "--format", "gedcom", "--output", str(target)]
        )

        assert result.exit_code == 0
        assert target.read_text(encoding="utf-8").startswith("0 HEAD")

    def test_export_csv_to_stdout(self, runner: CliRunner, family_file: str) -> None:
        result = runner.invoke(cli, ["export", family_file, "--format", "csv"])

        tables = json.loads(result.stdout)
        assert tables["people"].startswith("id,name")

    def test_check_strict(self, runner: CliRunner, tmp_path: Path) -> None:
        """--strict exits 1 when the report finds problems."""
        data = {"nodes": [{"id": "a"}, {"id": "b"}], "links": [parent("a", "b"), parent("b", "a")]}
        path = write_dataset(tmp_path, data)

        relaxed = runner.invoke(cli, ["check", path])
        strict = runner.invoke(cli, ["check", path, "--strict"])

        assert relaxed.exit_code == 0
        assert json.loads(relaxed.stdout)["parent_cycles"] == [["a", "b"]]
        assert strict.exit_code == 1


class TestInputErrors:
    """Tests for unreadable or invalid input."""

    def test_invalid_json(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        result = runner.invoke(cli, ["stats", str(path)])

        assert result.exit_code == 1
        assert "Could not read" in result.stderr

    def test_invalid_dataset(self, runner: CliRunner, tmp_path: Path) -> None:
        path = write_dataset(tmp_path, {"links": []})

        result = runner.invoke(cli, ["stats", path])

        assert result.exit_code == 1
        assert "Stats failed" in result.stderr

    def test_missing_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["stats", str(tmp_path / "missing.json")])

        assert result.exit_code == 2
