"""Tests for the multiverse command-line interface."""

import json
import tomllib
from pathlib import Path

import pytest
from typer.testing import CliRunner

from multiverse._cli.main import app

runner = CliRunner()

STUDY = """
import multiverse as mv

study = mv.Multiverse("cli study")
study.declare("A", ["a1", "a2"])
study.declare("B", [("b1", 1.0, mv.Is("A", "a1")), ("b2", 2.0)])


@study.outcome(parameter="B")
def estimate(data, B):
    return mv.Outcome("slope", estimate=B * sum(data["x"]), std_error=1.0)
"""

FAILING_STUDY = """
import multiverse as mv

study = mv.Multiverse("failing study")
study.declare("A", ["ok", "broken"])


@study.outcome(parameter="A")
def estimate(data, A):
    if A == "broken":
        raise RuntimeError("model did not converge")
    return mv.Outcome("slope", estimate=1.0, std_error=1.0)
"""


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep pyproject.toml lookups inside the test directory."""
    monkeypatch.chdir(tmp_path)


def _write(tmp_path: Path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def data_csv(tmp_path: Path) -> Path:
    return _write(tmp_path, "data.csv", "x\n1\n2\n")


class TestCheck:
    def test_valid_multiverse(self, tmp_path: Path):
        script = _write(tmp_path, "cli_check_study.py", STUDY)

        result = runner.invoke(app, ["check", str(script)])

        assert result.exit_code == 0, result.output

    def test_invalid_declaration(self, tmp_path: Path):
        script = _write(
            tmp_path,
            "cli_check_invalid.py",
            "import multiverse as mv\nstudy = mv.Multiverse('x')\nstudy.declare('A', ['a1', 'a1'])\n",
        )

        result = runner.invoke(app, ["check", str(script)])

        assert result.exit_code != 0

    def test_ambiguous_multiverse_is_reported(self, tmp_path: Path):
        script = _write(
            tmp_path,
            "cli_check_ambiguous.py",
            "import multiverse as mv\nfirst = mv.Multiverse('a')\nsecond = mv.Multiverse('b')\n",
        )

        result = runner.invoke(app, ["check", str(script)])

        assert result.exit_code == 1
        assert "--name" in result.output

    def test_no_multiverse_configured(self):
        result = runner.invoke(app, ["check"])

        assert result.exit_code != 0


class TestUniverses:
    def test_lists_every_universe(self, tmp_path: Path):
        script = _write(tmp_path, "cli_universes_study.py", STUDY)

        result = runner.invoke(app, ["universes", str(script)])

        assert result.exit_code == 0, result.output
        assert "A=a1, B=b1" in result.stdout
        assert "A=a1, B=b2" in result.stdout
        assert "A=a2, B=b2" in result.stdout
        assert "A=a2, B=b1" not in result.stdout


class TestRun:
    def test_writes_all_artifacts(self, tmp_path: Path, data_csv: Path):
        script = _write(tmp_path, "cli_run_study.py", STUDY)
        output = tmp_path / "out"

        result = runner.invoke(
            app,
            ["run", str(script), "-d", str(data_csv), "-o", str(output), "--resolution", "3", "--workers", "2"],
        )

        assert result.exit_code == 0, result.output
        results = json.loads((output / "results.json").read_text(encoding="utf-8"))
        assert [entry[".universe"] for entry in results] == [1, 2, 3]
        assert [entry["results"][0]["estimate"] for entry in results] == [3.0, 6.0, 6.0]
        assert results[0]["results"][0]["cdf.y"] == [0.25, 0.5, 0.75]

        code = json.loads((output / "code.json").read_text(encoding="utf-8"))
        assert code["parameters"] == {"A": ["a1", "a2"], "B": ["b1", "b2"]}

        data = json.loads((output / "data.json").read_text(encoding="utf-8"))
        assert data == [{"field": "x", "values": [1, 2]}]

    def test_failures_are_reported_not_fatal(self, tmp_path: Path, data_csv: Path):
        script = _write(tmp_path, "cli_run_failing.py", FAILING_STUDY)
        output = tmp_path / "out"
        summary = tmp_path / "summary.toml"

        result = runner.invoke(
            app,
            ["run", str(script), "-d", str(data_csv), "-o", str(output), "--summary", str(summary)],
        )

        assert result.exit_code == 0, result.output
        results = json.loads((output / "results.json").read_text(encoding="utf-8"))
        assert [entry[".universe"] for entry in results] == [1]
        with summary.open("rb") as f:
            data = tomllib.load(f)
        assert data["failures"][0]["cause"] == "RuntimeError: model did not converge"

    def test_strict_exits_non_zero_on_failure(self, tmp_path: Path, data_csv: Path):
        script = _write(tmp_path, "cli_run_strict.py", FAILING_STUDY)

        result = runner.invoke(
            app,
            ["run", str(script), "-d", str(data_csv), "-o", str(tmp_path / "out"), "--strict"],
        )

        assert result.exit_code == 1

    def test_missing_data(self, tmp_path: Path):
        script = _write(tmp_path, "cli_run_nodata.py", STUDY)

        result = runner.invoke(app, ["run", str(script), "-o", str(tmp_path / "out")])

        assert result.exit_code == 1
        assert not (tmp_path / "out").exists()

    def test_settings_from_pyproject(self, tmp_path: Path, data_csv: Path):
        _write(tmp_path, "cli_run_configured.py", STUDY)
        _write(
            tmp_path,
            "pyproject.toml",
            """
[tool.multiverse]
multiverse = { script = "cli_run_configured.py", name = "study" }
data = "data.csv"
output = "artifacts"
grid_resolution = 5
""",
        )

        result = runner.invoke(app, ["run"])

        assert result.exit_code == 0, result.output
        results = json.loads((tmp_path / "artifacts" / "results.json").read_text(encoding="utf-8"))
        assert len(results[0]["results"][0]["cdf.x"]) == 5


class TestSchema:
    def test_writes_results_entry_schema(self, tmp_path: Path):
        output = tmp_path / "schema.json"

        result = runner.invoke(app, ["schema", "-o", str(output)])

        assert result.exit_code == 0, result.output
        schema = json.loads(output.read_text(encoding="utf-8"))
        assert set(schema["properties"]) == {".universe", "results"}
        assert "std.error" in schema["$defs"]["ResultRecord"]["properties"]
