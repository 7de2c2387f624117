import json

import pytest
from typer.testing import CliRunner

from errtrace.cli import app

runner = CliRunner()

SOURCE = """
func a.f() error {
entry:
  %t0 = call b.New() : error at 3:9
  return %t0 at 4:2
}
"""


@pytest.fixture
def unit(tmp_path):
    path = tmp_path / "a.ir"
    path.write_text(SOURCE)
    return path


def test_check_findings(unit):
    result = runner.invoke(app, ["check", str(unit)])
    assert result.exit_code == 1
    assert f"{unit}:3:9: error not from our module: b" in result.output


def test_check_trusted(unit):
    result = runner.invoke(app, ["check", "--trusted", "a", "--trusted", "b", str(unit)])
    assert result.exit_code == 0
    assert "error not from our module" not in result.output


def test_check_config_file(unit, tmp_path):
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"OurPackages": ["b"]}))
    result = runner.invoke(app, ["check", "-c", str(config), str(unit)])
    assert result.exit_code == 0


def test_check_invalid_config(unit, tmp_path):
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"OurPackages": "b", "Unknown": 1}))
    result = runner.invoke(app, ["check", "-c", str(config), str(unit)])
    assert result.exit_code == 2


def test_check_missing_unit(tmp_path):
    result = runner.invoke(app, ["check", str(tmp_path / "missing.ir")])
    assert result.exit_code == 2


def test_check_parse_error(tmp_path):
    path = tmp_path / "bad.ir"
    path.write_text("func a.f( {")
    result = runner.invoke(app, ["check", str(path)])
    assert result.exit_code == 2


def test_dump(unit):
    result = runner.invoke(app, ["dump", str(unit)])
    assert result.exit_code == 0
    assert "func a.f() error {" in result.output
    assert "%t0 = call @b.New() : error at 3:9" in result.output


def test_dump_cfg(unit):
    result = runner.invoke(app, ["dump", "--cfg", str(unit)])
    assert result.exit_code == 0
    assert "// a.f" in result.output
    assert "Successors:" in result.output
