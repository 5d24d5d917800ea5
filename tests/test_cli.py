import json

from typer.testing import CliRunner

from greenbook.main import cli

runner = CliRunner()


def test_version():
    result = runner.invoke(cli, ["version"])
    assert result.exit_code == 0
    assert "GreenBook AAR" in result.stdout


def test_units_command(sample_snapshot):
    result = runner.invoke(cli, ["units", "--user-id", "2", "--data", str(sample_snapshot)])
    assert result.exit_code == 0
    assert sorted(u["id"] for u in json.loads(result.stdout)) == [2, 4, 5, 6, 7]


def test_users_and_aars_commands(sample_snapshot):
    result = runner.invoke(cli, ["users", "--user-id", "3", "--data", str(sample_snapshot)])
    assert result.exit_code == 0
    assert sorted(u["id"] for u in json.loads(result.stdout)) == [3, 4]

    result = runner.invoke(cli, ["aars", "--user-id", "3", "--data", str(sample_snapshot)])
    assert sorted(json.loads(result.stdout)) == [1, 2, 3]


def test_analyze_command(sample_snapshot):
    result = runner.invoke(cli, ["analyze", "--user-id", "1", "--data", str(sample_snapshot)])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["source"] == "deterministic"
    assert payload["report"]["trends"]


def test_missing_snapshot_exits_with_error(tmp_path):
    result = runner.invoke(cli, ["units", "--user-id", "1", "--data", str(tmp_path / "missing.yaml")])
    assert result.exit_code == 1
