from click.testing import CliRunner

import pgupgrader.cli as cli_module

REQUIRED_ARGS = [
    "--old-path",
    "/data/13",
    "--new-path",
    "/data/16",
    "--old-bin-path",
    "/usr/lib/postgresql/13/bin",
    "--new-bin-path",
    "/usr/lib/postgresql/16/bin",
    "--old-port",
    "5432",
    "--new-port",
    "5433",
    "--pguser",
    "postgres",
    "--pg-old-version",
    "13",
    "--pg-new-version",
    "16",
]


def _fake_upgrader(captured, exit_code=0):
    class FakeUpgrader:
        def __init__(self, config, assume_yes=False):
            captured["config"] = config
            captured["assume_yes"] = assume_yes

        def run(self):
            captured["ran"] = True
            return exit_code

    return FakeUpgrader


def test_cli_builds_config_from_options(tmp_path, monkeypatch):
    captured = {}
    monkeypatch.setattr(cli_module, "PgUpgrader", _fake_upgrader(captured))
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(
        cli_module.main,
        ["clone", *REQUIRED_ARGS, "--extensions", "hstore,pgcrypto", "--jobs", "6", "--yes"],
    )

    assert result.exit_code == 0, result.output
    config = captured["config"]
    assert config.mode == "clone"
    assert config.old_port == 5432
    assert config.extensions == ("hstore", "pgcrypto")
    assert config.jobs == 6
    assert captured["assume_yes"] is True


def test_cli_rejects_missing_required_option_before_running(tmp_path, monkeypatch):
    captured = {}
    monkeypatch.setattr(cli_module, "PgUpgrader", _fake_upgrader(captured))
    monkeypatch.chdir(tmp_path)
    args = [arg for arg in REQUIRED_ARGS]
    index = args.index("--pguser")
    del args[index : index + 2]

    result = CliRunner().invoke(cli_module.main, ["clone", *args])

    assert result.exit_code == 1
    assert "--pguser" in result.output
    assert captured == {}


def test_cli_reports_unspecified_versions(tmp_path, monkeypatch):
    captured = {}
    monkeypatch.setattr(cli_module, "PgUpgrader", _fake_upgrader(captured))
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, ["check", *REQUIRED_ARGS[:-4]])

    assert result.exit_code == 1
    assert "versions are not specified" in result.output
    assert captured == {}


def test_cli_unknown_flag_is_a_usage_error_with_exit_one(monkeypatch):
    captured = {}
    monkeypatch.setattr(cli_module, "PgUpgrader", _fake_upgrader(captured))

    result = CliRunner().invoke(cli_module.main, ["clone", *REQUIRED_ARGS, "--bogus", "1"])

    assert result.exit_code == 1
    assert "No such option" in result.output
    assert captured == {}


def test_cli_invalid_command_is_a_usage_error(monkeypatch):
    captured = {}
    monkeypatch.setattr(cli_module, "PgUpgrader", _fake_upgrader(captured))

    result = CliRunner().invoke(cli_module.main, ["upgrade", *REQUIRED_ARGS])

    assert result.exit_code == 1
    assert captured == {}


def test_cli_missing_command_prints_usage(monkeypatch):
    result = CliRunner().invoke(cli_module.main, [])

    assert result.exit_code == 1
    assert "Missing command" in result.output


def test_cli_help_command_prints_usage():
    result = CliRunner().invoke(cli_module.main, ["help"])

    assert result.exit_code == 0
    assert "Usage:" in result.output
    assert "--old-bin-path" in result.output


def test_cli_uses_config_and_allows_cli_override(tmp_path, monkeypatch):
    captured = {}
    monkeypatch.setattr(cli_module, "PgUpgrader", _fake_upgrader(captured))
    config_file = tmp_path / "upgrade.yml"
    config_file.write_text(
        "old_path: /srv/13\n"
        "new_path: /srv/16\n"
        "old_bin_path: /opt/pg13/bin\n"
        "new_bin_path: /opt/pg16/bin\n"
        "old_port: 6432\n"
        "new_port: 6433\n"
        "pguser: admin\n"
        "pg_old_version: '12'\n"
        "pg_new_version: '16'\n"
        "extensions: [postgis]\n"
        "jobs: 2\n",
        encoding="utf-8",
    )

    result = CliRunner().invoke(
        cli_module.main,
        ["link", "--config", str(config_file), "--new-port", "7000"],
    )

    assert result.exit_code == 0, result.output
    config = captured["config"]
    assert config.mode == "link"
    assert config.old_path == "/srv/13"
    assert config.old_port == 6432
    assert config.new_port == 7000
    assert config.extensions == ("postgis",)
    assert config.jobs == 2


def test_cli_uses_default_config_file_when_present(tmp_path, monkeypatch):
    captured = {}
    monkeypatch.setattr(cli_module, "PgUpgrader", _fake_upgrader(captured))
    (tmp_path / ".pgupgrader.yml").write_text("pguser: from_default\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    args = [arg for arg in REQUIRED_ARGS]
    index = args.index("--pguser")
    del args[index : index + 2]

    result = CliRunner().invoke(cli_module.main, ["copy", *args])

    assert result.exit_code == 0, result.output
    assert captured["config"].pguser == "from_default"


def test_cli_propagates_run_exit_code(tmp_path, monkeypatch):
    captured = {}
    monkeypatch.setattr(cli_module, "PgUpgrader", _fake_upgrader(captured, exit_code=1))
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, ["check", *REQUIRED_ARGS])

    assert result.exit_code == 1
    assert captured["ran"] is True
