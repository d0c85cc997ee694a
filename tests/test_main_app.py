"""Tests for the command-line interface."""

import argparse
import json
from datetime import date

import pytest

from disapatch.core.config import ConfigManager
from disapatch.main_app import (
    DisaPatchManager, create_argument_parser, create_disa_patch_manager, merge_config_with_args, run,
    selection_from_args
)


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep run() from replacing the root handlers pytest captures with."""
    monkeypatch.setattr("disapatch.main_app.setup_logging", lambda debug=False: None)


class TestArgumentParser:
    def test_list_files_options(self):
        args = create_argument_parser().parse_args([
            "list-files", "--repository", "MicrosoftToolkits", "--since", "2021-07-01",
            "--search", "KB", "--sort", "created", "--descending", "--limit", "5", "--page", "2",
        ])

        assert args.command == "list-files"
        assert args.since == date(2021, 7, 1)
        assert selection_from_args(args) == {
            "since": date(2021, 7, 1),
            "search": "KB",
            "sort_by": "created",
            "descending": True,
            "limit": 5,
            "page": 2,
        }

    @pytest.mark.parametrize("argv", [
        ["list-files", "--since", "07/01/2021"],
        ["list-files", "--limit", "0"],
        ["list-files", "--repository", "LinuxPatches"],
        ["download", "--sort", "size"],
    ])
    def test_invalid_options(self, argv, capsys):
        with pytest.raises(SystemExit):
            create_argument_parser().parse_args(argv)

    def test_download_options(self):
        args = create_argument_parser().parse_args(["download", "--output", "out", "--force"])
        assert args.output == "out"
        assert args.force


class TestMergeConfig:
    def test_config_fills_unset_arguments(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "enumeration:\n  repository: MicrosoftApplications\ndownload:\n  path: /srv/patches\n"
        )
        manager = ConfigManager()
        manager.load_config(str(config_file))
        args = create_argument_parser().parse_args(["download"])

        merge_config_with_args(args, manager)

        assert args.repository == "MicrosoftApplications"
        assert args.output == "/srv/patches"

    def test_command_line_wins(self):
        args = argparse.Namespace(repository="MicrosoftToolkits")
        merge_config_with_args(args, ConfigManager())
        assert args.repository == "MicrosoftToolkits"


class TestCommands:
    def test_list_repositories(self, capsys):
        assert run(["list-repositories"]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output["total"] == 4
        assert {"name": "MicrosoftSecurityBulletins", "id": 15} in output["data"]

    def test_generate_config_to_stdout(self, capsys):
        assert run(["generate-config"]) == 0
        assert "row_cache_key: title" in capsys.readouterr().out

    def test_generate_config_to_file(self, tmp_path, capsys):
        assert run(["generate-config", "--output", str(tmp_path)]) == 0
        assert (tmp_path / "disa-patch.yaml").exists()

    def test_no_arguments_shows_help(self, capsys):
        assert run([]) == 0
        assert "DISA Patch" in capsys.readouterr().out

    def test_examples(self, capsys):
        assert run(["list-files", "--examples"]) == 0
        assert "list-files" in capsys.readouterr().out

    def test_all_examples(self, capsys):
        assert run(["--examples"]) == 0
        assert "download" in capsys.readouterr().out

    @pytest.mark.parametrize("command,heading", [
        ("list-repositories", "disa-patch list-repositories"),
        ("list-files", "disa-patch list-files"),
        ("download", "disa-patch download"),
        ("generate-config", "disa-patch generate-config"),
    ])
    def test_command_help_uses_packaged_topics(self, command, heading, capsys):
        assert run([command, "--help"]) == 0
        output = capsys.readouterr().out
        assert output.startswith(heading)
        assert "usage:" not in output

    def test_main_help_flag(self, capsys):
        assert run(["-h"]) == 0
        assert "Commands:" in capsys.readouterr().out

    def test_run_builds_manager_through_factory(self, tmp_path, monkeypatch, capsys):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("portal:\n  timeout: 5\n")
        built = []

        def factory(config_provider=None, skip_tls=False, debug=False):
            manager = create_disa_patch_manager(config_provider, skip_tls=skip_tls, debug=debug)
            built.append(manager)
            return manager

        monkeypatch.setattr("disapatch.main_app.create_disa_patch_manager", factory)

        assert run(["list-repositories", "--config", str(config_file)]) == 0
        assert len(built) == 1
        assert built[0].config_manager.get_value("portal.timeout") == 5

    def test_missing_config_file(self, tmp_path, capsys):
        assert run(["list-files", "--config", str(tmp_path / "missing.yaml")]) == 1
        assert "not found" in capsys.readouterr().err

    def test_fatal_error_exits_with_one(self, tmp_path, capsys):
        assert run(["list-files", "--cert-store", str(tmp_path)]) == 1
        assert "No client certificates" in capsys.readouterr().err


class TestManager:
    def test_list_files(self, service, bulletin_portal, capsys):
        manager = DisaPatchManager(repository_provider=service)
        manager.connect("MicrosoftSecurityBulletins")

        assert manager.list_files({}) == 0

        output = json.loads(capsys.readouterr().out)
        assert output["repository"] == "MicrosoftSecurityBulletins"
        assert output["total"] == 1
        assert output["files"][0]["KB"] == "5004237"

    def test_download_summary(self, service, bulletin_portal, tmp_path, capsys):
        manager = DisaPatchManager(repository_provider=service)
        manager.connect()

        assert manager.download_files({}, str(tmp_path)) == 0
        first = json.loads(capsys.readouterr().out)
        assert first["downloaded"] == ["windows10.0-kb5004237-x64_a1b2c3d4.msu"]

        assert manager.download_files({}, str(tmp_path)) == 0
        second = json.loads(capsys.readouterr().out)
        assert second["downloaded"] == []
        assert second["skipped"] == ["windows10.0-kb5004237-x64_a1b2c3d4.msu"]

    def test_download_errors_set_exit_code(self, service, bulletin_portal, tmp_path, capsys):
        bulletin_portal.failures[
            "get:https://portal.test/Files/windows10.0-kb5004237-x64_a1b2c3d4.msu"
        ] = 1
        manager = DisaPatchManager(repository_provider=service)
        manager.connect()

        assert manager.download_files({}, str(tmp_path)) == 1
        summary = json.loads(capsys.readouterr().out)
        assert summary["errors"][0]["file"] == "windows10.0-kb5004237-x64_a1b2c3d4.msu"
