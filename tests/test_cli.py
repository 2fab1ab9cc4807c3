"""End-to-end CLI runs against in-memory collaborators: exit codes and output."""

import io

import pytest
from rich.console import Console

from cleanforge import config as config_module
from cleanforge.catalogs.gaming import GAME_CONFIG_STORE
from cleanforge.cli import EXIT_DID_NOT_RUN, EXIT_OK, EXIT_WARNINGS, run
from cleanforge.snapshot.models import ConfigValue, Coordinate
from cleanforge.startup.manager import RUN_KEY
from cleanforge.ui.console import ConsoleUI

GAME_DVR = Coordinate("HKCU", GAME_CONFIG_STORE, "GameDVR_Enabled")


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    monkeypatch.setattr(config_module, "CONFIG_SEARCH_PATHS", [])
    for name in ("CLEANFORGE_BACKUP_DIR", "CLEANFORGE_LOG_LEVEL", "CLEANFORGE_COMMAND_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("APPDATA", str(tmp_path / "appdata"))


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def cli(store, services, power, backup_dir, output):
    ui = ConsoleUI(console=Console(file=output, width=200, color_system=None))

    def invoke(*argv):
        return run(
            ["--backup-dir", str(backup_dir), *argv],
            store_factory=lambda: store,
            services=services,
            power=power,
            ui=ui,
        )
    return invoke


class TestExitCodes:

    def test_list(self, cli, output):
        assert cli("list") == EXIT_OK
        assert "disable_game_dvr" in output.getvalue()
        assert "competitive_fps" in output.getvalue()

    def test_version(self, cli):
        assert cli("--version") == EXIT_OK

    def test_bad_arguments(self, cli):
        assert cli("apply") == EXIT_DID_NOT_RUN

    def test_invalid_config(self, cli, output):
        assert cli("--timeout", "-1", "status") == EXIT_DID_NOT_RUN
        assert "Did not run" in output.getvalue()

    def test_apply_ok(self, cli, store):
        assert cli("apply", "gaming", "disable_game_dvr") == EXIT_OK
        assert store.get(GAME_DVR) == ConfigValue.int32(0)

    def test_unknown_tweak_did_not_run(self, cli, store, backup_dir):
        assert cli("apply", "gaming", "disable_game_dvr", "turbo_mode") == EXIT_DID_NOT_RUN
        assert store.calls == []
        assert not backup_dir.exists()

    def test_denied_write_is_a_warning(self, cli, store, output):
        store.deny(GAME_DVR)
        assert cli("apply", "gaming", "disable_game_dvr") == EXIT_WARNINGS
        assert "1 warning" in output.getvalue()

    def test_profile(self, cli, services):
        assert cli("profile", "casual") == EXIT_OK
        assert services.run_states["SysMain"] == "stopped"

    def test_unknown_profile(self, cli):
        assert cli("profile", "speedrun") == EXIT_DID_NOT_RUN


class TestRestore:

    def test_no_backup_is_ok(self, cli, store, output):
        assert cli("restore", "all") == EXIT_OK
        assert store.calls == []
        assert "no backup" in output.getvalue()

    def test_apply_then_restore(self, cli, store):
        store.set(GAME_DVR, ConfigValue.int32(1))
        cli("apply", "gaming", "disable_game_dvr")

        assert cli("restore", "gaming") == EXIT_OK
        assert store.get(GAME_DVR) == ConfigValue.int32(1)

    def test_dry_run_changes_nothing(self, cli, store, output):
        cli("apply", "gaming", "disable_game_dvr")
        store.calls.clear()

        assert cli("restore", "gaming", "--dry-run") == EXIT_OK
        assert all(op == "read" for op, _ in store.calls)
        assert "delete" in output.getvalue()

    def test_forget_discards_slot(self, cli, backup_dir):
        cli("apply", "gaming", "disable_game_dvr")
        slot = backup_dir / "gaming_snapshot.json"
        assert slot.exists()

        assert cli("restore", "gaming", "--forget") == EXIT_OK
        assert not slot.exists()

    def test_failed_restore_keeps_slot(self, cli, store, backup_dir):
        cli("apply", "gaming", "disable_game_dvr")
        store.deny(GAME_DVR)

        assert cli("restore", "gaming", "--forget") == EXIT_WARNINGS
        assert (backup_dir / "gaming_snapshot.json").exists()


class TestStatusAndStartup:

    def test_status(self, cli, output):
        cli("apply", "gaming", "disable_game_dvr")
        assert cli("status") == EXIT_OK
        text = output.getvalue()
        assert "gaming" in text
        assert "privacy" in text

    def test_startup_disable(self, cli, store):
        store.set(Coordinate("HKCU", RUN_KEY, "OneDrive"), ConfigValue.string("onedrive.exe"))

        assert cli("startup", "disable", "OneDrive") == EXIT_OK
        assert not store.exists(Coordinate("HKCU", RUN_KEY, "OneDrive"))

    def test_startup_unknown_item(self, cli):
        assert cli("startup", "disable", "Steam") == EXIT_DID_NOT_RUN

    def test_startup_list(self, cli, store, output):
        store.set(Coordinate("HKLM", RUN_KEY, "Updater"), ConfigValue.string("updater.exe"))
        assert cli("startup", "list") == EXIT_OK
        assert "Updater" in output.getvalue()
