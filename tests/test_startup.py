"""Startup items: Run-key moves and startup folder renames."""

import pytest

from cleanforge.protocol.errors import AggregateError, NotFoundError, PermissionDeniedError
from cleanforge.snapshot.models import ConfigValue, Coordinate
from cleanforge.startup.manager import (
    DISABLED_SUBKEY,
    REGISTRY_HKCU,
    REGISTRY_HKLM,
    RUN_KEY,
    STARTUP_FOLDER,
    StartupManager,
)

ONEDRIVE = Coordinate("HKCU", RUN_KEY, "OneDrive")
ONEDRIVE_DISABLED = Coordinate("HKCU", f"{RUN_KEY}\\{DISABLED_SUBKEY}", "OneDrive")
UPDATER = Coordinate("HKLM", RUN_KEY, "Updater")


@pytest.fixture
def startup_dir(tmp_path):
    path = tmp_path / "Startup"
    path.mkdir()
    (path / "Discord.lnk").write_text("shortcut")
    (path / "desktop.ini").write_text("[.ShellClassInfo]")
    return path


@pytest.fixture
def manager(store, startup_dir):
    store.set(ONEDRIVE, ConfigValue.string(r'"C:\OneDrive.exe" /background'))
    store.set(UPDATER, ConfigValue.string(r"C:\Updater.exe"))
    return StartupManager(store, startup_dir)


class TestList:

    def test_all_locations(self, manager):
        items = {item.name: item for item in manager.list_items()}

        assert set(items) == {"OneDrive", "Updater", "Discord"}
        assert items["OneDrive"].location == REGISTRY_HKCU
        assert items["Updater"].location == REGISTRY_HKLM
        assert items["Discord"].location == STARTUP_FOLDER
        assert all(item.enabled for item in items.values())

    def test_missing_run_keys_and_folder(self, store, tmp_path):
        assert StartupManager(store, tmp_path / "nowhere").list_items() == []

    def test_find_is_case_insensitive(self, manager):
        assert manager.find("onedrive").name == "OneDrive"
        with pytest.raises(NotFoundError):
            manager.find("Steam")


class TestRegistryItems:

    def test_disable_moves_to_side_key(self, manager, store):
        item = manager.disable(manager.find("OneDrive"))

        assert not item.enabled
        assert not store.exists(ONEDRIVE)
        assert store.get(ONEDRIVE_DISABLED) == ConfigValue.string(r'"C:\OneDrive.exe" /background')
        assert not manager.find("OneDrive").enabled

    def test_enable_moves_back(self, manager, store):
        manager.disable(manager.find("OneDrive"))
        item = manager.enable(manager.find("OneDrive"))

        assert item.enabled
        assert store.exists(ONEDRIVE)
        assert not store.exists(ONEDRIVE_DISABLED)

    def test_already_in_target_state_is_a_no_op(self, manager, store):
        item = manager.find("OneDrive")
        store.calls.clear()

        assert manager.enable(item) is item
        assert store.calls == []

    def test_failed_delete_keeps_a_copy(self, manager, store):
        store.deny(ONEDRIVE)

        with pytest.raises(PermissionDeniedError):
            manager.disable(manager.find("OneDrive"))

        assert store.exists(ONEDRIVE)
        assert store.exists(ONEDRIVE_DISABLED)


class TestFolderItems:

    def test_disable_and_enable_rename(self, manager, startup_dir):
        item = manager.disable(manager.find("Discord"))

        assert not item.enabled
        assert (startup_dir / "Discord.lnk.disabled").exists()
        assert not (startup_dir / "Discord.lnk").exists()

        item = manager.enable(manager.find("Discord"))
        assert item.enabled
        assert (startup_dir / "Discord.lnk").exists()

    def test_vanished_file(self, manager, startup_dir):
        item = manager.find("Discord")
        (startup_dir / "Discord.lnk").unlink()

        with pytest.raises(NotFoundError):
            manager.disable(item)


class TestMany:

    def test_failures_collected(self, manager, startup_dir):
        discord = manager.find("Discord")
        (startup_dir / "Discord.lnk").unlink()

        with pytest.raises(AggregateError) as exc_info:
            manager.disable_many([discord, manager.find("Updater")])

        assert exc_info.value.targets == ["Discord"]
        assert not manager.find("Updater").enabled
