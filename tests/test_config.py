"""Configuration: file, environment and argument precedence."""

import argparse

import pytest

from cleanforge import config as config_module
from cleanforge.config import Config


@pytest.fixture(autouse=True)
def no_default_config(monkeypatch):
    monkeypatch.setattr(config_module, "CONFIG_SEARCH_PATHS", [])


def _write(tmp_path, text):
    path = tmp_path / "cleanforge.toml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoad:

    def test_defaults(self):
        config = Config.load(environ={})
        assert config.control.command_timeout == 30.0
        assert config.logging.level == "INFO"
        assert config.backup.path.name == "backups"
        assert config.validate() == []

    def test_from_file(self, tmp_path):
        path = _write(tmp_path, """
[backup]
dir = "D:/cleanforge"

[control]
command_timeout = 5

[logging]
level = "debug"
quiet = true
""")
        config = Config.load(str(path), environ={})

        assert config.backup.dir == "D:/cleanforge"
        assert config.control.command_timeout == 5.0
        assert config.control.sc_command == "sc"
        assert config.logging.level == "DEBUG"
        assert config.logging.quiet is True
        assert str(path) in config.summary()

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config.load(str(tmp_path / "nope.toml"), environ={})

    def test_invalid_toml(self, tmp_path):
        path = _write(tmp_path, "[backup\n")
        with pytest.raises(ValueError):
            Config.load(str(path), environ={})

    def test_environment_overrides_file(self, tmp_path):
        path = _write(tmp_path, '[backup]\ndir = "from-file"\n')
        config = Config.load(str(path), environ={
            "CLEANFORGE_BACKUP_DIR": "from-env",
            "CLEANFORGE_LOG_LEVEL": "warning",
            "CLEANFORGE_COMMAND_TIMEOUT": "12.5",
        })

        assert config.backup.dir == "from-env"
        assert config.logging.level == "WARNING"
        assert config.control.command_timeout == 12.5

    def test_bad_timeout_in_environment(self):
        with pytest.raises(ValueError):
            Config.load(environ={"CLEANFORGE_COMMAND_TIMEOUT": "soon"})

    def test_arguments_override_environment(self):
        config = Config.load(environ={"CLEANFORGE_BACKUP_DIR": "from-env"})
        args = argparse.Namespace(backup_dir="from-args", timeout=3.0, log_level="error", log_file=None, quiet=None)

        config.override_from_args(args)

        assert config.backup.dir == "from-args"
        assert config.control.command_timeout == 3.0
        assert config.logging.level == "ERROR"
        assert config.logging.file is None


class TestValidate:

    def test_bad_values(self, tmp_path):
        not_a_dir = tmp_path / "file"
        not_a_dir.write_text("x")
        config = Config()
        config.control.command_timeout = 0
        config.logging.level = "LOUD"
        config.backup.dir = str(not_a_dir)

        errors = config.validate()

        assert len(errors) == 3
        assert any("LOUD" in error for error in errors)
