"""
Configuration management for CleanForge.

Supports:
- TOML config files
- Environment variables
- Command-line overrides
- Sensible defaults

Priority (highest to lowest):
1. Command-line arguments
2. Environment variables
3. Config file
4. Defaults
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib


APP_DIR = Path.home() / ".cleanforge"

# Default config file locations (searched in order)
CONFIG_SEARCH_PATHS = [
    Path.cwd() / "cleanforge.toml",
    APP_DIR / "config.toml",
    Path.home() / ".config" / "cleanforge" / "config.toml",
]

ENV_BACKUP_DIR = "CLEANFORGE_BACKUP_DIR"
ENV_LOG_LEVEL = "CLEANFORGE_LOG_LEVEL"
ENV_COMMAND_TIMEOUT = "CLEANFORGE_COMMAND_TIMEOUT"


@dataclass
class BackupConfig:
    """Where snapshot slot files live."""
    dir: str = str(APP_DIR / "backups")

    @property
    def path(self) -> Path:
        return Path(self.dir).expanduser()


@dataclass
class ControlConfig:
    """Service and power-scheme command settings."""
    command_timeout: float = 30.0   # seconds
    poll_interval: float = 0.5      # seconds
    sc_command: str = "sc"
    powercfg_command: str = "powercfg"


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None      # JSON lines log file
    quiet: bool = False


@dataclass
class Config:
    """Main configuration container."""
    backup: BackupConfig = field(default_factory=BackupConfig)
    control: ControlConfig = field(default_factory=ControlConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Source tracking
    _config_file: Optional[Path] = None

    @classmethod
    def load(cls, config_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> "Config":
        """
        Load configuration from file and environment.

        Args:
            config_path: Explicit path to config file. If None, searches default locations.
            environ: Environment mapping (defaults to os.environ)

        Returns:
            Config instance with loaded values
        """
        config = cls()

        if config_path:
            path = Path(config_path)
            if not path.exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")
        else:
            path = cls._find_config_file()

        if path:
            config = cls._load_from_file(path)
            config._config_file = path

        config.apply_env(os.environ if environ is None else environ)
        return config

    @classmethod
    def _find_config_file(cls) -> Optional[Path]:
        """Find config file in default locations."""
        for path in CONFIG_SEARCH_PATHS:
            if path.exists():
                return path
        return None

    @classmethod
    def _load_from_file(cls, path: Path) -> "Config":
        """Load config from TOML file."""
        with open(path, "rb") as f:
            data = tomllib.load(f)
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        config = cls()

        if "backup" in data:
            backup = data["backup"]
            config.backup = BackupConfig(
                dir=backup.get("dir", config.backup.dir),
            )

        if "control" in data:
            ctl = data["control"]
            config.control = ControlConfig(
                command_timeout=float(ctl.get("command_timeout", config.control.command_timeout)),
                poll_interval=float(ctl.get("poll_interval", config.control.poll_interval)),
                sc_command=ctl.get("sc_command", config.control.sc_command),
                powercfg_command=ctl.get("powercfg_command", config.control.powercfg_command),
            )

        if "logging" in data:
            log = data["logging"]
            config.logging = LoggingConfig(
                level=str(log.get("level", config.logging.level)).upper(),
                file=log.get("file") or None,
                quiet=bool(log.get("quiet", config.logging.quiet)),
            )

        return config

    def apply_env(self, environ) -> "Config":
        """Override values from CLEANFORGE_* environment variables."""
        if environ.get(ENV_BACKUP_DIR):
            self.backup.dir = environ[ENV_BACKUP_DIR]
        if environ.get(ENV_LOG_LEVEL):
            self.logging.level = environ[ENV_LOG_LEVEL].upper()
        if environ.get(ENV_COMMAND_TIMEOUT):
            try:
                self.control.command_timeout = float(environ[ENV_COMMAND_TIMEOUT])
            except ValueError:
                raise ValueError(
                    f"{ENV_COMMAND_TIMEOUT} must be a number, got {environ[ENV_COMMAND_TIMEOUT]!r}"
                ) from None
        return self

    def override_from_args(self, args) -> "Config":
        """
        Override config values from argparse namespace.

        Args with value None are ignored (keeping config file values).
        """
        if getattr(args, "backup_dir", None):
            self.backup.dir = args.backup_dir
        if getattr(args, "timeout", None):
            self.control.command_timeout = args.timeout
        if getattr(args, "log_level", None):
            self.logging.level = args.log_level.upper()
        if getattr(args, "log_file", None):
            self.logging.file = args.log_file
        if getattr(args, "quiet", None):
            self.logging.quiet = args.quiet
        return self

    def validate(self) -> list:
        """
        Validate configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if self.control.command_timeout <= 0:
            errors.append("Command timeout must be positive")
        if self.control.poll_interval <= 0:
            errors.append("Poll interval must be positive")
        if logging.getLevelName(self.logging.level) == f"Level {self.logging.level}":
            errors.append(f"Unknown log level: {self.logging.level}")
        if self.backup.path.exists() and not self.backup.path.is_dir():
            errors.append(f"Backup path is not a directory: {self.backup.path}")

        return errors

    def summary(self, include_config_path: bool = True) -> str:
        """Generate human-readable config summary."""
        lines = []

        if include_config_path:
            if self._config_file:
                lines.append(f"Config: {self._config_file}")
            else:
                lines.append("Config: (defaults)")

        lines.append(f"Backups: {self.backup.path}")
        lines.append(f"Command timeout: {self.control.command_timeout:g}s")
        lines.append(f"Log level: {self.logging.level}" + (f" (file: {self.logging.file})" if self.logging.file else ""))

        return "\n".join(lines)
