"""
Shared utilities for the decoder CLI: config and logging.
"""
import sys
import logging
from pathlib import Path
from configparser import ConfigParser, Error as ConfigError
from typing import Optional

DEFAULT_TABLE_PATH = "/sys/firmware/dmi/tables/DMI"
DEFAULT_LOG_LEVEL = "WARNING"

DEFAULTS = {
    "logging": {
        "log_level": DEFAULT_LOG_LEVEL,
    },
    "input": {
        "table_path": DEFAULT_TABLE_PATH,
    },
}


class ConfigManager:
    """Manages decoder configuration from an INI file."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else None
        self.config = ConfigParser(interpolation=None)
        self.config.read_dict(DEFAULTS)

    def load(self) -> ConfigParser:
        """Load config file on top of the built-in defaults."""
        if self.config_path is not None:
            self.config.read(self.config_path)
        return self.config

    def get(self, section: str, key: str, fallback: Optional[str] = None) -> str:
        """Get config value with fallback."""
        try:
            return self.config.get(section, key)
        except ConfigError:
            return fallback if fallback else ""


class LogManager:
    """Manages logging for the decoder package."""

    def __init__(self, name: str, level: str = DEFAULT_LOG_LEVEL, log_dir: Optional[Path] = None):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper(), logging.WARNING))

        # Reconfiguring replaces handlers from an earlier run in the same process
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Console handler; stdout is reserved for the decoded report
        ch = logging.StreamHandler(sys.stderr)
        ch.setFormatter(formatter)
        self.logger.addHandler(ch)

        # File handler
        if log_dir:
            self.log_dir = Path(log_dir)
            self.log_dir.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(self.log_dir / f"{name.replace('_', '-')}.log")
            fh.setLevel(logging.DEBUG)
            fh.setFormatter(formatter)
            self.logger.addHandler(fh)

    def get_logger(self) -> logging.Logger:
        """Get configured logger."""
        return self.logger
