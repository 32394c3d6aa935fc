"""Configuration file loading.

The configuration is a YAML mapping::

    host: carddav.example.com
    port: 443
    ssl: true
    login: user@example.com
    passwd-cmd: pass show carddav
    sync-dir: ~/contacts

It is looked up in ``$XDG_CONFIG_HOME/cardamom/config.yaml``, then
``~/.config/cardamom/config.yaml``, then ``~/.cardamomrc``.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .cache import CACHE_FILE
from .errors import AuthError, ConfigError

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = "cardamom"
CONFIG_FILE_NAME = "config.yaml"
RC_FILE_NAME = ".cardamomrc"


def config_paths() -> list[Path]:
    """Candidate configuration file paths, in lookup order."""
    paths = []

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        paths.append(Path(xdg_config_home) / CONFIG_DIR_NAME / CONFIG_FILE_NAME)

    home = Path.home()
    paths.append(home / ".config" / CONFIG_DIR_NAME / CONFIG_FILE_NAME)
    paths.append(home / RC_FILE_NAME)
    return paths


def find_config_path() -> Path:
    """Return the first existing configuration file.

    Raises:
        ConfigError: If none of the candidate paths exists
    """
    candidates = config_paths()
    for path in candidates:
        if path.is_file():
            return path
    raise ConfigError(
        "Cannot find config path, tried: " + ", ".join(str(p) for p in candidates)
    )


def run_cmd(cmd: str) -> str:
    """Run a shell command and return its standard output.

    Raises:
        OSError: If the command cannot be started
        subprocess.CalledProcessError: If the command exits with a non-zero status
    """
    result = subprocess.run(cmd, shell=True, capture_output=True, text=True, check=True)
    return result.stdout


@dataclass
class Config:
    """cardamom configuration."""

    host: str
    port: int
    login: str
    passwd_cmd: str
    sync_dir: Path
    ssl: bool = True
    timeout: float | None = None

    @property
    def base_url(self) -> str:
        """Scheme, host and port of the server."""
        scheme = "https" if self.ssl else "http"
        return f"{scheme}://{self.host}:{self.port}"

    def file_path(self, name: str) -> Path:
        """Path of a file in the sync directory."""
        return self.sync_dir / name

    @property
    def cache_path(self) -> Path:
        return self.file_path(CACHE_FILE)

    def passwd(self) -> str:
        """Retrieve the password by running ``passwd-cmd``.

        Raises:
            AuthError: If the command fails
        """
        try:
            output = run_cmd(self.passwd_cmd)
        except (OSError, subprocess.CalledProcessError) as e:
            raise AuthError("Could not retrieve password") from e
        return output.rstrip("\n")

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Config:
        """Build a configuration from a parsed YAML mapping.

        Raises:
            ConfigError: If a key is missing or has the wrong type
        """
        required: dict[str, type] = {
            "host": str,
            "port": int,
            "login": str,
            "passwd-cmd": str,
            "sync-dir": str,
        }
        for key, expected_type in required.items():
            if key not in data:
                raise ConfigError(f"Missing configuration key '{key}'")
            value = data[key]
            if not isinstance(value, expected_type) or isinstance(value, bool):
                raise ConfigError(
                    f"Invalid type for '{key}': expected {expected_type.__name__}, "
                    f"got {type(value).__name__}"
                )

        port = data["port"]
        if not 0 < port < 65536:
            raise ConfigError(f"port must be between 1 and 65535, got {port}")

        ssl = data.get("ssl", True)
        if not isinstance(ssl, bool):
            raise ConfigError(f"Invalid type for 'ssl': expected bool, got {type(ssl).__name__}")

        timeout = data.get("timeout")
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
                raise ConfigError(
                    f"Invalid type for 'timeout': expected number, got {type(timeout).__name__}"
                )
            if timeout <= 0:
                raise ConfigError(f"timeout must be > 0, got {timeout}")

        return Config(
            host=data["host"],
            port=port,
            login=data["login"],
            passwd_cmd=data["passwd-cmd"],
            sync_dir=Path(data["sync-dir"]).expanduser(),
            ssl=ssl,
            timeout=float(timeout) if timeout is not None else None,
        )

    @staticmethod
    def from_file(path: Path | str | None = None) -> Config:
        """Load the configuration file.

        Args:
            path: Configuration file, looked up in the default locations if None

        Raises:
            ConfigError: If the file cannot be found, read or validated
        """
        path = Path(path) if path is not None else find_config_path()

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Cannot parse config file {path}") from e
        except OSError as e:
            raise ConfigError(f"Cannot open config file {path}") from e

        if not isinstance(data, dict):
            raise ConfigError(
                f"Configuration file must contain a YAML mapping, got {type(data).__name__}"
            )

        logger.debug(f"Loaded configuration from {path}")
        return Config.from_dict(data)
