"""Configuration management for slugbuild."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import yaml


LOCAL_CONFIG_FILENAME = ".slugbuild.yaml"
ENV_PREFIX = "SLUGBUILD_"

DEFAULTS: dict[str, Any] = {
    "default_ruby_version": "2.2.2",
    "ruby_url": "https://s3-external-1.amazonaws.com/heroku-buildpack-ruby/cedar-14/ruby-{version}.tgz",
    "default_node_range": "0.10.x",
    "node_url": "https://s3pository.heroku.com/node/v{version}/node-v{version}-linux-x64.tar.gz",
    "semver_url": "https://semver.io/node/resolve",
    "telemetry_url": "https://heroku-buildpack-nodejs.herokuapp.com",
    "telemetry": True,
    "gems": ["dep", "gs"],
    "env_blacklist": r"^(PATH|GIT_DIR|CPATH|CPPATH|LD_PRELOAD|LIBRARY_PATH)$",
    "download_timeout": 60,
    # 0 disables the timeout
    "command_timeout": 0,
    "npm_retries": 0,
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise RuntimeError(f"Failed to load config from {path}: {e}") from e
    if not isinstance(data, dict):
        raise RuntimeError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


class Config:
    """Buildpack configuration with hierarchical lookup.

    Config hierarchy (higher priority first):
    1. Environment variables (``SLUGBUILD_<KEY>``)
    2. Build directory config (``<build_dir>/.slugbuild.yaml``)
    3. Explicit config file (``--config``)
    4. Built-in defaults

    Values from every source are coerced to the type of the built-in
    default (bool, number, list, str) when one exists; environment values
    are strings, YAML values may already be typed. A value that cannot be
    coerced raises RuntimeError naming its source.
    """

    def __init__(
        self,
        build_dir: Optional[Path] = None,
        config_path: Optional[Path] = None,
        environ: Optional[dict[str, str]] = None,
    ):
        self.build_dir = build_dir
        self.config_path = config_path
        self.environ = os.environ if environ is None else environ
        self._local_data: dict[str, Any] = {}
        self._file_data: dict[str, Any] = {}
        self.load()

    @property
    def local_config_path(self) -> Optional[Path]:
        if self.build_dir is None:
            return None
        return self.build_dir / LOCAL_CONFIG_FILENAME

    def load(self) -> None:
        """Load configuration from file(s)."""
        if self.config_path is not None:
            if not self.config_path.exists():
                raise RuntimeError(f"Config file not found: {self.config_path}")
            self._file_data = _load_yaml(self.config_path)
        else:
            self._file_data = {}

        local = self.local_config_path
        if local is not None and local.exists():
            self._local_data = _load_yaml(local)
        else:
            self._local_data = {}

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value with hierarchical lookup."""
        env_key = ENV_PREFIX + key.upper()
        if env_key in self.environ:
            return self._coerce(key, self.environ[env_key], env_key)

        if key in self._local_data:
            return self._coerce(key, self._local_data[key], f"{key} in {self.local_config_path}")

        if key in self._file_data:
            return self._coerce(key, self._file_data[key], f"{key} in {self.config_path}")

        if key in DEFAULTS:
            return DEFAULTS[key]

        return default

    def _coerce(self, key: str, value: Any, source: str) -> Any:
        template = DEFAULTS.get(key)
        if template is None:
            return value
        if isinstance(template, bool):
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in _TRUE:
                return True
            if text in _FALSE:
                return False
            raise RuntimeError(f"Invalid boolean for {source}: {value!r}")
        if isinstance(template, int):
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return value
            if isinstance(value, str):
                for parse in (int, float):
                    try:
                        return parse(value)
                    except ValueError:
                        continue
            raise RuntimeError(f"Invalid number for {source}: {value!r}")
        if isinstance(template, list):
            if isinstance(value, str):
                return value.split()
            if isinstance(value, list) and all(isinstance(v, str) for v in value):
                return value
            raise RuntimeError(f"Invalid list for {source}: {value!r}")
        if isinstance(value, (dict, list)) or value is None:
            raise RuntimeError(f"Invalid value for {source}: {value!r}")
        return str(value)

    @property
    def default_ruby_version(self) -> str:
        return str(self.get("default_ruby_version"))

    @property
    def default_node_range(self) -> str:
        return str(self.get("default_node_range"))

    @property
    def ruby_url(self) -> str:
        return str(self.get("ruby_url"))

    @property
    def node_url(self) -> str:
        return str(self.get("node_url"))

    @property
    def semver_url(self) -> str:
        return str(self.get("semver_url"))

    @property
    def telemetry_url(self) -> str:
        return str(self.get("telemetry_url"))

    @property
    def telemetry_enabled(self) -> bool:
        return bool(self.get("telemetry"))

    @property
    def gems(self) -> list[str]:
        return list(self.get("gems") or [])

    @property
    def env_blacklist(self) -> str:
        return str(self.get("env_blacklist"))

    @property
    def download_timeout(self) -> float:
        return float(self.get("download_timeout"))

    @property
    def command_timeout(self) -> Optional[float]:
        """Per-command timeout in seconds for gem, npm and make; None when unset."""
        value = float(self.get("command_timeout"))
        return value if value > 0 else None

    @property
    def npm_retries(self) -> int:
        return max(0, int(self.get("npm_retries")))
