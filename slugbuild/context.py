from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from . import paths
from .config import Config
from .envdir import load_env_dir


@dataclass
class BuildContext:
    """State shared by every step of one build.

    ``env`` is the environment handed to subprocesses; steps that vendor a
    runtime prepend its ``bin`` directory. ``user_env`` holds the variables
    read from the env dir and is only merged in for dependency installation.
    """

    build_dir: Path
    cache_dir: Path
    env_dir: Optional[Path] = None
    config: Optional[Config] = None
    env: Dict[str, str] = field(default_factory=lambda: dict(os.environ))
    user_env: Dict[str, str] = field(default_factory=dict)
    ruby_version: Optional[str] = None
    node_version: Optional[str] = None

    def __post_init__(self) -> None:
        self.build_dir = Path(self.build_dir)
        self.cache_dir = Path(self.cache_dir)
        if self.env_dir is not None:
            self.env_dir = Path(self.env_dir)
        if self.config is None:
            self.config = Config(build_dir=self.build_dir)

    @classmethod
    def create(
        cls,
        build_dir: Path,
        cache_dir: Path,
        env_dir: Optional[Path] = None,
        config_path: Optional[Path] = None,
    ) -> "BuildContext":
        """Build a context for a compile run, loading config and the env dir."""
        config = Config(build_dir=Path(build_dir), config_path=config_path)
        ctx = cls(build_dir=build_dir, cache_dir=cache_dir, env_dir=env_dir, config=config)
        ctx.user_env = load_env_dir(ctx.env_dir, config.env_blacklist)
        return ctx

    def prepend_path(self, *dirs: Path) -> None:
        current = self.env.get("PATH", "")
        parts = [str(d) for d in dirs]
        if current:
            parts.append(current)
        self.env["PATH"] = os.pathsep.join(parts)

    def install_env(self) -> Dict[str, str]:
        merged = dict(self.env)
        merged.update(self.user_env)
        # PATH from the build env wins so vendored runtimes stay first
        merged["PATH"] = self.env.get("PATH", "")
        return merged

    @property
    def package_json_path(self) -> Path:
        return self.build_dir / paths.PACKAGE_JSON

    def read_package_json(self) -> Dict[str, Any]:
        path = self.package_json_path
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text())
        except ValueError as e:
            raise RuntimeError(f"Invalid JSON in {path}: {e}") from e
        if not isinstance(data, dict):
            raise RuntimeError(f"{path} must contain a JSON object")
        return data
