"""Path layout of the build and cache directories."""
from __future__ import annotations

from pathlib import Path


VENDOR_DIRNAME = "vendor"
GEMSET_DIRNAME = ".gs"
PROFILE_DIRNAME = ".profile.d"
HEROKU_DIRNAME = ".heroku"
NODE_VERSION_FILENAME = "node-version"
PACKAGE_JSON = "package.json"
RUBY_VERSION_FILE = ".ruby-version"
GEMS_FILE = ".gems"
PROCFILE = "Procfile"
NODE_MODULES = "node_modules"

RUBY_CACHE_SUBDIR = "ruby"
NODE_CACHE_SUBDIR = "node"


def ruby_vendor_dir(build_dir: Path) -> Path:
    """Directory the Ruby runtime is copied into (``vendor/ruby``)."""
    return build_dir / VENDOR_DIRNAME / "ruby"


def node_vendor_dir(build_dir: Path) -> Path:
    """Directory the Node.js runtime is extracted into (``vendor/node``)."""
    return build_dir / VENDOR_DIRNAME / "node"


def gemset_dir(build_dir: Path) -> Path:
    return build_dir / GEMSET_DIRNAME


def profile_dir(build_dir: Path) -> Path:
    return build_dir / PROFILE_DIRNAME


def node_version_path(build_dir: Path) -> Path:
    return build_dir / HEROKU_DIRNAME / NODE_VERSION_FILENAME


def ruby_cache_root(cache_dir: Path) -> Path:
    return cache_dir / RUBY_CACHE_SUBDIR


def ruby_cache_dir(cache_dir: Path, version: str) -> Path:
    """Cached, extracted Ruby runtime for ``version``.

    Example:
        >>> ruby_cache_dir(Path("/cache"), "2.2.2")
        PosixPath('/cache/ruby/ruby-2.2.2')
    """
    return ruby_cache_root(cache_dir) / f"ruby-{version}"


def gemset_cache_dir(cache_dir: Path) -> Path:
    return ruby_cache_root(cache_dir) / "gs"


def node_cache_dir(cache_dir: Path) -> Path:
    return cache_dir / NODE_CACHE_SUBDIR

