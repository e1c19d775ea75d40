"""Pytest configuration and fixtures for slugbuild tests"""
import io
import json
import os
import tarfile
import tempfile
from pathlib import Path

import pytest

from slugbuild.config import Config
from slugbuild.context import BuildContext


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for test files"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def build_dirs(temp_dir):
    """Provide empty build, cache and env directories"""
    build = temp_dir / "build"
    cache = temp_dir / "cache"
    env = temp_dir / "env"
    for d in (build, cache, env):
        d.mkdir()
    return build, cache, env


@pytest.fixture
def ctx(build_dirs):
    """Provide a BuildContext isolated from SLUGBUILD_* variables in the real environment"""
    build, cache, env = build_dirs
    config = Config(build_dir=build, environ={})
    return BuildContext(
        build_dir=build,
        cache_dir=cache,
        env_dir=env,
        config=config,
        env={"PATH": os.environ.get("PATH", "/usr/bin:/bin")},
    )


@pytest.fixture
def write_package_json(build_dirs):
    """Write a package.json into the build directory"""
    build, _, _ = build_dirs

    def _write(data):
        (build / "package.json").write_text(json.dumps(data))
        return build / "package.json"

    return _write


@pytest.fixture
def make_tarball(temp_dir):
    """Create a .tar.gz from a mapping of member name -> file contents"""

    def _make(files, name="archive.tar.gz"):
        archive = temp_dir / name
        with tarfile.open(archive, "w:gz") as tar:
            for member, content in files.items():
                data = content.encode()
                info = tarfile.TarInfo(member)
                info.size = len(data)
                info.mode = 0o755
                tar.addfile(info, io.BytesIO(data))
        return archive

    return _make


@pytest.fixture
def fake_fetch():
    """Stand-in for download.fetch_tarball that lays out a runtime with a bin/ directory"""
    calls = []

    def _fetch(url, dest, strip_components=0, timeout=60):
        calls.append({"url": url, "dest": dest, "strip_components": strip_components})
        (dest / "bin").mkdir(parents=True, exist_ok=True)
        (dest / "bin" / "tool").write_text("#!/bin/sh\n")
        return dest

    _fetch.calls = calls
    return _fetch
