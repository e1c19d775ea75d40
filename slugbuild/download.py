"""
Runtime tarball download and extraction.

Downloads are streamed to a temporary file next to the destination and only
renamed into place once complete, so an interrupted build never leaves a
truncated archive behind.
"""
from __future__ import annotations

import logging
import os
import tarfile
import tempfile
from pathlib import Path
from typing import List

import requests


logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def download(url: str, dest: Path, timeout: float = 60) -> Path:
    """Download ``url`` to ``dest``.

    Raises:
        RuntimeError: on connection errors or a non-2xx response.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Downloading {url} -> {dest}")
    try:
        with requests.get(url, stream=True, timeout=timeout) as response:
            if not response.ok:
                raise RuntimeError(f"Download of {url} failed with HTTP {response.status_code}")
            fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}.")
            try:
                with os.fdopen(fd, "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                os.replace(tmp_name, dest)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
    except requests.RequestException as e:
        raise RuntimeError(f"Download of {url} failed: {e}") from e
    return dest


def _strip_members(tar: tarfile.TarFile, strip_components: int) -> List[tarfile.TarInfo]:
    if strip_components <= 0:
        return tar.getmembers()

    def _strip(name: str) -> str:
        parts = [p for p in name.split("/") if p not in ("", ".")]
        return "/".join(parts[strip_components:])

    members: List[tarfile.TarInfo] = []
    for member in tar.getmembers():
        stripped = _strip(member.name)
        if not stripped:
            continue
        member.name = stripped
        if member.islnk():
            member.linkname = _strip(member.linkname)
        members.append(member)
    return members


def extract_tarball(archive: Path, dest: Path, strip_components: int = 0) -> Path:
    """Extract a gzipped tarball into ``dest``.

    ``strip_components`` drops that many leading path elements from every
    member, like ``tar --strip-components``. Members that would land outside
    ``dest`` are rejected.
    """
    dest.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(archive, "r:gz") as tar:
            members = _strip_members(tar, strip_components)
            tar.extractall(dest, members=members, filter="data")
    except tarfile.TarError as e:
        raise RuntimeError(f"Failed to extract {archive}: {e}") from e
    return dest


def fetch_tarball(url: str, dest: Path, strip_components: int = 0, timeout: float = 60) -> Path:
    """Download a tarball and extract it into ``dest``; the archive is removed afterwards."""
    with tempfile.TemporaryDirectory(prefix="slugbuild-") as tmpdir:
        archive = Path(tmpdir) / "archive.tar.gz"
        download(url, archive, timeout=timeout)
        size_mb = archive.stat().st_size / (1024 * 1024)
        logger.debug(f"Fetched {url} ({size_mb:.2f} MB)")
        extract_tarball(archive, dest, strip_components=strip_components)
    return dest
