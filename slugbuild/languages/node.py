from __future__ import annotations

import logging
import re
import shutil
from typing import TYPE_CHECKING, Any, Dict, Optional

import requests

from .. import paths
from ..download import fetch_tarball
from ..log import indent
from ..step import Step

if TYPE_CHECKING:
    from ..context import BuildContext


logger = logging.getLogger(__name__)

EXACT_VERSION_RE = re.compile(r"^v?(\d+\.\d+\.\d+)$")


def resolve_node_version(requested: str, semver_url: str, timeout: float = 60) -> str:
    """Resolve a semver range to a concrete Node.js version.

    Exact versions are used verbatim; ranges are resolved by the configured
    semver service, which answers ``GET <url>?range=<range>`` with a bare
    version string.

    Raises:
        RuntimeError: if the service fails or returns an empty answer.
    """
    requested = requested.strip()
    m = EXACT_VERSION_RE.match(requested)
    if m:
        return m.group(1)
    try:
        response = requests.get(semver_url, params={"range": requested}, timeout=timeout)
    except requests.RequestException as e:
        raise RuntimeError(f"Could not resolve node version range '{requested}': {e}") from e
    if not response.ok:
        raise RuntimeError(f"Could not resolve node version range '{requested}': HTTP {response.status_code}")
    version = response.text.strip()
    m = EXACT_VERSION_RE.match(version)
    if not m:
        raise RuntimeError(f"No node version matches '{requested}' (resolver answered {version!r})")
    return m.group(1)


def requested_node_range(package: Dict[str, Any]) -> Optional[str]:
    engines = package.get("engines")
    if not isinstance(engines, dict):
        return None
    value = engines.get("node")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class NodeVersionStep(Step):
    """Resolve ``engines.node`` and record it in ``.heroku/node-version``."""

    title = "Resolving node version"

    def run(self, ctx: "BuildContext") -> Dict[str, Any]:
        package = ctx.read_package_json()
        requested = requested_node_range(package)
        if requested is None:
            requested = ctx.config.default_node_range
            logger.info(indent(f"No engines.node in package.json, defaulting to {requested}"))
        else:
            logger.info(indent(f"Requested node range: {requested}"))

        version = resolve_node_version(requested, ctx.config.semver_url, timeout=ctx.config.download_timeout)
        ctx.node_version = version
        version_file = paths.node_version_path(ctx.build_dir)
        version_file.parent.mkdir(parents=True, exist_ok=True)
        version_file.write_text(version + "\n")
        logger.info(indent(f"Resolved node version: {version}"))
        return {"status": "success", "requested": requested, "version": version}


class NodeInstallStep(Step):
    """Download Node.js into ``vendor/node`` and put it on PATH."""

    title = "Installing Node.js"

    def run(self, ctx: "BuildContext") -> Dict[str, Any]:
        version = ctx.node_version
        if not version:
            return {"status": "error", "error": "node version has not been resolved"}
        vendor = paths.node_vendor_dir(ctx.build_dir)
        if vendor.exists():
            shutil.rmtree(vendor)
        url = ctx.config.node_url.format(version=version)
        logger.info(indent(f"Downloading and installing node {version}"))
        fetch_tarball(url, vendor, strip_components=1, timeout=ctx.config.download_timeout)
        ctx.prepend_path(vendor / "bin")
        return {"status": "success", "version": version, "path": str(vendor)}


class NpmInstallStep(Step):
    """Install npm dependencies, reusing ``node_modules`` where possible.

    - ``node_modules`` checked in: ``npm prune`` and ``npm rebuild``.
    - otherwise restore the cached tree, rebuilding it if it was built for
      a different node version.
    - then ``npm install --production``.

    Config:
    - timeout, retries – passed to each npm command (from the
      ``command_timeout`` and ``npm_retries`` config keys)
    """

    title = "Installing dependencies"

    def validate(self, ctx: "BuildContext") -> bool:
        return ctx.package_json_path.is_file()

    def _npm(self, ctx: "BuildContext", *args: str) -> Dict[str, Any]:
        res = self.command(ctx, ["npm", *args], env=ctx.install_env())
        res["executed_cmd"] = " ".join(["npm", *args])
        return res

    def run(self, ctx: "BuildContext") -> Dict[str, Any]:
        node_modules = ctx.build_dir / paths.NODE_MODULES
        cache = paths.node_cache_dir(ctx.cache_dir)
        cached_modules = cache / paths.NODE_MODULES
        actions: list[str] = []

        if node_modules.exists():
            logger.info(indent("Found existing node_modules directory; skipping cache"))
            for args in (("prune",), ("rebuild",)):
                res = self._npm(ctx, *args)
                if res["status"] != "success":
                    return res
                actions.append(res["executed_cmd"])
        elif cached_modules.is_dir():
            logger.info(indent("Restoring node modules from cache"))
            shutil.copytree(cached_modules, node_modules, symlinks=True)
            actions.append("restore")
            cached_version = _read_text(cache / paths.NODE_VERSION_FILENAME)
            if cached_version != ctx.node_version:
                logger.info(indent(f"Node version changed ({cached_version or 'unknown'} -> {ctx.node_version}); rebuilding"))
                res = self._npm(ctx, "rebuild")
                if res["status"] != "success":
                    return res
                actions.append(res["executed_cmd"])

        res = self._npm(ctx, "install", "--production")
        if res["status"] != "success":
            return res
        actions.append(res["executed_cmd"])
        return {"status": "success", "actions": actions}


class NodeCacheStep(Step):
    """Replace the node cache with this build's node_modules and version."""

    title = "Caching node_modules for future builds"

    def run(self, ctx: "BuildContext") -> Dict[str, Any]:
        cache = paths.node_cache_dir(ctx.cache_dir)
        if cache.exists():
            shutil.rmtree(cache)
        cache.mkdir(parents=True)

        cached: list[str] = []
        node_modules = ctx.build_dir / paths.NODE_MODULES
        if node_modules.is_dir():
            shutil.copytree(node_modules, cache / paths.NODE_MODULES, symlinks=True)
            cached.append(paths.NODE_MODULES)
        if ctx.package_json_path.is_file():
            shutil.copy2(ctx.package_json_path, cache / paths.PACKAGE_JSON)
            cached.append(paths.PACKAGE_JSON)
        version_file = paths.node_version_path(ctx.build_dir)
        if version_file.is_file():
            shutil.copy2(version_file, cache / paths.NODE_VERSION_FILENAME)
            cached.append(paths.NODE_VERSION_FILENAME)
        return {"status": "success", "cached": cached}


def _read_text(path) -> Optional[str]:
    if not path.is_file():
        return None
    return path.read_text().strip() or None
