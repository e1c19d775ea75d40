from __future__ import annotations

import logging
import shutil
from typing import TYPE_CHECKING, Any, Dict

from .. import paths
from ..download import fetch_tarball
from ..log import indent
from ..step import Step

if TYPE_CHECKING:
    from ..context import BuildContext


logger = logging.getLogger(__name__)


def parse_ruby_version(text: str) -> str:
    """Normalize the contents of a ``.ruby-version`` file.

    Example:
        >>> parse_ruby_version("ruby-2.1.5\\n")
        '2.1.5'
    """
    version = text.strip().splitlines()[0].strip() if text.strip() else ""
    if version.startswith("ruby-"):
        version = version[len("ruby-"):]
    return version


class RubyVersionStep(Step):
    """Pick the Ruby version from ``.ruby-version`` or the configured default."""

    title = "Determining Ruby version"

    def run(self, ctx: "BuildContext") -> Dict[str, Any]:
        version_file = ctx.build_dir / paths.RUBY_VERSION_FILE
        version = ""
        source = "default"
        if version_file.is_file():
            version = parse_ruby_version(version_file.read_text())
            source = paths.RUBY_VERSION_FILE
        if not version:
            version = ctx.config.default_ruby_version
            source = "default"
        ctx.ruby_version = version
        logger.info(indent(f"Using Ruby {version} ({source})"))
        return {"status": "success", "version": version, "source": source}


class RubyInstallStep(Step):
    """Fetch the Ruby runtime into the cache (once per version) and vendor it.

    Cached runtimes for other versions are removed so the cache only holds
    what the last build used.
    """

    title = "Installing Ruby"

    def run(self, ctx: "BuildContext") -> Dict[str, Any]:
        version = ctx.ruby_version or ctx.config.default_ruby_version
        cached = paths.ruby_cache_dir(ctx.cache_dir, version)
        downloaded = False

        if not cached.is_dir():
            url = ctx.config.ruby_url.format(version=version)
            logger.info(indent(f"Downloading Ruby {version}"))
            staging = cached.with_name(cached.name + ".partial")
            if staging.exists():
                shutil.rmtree(staging)
            fetch_tarball(url, staging, timeout=ctx.config.download_timeout)
            staging.rename(cached)
            downloaded = True
        else:
            logger.info(indent(f"Using cached Ruby {version}"))

        for entry in paths.ruby_cache_root(ctx.cache_dir).iterdir():
            if entry.name.startswith("ruby-") and entry != cached:
                logger.debug(f"Removing stale cached runtime {entry}")
                if entry.is_dir():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()

        vendor = paths.ruby_vendor_dir(ctx.build_dir)
        if vendor.exists():
            shutil.rmtree(vendor)
        vendor.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(cached, vendor, symlinks=True)
        ctx.prepend_path(vendor / "bin")
        return {"status": "success", "version": version, "downloaded": downloaded, "path": str(vendor)}


class GemsetInstallStep(Step):
    """Install gems into the app's gemset (``.gs``) and cache it.

    Installs the dependency manager and gemset tool gems, then runs
    ``dep install`` when the app has a ``.gems`` manifest.
    """

    title = "Installing gems"

    def run(self, ctx: "BuildContext") -> Dict[str, Any]:
        gemset = paths.gemset_dir(ctx.build_dir)
        cached = paths.gemset_cache_dir(ctx.cache_dir)
        restored = False
        if not gemset.exists() and cached.is_dir():
            logger.info(indent("Restoring gemset from cache"))
            shutil.copytree(cached, gemset, symlinks=True)
            restored = True
        gemset.mkdir(parents=True, exist_ok=True)

        ctx.env["GEM_HOME"] = str(gemset)
        ctx.env["GEM_PATH"] = str(gemset)
        ctx.prepend_path(gemset / "bin")
        env = ctx.install_env()

        gems = ctx.config.gems
        if gems:
            res = self.command(ctx, ["gem", "install", "--no-document", *gems], env=env)
            if res["status"] != "success":
                return res

        ran_dep = False
        if (ctx.build_dir / paths.GEMS_FILE).is_file():
            res = self.command(ctx, ["dep", "install"], env=env)
            if res["status"] != "success":
                return res
            ran_dep = True

        if cached.exists():
            shutil.rmtree(cached)
        cached.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(gemset, cached, symlinks=True)
        return {"status": "success", "restored": restored, "gems": gems, "dep_install": ran_dep}
