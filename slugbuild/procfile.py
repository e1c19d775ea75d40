from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict

from . import paths
from .log import indent
from .step import Step

if TYPE_CHECKING:
    from .context import BuildContext


logger = logging.getLogger(__name__)


def default_process_types(ctx: "BuildContext") -> Dict[str, str]:
    """Infer the web process from ``scripts.start`` or a ``server.js``."""
    scripts = ctx.read_package_json().get("scripts")
    if isinstance(scripts, dict) and scripts.get("start"):
        return {"web": "npm start"}
    if (ctx.build_dir / "server.js").is_file():
        return {"web": "node server.js"}
    return {}


class ProcfileStep(Step):
    """Write a Procfile when the app has none and a web process can be inferred."""

    title = "Checking Procfile"

    def run(self, ctx: "BuildContext") -> Dict[str, Any]:
        procfile = ctx.build_dir / paths.PROCFILE
        if procfile.exists():
            return {"status": "skipped", "reason": "Procfile already present"}
        processes = default_process_types(ctx)
        if not processes:
            return {"status": "skipped", "reason": "No start script or server.js; not writing a Procfile"}
        procfile.write_text("".join(f"{name}: {command}\n" for name, command in processes.items()))
        for name, command in processes.items():
            logger.info(indent(f"Adding {name}: {command} to Procfile"))
        return {"status": "success", "processes": processes}
