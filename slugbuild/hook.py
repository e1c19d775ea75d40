from __future__ import annotations

import logging
import threading
from abc import ABC
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import requests

from .log import indent, topic

if TYPE_CHECKING:
    from .context import BuildContext


logger = logging.getLogger(__name__)


class Hook(ABC):
    """Base Hook with no-op defaults.

    Hooks observe pipeline and step execution. Implementations must not
    raise: a hook failure never fails the build.
    """

    def on_pipeline_start(self, pipeline: Any, ctx: "BuildContext") -> None:  # noqa: D401
        return None

    def on_pipeline_end(self, pipeline: Any, results: Dict[str, Any], ctx: "BuildContext") -> None:  # noqa: D401
        return None

    def on_step_start(self, step: Any, ctx: "BuildContext") -> None:  # noqa: D401
        return None

    def on_step_end(self, step: Any, result: Dict[str, Any], ctx: "BuildContext") -> None:  # noqa: D401
        return None

    def on_error(self, scope: str, error: Exception, ctx: "BuildContext") -> None:  # noqa: D401
        return None


class MultiHook(Hook):
    """Fan lifecycle events out to several hooks in order."""

    def __init__(self, hooks: List[Hook]) -> None:
        self.hooks = list(hooks)

    def on_pipeline_start(self, pipeline: Any, ctx: "BuildContext") -> None:
        for h in self.hooks:
            h.on_pipeline_start(pipeline, ctx)

    def on_pipeline_end(self, pipeline: Any, results: Dict[str, Any], ctx: "BuildContext") -> None:
        for h in self.hooks:
            h.on_pipeline_end(pipeline, results, ctx)

    def on_step_start(self, step: Any, ctx: "BuildContext") -> None:
        for h in self.hooks:
            h.on_step_start(step, ctx)

    def on_step_end(self, step: Any, result: Dict[str, Any], ctx: "BuildContext") -> None:
        for h in self.hooks:
            h.on_step_end(step, result, ctx)

    def on_error(self, scope: str, error: Exception, ctx: "BuildContext") -> None:
        for h in self.hooks:
            h.on_error(scope, error, ctx)


class LogHook(Hook):
    """Write buildpack-style topic lines for each step."""

    def on_step_start(self, step: Any, ctx: "BuildContext") -> None:
        title = getattr(step, "title", "") or getattr(step, "id", "?")
        logger.info(topic(title))

    def on_step_end(self, step: Any, result: Dict[str, Any], ctx: "BuildContext") -> None:
        status = result.get("status")
        if status == "error":
            logger.error(indent(f"! {result.get('error', 'failed')}"))
        elif status == "skipped" and result.get("reason"):
            logger.info(indent(str(result["reason"])))

    def on_error(self, scope: str, error: Exception, ctx: "BuildContext") -> None:
        logger.error(indent(f"! {scope}: {error}"))


class TelemetryHook(Hook):
    """POST the app's package.json to a collection endpoint.

    The request runs on a daemon thread when the pipeline starts; its outcome
    is never awaited or checked, and failures are only logged at DEBUG.
    """

    def __init__(self, url: str, timeout: Optional[float] = 10.0) -> None:
        self.url = url
        self.timeout = timeout or 10.0
        self.thread: Optional[threading.Thread] = None

    def on_pipeline_start(self, pipeline: Any, ctx: "BuildContext") -> None:
        package_json = ctx.package_json_path
        if not package_json.is_file():
            return None
        self.thread = threading.Thread(target=self._post, args=(package_json,), daemon=True)
        self.thread.start()

    def _post(self, package_json: Path) -> None:
        try:
            requests.post(
                self.url,
                data=package_json.read_bytes(),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except (OSError, requests.RequestException) as e:
            logger.debug(f"Telemetry POST to {self.url} failed: {e}")
