from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .envvalidate import EnvValidator, ToolValidator
from .hook import Hook, LogHook, MultiHook, TelemetryHook
from .languages.node import NodeCacheStep, NodeInstallStep, NodeVersionStep, NpmInstallStep
from .languages.ruby import GemsetInstallStep, RubyInstallStep, RubyVersionStep
from .procfile import ProcfileStep
from .profile import ProfileScriptsStep
from .runner import Runner, call_hook
from .steps import MakeCompileStep

if TYPE_CHECKING:
    from .context import BuildContext


logger = logging.getLogger(__name__)


class Pipeline:
    """Compose runners into a build.

    Runners execute in order; once a runner reports an error the remaining
    runners are not started.
    """

    def __init__(
        self,
        runners: List[Runner],
        hook: Optional[Hook] = None,
        validators: Optional[List[EnvValidator]] = None,
    ) -> None:
        self.runners = runners
        self.hook = hook
        self.validators = validators or []

    def validate_environment(self, ctx: "BuildContext") -> Dict[str, Any]:
        """Run all configured validators and return a report without raising."""
        issues: List[Dict[str, Any]] = []
        for v in self.validators:
            for iss in v.run(ctx):
                issues.append({"kind": iss.kind, "name": iss.name, "message": iss.message})
        return {"status": "ok" if not issues else "invalid_env", "issues": issues}

    def execute(self, ctx: "BuildContext") -> Dict[str, Any]:
        for r in self.runners:
            if r.hook is None:
                r.hook = self.hook

        if self.validators:
            env_report = self.validate_environment(ctx)
            if env_report["status"] != "ok":
                for iss in env_report["issues"]:
                    logger.error(f" !     {iss['message']}")
                return env_report

        call_hook(self.hook, "on_pipeline_start", self, ctx)

        results: Dict[str, Dict[str, Any]] = {}
        status = "ok"
        for i, r in enumerate(self.runners):
            steps = r.execute(ctx)
            results[f"runner_{i}"] = steps
            if any(res.get("status") == "error" for res in steps.values()):
                status = "error"
                break

        final = {"status": status, "runners": results}
        call_hook(self.hook, "on_pipeline_end", self, final, ctx)
        return final


def first_error(results: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Return the first failed step result of a pipeline run, if any."""
    for runner_result in results.get("runners", {}).values():
        for step_result in runner_result.values():
            if step_result.get("status") == "error":
                return step_result
    return None


def exit_code_for(results: Dict[str, Any]) -> int:
    """Map pipeline results to a process exit code.

    The failing subprocess's return code is propagated when there is one.
    """
    if results.get("status") == "invalid_env":
        return 1
    failed = first_error(results)
    if failed is None:
        return 0
    rc = failed.get("returncode")
    if isinstance(rc, int) and rc > 0:
        return rc
    return 1


def build_pipeline(ctx: "BuildContext") -> Pipeline:
    """Assemble the standard buildpack pipeline: Ruby, gems, Node, npm, Procfile, profile, make."""
    hooks: List[Hook] = [LogHook()]
    if ctx.config.telemetry_enabled:
        hooks.append(TelemetryHook(ctx.config.telemetry_url))

    commands = {"timeout": ctx.config.command_timeout}

    ruby = Runner([
        RubyVersionStep("ruby-version"),
        RubyInstallStep("ruby-install"),
        GemsetInstallStep("gemset-install", commands),
    ])
    node = Runner([
        NodeVersionStep("node-version"),
        NodeInstallStep("node-install"),
        NpmInstallStep("npm-install", dict(commands, retries=ctx.config.npm_retries)),
        NodeCacheStep("node-cache"),
    ])
    finish = Runner([
        ProcfileStep("procfile"),
        ProfileScriptsStep("profile"),
        MakeCompileStep("make-compile", dict(commands)),
    ])
    return Pipeline(
        [ruby, node, finish],
        hook=MultiHook(hooks),
        validators=[ToolValidator(["make"])],
    )
