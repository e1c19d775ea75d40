"""
slugbuild: a buildpack that vendors Ruby and Node.js into an app slug.

This package provides the build primitives:
- BuildContext: build/cache/env directories, the build environment and resolved versions.
- Step: Base class for build steps; CommandStep runs external tools.
- Runner: Sequential, fail-fast runner for steps.
- Pipeline: Compose runners; build_pipeline() assembles the standard buildpack.
- Hook: Lifecycle callbacks (build log topics, best-effort telemetry).
"""

from .config import Config
from .context import BuildContext
from .step import Step, CommandStep
from .runner import Runner
from .pipeline import Pipeline, build_pipeline, exit_code_for
from .hook import Hook, LogHook, MultiHook, TelemetryHook
from .envvalidate import EnvValidator, ToolValidator
from .procfile import ProcfileStep, default_process_types
from .profile import ProfileScriptsStep
from .steps import MakeCompileStep
from .languages import (
    RubyVersionStep,
    RubyInstallStep,
    GemsetInstallStep,
    NodeVersionStep,
    NodeInstallStep,
    NpmInstallStep,
    NodeCacheStep,
)

__all__ = [
    "Config",
    "BuildContext",
    "Step",
    "CommandStep",
    "Runner",
    "Pipeline",
    "build_pipeline",
    "exit_code_for",
    # Hooks
    "Hook",
    "LogHook",
    "MultiHook",
    "TelemetryHook",
    # Env validation
    "EnvValidator",
    "ToolValidator",
    # Ruby
    "RubyVersionStep",
    "RubyInstallStep",
    "GemsetInstallStep",
    # Node
    "NodeVersionStep",
    "NodeInstallStep",
    "NpmInstallStep",
    "NodeCacheStep",
    # Finishing steps
    "ProcfileStep",
    "default_process_types",
    "ProfileScriptsStep",
    "MakeCompileStep",
]
