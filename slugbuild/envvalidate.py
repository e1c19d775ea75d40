from __future__ import annotations

import shutil
from dataclasses import dataclass
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from .context import BuildContext


@dataclass
class EnvIssue:
    kind: str         # 'tool_missing'
    name: str         # tool name
    message: str


class EnvValidator:
    """Base class for environment validators that collect issues without raising."""

    def run(self, ctx: "BuildContext") -> List[EnvIssue]:
        raise NotImplementedError


class ToolValidator(EnvValidator):
    """Validate that required executables are on the build PATH."""

    def __init__(self, tools: List[str]) -> None:
        self.tools = list(tools)

    def run(self, ctx: "BuildContext") -> List[EnvIssue]:
        issues: List[EnvIssue] = []
        for name in self.tools:
            if not shutil.which(name, path=ctx.env.get("PATH")):
                issues.append(EnvIssue(kind="tool_missing", name=name, message=f"Required tool '{name}' not found on PATH"))
        return issues
