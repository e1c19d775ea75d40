from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from .step import Step

if TYPE_CHECKING:
    from .context import BuildContext


class MakeCompileStep(Step):
    """Run the app's ``make compile`` target as the final build hook.

    Runs in the build directory with the accumulated build environment, so
    vendored ruby, node and gemset binaries are on PATH. Like every other
    command, a failing ``make`` (including a missing makefile) fails the build.

    Config:
    - target: str (default 'compile')
    - timeout – standard
    """

    title = "Running make compile"

    def run(self, ctx: "BuildContext") -> Dict[str, Any]:
        target = self.config.get("target", "compile")
        return self.command(ctx, ["make", target])
