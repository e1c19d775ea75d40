from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .hook import Hook
from .step import Step

if TYPE_CHECKING:
    from .context import BuildContext


logger = logging.getLogger(__name__)


def call_hook(hook: Optional[Hook], name: str, *args: Any) -> None:
    """Invoke ``hook.<name>(*args)``; a raising hook is logged and ignored."""
    if hook is None:
        return
    try:
        getattr(hook, name)(*args)
    except Exception:  # noqa: BLE001
        logger.debug(f"Hook {name} raised", exc_info=True)


class Runner:
    """Sequential runner for a list of steps.

    With ``fail_fast`` (the default) the first error stops the run, which
    gives the build its abort-on-first-failure semantics.
    """

    def __init__(self, steps: List[Step], hook: Optional[Hook] = None, fail_fast: bool = True) -> None:
        self.steps = steps
        self.hook = hook
        self.fail_fast = fail_fast

    def execute(self, ctx: "BuildContext") -> Dict[str, Dict[str, Any]]:
        results: Dict[str, Dict[str, Any]] = {}
        for step in self.steps:
            try:
                if not step.validate(ctx):
                    logger.debug(f"Skipping step {step.id}")
                    results[step.id] = {"status": "skipped", "reason": "validate() returned False"}
                    continue
                call_hook(self.hook, "on_step_start", step, ctx)
                res = step.run(ctx)
                results[step.id] = res
                call_hook(self.hook, "on_step_end", step, res, ctx)
                if res.get("status") == "error" and self.fail_fast:
                    break
            except Exception as e:  # noqa: BLE001
                logger.debug(f"Step {step.id} raised", exc_info=True)
                results[step.id] = {"status": "error", "error": str(e)}
                call_hook(self.hook, "on_error", step.id, e, ctx)
                if self.fail_fast:
                    break
        return results
