from __future__ import annotations

import logging
import subprocess
import threading
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .log import indent

if TYPE_CHECKING:
    from .context import BuildContext


logger = logging.getLogger(__name__)


class Step(ABC):
    """A granular unit of build work.

    Steps receive the shared BuildContext and return a structured dict with
    at least a ``status`` of ``success``, ``skipped`` or ``error``.
    """

    title: str = ""

    def __init__(self, id: str, config: Optional[Dict[str, Any]] = None) -> None:
        self.id = id
        self.config = config or {}

    @abstractmethod
    def run(self, ctx: "BuildContext") -> Dict[str, Any]:
        """Execute the step and return structured output."""

    def validate(self, ctx: "BuildContext") -> bool:
        """Return False to skip the step."""
        return True

    def command(self, ctx: "BuildContext", cmd: List[str], env: Optional[Dict[str, str]] = None, **config: Any) -> Dict[str, Any]:
        """Run ``cmd`` in the build directory as a child CommandStep.

        ``timeout`` and ``retries`` default to this step's own config.
        """
        name = "_".join(cmd[:2]).replace("-", "")
        config.setdefault("timeout", self.config.get("timeout"))
        config.setdefault("retries", self.config.get("retries", 0))
        cs = CommandStep(
            id=f"{self.id}__{name}",
            config={
                "cmd": cmd,
                "cwd": str(config.pop("cwd", ctx.build_dir)),
                "env": env if env is not None else ctx.env,
                **config,
            },
        )
        return cs.run(ctx)


class CommandStep(Step):
    """Run a command and stream its output into the build log.

    Config:
    - cmd: list[str] – Required. Command to execute.
    - env: dict[str, str] – Optional environment (defaults to the build env).
    - timeout: float – Optional timeout in seconds.
    - retries: int – retry count on failure (default 0).
    - cwd: str – optional working directory (defaults to the build dir).
    """

    def run(self, ctx: "BuildContext") -> Dict[str, Any]:
        cmd = self.config.get("cmd") or []
        if not isinstance(cmd, list) or not cmd:
            return {"status": "error", "error": "CommandStep requires config['cmd'] as non-empty list"}
        env = self.config.get("env") or ctx.env
        timeout = self.config.get("timeout")
        retries = int(self.config.get("retries", 0))
        cwd = self.config.get("cwd") or str(ctx.build_dir)

        attempt = 0
        last_error: Optional[str] = None
        while attempt <= retries:
            start = time.time()
            stdout_buf: list[str] = []
            stderr_buf: list[str] = []
            logger.debug(f"Running {' '.join(cmd)} in {cwd}")
            try:
                proc = subprocess.Popen(
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    bufsize=1,  # line-buffered
                    env=env,
                    cwd=cwd,
                )
            except OSError as e:
                last_error = str(e)
                attempt += 1
                if attempt > retries:
                    return {
                        "status": "error",
                        "error": last_error,
                        "stdout": "",
                        "stderr": "",
                        "returncode": None,
                        "duration": time.time() - start,
                        "attempts": attempt,
                    }
                continue

            def _read_stream(stream, buf):
                try:
                    for line in iter(stream.readline, ""):
                        buf.append(line)
                        logger.info(indent(line.rstrip("\n")))
                finally:
                    stream.close()

            readers = [
                threading.Thread(target=_read_stream, args=(stream, buf), daemon=True)
                for stream, buf in ((proc.stdout, stdout_buf), (proc.stderr, stderr_buf))
                if stream
            ]
            for t in readers:
                t.start()

            timed_out = False
            try:
                proc.wait(timeout=timeout)
            except subprocess.TimeoutExpired as wait_err:
                timed_out = True
                last_error = str(wait_err)
                proc.kill()
                proc.wait()

            for t in readers:
                t.join()

            duration = time.time() - start
            rc = proc.returncode if proc.returncode is not None else -1
            stdout_text = "".join(stdout_buf).strip()
            stderr_text = "".join(stderr_buf).strip()

            if rc == 0 and not timed_out:
                return {
                    "status": "success",
                    "stdout": stdout_text,
                    "stderr": stderr_text,
                    "returncode": rc,
                    "duration": duration,
                    "attempts": attempt + 1,
                }

            if not timed_out:
                last_error = f"Process exited with code {rc}"
            attempt += 1
            if attempt > retries:
                return {
                    "status": "error",
                    "error": f"{' '.join(cmd)}: {last_error}",
                    "stdout": stdout_text,
                    "stderr": stderr_text,
                    "returncode": rc,
                    "duration": duration,
                    "attempts": attempt,
                }
        # Fallback (should not reach here)
        return {"status": "error", "error": last_error or "unknown error"}
