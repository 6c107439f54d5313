"""
Process-isolated executor for the direct-execution strategy.

Intent:
    Run a learner's `solution(input)` in a separate, resource-limited
    interpreter instead of the caller's process. The child gets an isolated
    interpreter (`-I -S`), an empty environment, a throw-away working
    directory, CPU/memory/file limits and a wall-clock timeout.

Limits:
    This is process isolation, not a container. Deployments that need a
    stronger boundary must replace this executor (see ExecutorProtocol).
"""

from __future__ import annotations

import json
import logging
import subprocess
import sys
import tempfile

from courseware.evaluation.ports import SandboxError

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("python",)
MAX_OUTPUT_CHARS = 10_000

_HARNESS = r"""
import io, json, sys
payload = json.loads(sys.stdin.read())
try:
    import resource
except ImportError:
    resource = None
if resource is not None:
    cpu = payload["cpu_seconds"]
    memory = payload["memory_mb"] * 1024 * 1024
    resource.setrlimit(resource.RLIMIT_CPU, (cpu, cpu))
    resource.setrlimit(resource.RLIMIT_AS, (memory, memory))
    resource.setrlimit(resource.RLIMIT_NOFILE, (16, 16))
    resource.setrlimit(resource.RLIMIT_FSIZE, (0, 0))
    resource.setrlimit(resource.RLIMIT_NPROC, (0, 0))
real_stdout = sys.stdout
sys.stdout = io.StringIO()
namespace = {"__name__": "__solution__"}
try:
    exec(compile(payload["code"], "<solution>", "exec"), namespace)
    fn = namespace.get("solution")
    if not callable(fn):
        result = "No solution function found"
    else:
        result = str(fn(payload["input"]))
except BaseException as exc:
    result = "Error: " + type(exc).__name__ + ": " + str(exc)
sys.stdout = real_stdout
real_stdout.write(result)
real_stdout.flush()
"""


class SubprocessSandbox:
    """Executor that runs Python candidates in a limited child interpreter."""

    def __init__(self, *, timeout_seconds: int = 5, memory_mb: int = 256, python: str | None = None) -> None:
        self._timeout = timeout_seconds
        self._memory_mb = memory_mb
        self._python = python or sys.executable

    def run(self, *, code: str, language: str, input: str) -> str:
        """Return the stringified result of `solution(input)` or an `Error: ...` line."""
        if language not in SUPPORTED_LANGUAGES:
            raise SandboxError(f"unsupported_language:{language}")
        payload = json.dumps(
            {"code": code, "input": input, "cpu_seconds": self._timeout, "memory_mb": self._memory_mb}
        )
        with tempfile.TemporaryDirectory(prefix="courseware-sandbox-") as workdir:
            try:
                proc = subprocess.run(
                    [self._python, "-I", "-S", "-c", _HARNESS],
                    input=payload,
                    capture_output=True,
                    text=True,
                    timeout=self._timeout,
                    cwd=workdir,
                    env={},
                    start_new_session=True,
                )
            except subprocess.TimeoutExpired:
                logger.info("evaluation.sandbox.timeout seconds=%s", self._timeout)
                return "Error: Time limit exceeded"
            except OSError as exc:
                logger.warning("evaluation.sandbox.spawn_failed reason=%s", exc.__class__.__name__)
                raise SandboxError("spawn_failed") from exc
        if proc.returncode != 0 and not proc.stdout:
            logger.info("evaluation.sandbox.crashed returncode=%s", proc.returncode)
            return "Error: Process exited with status %s" % proc.returncode
        return proc.stdout[:MAX_OUTPUT_CHARS]


def build(*, timeout_seconds: int = 5, memory_mb: int = 256) -> SubprocessSandbox:
    """Factory used by the engine wiring."""
    return SubprocessSandbox(timeout_seconds=timeout_seconds, memory_mb=memory_mb)
