"""
SubprocessSandbox: candidates run in a separate, limited interpreter.
"""
from __future__ import annotations

import os

import pytest

from courseware.evaluation.ports import SandboxError
from courseware.evaluation.sandbox import SubprocessSandbox

pytestmark = pytest.mark.skipif(os.name != "posix", reason="resource limits need a POSIX host")


def test_runs_solution_and_returns_str_result():
    sandbox = SubprocessSandbox(timeout_seconds=5)
    out = sandbox.run(code="def solution(x):\n    return int(x) * 2\n", language="python", input="21")
    assert out.strip() == "42"


def test_prints_inside_solution_do_not_leak_into_result():
    code = "def solution(x):\n    print('debug noise')\n    return x.upper()\n"
    assert SubprocessSandbox().run(code=code, language="python", input="abc") == "ABC"


def test_missing_solution_and_exceptions_are_reported_as_output():
    sandbox = SubprocessSandbox()
    assert sandbox.run(code="x = 1", language="python", input="") == "No solution function found"
    out = sandbox.run(code="def solution(x):\n    raise ValueError('boom')\n", language="python", input="")
    assert out == "Error: ValueError: boom"


def test_child_sees_no_parent_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("COURSEWARE_SECRET_FOR_TEST", "s3cret")
    code = "import os\ndef solution(x):\n    return os.environ.get('COURSEWARE_SECRET_FOR_TEST', 'absent')\n"
    assert SubprocessSandbox().run(code=code, language="python", input="") == "absent"


def test_runaway_code_is_stopped():
    sandbox = SubprocessSandbox(timeout_seconds=1)
    out = sandbox.run(code="def solution(x):\n    while True:\n        pass\n", language="python", input="")
    assert out.startswith("Error:")


def test_unsupported_language_raises():
    with pytest.raises(SandboxError) as exc:
        SubprocessSandbox().run(code="int main(){}", language="c", input="")
    assert str(exc.value) == "unsupported_language:c"


def test_child_applies_its_own_resource_limits():
    code = (
        "import resource\n"
        "def solution(x):\n"
        "    return resource.getrlimit(resource.RLIMIT_NOFILE)[0], resource.getrlimit(resource.RLIMIT_CPU)[0]\n"
    )
    assert SubprocessSandbox(timeout_seconds=3).run(code=code, language="python", input="") == "(16, 3)"


def test_spawn_uses_no_preexec_hook(monkeypatch: pytest.MonkeyPatch):
    import subprocess

    seen = {}

    def _fake_run(args, **kwargs):
        seen.update(kwargs)
        return subprocess.CompletedProcess(args, 0, stdout="ok", stderr="")

    monkeypatch.setattr(subprocess, "run", _fake_run)
    assert SubprocessSandbox(memory_mb=64).run(code="x", language="python", input="") == "ok"
    assert "preexec_fn" not in seen
    assert seen["start_new_session"] is True
    assert '"memory_mb": 64' in seen["input"]
