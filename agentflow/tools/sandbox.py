"""
Sandboxed Code Tool
===================

Runs model-written Python snippets in a separate interpreter process.

Isolation boundary:
- A fresh `python -I` process (no user site-packages, PYTHON* env ignored)
- A scrubbed environment: no API keys or other caller variables
- A throwaway working directory, removed afterwards
- Snippets compiled with RestrictedPython inside the worker (guarded
  attribute access, no open/eval/exec, imports limited to pure-computation
  modules) and, on POSIX, no file writes
- Only message passing: one JSON request on stdin, one JSON reply on stdout

Every run is bounded by a timeout; on expiry the process is killed and the
run fails with SandboxExecutionError. The snippet reports its answer by
assigning `result`; `demo_functions` (fibonacci, is_prime,
generate_random_data) is available read-only.
"""

import asyncio
import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Any

from agentflow.tools import ToolSpec
from agentflow.utils.config import SandboxConfig
from agentflow.utils.errors import SandboxExecutionError
from agentflow.utils.logger import Logger

logger = Logger("Sandbox")

WORKER_PATH = Path(__file__).with_name("_sandbox_worker.py")


class CodeSandbox:
    """
    Request/response wrapper around the sandbox worker process.

    Example:
        sandbox = CodeSandbox(timeout_seconds=5)
        value = await sandbox.run("result = sum(demo_functions['fibonacci'](10))")
        # value == 88
    """

    def __init__(self, timeout_seconds: float = 5.0, python_executable: str | None = None):
        self.timeout_seconds = timeout_seconds
        self.python_executable = python_executable or sys.executable

    def _environment(self, workdir: str) -> dict[str, str]:
        env = {"PATH": os.defpath, "HOME": workdir, "TMPDIR": workdir}
        # Windows cannot start an interpreter without SYSTEMROOT
        if "SYSTEMROOT" in os.environ:
            env["SYSTEMROOT"] = os.environ["SYSTEMROOT"]
        return env

    async def run(self, code: str) -> Any:
        """
        Execute code and return the value bound to `result` (or None).

        Raises:
            SandboxExecutionError: The code raised, timed out, or the worker
                process failed
        """
        request = json.dumps({"code": code}).encode("utf-8")

        with tempfile.TemporaryDirectory(prefix="agentflow-sandbox-") as workdir:
            process = await asyncio.create_subprocess_exec(
                self.python_executable, "-I", str(WORKER_PATH),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=workdir,
                env=self._environment(workdir),
            )
            try:
                stdout, stderr = await asyncio.wait_for(
                    process.communicate(request),
                    timeout=self.timeout_seconds
                )
            except asyncio.TimeoutError:
                logger.warning(f"Sandbox timed out after {self.timeout_seconds:g}s, killing worker")
                raise SandboxExecutionError(
                    f"Code execution timed out after {self.timeout_seconds:g}s"
                ) from None
            finally:
                if process.returncode is None:
                    process.kill()
                    await process.wait()

        reply = self._parse_reply(stdout, stderr, process.returncode)

        if reply.get("stdout"):
            logger.debug("Sandbox output", {"stdout": reply["stdout"][:500]})

        if not reply.get("ok"):
            raise SandboxExecutionError(reply.get("error") or "Code execution failed")
        return reply.get("result")

    @staticmethod
    def _parse_reply(stdout: bytes, stderr: bytes, returncode: int | None) -> dict:
        lines = stdout.decode("utf-8", errors="replace").strip().splitlines()
        if lines:
            try:
                reply = json.loads(lines[-1])
            except json.JSONDecodeError:
                reply = None
            if isinstance(reply, dict):
                return reply

        detail = stderr.decode("utf-8", errors="replace").strip().splitlines()
        tail = detail[-1] if detail else "no output"
        raise SandboxExecutionError(f"Sandbox process exited with code {returncode}: {tail}")


def create_run_code_tool(config: SandboxConfig) -> ToolSpec:
    """Build the run_code ToolSpec."""
    sandbox = CodeSandbox(timeout_seconds=config.timeout_seconds)

    async def _run_code(params: dict) -> dict:
        code = params.get("code")
        if not isinstance(code, str):
            raise ValueError("code must be a string")

        return {"result": await sandbox.run(code)}

    return ToolSpec(
        name="run_code",
        description=(
            "Execute a Python snippet in an isolated sandbox and return the value "
            "assigned to the variable `result`. A read-only `demo_functions` mapping "
            "provides fibonacci(n), is_prime(n) and generate_random_data(n)."
        ),
        parameters={
            "type": "object",
            "properties": {
                "code": {
                    "type": "string",
                    "description": "Python source; assign the answer to `result`"
                }
            },
            "required": ["code"]
        },
        handler=_run_code
    )
