from __future__ import annotations

import asyncio
import subprocess
import time
from pathlib import Path
from uuid import uuid4

from loguru import logger

from code_agent_workflow.errors import CommandFailedError
from code_agent_workflow.sandbox.base import CommandOutput, OutputHandler

_COMMAND_TIMEOUT_SECONDS = 120


class LocalSandbox:
    """A sandbox backed by a directory on the local machine.

    Commands run through the shell with the sandbox directory as cwd. File
    paths are resolved inside that directory; anything escaping it is refused.
    """

    def __init__(self, sandbox_id: str, directory: Path, *, command_timeout: float = _COMMAND_TIMEOUT_SECONDS):
        self._sandbox_id = sandbox_id
        self._directory = directory
        self._command_timeout = command_timeout
        self._deadline: float | None = None

    @property
    def sandbox_id(self) -> str:
        return self._sandbox_id

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def deadline(self) -> float | None:
        return self._deadline

    async def set_timeout(self, timeout_ms: int) -> None:
        self._deadline = time.time() + timeout_ms / 1000

    async def run_command(
        self,
        command: str,
        *,
        on_stdout: OutputHandler | None = None,
        on_stderr: OutputHandler | None = None,
    ) -> CommandOutput:
        proc = await asyncio.create_subprocess_shell(
            command,
            stdin=subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self._directory,
        )
        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(proc.communicate(), timeout=self._command_timeout)
        except asyncio.TimeoutError:
            proc.kill()
            try:
                await asyncio.wait_for(proc.communicate(), timeout=5)
            except (asyncio.TimeoutError, ProcessLookupError):
                pass
            raise TimeoutError(f"Command timed out after {self._command_timeout:.0f}s: {command}")

        stdout = stdout_bytes.decode(errors="replace")
        stderr = stderr_bytes.decode(errors="replace")
        if stdout and on_stdout is not None:
            on_stdout(stdout)
        if stderr and on_stderr is not None:
            on_stderr(stderr)

        exit_code = proc.returncode if proc.returncode is not None else -1
        if exit_code != 0:
            raise CommandFailedError(command, exit_code, stdout, stderr)
        return CommandOutput(stdout=stdout, stderr=stderr, exit_code=exit_code)

    async def read_file(self, path: str) -> str:
        return self._resolve(path).read_text(encoding="utf-8")

    async def write_file(self, path: str, content: str) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    def get_host(self, port: int) -> str:
        return f"localhost:{port}"

    def _resolve(self, path_value: str) -> Path:
        path = Path(path_value)
        if path.is_absolute():
            path = Path(*path.parts[1:])
        resolved = (self._directory / path).resolve()
        try:
            resolved.relative_to(self._directory)
        except ValueError:
            raise ValueError(f"Path is outside the sandbox: {path_value}") from None
        return resolved


class LocalSandboxProvider:
    def __init__(self, root: str, *, command_timeout: float = _COMMAND_TIMEOUT_SECONDS):
        self._root = Path(root).resolve()
        self._command_timeout = command_timeout

    async def create(self, template: str) -> LocalSandbox:
        sandbox_id = f"local-{uuid4().hex[:12]}"
        directory = self._root / sandbox_id
        directory.mkdir(parents=True, exist_ok=False)
        (directory / ".template").write_text(template, encoding="utf-8")
        logger.debug(f"Local sandbox directory created at {directory}")
        return LocalSandbox(sandbox_id, directory, command_timeout=self._command_timeout)

    async def connect(self, sandbox_id: str) -> LocalSandbox:
        directory = (self._root / sandbox_id).resolve()
        if directory.parent != self._root or not directory.is_dir():
            raise LookupError(f"Sandbox does not exist: {sandbox_id}")
        return LocalSandbox(sandbox_id, directory, command_timeout=self._command_timeout)
