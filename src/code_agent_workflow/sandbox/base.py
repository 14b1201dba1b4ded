from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

SANDBOX_TIMEOUT_MS = 30 * 60 * 1000
SANDBOX_PORT = 3000

OutputHandler = Callable[[str], None]


@dataclass(frozen=True)
class CommandOutput:
    stdout: str
    stderr: str
    exit_code: int


@runtime_checkable
class SandboxSession(Protocol):
    @property
    def sandbox_id(self) -> str: ...

    async def set_timeout(self, timeout_ms: int) -> None: ...

    async def run_command(
        self,
        command: str,
        *,
        on_stdout: OutputHandler | None = None,
        on_stderr: OutputHandler | None = None,
    ) -> CommandOutput:
        """Run a shell command; raises when the command exits non-zero."""
        ...

    async def read_file(self, path: str) -> str: ...

    async def write_file(self, path: str, content: str) -> None: ...

    def get_host(self, port: int) -> str: ...


@runtime_checkable
class SandboxProvider(Protocol):
    async def create(self, template: str) -> SandboxSession: ...

    async def connect(self, sandbox_id: str) -> SandboxSession: ...


def create_sandbox_provider(provider_name: str, *, root: str, api_key: str = "") -> SandboxProvider:
    """Factory: create a SandboxProvider by name."""
    name = provider_name.strip().lower()
    if name == "local":
        from code_agent_workflow.sandbox.local import LocalSandboxProvider
        return LocalSandboxProvider(root)
    if name == "e2b":
        from code_agent_workflow.sandbox.e2b import E2BSandboxProvider
        return E2BSandboxProvider(api_key)
    raise ValueError(f"Unknown sandbox provider: {provider_name!r}. Supported: 'local', 'e2b'")
