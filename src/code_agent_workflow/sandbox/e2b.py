from __future__ import annotations

from e2b_code_interpreter import AsyncSandbox

from code_agent_workflow.sandbox.base import CommandOutput, OutputHandler


class E2BSandbox:
    def __init__(self, sandbox: AsyncSandbox):
        self._sandbox = sandbox

    @property
    def sandbox_id(self) -> str:
        return self._sandbox.sandbox_id

    async def set_timeout(self, timeout_ms: int) -> None:
        # E2B takes the timeout in seconds.
        await self._sandbox.set_timeout(max(1, timeout_ms // 1000))

    async def run_command(
        self,
        command: str,
        *,
        on_stdout: OutputHandler | None = None,
        on_stderr: OutputHandler | None = None,
    ) -> CommandOutput:
        result = await self._sandbox.commands.run(command, on_stdout=on_stdout, on_stderr=on_stderr)
        return CommandOutput(stdout=result.stdout, stderr=result.stderr, exit_code=result.exit_code)

    async def read_file(self, path: str) -> str:
        return await self._sandbox.files.read(path)

    async def write_file(self, path: str, content: str) -> None:
        await self._sandbox.files.write(path, content)

    def get_host(self, port: int) -> str:
        return self._sandbox.get_host(port)


class E2BSandboxProvider:
    def __init__(self, api_key: str):
        self._api_key = api_key or None

    async def create(self, template: str) -> E2BSandbox:
        return E2BSandbox(await AsyncSandbox.create(template, api_key=self._api_key))

    async def connect(self, sandbox_id: str) -> E2BSandbox:
        return E2BSandbox(await AsyncSandbox.connect(sandbox_id, api_key=self._api_key))
