from typing import Any

from loguru import logger

from code_agent_workflow.errors import CommandFailedError
from code_agent_workflow.tool import Err, Ok, ToolContext, ToolResult, result_from_step, result_to_step


class TerminalTool:
    @property
    def name(self) -> str:
        return "terminal"

    @property
    def description(self) -> str:
        return "Use the terminal to run commands"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "description": "The shell command to run inside the sandbox",
                },
            },
            "required": ["command"],
        }

    async def execute(self, tool_input: dict[str, Any], context: ToolContext) -> ToolResult:
        command = str(tool_input.get("command", ""))

        async def run() -> dict:
            return result_to_step(await self._run(command, context))

        return result_from_step(await context.steps.run(context.step_name, run))

    async def _run(self, command: str, context: ToolContext) -> ToolResult:
        buffers = {"stdout": "", "stderr": ""}

        def on_stdout(data: str) -> None:
            buffers["stdout"] += data

        def on_stderr(data: str) -> None:
            buffers["stderr"] += data

        try:
            sandbox = await context.sandboxes.connect(context.sandbox_id)
            result = await sandbox.run_command(command, on_stdout=on_stdout, on_stderr=on_stderr)
            return Ok(result.stdout)
        except Exception as ex:
            if isinstance(ex, CommandFailedError):
                buffers["stdout"] = buffers["stdout"] or ex.stdout
                buffers["stderr"] = buffers["stderr"] or ex.stderr
            transcript = f"Command failed: {ex} \nstdout: {buffers['stdout']}\nstderr: {buffers['stderr']}"
            logger.warning(transcript)
            return Err(transcript)
