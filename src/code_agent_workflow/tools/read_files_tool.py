import json
from typing import Any

from code_agent_workflow.tool import Err, Ok, ToolContext, ToolResult, result_from_step, result_to_step


class ReadFilesTool:
    @property
    def name(self) -> str:
        return "readFiles"

    @property
    def description(self) -> str:
        return "Read files from the sandbox"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "files": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Paths of the files to read",
                },
            },
            "required": ["files"],
        }

    async def execute(self, tool_input: dict[str, Any], context: ToolContext) -> ToolResult:
        paths = [str(p) for p in tool_input.get("files") or []]

        async def read() -> dict:
            try:
                sandbox = await context.sandboxes.connect(context.sandbox_id)
                contents = []
                for path in paths:
                    contents.append({"path": path, "content": await sandbox.read_file(path)})
                return result_to_step(Ok(json.dumps(contents)))
            except Exception as ex:
                return result_to_step(Err(f"Error: {ex}"))

        return result_from_step(await context.steps.run(context.step_name, read))
