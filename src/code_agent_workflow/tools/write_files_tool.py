from typing import Any

from loguru import logger

from code_agent_workflow.tool import Err, Ok, ToolContext, ToolResult


class WriteFilesTool:
    @property
    def name(self) -> str:
        return "createOrUpdateFiles"

    @property
    def description(self) -> str:
        return "Create or update files in the sandbox"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "files": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "path": {"type": "string", "description": "Path of the file inside the sandbox"},
                            "content": {"type": "string", "description": "Full content of the file"},
                        },
                        "required": ["path", "content"],
                    },
                },
            },
            "required": ["files"],
        }

    async def execute(self, tool_input: dict[str, Any], context: ToolContext) -> ToolResult:
        files = tool_input.get("files") or []

        async def write() -> dict:
            written: dict[str, str] = {}
            try:
                sandbox = await context.sandboxes.connect(context.sandbox_id)
                for file in files:
                    path = str(file["path"])
                    content = str(file["content"])
                    await sandbox.write_file(path, content)
                    written[path] = content
            except Exception as ex:
                logger.warning(f"createOrUpdateFiles failed after {len(written)} file(s): {ex}")
                return {"written": written, "error": f"Error: {ex}"}
            return {"written": written, "error": None}

        outcome = await context.steps.run(context.step_name, write)

        # Writes that landed before a failure stay in the sandbox, so they stay in state too.
        context.state.merge_files(outcome["written"])
        if outcome["error"]:
            return Err(outcome["error"])
        paths = ", ".join(outcome["written"])
        return Ok(f"Successfully wrote {len(outcome['written'])} file(s): {paths}")
