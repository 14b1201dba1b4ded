from __future__ import annotations

from code_agent_workflow.tool import Tool
from code_agent_workflow.tools.read_files_tool import ReadFilesTool
from code_agent_workflow.tools.terminal_tool import TerminalTool
from code_agent_workflow.tools.write_files_tool import WriteFilesTool


def get_all() -> list[Tool]:
    return [
        TerminalTool(),
        WriteFilesTool(),
        ReadFilesTool(),
    ]


def to_provider_tools(tools: list[Tool]) -> list[dict]:
    return [
        {
            "name": t.name,
            "description": t.description,
            "input_schema": t.input_schema,
        }
        for t in tools
    ]
