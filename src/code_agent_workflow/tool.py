from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from code_agent_workflow.agent_state import AgentState
from code_agent_workflow.sandbox.session_manager import SandboxSessionManager
from code_agent_workflow.store.steps import StepRunner


@dataclass(frozen=True)
class Ok:
    value: str

    @property
    def is_error(self) -> bool:
        return False

    def to_text(self) -> str:
        return self.value


@dataclass(frozen=True)
class Err:
    message: str

    @property
    def is_error(self) -> bool:
        return True

    def to_text(self) -> str:
        return self.message


ToolResult = Ok | Err


def result_from_step(stored: dict) -> ToolResult:
    """Rebuild a tool result from its JSON step record."""
    if stored.get("ok"):
        return Ok(str(stored.get("value", "")))
    return Err(str(stored.get("error", "")))


def result_to_step(result: ToolResult) -> dict:
    if isinstance(result, Ok):
        return {"ok": True, "value": result.value}
    return {"ok": False, "error": result.message}


@dataclass
class ToolContext:
    """Everything a tool handler may touch during one call."""

    state: AgentState
    sandboxes: SandboxSessionManager
    sandbox_id: str
    steps: StepRunner
    step_name: str


@runtime_checkable
class Tool(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def input_schema(self) -> dict[str, Any]: ...

    async def execute(self, tool_input: dict[str, Any], context: ToolContext) -> ToolResult: ...
