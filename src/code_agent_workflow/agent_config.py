from dataclasses import dataclass, field

from code_agent_workflow.tool import Tool


@dataclass
class AgentConfig:
    name: str = "code-agent"
    model: str = "gpt-4.1"
    max_tokens: int = 8192
    temperature: float = 0.1
    tools: list[Tool] = field(default_factory=list)
    system_prompt: str = ""
    max_tool_result_chars: int = 40_000
