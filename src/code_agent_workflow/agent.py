from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from code_agent_workflow.agent_config import AgentConfig
from code_agent_workflow.agent_output import last_assistant_text_message_content
from code_agent_workflow.agent_state import AgentState
from code_agent_workflow.provider import LLMProvider
from code_agent_workflow.sandbox.session_manager import SandboxSessionManager
from code_agent_workflow.store.steps import StepRunner
from code_agent_workflow.system_prompt import TASK_SUMMARY_MARKER
from code_agent_workflow.tool import Err, ToolContext, ToolResult
from code_agent_workflow.tool_registry import to_provider_tools


@dataclass(frozen=True)
class IterationResult:
    message: dict
    tool_results: list[dict]
    stop_reason: str


class CodingAgent:
    """One tool-using coding agent; each ``run`` call is a single iteration.

    An iteration is one memoized inference followed by the tool calls it asked
    for, executed one after another against the shared state.
    """

    _MAX_TOKENS_NUDGE = (
        "Your response was cut off because it exceeded the token limit. "
        "Please continue, but be more concise. If you were writing a file, "
        "break it into smaller sections or shorten the content."
    )

    def __init__(self, provider: LLMProvider, config: AgentConfig):
        self._provider = provider
        self._config = config
        self._tool_map = {t.name: t for t in config.tools}
        self._converted_tools = to_provider_tools(config.tools)

    @property
    def name(self) -> str:
        return self._config.name

    async def run(
        self,
        *,
        iteration: int,
        messages: list[dict],
        state: AgentState,
        sandboxes: SandboxSessionManager,
        sandbox_id: str,
        steps: StepRunner,
    ) -> IterationResult:
        async def infer() -> dict:
            message, tool_use_blocks, stop_reason = await self._provider.generate(
                self._config.model,
                self._config.max_tokens,
                self._config.temperature,
                self._config.system_prompt,
                messages,
                self._converted_tools,
            )
            return {"message": message, "tool_use_blocks": tool_use_blocks, "stop_reason": stop_reason}

        inference = await steps.run(f"{self.name}:inference:{iteration}", infer)
        message = inference["message"]
        tool_use_blocks = inference["tool_use_blocks"]
        stop_reason = inference["stop_reason"]

        messages.append(message)
        self._on_response(messages, state)

        tool_results: list[dict] = []
        if tool_use_blocks:
            tool_results = await self.execute_tools(
                tool_use_blocks,
                state=state,
                sandboxes=sandboxes,
                sandbox_id=sandbox_id,
                steps=steps,
            )
            messages.append({"role": "user", "content": tool_results})
        elif stop_reason == "max_tokens":
            logger.warning(f"{self.name} hit max_tokens ({self._config.max_tokens}) on iteration {iteration}")
            messages.append({"role": "user", "content": self._MAX_TOKENS_NUDGE})

        return IterationResult(message=message, tool_results=tool_results, stop_reason=stop_reason)

    async def execute_tools(
        self,
        tool_use_blocks: list[dict],
        *,
        state: AgentState,
        sandboxes: SandboxSessionManager,
        sandbox_id: str,
        steps: StepRunner,
    ) -> list[dict]:
        results: list[dict] = []
        for block in tool_use_blocks:
            tool_name = block["name"]
            tool_use_id = block["id"]
            tool_input = block.get("input") or {}
            tool = self._tool_map.get(tool_name)

            if tool is None:
                result: ToolResult = Err(f'Error: unknown tool "{tool_name}"')
            else:
                context = ToolContext(
                    state=state,
                    sandboxes=sandboxes,
                    sandbox_id=sandbox_id,
                    steps=steps,
                    step_name=f"{tool_name}:{tool_use_id}",
                )
                try:
                    result = await tool.execute(tool_input, context)
                except Exception as ex:
                    logger.error(f'Tool "{tool_name}" raised: {ex}')
                    result = Err(f'Error executing tool "{tool_name}": {ex}')

            logger.debug(f"Tool {tool_name} ({tool_use_id}) finished, is_error={result.is_error}")
            block_result = {
                "type": "tool_result",
                "tool_use_id": tool_use_id,
                "content": self._truncate_tool_result(result.to_text(), tool_name),
            }
            if result.is_error:
                block_result["is_error"] = True
            results.append(block_result)
        return results

    def _on_response(self, messages: list[dict], state: AgentState) -> None:
        text = last_assistant_text_message_content(messages)
        if text and TASK_SUMMARY_MARKER in text:
            state.summary = text
            logger.info(f"{self.name} reported a task summary")

    def _truncate_tool_result(self, result: str, tool_name: str) -> str:
        limit = self._config.max_tool_result_chars
        if limit <= 0 or len(result) <= limit:
            return result

        original_length = len(result)
        logger.warning(f"{tool_name} output truncated from {original_length:,} to {limit:,} chars")
        return (
            result[:limit]
            + f"\n\n[OUTPUT TRUNCATED: Showing {limit:,} of {original_length:,} characters from {tool_name}]"
        )
