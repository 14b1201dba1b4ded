from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from code_agent_workflow.agent import CodingAgent
from code_agent_workflow.agent_state import AgentState
from code_agent_workflow.sandbox.session_manager import SandboxSessionManager
from code_agent_workflow.store.steps import StepRunner

MAX_ITERATIONS = 15


def next_agent(state: AgentState, agent: CodingAgent) -> CodingAgent | None:
    """Route to the coding agent until it has reported a summary."""
    if state.has_summary:
        return None
    return agent


@dataclass
class NetworkResult:
    state: AgentState
    iterations: int
    messages: list[dict] = field(default_factory=list)


class AgentNetwork:
    name = "coding-agent-network"

    def __init__(self, agent: CodingAgent, *, max_iter: int = MAX_ITERATIONS):
        self._agent = agent
        self._max_iter = max_iter

    async def run(
        self,
        prompt: str,
        *,
        state: AgentState,
        history: list[dict],
        sandboxes: SandboxSessionManager,
        sandbox_id: str,
        steps: StepRunner,
    ) -> NetworkResult:
        messages: list[dict] = [*history, {"role": "user", "content": prompt}]
        iterations = 0

        while iterations < self._max_iter:
            agent = next_agent(state, self._agent)
            if agent is None:
                break
            iterations += 1
            await agent.run(
                iteration=iterations,
                messages=messages,
                state=state,
                sandboxes=sandboxes,
                sandbox_id=sandbox_id,
                steps=steps,
            )

        if state.summary:
            logger.info(f"{self.name} finished after {iterations} iteration(s) with {len(state.files)} file(s)")
        else:
            logger.warning(f"{self.name} stopped after {iterations} iteration(s) without a task summary")
        return NetworkResult(state=state, iterations=iterations, messages=messages)
