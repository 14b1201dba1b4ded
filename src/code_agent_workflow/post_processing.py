from __future__ import annotations

import asyncio

from loguru import logger

from code_agent_workflow.agent_output import DEFAULT_FRAGMENT_TEXT, parse_agent_output
from code_agent_workflow.provider import LLMProvider
from code_agent_workflow.store.steps import StepRunner
from code_agent_workflow.system_prompt import FRAGMENT_TITLE_PROMPT, RESPONSE_PROMPT


class SingleShotAgent:
    """A tool-less agent that answers once from a single user message."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        name: str,
        system_prompt: str,
        model: str,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ):
        self._provider = provider
        self.name = name
        self._system_prompt = system_prompt
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def run(self, input_text: str, steps: StepRunner) -> str:
        async def complete() -> str:
            message, _, _ = await self._provider.generate(
                self._model,
                self._max_tokens,
                self._temperature,
                self._system_prompt,
                [{"role": "user", "content": input_text}],
                [],
            )
            return parse_agent_output(message.get("content"))

        try:
            return await steps.run(self.name, complete)
        except Exception as ex:
            logger.warning(f"{self.name} failed, using default output: {ex}")
            return DEFAULT_FRAGMENT_TEXT


class PostProcessor:
    """Derives the fragment title and the user-facing response from a summary."""

    def __init__(self, provider: LLMProvider, *, model: str):
        self.title_generator = SingleShotAgent(
            provider,
            name="fragment-title-generator",
            system_prompt=FRAGMENT_TITLE_PROMPT,
            model=model,
        )
        self.response_generator = SingleShotAgent(
            provider,
            name="response-generator",
            system_prompt=RESPONSE_PROMPT,
            model=model,
        )

    async def run(self, summary: str, steps: StepRunner) -> tuple[str, str]:
        """Returns (title, response); both generators run concurrently."""
        title, response = await asyncio.gather(
            self.title_generator.run(summary, steps),
            self.response_generator.run(summary, steps),
        )
        return title, response
