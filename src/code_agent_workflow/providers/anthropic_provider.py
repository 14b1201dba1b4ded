import anthropic
from loguru import logger
from tenacity import retry

from code_agent_workflow.providers.common import default_retry_kwargs


def _to_block(block) -> dict | None:
    if block.type == "text":
        return {"type": "text", "text": block.text}
    if block.type == "tool_use":
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
    return None


class AnthropicProvider:
    def __init__(self, api_key: str):
        self._client = anthropic.AsyncAnthropic(api_key=api_key)

    @retry(**default_retry_kwargs((
        anthropic.RateLimitError,
        anthropic.APIConnectionError,
        anthropic.APITimeoutError,
    )))
    async def generate(
        self,
        model: str,
        max_tokens: int,
        temperature: float,
        system_prompt: str,
        messages: list[dict],
        tools: list[dict],
    ) -> tuple[dict, list[dict], str]:
        kwargs: dict = dict(model=model, max_tokens=max_tokens, temperature=temperature, messages=messages)
        if system_prompt:
            kwargs["system"] = system_prompt
        if tools:
            kwargs["tools"] = tools
        logger.debug(f"API request: model={model}, messages={len(messages)}, tools={len(tools)}")

        response = await self._client.messages.create(**kwargs)
        content = [b for b in map(_to_block, response.content) if b is not None]
        logger.debug(
            f"API response: stop_reason={response.stop_reason}, "
            f"input_tokens={response.usage.input_tokens}, output_tokens={response.usage.output_tokens}"
        )
        tool_use_blocks = [b for b in content if b["type"] == "tool_use"]
        return {"role": "assistant", "content": content}, tool_use_blocks, response.stop_reason or "end_turn"
