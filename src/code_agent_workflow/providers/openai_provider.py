import json

import openai
from loguru import logger
from tenacity import retry

from code_agent_workflow.providers.common import default_retry_kwargs

_STOP_REASON_MAP = {
    "stop": "end_turn",
    "tool_calls": "tool_use",
    "length": "max_tokens",
}


def _assistant_turn(blocks: list[dict]) -> dict:
    text = "\n".join(b["text"] for b in blocks if b["type"] == "text")
    calls = [
        {
            "id": b["id"],
            "type": "function",
            "function": {"name": b["name"], "arguments": json.dumps(b["input"])},
        }
        for b in blocks
        if b["type"] == "tool_use"
    ]
    turn: dict = {"role": "assistant", "content": text or None}
    if calls:
        turn["tool_calls"] = calls
    return turn


def _to_openai_messages(system_prompt: str, messages: list[dict]) -> list[dict]:
    """Conversation turns are plain strings except for an iteration's assistant
    blocks and the tool results answering them, which become ``tool`` messages.
    """
    out: list[dict] = [{"role": "system", "content": system_prompt}] if system_prompt else []
    for msg in messages:
        content = msg["content"]
        if isinstance(content, str):
            out.append({"role": msg["role"], "content": content})
        elif msg["role"] == "assistant":
            out.append(_assistant_turn(content))
        else:
            out.extend(
                {"role": "tool", "tool_call_id": r["tool_use_id"], "content": r["content"]}
                for r in content
            )
    return out


def _to_openai_tools(tools: list[dict]) -> list[dict]:
    return [
        {
            "type": "function",
            "function": {"name": t["name"], "description": t["description"], "parameters": t["input_schema"]},
        }
        for t in tools
    ]


def _parse_arguments(raw_args: str | None) -> dict:
    if not raw_args:
        return {}
    try:
        parsed = json.loads(raw_args)
    except json.JSONDecodeError:
        logger.warning(f"Failed to parse tool call arguments: {raw_args[:200]}")
        return {}
    return parsed if isinstance(parsed, dict) else {}


class OpenAIProvider:
    def __init__(self, api_key: str):
        self._client = openai.AsyncOpenAI(api_key=api_key)

    @retry(**default_retry_kwargs((
        openai.RateLimitError,
        openai.APIConnectionError,
        openai.APITimeoutError,
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
        """One chat completion, answered as (message, tool_use blocks, stop_reason)
        in the same block format the Anthropic provider returns.
        """
        kwargs: dict = dict(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=_to_openai_messages(system_prompt, messages),
        )
        if tools:
            kwargs["tools"] = _to_openai_tools(tools)
        logger.debug(f"API request: model={model}, messages={len(kwargs['messages'])}, tools={len(tools)}")

        choice = (await self._client.chat.completions.create(**kwargs)).choices[0]
        stop_reason = _STOP_REASON_MAP.get(choice.finish_reason or "stop", "end_turn")

        tool_use_blocks = [
            {"type": "tool_use", "id": call.id, "name": call.function.name, "input": _parse_arguments(call.function.arguments)}
            for call in choice.message.tool_calls or []
        ]
        text = choice.message.content or ""
        content = ([{"type": "text", "text": text}] if text else []) + tool_use_blocks
        logger.debug(f"API response: stop_reason={stop_reason}, text_len={len(text)}, tool_calls={len(tool_use_blocks)}")

        return {"role": "assistant", "content": content}, tool_use_blocks, stop_reason
