from __future__ import annotations

DEFAULT_FRAGMENT_TEXT = "Fragment"


def text_of(content: str | list[dict] | None) -> str | None:
    """Flatten message content to text, or None when it carries no text."""
    if content is None:
        return None
    if isinstance(content, str):
        return content
    parts = [
        str(block.get("text"))
        for block in content
        if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str)
    ]
    if not parts:
        return None
    return "".join(parts)


def last_assistant_text_message_content(messages: list[dict]) -> str | None:
    for message in reversed(messages):
        if message.get("role") == "assistant":
            return text_of(message.get("content"))
    return None


def parse_agent_output(content: str | list[dict] | None) -> str:
    """Turn a single-shot completion into flat text.

    Falls back to ``"Fragment"`` when the first block is not text.
    """
    if isinstance(content, str):
        return content or DEFAULT_FRAGMENT_TEXT
    if not content:
        return DEFAULT_FRAGMENT_TEXT

    first = content[0]
    if not isinstance(first, dict) or first.get("type") != "text":
        return DEFAULT_FRAGMENT_TEXT

    text = "".join(
        str(block.get("text", ""))
        for block in content
        if isinstance(block, dict) and block.get("type") == "text"
    )
    return text or DEFAULT_FRAGMENT_TEXT
