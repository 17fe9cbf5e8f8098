from __future__ import annotations

from typing import Any, Sequence

from openai import AsyncOpenAI

from relay_bot.llm.prompts import (
    DEFAULT_RECRAFT_STYLE,
    RECRAFT_STYLES,
    style_prompt,
    subject_prompt,
    translate_prompt,
)
from relay_bot.utils.logging import get_logger
from relay_bot.utils.metrics import record_provider_call

log = get_logger(__name__)


def _message_text(completion: Any) -> str:
    choices = getattr(completion, "choices", None) or []
    if not choices:
        return ""
    content = getattr(choices[0].message, "content", None)
    return (content or "").strip()


async def complete(
    client: AsyncOpenAI,
    model: str,
    messages: Sequence[dict[str, str]],
    *,
    max_tokens: int,
    temperature: float,
) -> str:
    """One non-streaming chat completion; returns stripped text ("" if none)."""
    try:
        completion = await client.chat.completions.create(
            model=model,
            messages=list(messages),
            n=1,
            stream=False,
            max_tokens=max_tokens,
            temperature=temperature,
        )
    except Exception:
        record_provider_call("chat", ok=False)
        raise
    record_provider_call("chat", ok=True)
    text = _message_text(completion)
    log.info(
        "chat_completion",
        extra={
            "extra_fields": {
                "model": model,
                "turns": len(messages),
                "max_tokens": max_tokens,
                "temperature": temperature,
                "chars": len(text),
            }
        },
    )
    return text


async def _one_shot(client: AsyncOpenAI, model: str, prompt: str, max_tokens: int = 200) -> str:
    return await complete(
        client,
        model,
        [{"role": "user", "content": prompt}],
        max_tokens=max_tokens,
        temperature=0.0,
    )


async def translate_to_english(client: AsyncOpenAI, model: str, prompt: str) -> str:
    """Falls back to the original prompt when the model is unavailable."""
    try:
        return await _one_shot(client, model, translate_prompt(prompt)) or prompt
    except Exception as exc:
        log.warning("prompt_translate_failed", extra={"extra_fields": {"error": str(exc)[:200]}})
        return prompt


async def extract_subject(client: AsyncOpenAI, model: str, prompt: str) -> str:
    try:
        return await _one_shot(client, model, subject_prompt(prompt), max_tokens=30) or prompt
    except Exception as exc:
        log.warning("subject_extract_failed", extra={"extra_fields": {"error": str(exc)[:200]}})
        return prompt


async def extract_style(client: AsyncOpenAI, model: str, prompt: str) -> str:
    try:
        answer = await _one_shot(client, model, style_prompt(prompt), max_tokens=10)
    except Exception as exc:
        log.warning("style_extract_failed", extra={"extra_fields": {"error": str(exc)[:200]}})
        return DEFAULT_RECRAFT_STYLE
    answer = answer.strip().strip("`'\".").lower()
    return answer if answer in RECRAFT_STYLES else DEFAULT_RECRAFT_STYLE


__all__ = ["complete", "extract_style", "extract_subject", "translate_to_english"]
