from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from relay_bot.llm.chat import complete, extract_style, translate_to_english


class FakeCompletions:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.text)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(**kwargs):
    completions = FakeCompletions(**kwargs)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def test_complete_passes_settings():
    client, completions = _client(text="  hi there \n")
    text = asyncio.run(complete(client, "deepseek-chat", [{"role": "user", "content": "hi"}], max_tokens=50, temperature=0.3))
    assert text == "hi there"
    call = completions.calls[0]
    assert call["max_tokens"] == 50
    assert call["temperature"] == 0.3
    assert call["n"] == 1
    assert call["stream"] is False


def test_complete_propagates_errors():
    client, _ = _client(error=RuntimeError("down"))
    with pytest.raises(RuntimeError):
        asyncio.run(complete(client, "m", [], max_tokens=1, temperature=1.0))


def test_translate_falls_back_to_prompt():
    client, _ = _client(error=RuntimeError("down"))
    assert asyncio.run(translate_to_english(client, "m", "bonjour")) == "bonjour"


def test_extract_style_validates_answer():
    client, _ = _client(text="`Icon`")
    assert asyncio.run(extract_style(client, "m", "a logo")) == "icon"
    client, _ = _client(text="watercolour please")
    assert asyncio.run(extract_style(client, "m", "a logo")) == "digital_illustration"
