from __future__ import annotations

import asyncio
from types import SimpleNamespace

from relay_bot.llm.clients import Providers
from relay_bot.web.search import format_answer, web_search


class FakeCompletions:
    def __init__(self, text, citations=None):
        self.text = text
        self.citations = citations

    async def create(self, **kwargs):
        message = SimpleNamespace(content=self.text)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)], citations=self.citations)


def _client(text, citations=None):
    return SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(text, citations)))


def test_format_answer_numbers_sources():
    out = format_answer("Paris.", ["https://a.test", "https://b.test"])
    assert out == "Paris.\n\n**Sources:**\n[1] <https://a.test>\n[2] <https://b.test>"
    assert format_answer(" Paris. ", None) == "Paris."


def test_search_not_configured():
    result = asyncio.run(web_search(Providers(chat=object(), chat_model="m"), "q"))
    assert result.success is False
    assert "PERPLEXITY_API_KEY" in result.data


def test_search_returns_answer_with_citations():
    providers = Providers(chat=object(), chat_model="m", search=_client("It is 42.", ["https://x.test"]))
    result = asyncio.run(web_search(providers, "answer?"))
    assert result.success is True
    assert result.data.startswith("It is 42.")
    assert "[1] <https://x.test>" in result.data


def test_search_empty_answer_is_failure():
    providers = Providers(chat=object(), chat_model="m", search=_client("  "))
    result = asyncio.run(web_search(providers, "answer?"))
    assert result.success is False
