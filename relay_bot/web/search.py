from __future__ import annotations
from typing import Any, List

from relay_bot.llm.clients import Providers, ProviderNotConfigured
from relay_bot.media.results import GenerationResult
from relay_bot.utils.logging import get_logger
from relay_bot.utils.metrics import record_provider_call

log = get_logger(__name__)

SEARCH_SYSTEM = "Answer the question using current web results. Be concise and factual."

def format_answer(text: str, citations: List[Any] | None) -> str:
    text = (text or "").strip()
    links = [str(c) for c in (citations or []) if c]
    if not links:
        return text
    sources = "\n".join(f"[{i}] <{url}>" for i, url in enumerate(links, start=1))
    return f"{text}\n\n**Sources:**\n{sources}"

async def web_search(providers: Providers, query: str) -> GenerationResult:
    try:
        client = providers.require_search()
        completion = await client.chat.completions.create(
            model=providers.search_model,
            messages=[
                {"role": "system", "content": SEARCH_SYSTEM},
                {"role": "user", "content": query},
            ],
        )
    except ProviderNotConfigured as exc:
        record_provider_call("search", ok=False)
        return GenerationResult.failure(f"Error searching the web: {exc}")
    except Exception as exc:
        record_provider_call("search", ok=False)
        log.error("provider_call_failed", extra={"extra_fields": {"provider": "search", "error": str(exc)[:200]}})
        return GenerationResult.failure(f"Error searching the web: {exc}")

    record_provider_call("search", ok=True)
    choices = getattr(completion, "choices", None) or []
    text = (choices[0].message.content or "") if choices else ""
    if not text.strip():
        return GenerationResult.failure("The search returned no answer.")
    # citations is a Perplexity extension to the OpenAI response shape
    citations = getattr(completion, "citations", None)
    return GenerationResult.ok(format_answer(text, citations), description="Answer from Perplexity")
