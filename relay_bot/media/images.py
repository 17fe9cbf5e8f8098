from __future__ import annotations

import asyncio
import base64
from typing import Literal, Optional

from relay_bot.ingest.images import resize_for_edit
from relay_bot.llm.chat import extract_style, extract_subject, translate_to_english
from relay_bot.llm.clients import ApiEndpoint, Providers, ProviderNotConfigured
from relay_bot.media.results import GenerationResult, ImageInput
from relay_bot.utils.http import get_bytes, post_json, post_multipart
from relay_bot.utils.logging import get_logger
from relay_bot.utils.metrics import record_provider_call

log = get_logger(__name__)

ImageService = Literal["dalle", "gemini", "stability", "recraft", "openai_edit"]

SERVICE_NAMES: dict[str, str] = {
    "dalle": "DALL-E 3",
    "gemini": "Google Imagen",
    "stability": "Stability AI",
    "recraft": "Recraft.ai",
    "openai_edit": "OpenAI",
}

NO_IMAGES = "Failed to generate an image. No images were returned from the API."


def _decode_first_b64(items) -> bytes | None:
    if not items:
        return None
    b64 = getattr(items[0], "b64_json", None)
    return base64.b64decode(b64) if b64 else None


async def generate_dalle(providers: Providers, prompt: str) -> GenerationResult:
    client = providers.require_openai()
    response = await client.images.generate(
        model=providers.image_model,
        prompt=prompt,
        n=1,
        size="1024x1024",
        quality="standard",
        response_format="b64_json",
    )
    data = _decode_first_b64(getattr(response, "data", None))
    if data is None:
        return GenerationResult.failure(NO_IMAGES)
    return GenerationResult.ok(data)


async def edit_openai(providers: Providers, prompt: str, image: ImageInput) -> GenerationResult:
    client = providers.require_openai()
    response = await client.images.edit(
        model=providers.edit_model,
        image=(image.filename, image.data, image.content_type),
        prompt=prompt,
        n=1,
    )
    data = _decode_first_b64(getattr(response, "data", None))
    if data is None:
        return GenerationResult.failure("Failed to edit the image. No images were returned from the API.")
    return GenerationResult.ok(data)


async def generate_imagen(providers: Providers, prompt: str) -> GenerationResult:
    imagen = providers.require_imagen()
    data = await asyncio.to_thread(imagen.generate, prompt)
    if not data:
        return GenerationResult.failure(NO_IMAGES)
    return GenerationResult.ok(data)


def _stability_request(
    endpoint: ApiEndpoint, prompt: str, image: Optional[bytes], subject: str
) -> tuple[dict | None, str | None]:
    headers = endpoint.auth_headers()
    if image is None:
        return post_multipart(
            f"{endpoint.base_url}/v2beta/stable-image/generate/core",
            data={"prompt": prompt, "output_format": "png"},
            files={"none": ""},
            headers=headers,
            operation="stability_generate",
        )
    return post_multipart(
        f"{endpoint.base_url}/v2beta/stable-image/edit/search-and-replace",
        data={"prompt": prompt, "search_prompt": subject, "output_format": "png"},
        files={"image": ("image.png", image, "image/png")},
        headers=headers,
        operation="stability_edit",
    )


async def generate_stability(
    providers: Providers, prompt: str, base_image: Optional[ImageInput] = None
) -> GenerationResult:
    endpoint = providers.require_stability()
    english = await translate_to_english(providers.chat, providers.chat_model, prompt)
    image = None
    subject = english
    if base_image is not None:
        image = await asyncio.to_thread(resize_for_edit, base_image.data)
        subject = await extract_subject(providers.chat, providers.chat_model, english)
    log.info(
        "stability_request",
        extra={"extra_fields": {"mode": "edit" if image else "generate", "subject": subject[:80]}},
    )
    body, err = await asyncio.to_thread(_stability_request, endpoint, english, image, subject)
    if err:
        return GenerationResult.failure(f"Error generating image: Stability AI API error: {err}")
    encoded = (body or {}).get("image")
    if not encoded:
        verb = "modify" if base_image is not None else "generate"
        return GenerationResult.failure(
            f"Failed to {verb} image. No image was returned from the API."
        )
    return GenerationResult.ok(base64.b64decode(encoded))


def _recraft_request(
    endpoint: ApiEndpoint, prompt: str, style: str, base_image: Optional[ImageInput]
) -> tuple[dict | None, str | None]:
    headers = endpoint.auth_headers()
    if base_image is None:
        return post_json(
            f"{endpoint.base_url}/images/generations",
            {
                "prompt": prompt,
                "style": style,
                "size": "1024x1024",
                "n": 1,
                "response_format": "b64_json",
            },
            headers=headers,
            operation="recraft_generate",
        )
    return post_multipart(
        f"{endpoint.base_url}/images/imageToImage",
        data={"prompt": prompt, "strength": "0.2", "style": style},
        files={"image": (base_image.filename, base_image.data, base_image.content_type)},
        headers=headers,
        operation="recraft_image_to_image",
    )


async def generate_recraft(
    providers: Providers, prompt: str, base_image: Optional[ImageInput] = None
) -> GenerationResult:
    endpoint = providers.require_recraft()
    style = await extract_style(providers.chat, providers.chat_model, prompt)
    body, err = await asyncio.to_thread(_recraft_request, endpoint, prompt, style, base_image)
    if err:
        return GenerationResult.failure(f"Error generating image: Recraft.ai API error: {err}")
    items = (body or {}).get("data") or []
    if not items:
        return GenerationResult.failure(NO_IMAGES)
    first = items[0]
    if first.get("b64_json"):
        return GenerationResult.ok(base64.b64decode(first["b64_json"]))
    if first.get("url"):
        data, dl_err = await asyncio.to_thread(get_bytes, first["url"])
        if data is None:
            return GenerationResult.failure(
                f"Failed to download the generated image from the provided URL: {dl_err}"
            )
        return GenerationResult.ok(data)
    return GenerationResult.failure("Failed to retrieve image data from the API response.")


async def generate_image(
    providers: Providers,
    prompt: str,
    service: ImageService,
    base_image: Optional[ImageInput] = None,
) -> GenerationResult:
    """Run one image request and never raise; failures come back as results."""
    if service == "gemini" and base_image is not None:
        return GenerationResult.failure(
            "Image modifications are not supported by Google Imagen. "
            "Please use Stability AI, Recraft.ai or OpenAI edit instead."
        )
    if service == "openai_edit" and base_image is None:
        return GenerationResult.failure("Please attach an image to edit.")

    try:
        if service == "gemini":
            result = await generate_imagen(providers, prompt)
        elif service == "stability":
            result = await generate_stability(providers, prompt, base_image)
        elif service == "recraft":
            result = await generate_recraft(providers, prompt, base_image)
        elif service == "openai_edit":
            result = await edit_openai(providers, prompt, base_image)
        else:
            result = await generate_dalle(providers, prompt)
    except ProviderNotConfigured as exc:
        record_provider_call(service, ok=False)
        return GenerationResult.failure(f"Error generating image: {exc}")
    except Exception as exc:
        record_provider_call(service, ok=False)
        log.error(
            "provider_call_failed",
            extra={"extra_fields": {"provider": service, "error": str(exc)[:200]}},
        )
        return GenerationResult.failure(f"Error generating image: {exc}")

    record_provider_call(service, ok=result.success)
    verb = "modified" if base_image is not None else "generated"
    result.description = f"Image {verb} using {SERVICE_NAMES[service]}"
    return result


__all__ = ["generate_image", "ImageService", "SERVICE_NAMES"]
