from __future__ import annotations

import asyncio

import requests  # type: ignore[import-untyped]

from relay_bot.ingest.images import resize_for_video
from relay_bot.llm.clients import ApiEndpoint, Providers, ProviderNotConfigured
from relay_bot.media.results import GenerationResult, ImageInput
from relay_bot.utils.http import error_text, post_multipart
from relay_bot.utils.logging import get_logger
from relay_bot.utils.metrics import record_provider_call

log = get_logger(__name__)


class VideoTimeoutError(TimeoutError):
    pass


class VideoGenerationError(RuntimeError):
    pass


def _submit(endpoint: ApiEndpoint, frame: bytes) -> str:
    body, err = post_multipart(
        f"{endpoint.base_url}/v2beta/image-to-video",
        data={"motion_bucket_id": "127", "cfg_scale": "2.5", "seed": "0", "steps": "25"},
        files={"image": ("image.png", frame, "image/png")},
        headers=endpoint.auth_headers(),
        operation="stability_video_submit",
    )
    if err:
        raise VideoGenerationError(f"Stability AI API error: {err}")
    generation_id = (body or {}).get("id")
    if not generation_id:
        raise VideoGenerationError(
            "Failed to start video generation. No generation ID was returned from the API."
        )
    return generation_id


async def poll_video(
    endpoint: ApiEndpoint,
    generation_id: str,
    *,
    interval: float = 5.0,
    max_attempts: int = 60,
) -> bytes:
    """Poll until the render is ready.

    202 means still rendering, 200 carries the video bytes, anything else is an
    error. Raises :class:`VideoTimeoutError` after ``max_attempts`` polls.
    """
    url = f"{endpoint.base_url}/v2beta/image-to-video/result/{generation_id}"
    headers = endpoint.auth_headers(accept="video/*")
    for attempt in range(max_attempts):
        resp = await asyncio.to_thread(requests.get, url, headers=headers, timeout=60)
        if resp.status_code == 202:
            log.debug(
                "video_pending",
                extra={"extra_fields": {"generation_id": generation_id, "attempt": attempt + 1}},
            )
            if attempt + 1 < max_attempts:
                await asyncio.sleep(interval)
            continue
        if resp.status_code == 200:
            return resp.content
        raise VideoGenerationError(f"Stability AI API error: {resp.status_code} - {error_text(resp)}")
    raise VideoTimeoutError(f"Video generation timed out after {int(interval * max_attempts)} seconds")


async def generate_video(
    providers: Providers,
    image: ImageInput,
    *,
    interval: float = 5.0,
    max_attempts: int = 60,
) -> GenerationResult:
    try:
        endpoint = providers.require_stability()
        frame = await asyncio.to_thread(resize_for_video, image.data)
        generation_id = await asyncio.to_thread(_submit, endpoint, frame)
        log.info("video_submitted", extra={"extra_fields": {"generation_id": generation_id}})
        video = await poll_video(endpoint, generation_id, interval=interval, max_attempts=max_attempts)
    except ProviderNotConfigured as exc:
        record_provider_call("stability_video", ok=False)
        return GenerationResult.failure(f"Error generating video: {exc}")
    except Exception as exc:
        record_provider_call("stability_video", ok=False)
        log.error(
            "provider_call_failed",
            extra={"extra_fields": {"provider": "stability_video", "error": str(exc)[:200]}},
        )
        return GenerationResult.failure(f"Error generating video: {exc}")

    record_provider_call("stability_video", ok=True)
    return GenerationResult.ok(video, description="Video generated using Stability AI")


__all__ = ["generate_video", "poll_video", "VideoGenerationError", "VideoTimeoutError"]
