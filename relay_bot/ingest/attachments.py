from __future__ import annotations
from typing import Any, Optional
import mimetypes

import discord

from relay_bot.media.results import ImageInput
from relay_bot.utils.logging import get_logger

log = get_logger(__name__)


class AttachmentError(Exception):
    pass


def _detect_mime(attachment, filename: str) -> str:
    """Prefer Discord's content_type; fall back to filename-based guess."""
    ct = getattr(attachment, "content_type", None) or ""
    if ct:
        return ct.split(";")[0].strip()
    guess, _ = mimetypes.guess_type(filename)
    return guess or "application/octet-stream"


async def read_image(attachment) -> ImageInput:
    name = getattr(attachment, "filename", None) or "image.png"
    mime = _detect_mime(attachment, name)
    if not mime.startswith("image/"):
        raise AttachmentError(f"{name} is not an image ({mime})")
    try:
        data = await attachment.read()
    except discord.HTTPException as exc:
        raise AttachmentError(f"could not download {name}: {exc}") from exc
    if not data:
        raise AttachmentError(f"{name} is empty")
    return ImageInput(data=data, content_type=mime, filename=name)


async def resolve_image(message: Any, replied: Optional[Any]) -> Optional[ImageInput]:
    """First image attached to ``message``, else to the message it replies to.

    A broken attachment on ``message`` itself raises :class:`AttachmentError`;
    one on the replied-to message is logged and treated as absent.
    """
    if message.attachments:
        return await read_image(message.attachments[0])
    if replied is not None and getattr(replied, "attachments", None):
        try:
            return await read_image(replied.attachments[0])
        except AttachmentError as exc:
            log.warning(
                "reply_attachment_unreadable",
                extra={"extra_fields": {"message_id": str(replied.id), "error": str(exc)}},
            )
    return None
