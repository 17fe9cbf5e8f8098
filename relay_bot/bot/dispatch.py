from __future__ import annotations

import io
from typing import Any, Optional

import discord

from relay_bot.chat.commands import parse_commands
from relay_bot.chat.history import ConversationStore
from relay_bot.chat.inflight import InFlightGuard
from relay_bot.ingest.attachments import AttachmentError, resolve_image
from relay_bot.llm.chat import complete
from relay_bot.llm.clients import Providers
from relay_bot.llm.prompts import HELP_TEXT
from relay_bot.media.images import SERVICE_NAMES, generate_image
from relay_bot.media.results import GenerationResult
from relay_bot.media.video import generate_video
from relay_bot.utils.chunking import DEFAULT_CHUNK_SIZE, split_into_chunks
from relay_bot.utils.logging import get_logger
from relay_bot.utils.metrics import record_command, record_duplicate_delivery
from relay_bot.web.search import web_search

log = get_logger(__name__)

CLEAR_COMMAND = "!clear"
SYSTEM_COMMAND = "!system"
IMG_COMMAND = "!img"
GIMG_COMMAND = "!gimg"
SIMG_COMMAND = "!simg"
RIMG_COMMAND = "!rimg"
EDIT_COMMAND = "!edit"
VIDEO_COMMAND = "!video"
SEARCH_COMMAND = "!search"
HELP_COMMAND = "!help"

IMAGE_COMMANDS = {
    IMG_COMMAND: "dalle",
    GIMG_COMMAND: "gemini",
    SIMG_COMMAND: "stability",
    RIMG_COMMAND: "recraft",
    EDIT_COMMAND: "openai_edit",
}

GENERIC_ERROR = "Sorry, something went wrong while processing your request."


def strip_mention(content: str, bot_user_id: int | str) -> Optional[str]:
    """Text after a leading bot mention, or ``None`` if the message doesn't start with one."""
    for mention in (f"<@{bot_user_id}>", f"<@!{bot_user_id}>"):
        if content.startswith(mention):
            return content[len(mention):].strip()
    return None


def split_keyword(content: str) -> tuple[str, str]:
    """Lower-cased first token and the stripped remainder."""
    parts = content.split(maxsplit=1)
    if not parts:
        return "", ""
    rest = parts[1].strip() if len(parts) > 1 else ""
    return parts[0].lower(), rest


def is_text_channel(channel: Any) -> bool:
    return isinstance(channel, (discord.TextChannel, discord.Thread))


class MessageHandler:
    """Routes one mention-prefixed message to chat, a command, or a provider."""

    def __init__(
        self,
        providers: Providers,
        history: ConversationStore,
        *,
        inflight: InFlightGuard | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        video_poll_interval: float = 5.0,
        video_poll_attempts: int = 60,
    ) -> None:
        self.providers = providers
        self.history = history
        self.inflight = inflight or InFlightGuard()
        self.chunk_size = chunk_size
        self.video_poll_interval = video_poll_interval
        self.video_poll_attempts = video_poll_attempts

    async def handle(self, message: Any, bot_user_id: int | str) -> None:
        if message.author.bot:
            return
        content = strip_mention(message.content or "", bot_user_id)
        if content is None:
            return

        key = str(message.id)
        with self.inflight.hold(key) as acquired:
            if not acquired:
                record_duplicate_delivery()
                log.info("duplicate_delivery_dropped", extra={"extra_fields": {"message_id": key}})
                return
            try:
                await self._route(message, content)
                log.info(
                    "message_handled",
                    extra={"extra_fields": {"message_id": key, "user_id": str(message.author.id)}},
                )
            except Exception as exc:
                log.exception(
                    "message_failed",
                    extra={"extra_fields": {"message_id": key, "error": str(exc)[:200]}},
                )
                await self._reply(message, GENERIC_ERROR)

    async def _reply(self, message: Any, content: str):
        return await message.reply(content=content, mention_author=True)

    async def _fetch_replied(self, message: Any) -> Optional[Any]:
        reference = getattr(message, "reference", None)
        ref_id = getattr(reference, "message_id", None) if reference else None
        if not ref_id:
            return None
        try:
            return await message.channel.fetch_message(ref_id)
        except discord.HTTPException as exc:
            log.warning(
                "replied_message_unavailable",
                extra={"extra_fields": {"message_id": str(message.id), "ref_id": str(ref_id), "error": str(exc)}},
            )
            return None

    async def _route(self, message: Any, content: str) -> None:
        replied = await self._fetch_replied(message)
        context = replied
        if not content and replied is not None:
            content = (replied.content or "").strip()
            # the replied-to text is the prompt itself, not extra context
            context = None
        if not content:
            await self._reply(message, "Please provide a message along with the mention.")
            return

        user_id = str(message.author.id)
        keyword, rest = split_keyword(content)

        if keyword == SYSTEM_COMMAND:
            record_command("system")
            if not rest:
                await self._reply(message, "Please provide a system prompt after the !system command.")
                return
            self.history.set_system_prompt(user_id, rest)
            await self._reply(message, "System prompt updated successfully!")
            return

        if keyword == CLEAR_COMMAND:
            record_command("clear")
            self.history.reset(user_id)
            if not rest:
                await self._reply(
                    message,
                    "Your conversation history has been cleared and system prompt reset to default. Starting fresh!",
                )
                return
            content = rest
            keyword, rest = split_keyword(content)

        if keyword in IMAGE_COMMANDS:
            record_command(keyword.lstrip("!"))
            await self._handle_image(message, rest, IMAGE_COMMANDS[keyword], keyword, replied)
            return
        if keyword == VIDEO_COMMAND:
            record_command("video")
            await self._handle_video(message, replied)
            return
        if keyword == SEARCH_COMMAND:
            record_command("search")
            await self._handle_search(message, rest, replied)
            return
        if keyword == HELP_COMMAND:
            record_command("help")
            for chunk in split_into_chunks(HELP_TEXT.strip(), self.chunk_size):
                await self._reply(message, chunk)
            return

        record_command("chat")
        await self._handle_chat(message, content, context)

    async def _handle_chat(self, message: Any, content: str, replied: Optional[Any]) -> None:
        if not is_text_channel(message.channel):
            await self._reply(message, "I can only respond in text channels.")
            return

        parsed = parse_commands(content)
        if not parsed.content:
            await self._reply(message, "Please provide a message after the settings.")
            return

        user_id = str(message.author.id)
        typing_message = await message.channel.send(content="...")

        if replied is not None and replied.content:
            self.history.append_turn(user_id, "user", f"Previous message: {replied.content}")
        turns = self.history.append_turn(user_id, "user", parsed.content)

        try:
            text = await complete(
                self.providers.chat,
                self.providers.chat_model,
                turns,
                max_tokens=parsed.max_tokens,
                temperature=parsed.temperature,
            )
        except Exception as exc:
            log.error(
                "provider_call_failed",
                extra={"extra_fields": {"provider": "chat", "message_id": str(message.id), "error": str(exc)[:200]}},
            )
            await typing_message.edit(content=GENERIC_ERROR)
            return

        if not text:
            await typing_message.edit(content="Sorry, I couldn't process that request.")
            return

        self.history.append_turn(user_id, "assistant", text)
        await self._send_chunks(message, typing_message, text)

    async def _send_chunks(self, message: Any, first: Any, text: str) -> None:
        chunks = [c for c in split_into_chunks(text, self.chunk_size) if c.strip()]
        if not chunks:
            await first.edit(content="Sorry, I received an empty response.")
            return
        await first.edit(content=chunks[0])
        for chunk in chunks[1:]:
            await message.channel.send(
                content=chunk,
                allowed_mentions=discord.AllowedMentions(replied_user=False),
            )

    async def _resolve_image_or_reply(self, message: Any, replied: Optional[Any]):
        """Returns ``(ok, image)``; ``ok`` is False once the user was told about a bad attachment."""
        try:
            return True, await resolve_image(message, replied)
        except AttachmentError as exc:
            log.warning(
                "attachment_unreadable",
                extra={"extra_fields": {"message_id": str(message.id), "error": str(exc)}},
            )
            await self._reply(message, "Failed to process the attached image. Please try again.")
            return False, None

    async def _handle_image(
        self, message: Any, prompt: str, service: str, keyword: str, replied: Optional[Any]
    ) -> None:
        if not prompt and replied is not None:
            prompt = (replied.content or "").strip()
        if not prompt:
            await self._reply(
                message,
                f"Please provide a description of the image you want to generate after the {keyword} command.",
            )
            return

        ok, base_image = await self._resolve_image_or_reply(message, replied)
        if not ok:
            return
        if service == "openai_edit" and base_image is None:
            await self._reply(
                message,
                "Please attach an image to edit, or reply to a message containing one.",
            )
            return

        action = "Modifying" if base_image is not None else "Generating"
        progress = await self._reply(
            message, f"🎨 {action} your image with {SERVICE_NAMES[service]}, please wait..."
        )
        result = await generate_image(self.providers, prompt, service, base_image)
        verb = "modify" if base_image is not None else "generate"
        await self._deliver_file(progress, result, f"{service}-generated-image.png", f"Failed to {verb} image")

    async def _handle_video(self, message: Any, replied: Optional[Any]) -> None:
        ok, image = await self._resolve_image_or_reply(message, replied)
        if not ok:
            return
        if image is None:
            await self._reply(
                message,
                "Please provide an image to generate a video from. You can either attach an image "
                "or reply to a message containing an image.",
            )
            return
        progress = await self._reply(message, "🎬 Generating your video with Stability AI, please wait...")
        result = await generate_video(
            self.providers,
            image,
            interval=self.video_poll_interval,
            max_attempts=self.video_poll_attempts,
        )
        await self._deliver_file(progress, result, "stability-generated-video.mp4", "Failed to generate video")

    async def _handle_search(self, message: Any, query: str, replied: Optional[Any]) -> None:
        if not query and replied is not None:
            query = (replied.content or "").strip()
        if not query:
            await self._reply(message, "Please provide a search query after the !search command.")
            return
        progress = await self._reply(message, "🔎 Searching the web, please wait...")
        result = await web_search(self.providers, query)
        if not result.success:
            await progress.edit(content=f"Search failed: {result.data}")
            return
        await self._send_chunks(message, progress, str(result.data))

    async def _deliver_file(self, progress: Any, result: GenerationResult, filename: str, failure: str) -> None:
        if result.success and isinstance(result.data, bytes):
            file = discord.File(io.BytesIO(result.data), filename=filename, description=result.description)
            await progress.edit(content="", attachments=[file])
        else:
            await progress.edit(content=f"{failure}: {result.data}")


__all__ = ["MessageHandler", "split_keyword", "strip_mention", "is_text_channel"]
