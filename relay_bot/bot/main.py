from __future__ import annotations

import asyncio
import json
import signal

import discord
from discord.ext import commands

from relay_bot.bot.dispatch import MessageHandler
from relay_bot.chat.history import ConversationStore
from relay_bot.config import Settings, settings
from relay_bot.llm.clients import Providers
from relay_bot.utils.logging import configure_logging, get_logger
from relay_bot.utils.metrics import metrics, record_command

log = get_logger(__name__)


def make_intents() -> discord.Intents:
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.guild_messages = True
    return intents


class RelayBot(commands.Bot):
    def __init__(self, handler: MessageHandler):
        super().__init__(command_prefix=commands.when_mentioned, intents=make_intents())
        self.handler = handler

    async def setup_hook(self) -> None:
        @self.tree.command(name="status", description="Show bot status (counters & sessions).")
        async def status(interaction: discord.Interaction):
            record_command("status")
            snap = metrics.snapshot()
            snap["active_sessions"] = len(self.handler.history)
            snap["providers"] = self.handler.providers.enabled()
            content = "```json\n" + json.dumps(snap, indent=2) + "\n```"
            await interaction.response.send_message(content, ephemeral=True)

        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGTERM, lambda: asyncio.ensure_future(self.close()))
        except NotImplementedError:
            pass

        try:
            await self.tree.sync()
        except discord.HTTPException as e:
            log.error("sync_error", extra={"extra_fields": {"error": str(e)}})

    async def on_ready(self) -> None:
        log.info("bot_ready", extra={"extra_fields": {"user": str(self.user)}})

    async def on_message(self, message: discord.Message) -> None:
        if self.user is None:
            return
        await self.handler.handle(message, self.user.id)

    async def close(self) -> None:
        # pending eviction timers would otherwise fire into a closing loop
        self.handler.history.teardown()
        log.info("bot_closing", extra={"extra_fields": {"sessions": len(self.handler.history)}})
        await super().close()


def build_handler(cfg: Settings) -> MessageHandler:
    history = ConversationStore(
        cfg.DEFAULT_SYSTEM_MESSAGE,
        max_messages=cfg.MAX_MESSAGES,
        timeout=cfg.CONVERSATION_TIMEOUT_SECONDS,
    )
    return MessageHandler(
        Providers.from_settings(cfg),
        history,
        chunk_size=cfg.MESSAGE_CHUNK_SIZE,
        video_poll_interval=cfg.VIDEO_POLL_INTERVAL_SECONDS,
        video_poll_attempts=cfg.VIDEO_POLL_MAX_ATTEMPTS,
    )


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    missing = settings.missing_required()
    if missing:
        log.error("missing_configuration", extra={"extra_fields": {"missing": missing}})
        raise SystemExit(f"Missing required environment variables: {', '.join(missing)}")

    bot = RelayBot(build_handler(settings))
    # Ctrl-C unwinds bot.run, which calls close(); SIGTERM is wired in setup_hook
    bot.run(settings.DISCORD_BOT_TOKEN, log_handler=None)


if __name__ == "__main__":
    main()
