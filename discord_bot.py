"""
Discord bot for the EVE skill monitor.

Lets users register EVE characters with /monitor, creates a private
channel per character and keeps it updated with the skill queue.

Usage:
    python discord_bot.py

Environment variables:
    DISCORD_BOT_TOKEN - Discord bot token (required)
    DISCORD_CATEGORY_ID - Category new character channels are created in (required)
    STORAGE_FOLDER - Folder holding the character checkpoints (required, must exist)
    WEBSERVER_URL - Public URL of the login webserver (required)
    EVE_CLIENT_ID / EVE_CLIENT_SECRET - EVE SSO application (required)
    WEBSERVER_HOST / WEBSERVER_PORT - Bind address of the webserver (default: 0.0.0.0:3000)
    MONITOR_ROTATION_MINUTES - Time to poll every character once (default: 30)
    MONITOR_FAILURE_THRESHOLD - Failed polls in a row before suspending (default: 8)
"""

from __future__ import annotations

import asyncio
import sys
from datetime import timedelta

# Load .env BEFORE other imports that read env vars at module level
from dotenv import load_dotenv

load_dotenv()

import discord
import uvicorn
from discord import app_commands

from bot_config import MonitorConfig, get_config
from esi import EsiOAuth, EsiProgressSource
from logging_config import get_logger, init_logging
from monitor import (
    ChannelProvisioner,
    CheckpointError,
    CheckpointStore,
    EntityRegistry,
    EntityUpdater,
    MonitorScheduler,
    NotificationError,
    Notifier,
    Onboarding,
    ProvisioningError,
    StorageConfigError,
    SuspensionPolicy,
)
from pending_auth import PendingAuthStore
from webserver import create_app

logger = get_logger("discord")

# Discord message limit
DISCORD_MSG_LIMIT = 2000

ACTIVITY_THREAD_NAME = "Activity"


def split_message(text: str, max_len: int = DISCORD_MSG_LIMIT) -> list[str]:
    """Split a long message into chunks, preferring line boundaries."""
    if len(text) <= max_len:
        return [text]

    chunks = []
    remaining = text

    while remaining:
        if len(remaining) <= max_len:
            chunks.append(remaining)
            break

        chunk = remaining[:max_len]
        split_point = max_len

        newline = chunk.rfind("\n")
        if newline > max_len // 2:
            split_point = newline + 1
        else:
            space = chunk.rfind(" ")
            if space > max_len // 2:
                split_point = space + 1

        chunks.append(remaining[:split_point].rstrip())
        remaining = remaining[split_point:].lstrip()

    return chunks


def channel_slug(name: str) -> str:
    """Channel name for a character; EVE names can contain spaces and quotes."""
    return name.replace(" ", "-").replace("'", "-")


class DiscordNotifier(Notifier):
    """Notifier that posts into channels and threads of the bot."""

    def __init__(self, client: discord.Client):
        self._client = client

    async def _channel(self, target: int):
        channel = self._client.get_channel(target)
        if channel is not None:
            return channel
        try:
            return await self._client.fetch_channel(target)
        except discord.HTTPException as e:
            raise NotificationError(f"Channel {target} not found: {e}") from e

    async def send(self, target: int, text: str) -> None:
        channel = await self._channel(target)
        try:
            for chunk in split_message(text):
                await channel.send(chunk)
        except discord.HTTPException as e:
            raise NotificationError(f"Failed to send to {target}: {e}") from e

    async def replace_last(self, target: int, text: str) -> None:
        channel = await self._channel(target)
        text = split_message(text)[0]
        try:
            async for message in channel.history(limit=1):
                if message.author == self._client.user:
                    await message.edit(content=text)
                    return
            await channel.send(text)
        except discord.HTTPException as e:
            raise NotificationError(f"Failed to update {target}: {e}") from e


class DiscordChannelProvisioner(ChannelProvisioner):
    """Creates one private, read-only channel per character."""

    def __init__(self, client: discord.Client):
        self._client = client

    async def create_private_channel(
        self,
        guild_id: int,
        category_id: int,
        owner_id: int,
        display_name: str,
    ) -> tuple[int, int]:
        guild = self._client.get_guild(guild_id)
        if guild is None:
            raise ProvisioningError(f"Guild {guild_id} is not available")

        category = guild.get_channel(category_id)
        if not isinstance(category, discord.CategoryChannel):
            raise ProvisioningError(f"Category {category_id} not found")

        try:
            owner = guild.get_member(owner_id) or await guild.fetch_member(owner_id)

            # Only the bot speaks; the owner can read
            overwrites = {
                guild.default_role: discord.PermissionOverwrite(view_channel=False),
                guild.me: discord.PermissionOverwrite(
                    view_channel=True,
                    read_message_history=True,
                    send_messages=True,
                    send_messages_in_threads=True,
                    create_public_threads=True,
                    create_private_threads=True,
                ),
                owner: discord.PermissionOverwrite(
                    view_channel=True,
                    read_message_history=True,
                    send_messages=False,
                    send_messages_in_threads=False,
                    create_public_threads=False,
                    create_private_threads=False,
                ),
            }

            channel = await guild.create_text_channel(
                channel_slug(display_name),
                category=category,
                topic=f"Skill training status of {display_name}.",
                overwrites=overwrites,
            )
            thread = await channel.create_thread(
                name=ACTIVITY_THREAD_NAME,
                type=discord.ChannelType.public_thread,
                auto_archive_duration=10080,  # one week
            )
            await thread.send(
                f"<@{owner_id}>: here I will let you know when a skill training finished."
            )
        except discord.HTTPException as e:
            raise ProvisioningError(str(e)) from e

        return channel.id, thread.id


class SkillMonitorBot(discord.Client):
    """Discord client hosting the /monitor command."""

    def __init__(self, config: MonitorConfig, pending: PendingAuthStore):
        intents = discord.Intents.default()
        intents.guilds = True
        super().__init__(
            intents=intents,
            activity=discord.CustomActivity(name="Monitoring your skills"),
        )
        self.config = config
        self.pending = pending
        self.tree = app_commands.CommandTree(self)

    async def setup_hook(self) -> None:
        """Register the global commands once, before connecting."""

        @self.tree.command(name="monitor", description="Monitor skills for an EVE character.")
        async def monitor_command(interaction: discord.Interaction):
            await self.handle_monitor(interaction)

        try:
            await self.tree.sync()
        except discord.HTTPException as e:
            logger.error(f"Error creating global command: {e}")

    async def on_ready(self):
        """Called when bot is ready."""
        logger.info(f"Connected to Discord as {self.user}")

    async def handle_monitor(self, interaction: discord.Interaction) -> None:
        """Start the login flow; replies are ephemeral so any channel works."""
        if interaction.guild_id is None:
            await interaction.response.send_message(
                "Use /monitor in a server so I can create a channel for you.",
                ephemeral=True,
            )
            return

        state = self.pending.create(interaction)
        await interaction.response.send_message(
            f"Visit {self.config.webserver_url}/login?state={state} "
            "to authenticate an EVE Online character to monitor.",
            ephemeral=True,
        )


# ============== Main Entry Point ==============


async def run_monitor(bot: SkillMonitorBot, scheduler: MonitorScheduler, store: CheckpointStore):
    """Restore the rotation and poll forever once Discord is ready."""
    await bot.wait_until_ready()
    await scheduler.restore(store)
    await scheduler.run()


async def run_webserver(app, config: MonitorConfig):
    """Run the FastAPI login server."""
    server_config = uvicorn.Config(
        app, host=config.webserver_host, port=config.webserver_port, log_level="warning"
    )
    server = uvicorn.Server(server_config)
    await server.serve()


async def async_main(config: MonitorConfig):
    """Wire everything together and run bot, webserver and monitor."""
    store = CheckpointStore(config.storage_folder)
    pending = PendingAuthStore(timeout_seconds=config.pending_timeout_seconds)
    bot = SkillMonitorBot(config, pending)

    oauth = EsiOAuth(
        config.eve_client_id,
        config.eve_client_secret,
        f"{config.webserver_url}/callback",
    )
    source = EsiProgressSource(oauth)
    notifier = DiscordNotifier(bot)

    registry = EntityRegistry()
    updater = EntityUpdater(
        store,
        source,
        notifier,
        policy=SuspensionPolicy(config.failure_threshold),
        period=timedelta(seconds=config.rotation_seconds),
    )
    scheduler = MonitorScheduler(registry, updater, period=config.rotation_seconds)
    onboarding = Onboarding(
        store,
        registry,
        updater,
        notifier,
        DiscordChannelProvisioner(bot),
        config.discord_category_id,
    )
    app = create_app(pending, oauth, onboarding)

    logger.info(f"Storage folder: {store.folder}")
    logger.info(f"Login server at {config.webserver_url} (bind {config.webserver_host}:{config.webserver_port})")
    logger.info(
        f"Rotation every {config.rotation_minutes} minutes, "
        f"suspend after {config.failure_threshold} failures"
    )

    async with bot:
        await asyncio.gather(
            bot.start(config.discord_bot_token),
            run_webserver(app, config),
            pending.run_sweeper(),
            run_monitor(bot, scheduler, store),
        )


def main():
    """Run the skill monitor."""
    config = get_config()
    init_logging()

    missing = config.missing()
    if missing:
        logger.critical(f"Missing required environment variables: {', '.join(missing)}")
        sys.exit(1)

    try:
        asyncio.run(async_main(config))
    except StorageConfigError as e:
        logger.critical(str(e))
        sys.exit(1)
    except CheckpointError as e:
        logger.critical(f"Unrecoverable checkpoint error, stopping: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    main()
