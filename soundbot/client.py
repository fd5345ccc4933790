from __future__ import annotations

import asyncio
import logging
from typing import Any

import discord
from discord import app_commands
from discord.ext import commands

from soundbot.audio.dca import frames_duration, load_frames
from soundbot.discord.cog import SoundCog
from soundbot.discord.errors import handle_app_command_error, handle_command_error, notify_admin_error


class SoundBot(commands.Bot):
    def __init__(self, config: dict[str, Any]) -> None:
        intents = discord.Intents.default()
        intents.guilds = True
        intents.guild_messages = True
        intents.message_content = True
        intents.voice_states = True
        status = (config.get("status_message") or "")[:128]
        super().__init__(
            command_prefix=config.get("command_prefix", "!"),
            intents=intents,
            application_id=config["app_id"],
            activity=discord.CustomActivity(name=status) if status else None,
        )
        self.config = config
        self.sound: list[bytes] = []
        self._commands_registered = False
        self.tree.error(self.on_app_command_error)

    async def setup_hook(self) -> None:
        if sound_file := self.config.get("sound_file"):
            self.sound = await asyncio.to_thread(load_frames, sound_file)
            logging.info(
                "Loaded %d frames (%.2fs) from %s", len(self.sound), frames_duration(self.sound), sound_file
            )
        await self.add_cog(SoundCog(self))

    # ── Events ───────────────────────────────────────────────────────────────

    async def on_ready(self) -> None:
        logging.info("Gateway connected as %s (%s)", self.user, getattr(self.user, "id", None))
        if not self._commands_registered:
            self._commands_registered = True
            await self.register_guild_commands()

    async def register_guild_commands(self) -> list[app_commands.AppCommand]:
        """
        Log the guild's existing commands, then publish ours to that guild.
        """
        guild = discord.Object(id=self.config["guild_id"])
        try:
            existing = await self.tree.fetch_commands(guild=guild)
            for command in existing:
                logging.info("Existing command %s found.", command.name)
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
        except discord.HTTPException as e:
            logging.error("Failed to register guild commands: %s", e)
            await notify_admin_error(self, self.config, e, "Guild command registration")
            return []
        logging.info("Synced %d slash commands to guild %s", len(synced), guild.id)
        return synced

    async def on_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        await handle_app_command_error(interaction, error, self, self.config)

    async def on_command_error(self, ctx: commands.Context, error: commands.CommandError) -> None:
        await handle_command_error(ctx, error, self.config)

    async def close(self) -> None:
        for voice_client in list(self.voice_clients):
            try:
                await voice_client.disconnect(force=True)
            except Exception as e:  # noqa: BLE001
                logging.warning("Could not disconnect from voice cleanly: %s", e)
        await super().close()
