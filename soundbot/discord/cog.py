from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from soundbot.audio.errors import AlreadyPlayingError, NoVoiceChannelError
from soundbot.audio.ffmpeg import FFmpegOptions
from soundbot.audio.player import connect_voice, play_frames, stream_file

if TYPE_CHECKING:
    from soundbot.client import SoundBot


VoiceLike = discord.VoiceChannel | discord.StageChannel


class SoundCog(commands.Cog):
    """Slash and text commands that put audio into voice channels."""

    def __init__(self, bot: SoundBot) -> None:
        self.bot = bot

    def resolve_voice_channel(self, member: discord.abc.User) -> VoiceLike:
        """
        The configured voice channel if it exists, otherwise the member's current one.
        """
        channel_id = self.bot.config.get("voice_channel_id")
        if channel_id:
            channel = self.bot.get_channel(channel_id)
            if isinstance(channel, (discord.VoiceChannel, discord.StageChannel)):
                return channel
            logging.warning("Configured voice channel %s not found or not a voice channel", channel_id)

        voice = getattr(member, "voice", None)
        if voice is not None and voice.channel is not None:
            return voice.channel
        raise NoVoiceChannelError(f"{member} is not in a voice channel")

    # ── Slash commands ──────────────────────────────────────────────────────

    @app_commands.command(name="start", description="Start timer")
    @app_commands.guild_only()
    async def start(self, interaction: discord.Interaction) -> None:
        stream_input = self.bot.config.get("stream_input")
        if not stream_input:
            await interaction.response.send_message("No stream input is configured.", ephemeral=True)
            return

        channel = self.resolve_voice_channel(interaction.user)
        voice_client = channel.guild.voice_client
        if voice_client is not None and voice_client.is_playing():
            raise AlreadyPlayingError(f"Already playing in {voice_client.channel}")

        # Joining and streaming take longer than the interaction deadline.
        # The first followup replaces this message, so it decides whether the
        # reply (Pong! or an error) is visible to the invoker only.
        await interaction.response.defer(thinking=True, ephemeral=True)
        logging.info("/start by %s -> %s", interaction.user.id, channel.name)
        voice_client = await connect_voice(channel)
        await stream_file(voice_client, stream_input, FFmpegOptions.from_config(self.bot.config))
        await interaction.followup.send("Pong!")

    @app_commands.command(name="stop", description="Stop playback and leave the voice channel")
    @app_commands.guild_only()
    async def stop(self, interaction: discord.Interaction) -> None:
        voice_client = interaction.guild.voice_client if interaction.guild else None
        if voice_client is None:
            await interaction.response.send_message("I'm not in a voice channel.", ephemeral=True)
            return
        channel_name = voice_client.channel.name
        voice_client.stop()
        await voice_client.disconnect()
        logging.info("/stop by %s, left %s", interaction.user.id, channel_name)
        await interaction.response.send_message(f"Left {channel_name}.")

    # ── Text commands ───────────────────────────────────────────────────────

    @commands.command(name="airhorn", help="Play the loaded sound in your voice channel")
    @commands.guild_only()
    async def airhorn(self, ctx: commands.Context) -> None:
        if not self.bot.sound:
            await ctx.reply("No sound is loaded.", mention_author=False)
            return

        voice = ctx.author.voice
        if voice is None or voice.channel is None:
            raise NoVoiceChannelError(f"{ctx.author} is not in a voice channel")
        if ctx.voice_client is not None and ctx.voice_client.is_playing():
            raise AlreadyPlayingError(f"Already playing in {ctx.voice_client.channel}")

        logging.info("%sairhorn by %s -> %s", ctx.prefix, ctx.author.id, voice.channel.name)
        await play_frames(voice.channel, self.bot.sound, delay=self.bot.config.get("play_delay", 0.25))

    @commands.command(name="leave", help="Leave the voice channel")
    @commands.guild_only()
    async def leave(self, ctx: commands.Context) -> None:
        if ctx.voice_client is None:
            await ctx.reply("I'm not in a voice channel.", mention_author=False)
            return
        ctx.voice_client.stop()
        await ctx.voice_client.disconnect()
