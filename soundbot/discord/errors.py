from __future__ import annotations

from datetime import datetime
import logging
from typing import Any

import discord
from discord.ext import commands

from soundbot.audio.errors import (
    AlreadyPlayingError,
    AudioError,
    NoVoiceChannelError,
    error_messages,
    parse_error_message,
)

# Caused by the invoker, not the bot; reported back without paging admins.
USER_ERRORS = (AlreadyPlayingError, NoVoiceChannelError)


def unwrap_error(error: Exception) -> Exception:
    """
    Command frameworks wrap the real exception; dig it out.
    """
    original = getattr(error, "original", None)
    if isinstance(original, Exception):
        return original
    return error


async def notify_admin_error(
    discord_bot: discord.Client,
    config: dict[str, Any],
    error: Exception,
    context: str = "",
) -> None:
    """
    Send a concise error notification to all configured admins.
    """
    try:
        admin_ids = config.get("permissions", {}).get("users", {}).get("admin_ids", [])
        if not admin_ids:
            return

        msg = (
            "🤖 **Bot Error Notification**\n"
            f"⏰ Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n"
            f"📝 Context: {context}\n\nError: {parse_error_message(error)}"
        )
        for admin_id in admin_ids:
            try:
                user = discord_bot.get_user(admin_id) or await discord_bot.fetch_user(
                    admin_id
                )
                await user.send(msg)
            except discord.HTTPException as e:
                logging.warning("Could not notify admin %s: %s", admin_id, e)
    except Exception as e:  # noqa: BLE001
        logging.warning("Failed to notify admins: %s", e)


async def handle_app_command_error(
    interaction: discord.Interaction,
    error: Exception,
    discord_bot: discord.Client,
    config: dict[str, Any],
) -> None:
    """
    Standard handler for slash command errors.
    """
    error = unwrap_error(error)
    admin_msg, user_msg = error_messages(error)
    command_name = getattr(interaction.command, "name", "unknown")
    if isinstance(error, USER_ERRORS):
        logging.info("/%s refused: %s", command_name, error)
    elif isinstance(error, AudioError):
        logging.warning("/%s failed: %s", command_name, admin_msg)
    else:
        logging.error("App command error: %s", error, exc_info=error)
    if not isinstance(error, USER_ERRORS):
        await notify_admin_error(discord_bot, config, error, f"App command error: /{command_name}")
    try:
        if not interaction.response.is_done():
            await interaction.response.send_message(user_msg, ephemeral=True)
        else:
            await interaction.followup.send(user_msg, ephemeral=True)
    except discord.HTTPException:
        logging.debug("Could not report error for /%s back to the user", command_name)


async def handle_command_error(
    ctx: commands.Context,
    error: Exception,
    config: dict[str, Any],
) -> None:
    """
    Standard handler for prefix (text) command errors.
    """
    if isinstance(error, commands.CommandNotFound):
        return
    if isinstance(error, commands.UserInputError):
        await ctx.reply(str(error), mention_author=False)
        return

    error = unwrap_error(error)
    admin_msg, user_msg = error_messages(error)
    command_name = getattr(ctx.command, "name", "unknown")
    if isinstance(error, USER_ERRORS):
        logging.info("%s%s refused: %s", ctx.prefix, command_name, error)
    elif isinstance(error, AudioError):
        logging.warning("%s%s failed: %s", ctx.prefix, command_name, admin_msg)
    else:
        logging.error("Command error: %s", error, exc_info=error)
    if not isinstance(error, USER_ERRORS):
        await notify_admin_error(ctx.bot, config, error, f"Command error: {ctx.prefix}{command_name}")
    try:
        await ctx.reply(user_msg, mention_author=False)
    except discord.HTTPException:
        logging.debug("Could not report error for %s back to the user", command_name)
