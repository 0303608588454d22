"""
Screenshot commands: read a player's might and kills from a profile screenshot
with the AI extractor and track them, plus listing and deletion.
"""

import discord
from discord import app_commands
from discord.ext import commands

from roster_bot.cogs.roster import roster_admin_only
from roster_bot.constants import UIConstants
from roster_bot.operations.screenshot_operations import ScreenshotOperations
from roster_bot.services.stats_extractor import GeminiStatsExtractor
from roster_bot.utils.error_embeds import ErrorEmbeds
from roster_bot.utils.exceptions import PlayerNotFoundError
from roster_bot.utils.logger import setup_logger

logger = setup_logger(__name__)

_IMAGE_TYPES = ('image/png', 'image/jpeg', 'image/webp')


class ScreenshotCog(commands.Cog):
    """Player stats tracked from screenshots."""

    def __init__(self, bot):
        self.bot = bot
        self.operations = ScreenshotOperations(bot.db, bot.settings, GeminiStatsExtractor())
        self.logger = logger

    @app_commands.command(name="stats-screenshot", description="Read might and kills from a profile screenshot")
    @app_commands.describe(image="Screenshot of the player's profile")
    @roster_admin_only()
    async def analyze(self, interaction: discord.Interaction, image: discord.Attachment):
        content_type = (image.content_type or '').split(';')[0]
        if content_type not in _IMAGE_TYPES:
            await interaction.response.send_message(embed=ErrorEmbeds.missing_attachment("PNG, JPEG or WEBP image"), ephemeral=True)
            return
        if image.size > UIConstants.MAX_UPLOAD_BYTES:
            await interaction.response.send_message(embed=ErrorEmbeds.invalid_input("Screenshot is too large."), ephemeral=True)
            return

        await interaction.response.defer(thinking=True)
        outcome = await self.operations.analyze_screenshot(await image.read(), content_type)

        if not outcome.success:
            await interaction.followup.send(embed=ErrorEmbeds.command_error(outcome.message))
            return

        player = outcome.player
        embed = discord.Embed(title="✅ Screenshot Processed", description=outcome.message, color=UIConstants.SUCCESS_COLOR)
        embed.add_field(name="Might", value=f"{player.current_might:,.0f} ({player.might_gain:+,.0f})", inline=True)
        embed.add_field(name="Kills", value=f"{player.current_kills:,.0f} ({player.kills_gain:+,.0f})", inline=True)
        embed.set_footer(text=f"Key: {player.player_key}")
        await interaction.followup.send(embed=embed)

    @app_commands.command(name="stats-list", description="List players tracked from screenshots")
    async def list_players(self, interaction: discord.Interaction):
        players = await self.operations.list_players()
        embed = discord.Embed(title="📸 Screenshot Stats", color=UIConstants.DEFAULT_EMBED_COLOR)
        if not players:
            embed.description = "No player data yet. Upload a screenshot to get started!"
        else:
            embed.description = '\n'.join(
                f"`{p.player_key}` **{p.player_name}** | ⚔️ {p.current_might:,.0f} ({p.might_gain:+,.0f}) "
                f"| 💀 {p.current_kills:,.0f} ({p.kills_gain:+,.0f})"
                for p in players[:UIConstants.ROSTER_PAGE_SIZE]
            )
        await interaction.response.send_message(embed=embed)

    @app_commands.command(name="stats-delete", description="Delete all screenshot data for a player")
    @app_commands.describe(player_key="Player key shown by /stats-list")
    @roster_admin_only()
    async def delete_player(self, interaction: discord.Interaction, player_key: str):
        try:
            await self.operations.delete_player(player_key.strip().lower())
        except PlayerNotFoundError as e:
            await interaction.response.send_message(embed=ErrorEmbeds.player_not_found(e.user_message), ephemeral=True)
            return
        except Exception as e:
            self.logger.error(f"Error deleting screenshot player {player_key}: {e}", exc_info=True)
            await interaction.response.send_message(embed=ErrorEmbeds.command_error("Failed to delete player data."), ephemeral=True)
            return

        await interaction.response.send_message(f"🗑️ Player data deleted for `{player_key}`.")


async def setup(bot):
    await bot.add_cog(ScreenshotCog(bot))
