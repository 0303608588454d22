"""
Roster commands: CSV uploads, roster pages, player history and exports.

Uploads are restricted to the bot owner and members with Manage Server; every
other command is available to the whole guild.
"""

import io
import math

import discord
from discord import app_commands
from discord.ext import commands

from roster_bot.config import Config
from roster_bot.constants import ExportConstants, UIConstants
from roster_bot.services.export import build_players_workbook, export_players_json
from roster_bot.utils.embeds import build_history_embed, build_roster_embed, build_upload_embed
from roster_bot.utils.error_embeds import ErrorEmbeds
from roster_bot.utils.exceptions import NoPlayersError, PlayerNotFoundError
from roster_bot.utils.logger import setup_logger

logger = setup_logger(__name__)


def is_roster_admin(interaction: discord.Interaction) -> bool:
    """Bot owner, or a guild member allowed to manage the server."""
    if interaction.user.id == Config.OWNER_DISCORD_ID:
        return True
    permissions = getattr(interaction.user, 'guild_permissions', None)
    return bool(permissions and (permissions.manage_guild or permissions.administrator))


def roster_admin_only():
    return app_commands.check(is_roster_admin)


class RosterCog(commands.Cog):
    """Guild roster tracking from Kill Sheet and Hunting CSV exports."""

    def __init__(self, bot):
        self.bot = bot
        self.roster_service = bot.roster_service
        self.logger = logger

    async def _read_csv_attachment(self, interaction: discord.Interaction, attachment: discord.Attachment):
        if not attachment.filename.lower().endswith('.csv'):
            await interaction.followup.send(embed=ErrorEmbeds.missing_attachment("CSV (.csv)"), ephemeral=True)
            return None
        if attachment.size > UIConstants.MAX_UPLOAD_BYTES:
            await interaction.followup.send(
                embed=ErrorEmbeds.invalid_input(f"`{attachment.filename}` is larger than {UIConstants.MAX_UPLOAD_BYTES // (1024 * 1024)} MB."),
                ephemeral=True
            )
            return None
        return await attachment.read()

    async def _run_upload(self, interaction: discord.Interaction, attachment: discord.Attachment, hunting: bool):
        if interaction.guild_id is None:
            await interaction.response.send_message(embed=ErrorEmbeds.guild_only(), ephemeral=True)
            return

        # Thinking indicator stays up until the followup below is sent
        await interaction.response.defer(thinking=True)

        data = await self._read_csv_attachment(interaction, attachment)
        if data is None:
            return

        operations = self.roster_service.upload_operations(interaction.guild_id)
        if hunting:
            outcome = await operations.process_hunting_sheet(data, attachment.filename)
        else:
            outcome = await operations.process_kill_sheet(data, attachment.filename)

        self.logger.info(
            f"{'Hunting' if hunting else 'Kill Sheet'} upload {attachment.filename} by {interaction.user} "
            f"in guild {interaction.guild_id}: success={outcome.success}"
        )

        if outcome.success:
            await interaction.followup.send(embed=build_upload_embed(outcome, attachment.filename))
        else:
            await interaction.followup.send(embed=ErrorEmbeds.upload_failed(outcome.message))

    @app_commands.command(name="roster-upload-kills", description="Upload a Kill Sheet CSV and update the roster")
    @app_commands.describe(file="Kill Sheet CSV export (ID, Name, might, Kills, ...)")
    @roster_admin_only()
    async def upload_kills(self, interaction: discord.Interaction, file: discord.Attachment):
        await self._run_upload(interaction, file, hunting=False)

    @app_commands.command(name="roster-upload-hunting", description="Upload a Hunting CSV and update hunting stats")
    @app_commands.describe(file="Hunting CSV export (User ID, Total, Hunt, Purchase, ...)")
    @roster_admin_only()
    async def upload_hunting(self, interaction: discord.Interaction, file: discord.Attachment):
        await self._run_upload(interaction, file, hunting=True)

    @app_commands.command(name="roster", description="Show the guild roster sorted by might")
    @app_commands.describe(page="Page number")
    @app_commands.guild_only()
    async def roster(self, interaction: discord.Interaction, page: app_commands.Range[int, 1] = 1):
        await interaction.response.defer()
        try:
            players = await self.roster_service.list_players(interaction.guild_id)
        except Exception as e:
            self.logger.error(f"Error listing roster: {e}", exc_info=True)
            await interaction.followup.send(embed=ErrorEmbeds.command_error("Could not load the roster."), ephemeral=True)
            return

        total_pages = max(1, math.ceil(len(players) / UIConstants.ROSTER_PAGE_SIZE))
        page = min(page, total_pages)
        start = (page - 1) * UIConstants.ROSTER_PAGE_SIZE
        page_players = players[start:start + UIConstants.ROSTER_PAGE_SIZE]
        await interaction.followup.send(embed=build_roster_embed(page_players, page, total_pages))

    @app_commands.command(name="roster-history", description="Show the recorded history of a player")
    @app_commands.describe(player_id="The player's in-game ID")
    @app_commands.guild_only()
    async def history(self, interaction: discord.Interaction, player_id: str):
        await interaction.response.defer()
        player_id = player_id.strip()
        try:
            player = await self.roster_service.get_player(interaction.guild_id, player_id)
            entries = await self.roster_service.get_history(interaction.guild_id, player_id)
        except PlayerNotFoundError as e:
            await interaction.followup.send(embed=ErrorEmbeds.player_not_found(e.user_message), ephemeral=True)
            return
        except Exception as e:
            self.logger.error(f"Error loading history for {player_id}: {e}", exc_info=True)
            await interaction.followup.send(embed=ErrorEmbeds.command_error("Could not load player history."), ephemeral=True)
            return

        await interaction.followup.send(embed=build_history_embed(player_id, player, entries))

    @app_commands.command(name="roster-export", description="Download the roster as JSON or XLSX")
    @app_commands.describe(export_format="File format")
    @app_commands.choices(export_format=[
        app_commands.Choice(name="JSON", value="json"),
        app_commands.Choice(name="XLSX", value="xlsx"),
    ])
    @app_commands.guild_only()
    async def export(self, interaction: discord.Interaction, export_format: app_commands.Choice[str]):
        await interaction.response.defer(thinking=True)
        try:
            players = await self.roster_service.list_players(interaction.guild_id)
            if export_format.value == 'xlsx':
                content = build_players_workbook(players)
                filename = ExportConstants.XLSX_FILENAME
            else:
                content = export_players_json(players).encode('utf-8')
                filename = ExportConstants.JSON_FILENAME
        except NoPlayersError as e:
            await interaction.followup.send(embed=ErrorEmbeds.invalid_input(e.user_message), ephemeral=True)
            return
        except Exception as e:
            self.logger.error(f"Error exporting roster: {e}", exc_info=True)
            await interaction.followup.send(embed=ErrorEmbeds.command_error("Could not build the export."), ephemeral=True)
            return

        await interaction.followup.send(
            content=f"{export_format.name} file ready: {len(players)} players.",
            file=discord.File(io.BytesIO(content), filename=filename)
        )

    @app_commands.command(name="roster-stats", description="Show how many players and history entries are stored")
    @app_commands.guild_only()
    async def stats(self, interaction: discord.Interaction):
        stats = await self.roster_service.get_roster_stats(interaction.guild_id)
        embed = discord.Embed(title="📊 Roster Statistics", color=discord.Color.blue())
        embed.add_field(name="Players", value=stats['players'], inline=True)
        embed.add_field(name="History Entries", value=stats['history_entries'], inline=True)
        await interaction.response.send_message(embed=embed)


async def setup(bot):
    await bot.add_cog(RosterCog(bot))
