"""
Shared embed builders for roster uploads, roster pages and player history.
"""

from typing import Any, Dict, List

import discord

from roster_bot.constants import PlayerFields, UIConstants
from roster_bot.operations.row_extraction import parse_numeric
from roster_bot.operations.upload_operations import UploadOutcome
from roster_bot.services.export import format_timestamp


def _fmt_number(value: Any) -> str:
    number = parse_numeric(value)
    return f"{number:,}" if isinstance(number, int) else f"{number:,.2f}"


def _fmt_gain(value: Any) -> str:
    number = parse_numeric(value)
    sign = '+' if number > 0 else ''
    return f"{sign}{_fmt_number(number)}"


def build_upload_embed(outcome: UploadOutcome, filename: str) -> discord.Embed:
    """Summary embed for a committed upload."""
    embed = discord.Embed(
        title="✅ Upload Complete",
        description=outcome.message,
        color=UIConstants.SUCCESS_COLOR
    )
    embed.set_footer(text=filename)

    result = outcome.result
    if result is None:
        return embed

    embed.add_field(name="Rows", value=str(result.rows_processed), inline=True)
    embed.add_field(name="Updated", value=str(result.rows_written), inline=True)
    embed.add_field(name="Skipped", value=str(result.rows_skipped), inline=True)
    if result.new_players or result.history_entries:
        embed.add_field(name="New Players", value=str(result.new_players), inline=True)
        embed.add_field(name="History Entries", value=str(result.history_entries), inline=True)
    if result.skipped_rows:
        lines = ', '.join(str(n) for n in result.skipped_rows[:20])
        if len(result.skipped_rows) > 20:
            lines += ', …'
        embed.add_field(name="Skipped Lines", value=lines, inline=False)
    return embed


def build_roster_embed(players: List[Dict[str, Any]], page: int, total_pages: int) -> discord.Embed:
    """One page of the roster, sorted by the caller."""
    embed = discord.Embed(
        title="🏰 Guild Roster",
        color=UIConstants.DEFAULT_EMBED_COLOR
    )
    if not players:
        embed.description = "No player data yet. Upload a Kill Sheet to get started!"
        return embed

    lines = []
    for player in players:
        lines.append(
            f"`{player.get(PlayerFields.ID, '?')}` **{player.get(PlayerFields.NAME) or 'Unknown'}** "
            f"| ⚔️ {_fmt_number(player.get(PlayerFields.MIGHT))} ({_fmt_gain(player.get(PlayerFields.MIGHT_GAINED))}) "
            f"| 💀 {_fmt_number(player.get(PlayerFields.KILLS))} ({_fmt_gain(player.get(PlayerFields.KILLS_GAINED))})"
        )
    embed.description = '\n'.join(lines)
    embed.set_footer(text=f"Page {page}/{total_pages}")
    return embed


def build_history_embed(player_id: str, player: Dict[str, Any], entries: List[Dict[str, Any]]) -> discord.Embed:
    """Current values of a player followed by their most recent history snapshots."""
    embed = discord.Embed(
        title=f"📜 History for Player ID: {player_id}",
        color=UIConstants.DEFAULT_EMBED_COLOR
    )
    embed.add_field(
        name=f"Current: {player.get(PlayerFields.NAME) or 'Unknown'}",
        value=(
            f"**Might:** {_fmt_number(player.get(PlayerFields.MIGHT))} ({_fmt_gain(player.get(PlayerFields.MIGHT_GAINED))})\n"
            f"**Kills:** {_fmt_number(player.get(PlayerFields.KILLS))} ({_fmt_gain(player.get(PlayerFields.KILLS_GAINED))})\n"
            f"**Notes:** {player.get(PlayerFields.NOTES) or 'None'}"
        ),
        inline=False
    )

    if not entries:
        embed.add_field(name="History", value="No history found for this player.", inline=False)
        return embed

    for entry in entries[:UIConstants.HISTORY_PAGE_SIZE]:
        embed.add_field(
            name=str(format_timestamp(entry.get(PlayerFields.SNAPSHOT_TIME)) or 'Unknown time'),
            value=(
                f"{entry.get(PlayerFields.NAME) or 'Unknown'}: "
                f"might {_fmt_number(entry.get(PlayerFields.MIGHT))} ({_fmt_gain(entry.get(PlayerFields.MIGHT_GAINED))}), "
                f"kills {_fmt_number(entry.get(PlayerFields.KILLS))} ({_fmt_gain(entry.get(PlayerFields.KILLS_GAINED))})"
            ),
            inline=False
        )
    if len(entries) > UIConstants.HISTORY_PAGE_SIZE:
        embed.set_footer(text=f"Showing {UIConstants.HISTORY_PAGE_SIZE} of {len(entries)} snapshots")
    return embed
