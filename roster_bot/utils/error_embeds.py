"""
Centralized error embeds for consistent error handling across the roster bot.
"""

import discord


class ErrorEmbeds:
    """Centralized error embed factory for consistent error handling."""

    @staticmethod
    def upload_failed(message: str) -> discord.Embed:
        """Create embed for an upload that was not applied."""
        return discord.Embed(
            title="Upload Failed",
            description=f"{message}\n\nNo player records were changed.",
            color=discord.Color.red()
        )

    @staticmethod
    def missing_attachment(expected: str) -> discord.Embed:
        """Create embed for an upload command without a usable file."""
        return discord.Embed(
            title="No File",
            description=f"Please attach a {expected} file.",
            color=discord.Color.red()
        )

    @staticmethod
    def player_not_found(message: str) -> discord.Embed:
        """Create embed for when a player is not found in the roster."""
        return discord.Embed(
            title="Player Not Found",
            description=message,
            color=discord.Color.red()
        )

    @staticmethod
    def command_error(error: str) -> discord.Embed:
        """Create embed for general command errors."""
        return discord.Embed(
            title="Command Error",
            description=f"An error occurred: {error}\n\nPlease try again or contact an administrator.",
            color=discord.Color.red()
        )

    @staticmethod
    def invalid_input(message: str) -> discord.Embed:
        """Create embed for invalid user input."""
        return discord.Embed(
            title="Invalid Input",
            description=message,
            color=discord.Color.red()
        )

    @staticmethod
    def guild_only() -> discord.Embed:
        """Create embed for commands used outside of a server."""
        return discord.Embed(
            title="Server Only",
            description="This command can only be used in a server!",
            color=discord.Color.red()
        )
