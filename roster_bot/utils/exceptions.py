"""
Custom exceptions for the roster system with user-friendly error messages.
"""

from typing import Iterable


class RosterException(Exception):
    """Base exception for roster-related errors."""
    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message

class CsvParseError(RosterException):
    """Raised when an uploaded spreadsheet cannot be parsed as CSV."""
    def __init__(self, sheet: str, details: str):
        super().__init__(
            f"Failed to parse {sheet} CSV: {details}",
            f"Error parsing {sheet} CSV: {details}"
        )

class DuplicatePlayerError(RosterException):
    """Raised when one upload lists the same player identifier more than once."""
    def __init__(self, player_ids: Iterable[str]):
        self.player_ids = sorted(set(player_ids))
        shown = ', '.join(self.player_ids[:10])
        if len(self.player_ids) > 10:
            shown += f" (+{len(self.player_ids) - 10} more)"
        super().__init__(
            f"Duplicate player IDs in upload: {shown}",
            f"The upload lists these player IDs more than once: {shown}. Remove the duplicates and upload again."
        )

class StoreCommitError(RosterException):
    """Raised when the batched write for an upload is rejected."""
    def __init__(self, details: str):
        super().__init__(
            f"Batch commit failed: {details}",
            f"Error updating players: {details}"
        )

class NumericParseError(RosterException):
    """Raised by strict numeric parsing for an empty or malformed cell."""
    def __init__(self, value):
        super().__init__(f"Not a number: {value!r}")
        self.value = value

class ExtractionError(RosterException):
    """Raised when the screenshot analysis call fails or returns unusable data."""
    def __init__(self, details: str):
        super().__init__(
            f"Screenshot extraction failed: {details}",
            details
        )

class InvalidPlayerNameError(RosterException):
    """Raised when an extracted player name normalizes to an empty key."""
    def __init__(self, name: str):
        super().__init__(
            f"Player name {name!r} has no usable characters",
            "Player name from image is invalid."
        )

class NoPlayersError(RosterException):
    """Raised when an export is requested for an empty roster."""
    def __init__(self, export_format: str):
        super().__init__(
            f"No players to export as {export_format}",
            f"No data to convert to {export_format}. Please upload and process CSVs."
        )

class PlayerNotFoundError(RosterException):
    """Raised when a player record does not exist."""
    def __init__(self, player_id: str):
        super().__init__(
            f"Player '{player_id}' not found",
            f"No player with ID `{player_id}` was found."
        )
