"""
Roster read/write service.

Wires the upload operations to a guild-scoped SqlDocumentStore and serves the
read side used for display and export: the roster sorted by might, single
players and their history trail.
"""

from typing import Any, Dict, List

from sqlalchemy import func, select

from roster_bot.constants import PlayerFields
from roster_bot.database.document_store import history_collection
from roster_bot.database.models import PlayerDocument, PlayerHistoryEntry
from roster_bot.operations.row_extraction import parse_numeric
from roster_bot.operations.upload_operations import UploadOperations
from roster_bot.services.base import BaseService
from roster_bot.utils.exceptions import PlayerNotFoundError
from roster_bot.utils.logger import setup_logger

logger = setup_logger(__name__)


class RosterService(BaseService):
    """Roster uploads and queries for one bot instance, scoped per guild."""

    def upload_operations(self, owner_id) -> UploadOperations:
        """Upload operations bound to a fresh batch for the guild's roster."""
        return UploadOperations(self.store_for(owner_id), self.settings)

    async def list_players(self, owner_id) -> List[Dict[str, Any]]:
        """All player documents of a guild, highest might first."""
        players = await self.store_for(owner_id).list_documents()
        players.sort(key=lambda player: parse_numeric(player.get(PlayerFields.MIGHT)), reverse=True)
        return players

    async def get_player(self, owner_id, player_id: str) -> Dict[str, Any]:
        """
        Fetch one player document.

        Raises:
            PlayerNotFoundError: no document for player_id in this guild
        """
        document = await self.store_for(owner_id).get(player_id)
        if document is None:
            raise PlayerNotFoundError(player_id)
        return document

    async def get_history(self, owner_id, player_id: str) -> List[Dict[str, Any]]:
        """History entries of a player, newest snapshot first."""
        entries = await self.store_for(owner_id).list_collection(history_collection(player_id))
        entries.reverse()
        return entries

    async def get_roster_stats(self, owner_id) -> Dict[str, int]:
        """Counts of stored players and history entries for a guild."""
        owner_id = str(owner_id)
        async with self.get_session() as session:
            player_count = await session.scalar(
                select(func.count(PlayerDocument.id)).where(
                    PlayerDocument.app_id == self.settings.app_id,
                    PlayerDocument.owner_id == owner_id
                )
            )
            history_count = await session.scalar(
                select(func.count(PlayerHistoryEntry.id)).where(
                    PlayerHistoryEntry.app_id == self.settings.app_id,
                    PlayerHistoryEntry.owner_id == owner_id
                )
            )
        logger.debug(f"Roster stats for {owner_id}: {player_count} players, {history_count} history entries")
        return {'players': player_count or 0, 'history_entries': history_count or 0}
