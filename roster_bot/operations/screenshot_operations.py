"""
Screenshot Operations

Record kind used by screenshot analysis: one row per normalized player name,
tracking the first-seen might/kills and gains relative to them. This path has
no history trail and, unlike the CSV roster, supports deletion.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import delete, select

from roster_bot.config import TrackerSettings
from roster_bot.database.models import ScreenshotPlayer
from roster_bot.services.stats_extractor import ExtractedStats, StatsExtractor
from roster_bot.utils.exceptions import PlayerNotFoundError, InvalidPlayerNameError, RosterException
from roster_bot.utils.logger import setup_logger

logger = setup_logger(__name__)

_NON_KEY_CHARS = re.compile(r'[^a-z0-9]')


def normalize_player_key(name: str) -> str:
    """
    Document key for a screenshot player name: lowercase letters and digits only.

    Raises:
        InvalidPlayerNameError: nothing usable remains
    """
    key = _NON_KEY_CHARS.sub('', (name or '').strip().lower())
    if not key:
        raise InvalidPlayerNameError(name)
    return key


@dataclass
class ScreenshotOutcome:
    success: bool
    message: str
    player: Optional[ScreenshotPlayer] = None


class ScreenshotOperations:
    """Create, update, list and delete screenshot-tracked players."""

    def __init__(self, database, settings: TrackerSettings, extractor: StatsExtractor):
        self.db = database
        self.settings = settings
        self.extractor = extractor
        self.logger = logger

    async def record_stats(self, stats: ExtractedStats) -> ScreenshotPlayer:
        """
        Create the player on first sighting, otherwise update current values
        and gains measured from the first-seen values.
        """
        player_key = normalize_player_key(stats.name)
        now = self.settings.clock()

        async with self.db.transaction() as session:
            result = await session.execute(
                select(ScreenshotPlayer).where(
                    ScreenshotPlayer.app_id == self.settings.app_id,
                    ScreenshotPlayer.player_key == player_key
                )
            )
            player = result.scalar_one_or_none()

            if player:
                player.current_might = stats.might
                player.current_kills = stats.kills
                player.might_gain = stats.might - player.initial_might
                player.kills_gain = stats.kills - player.initial_kills
                player.last_updated = now
                self.logger.info(f"Updated screenshot player {player_key}: might_gain={player.might_gain}")
            else:
                player = ScreenshotPlayer(
                    app_id=self.settings.app_id,
                    player_key=player_key,
                    player_name=stats.name.strip(),
                    initial_might=stats.might,
                    initial_kills=stats.kills,
                    current_might=stats.might,
                    current_kills=stats.kills,
                    might_gain=0,
                    kills_gain=0,
                    created_at=now,
                    last_updated=now
                )
                session.add(player)
                self.logger.info(f"Created screenshot player {player_key}")

        return player

    async def analyze_screenshot(self, image_bytes: bytes, mime_type: str = 'image/png') -> ScreenshotOutcome:
        """Extract stats from an image and record them; failures become messages."""
        try:
            stats = await self.extractor.extract(image_bytes, mime_type)
            player = await self.record_stats(stats)
        except RosterException as e:
            self.logger.warning(f"Screenshot analysis failed: {e}")
            return ScreenshotOutcome(success=False, message=e.user_message)
        except Exception as e:
            self.logger.error(f"Unexpected error during screenshot analysis: {e}", exc_info=True)
            return ScreenshotOutcome(success=False, message=str(e) or "Screenshot analysis failed.")

        return ScreenshotOutcome(
            success=True,
            message=f"Successfully processed stats for {stats.name}.",
            player=player
        )

    async def list_players(self) -> List[ScreenshotPlayer]:
        """All screenshot-tracked players, highest current might first."""
        async with self.db.get_session() as session:
            result = await session.execute(
                select(ScreenshotPlayer)
                .where(ScreenshotPlayer.app_id == self.settings.app_id)
                .order_by(ScreenshotPlayer.current_might.desc())
            )
            return result.scalars().all()

    async def delete_player(self, player_key: str) -> None:
        """
        Delete a screenshot-tracked player.

        Raises:
            PlayerNotFoundError: no player with that key
        """
        async with self.db.transaction() as session:
            result = await session.execute(
                delete(ScreenshotPlayer).where(
                    ScreenshotPlayer.app_id == self.settings.app_id,
                    ScreenshotPlayer.player_key == player_key
                )
            )
            if result.rowcount == 0:
                raise PlayerNotFoundError(player_key)
        self.logger.info(f"Deleted screenshot player {player_key}")
