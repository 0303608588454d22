"""Screenshot-tracked players: create, update gains, list, delete."""

import asyncio

import pytest

from roster_bot.database.database import Database
from roster_bot.operations.screenshot_operations import ScreenshotOperations, normalize_player_key
from roster_bot.services.stats_extractor import ExtractedStats
from roster_bot.utils.exceptions import ExtractionError, InvalidPlayerNameError, PlayerNotFoundError


class FakeExtractor:
    """Returns queued results in order; exceptions are raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def extract(self, image_bytes, mime_type='image/png'):
        self.calls += 1
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def run_with_operations(settings, extractor, scenario):
    async def runner():
        db = Database('sqlite:///:memory:')
        await db.initialize()
        try:
            return await scenario(ScreenshotOperations(db, settings, extractor))
        finally:
            await db.close()

    return asyncio.run(runner())


@pytest.mark.parametrize("name, expected", [
    ('Alice', 'alice'),
    ('  Sir Bob-99 ', 'sirbob99'),
    ('ÄlphaX', 'lphax'),
])
def test_normalize_player_key(name, expected):
    assert normalize_player_key(name) == expected


@pytest.mark.parametrize("name", ['', '   ', '!!!', None])
def test_normalize_player_key_rejects_empty(name):
    with pytest.raises(InvalidPlayerNameError):
        normalize_player_key(name)


def test_first_screenshot_creates_player(settings):
    extractor = FakeExtractor(ExtractedStats('Alice', 1000, 50))

    async def scenario(operations):
        outcome = await operations.analyze_screenshot(b'img')
        return outcome, await operations.list_players()

    outcome, players = run_with_operations(settings, extractor, scenario)

    assert outcome.success
    assert outcome.message == "Successfully processed stats for Alice."
    assert len(players) == 1
    assert players[0].player_key == 'alice'
    assert players[0].initial_might == 1000
    assert players[0].might_gain == 0


def test_later_screenshot_measures_gain_from_first_values(settings):
    extractor = FakeExtractor(
        ExtractedStats('Alice', 1000, 50),
        ExtractedStats('alice', 1200, 55),
        ExtractedStats('ALICE', 1500, 60),
    )

    async def scenario(operations):
        for _ in range(3):
            await operations.analyze_screenshot(b'img')
        return await operations.list_players()

    players = run_with_operations(settings, extractor, scenario)

    assert len(players) == 1
    player = players[0]
    assert player.player_name == 'Alice'
    assert player.initial_might == 1000
    assert player.current_might == 1500
    assert player.might_gain == 500
    assert player.kills_gain == 10


def test_invalid_name_is_reported(settings):
    extractor = FakeExtractor(ExtractedStats('???', 1, 1))

    async def scenario(operations):
        return await operations.analyze_screenshot(b'img'), await operations.list_players()

    outcome, players = run_with_operations(settings, extractor, scenario)

    assert not outcome.success
    assert outcome.message == "Player name from image is invalid."
    assert players == []


def test_extraction_failure_is_reported(settings):
    extractor = FakeExtractor(ExtractionError("AI analysis failed with status: 500."))

    async def scenario(operations):
        return await operations.analyze_screenshot(b'img')

    outcome = run_with_operations(settings, extractor, scenario)

    assert not outcome.success
    assert outcome.message == "AI analysis failed with status: 500."


def test_players_listed_by_might(settings):
    extractor = FakeExtractor(ExtractedStats('Small', 10, 1), ExtractedStats('Big', 999, 1))

    async def scenario(operations):
        await operations.analyze_screenshot(b'a')
        await operations.analyze_screenshot(b'b')
        return [player.player_key for player in await operations.list_players()]

    assert run_with_operations(settings, extractor, scenario) == ['big', 'small']


def test_delete_player(settings):
    extractor = FakeExtractor(ExtractedStats('Alice', 1000, 50))

    async def scenario(operations):
        await operations.analyze_screenshot(b'img')
        await operations.delete_player('alice')
        remaining = await operations.list_players()
        with pytest.raises(PlayerNotFoundError):
            await operations.delete_player('alice')
        return remaining

    assert run_with_operations(settings, extractor, scenario) == []
