"""
Roster-wide constants for the Guild Roster bot.

Document field names, spreadsheet header aliases and UI values live here so the
extraction, reconciliation and export code agree on a single vocabulary.
"""


class PlayerFields:
    """Field names of a stored player document."""

    ID = 'ID'
    NAME = 'Name'
    MIGHT = 'might'
    KILLS = 'Kills'
    MIGHT_GAINED = 'Might Gained'
    KILLS_GAINED = 'Kills Gained'
    NOTES = 'Notes'
    RANK = 'Rank'
    TIER = 'T4/T5'
    SIGILS = 'Sigils'
    MANA = 'Mana'
    DISCORD = 'Discord'
    LAST_UPDATED = 'lastUpdated'
    HUNTING_STATS = 'huntingStats'
    SNAPSHOT_TIME = 'snapshotTime'

    # Always recomputed by a kill-sheet upload, never carried forward from the prior document
    RECOMPUTED = (HUNTING_STATS, MIGHT_GAINED, KILLS_GAINED)


class KillSheetHeaders:
    """Accepted header spellings per logical kill-sheet column."""

    ID = ('ID', 'id', 'IGG ID', 'User ID')
    NAME = ('Name', 'name')
    MIGHT = ('might', 'Might')
    KILLS = ('Kills', 'kills')
    NOTES = ('Notes', 'notes')

    # Optional roster columns: document field -> aliases
    OPTIONAL_TEXT = {
        PlayerFields.RANK: ('Rank', 'rank'),
        PlayerFields.TIER: ('T4/T5', 't4_t5', 'Tier', 'tier'),
        PlayerFields.MANA: ('Mana', 'mana'),
        PlayerFields.DISCORD: ('Discord', 'Discord Name', 'discordName', 'discord'),
    }
    OPTIONAL_NUMERIC = {
        PlayerFields.SIGILS: ('Sigils', 'sigils'),
    }


class HuntingFields:
    """Keys of the huntingStats sub-record."""

    FIRST_HUNT_TIME = 'firstHuntTime'
    LAST_HUNT_TIME = 'lastHuntTime'
    LAST_UPDATED = 'huntingLastUpdated'
    TIMESTAMPS = (FIRST_HUNT_TIME, LAST_HUNT_TIME, LAST_UPDATED)


class HuntingSheetHeaders:
    """Accepted header spellings for the hunting sheet."""

    ID = ('User ID', 'ID', 'id')

    # huntingStats key -> aliases
    COUNTERS = {
        'totalHunts': ('Total',),
        'huntCount': ('Hunt',),
        'purchaseCount': ('Purchase',),
        'l1Hunt': ('L1 (Hunt)',),
        'l2Hunt': ('L2 (Hunt)',),
        'l3Hunt': ('L3 (Hunt)',),
        'l4Hunt': ('L4 (Hunt)',),
        'l5Hunt': ('L5 (Hunt)',),
        'l1Purchase': ('L1 (Purchase)',),
        'l2Purchase': ('L2 (Purchase)',),
        'l3Purchase': ('L3 (Purchase)',),
        'l4Purchase': ('L4 (Purchase)',),
        'l5Purchase': ('L5 (Purchase)',),
        'pointsHunt': ('Points (Hunt)',),
        'goalPercentageHunt': ('Goal Percentage (Hunt)',),
        'pointsPurchase': ('Points (Purchase)',),
        'goalPercentagePurchase': ('Goal Percentage (Purchase)',),
    }
    FIRST_HUNT_TIME = ('First Hunt Time',)
    LAST_HUNT_TIME = ('Last Hunt Time',)

    # The game exports this value for players that never hunted
    UNSET_TIME_SENTINEL = '1899-12-31 00:00:00'


class ExportConstants:
    """Constants for roster exports."""

    SHEET_NAME = 'Lords Mobile Players'
    JSON_FILENAME = 'lords_mobile_players.json'
    XLSX_FILENAME = 'lords_mobile_players.xlsx'
    HUNTING_COLUMN_PREFIX = 'Hunting: '
    TIMESTAMP_FORMAT = '%m/%d/%Y, %I:%M:%S %p'


class UIConstants:
    """Constants for Discord UI elements."""

    DEFAULT_EMBED_COLOR = 0x3498db  # Blue
    ERROR_COLOR = 0xe74c3c         # Red
    SUCCESS_COLOR = 0x2ecc71       # Green

    # Rows shown per roster / history embed
    ROSTER_PAGE_SIZE = 15
    HISTORY_PAGE_SIZE = 10

    # Attachment size guard for uploads (bytes)
    MAX_UPLOAD_BYTES = 5 * 1024 * 1024
