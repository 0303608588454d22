"""
Row Extraction

Turns one parsed spreadsheet record (header -> cell string) into a typed
candidate for the kill-sheet or hunting-sheet pipelines. Header lookup is
tolerant of casing, stray whitespace and synonym headers; numeric cells go
through a tolerant parser that defaults to zero.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from roster_bot.config import TrackerSettings
from roster_bot.constants import HuntingSheetHeaders, KillSheetHeaders
from roster_bot.utils.exceptions import NumericParseError
from roster_bot.utils.logger import setup_logger

logger = setup_logger(__name__)

# Leading signed decimal of a cell; trailing text such as "%" or "pts" is ignored
_LEADING_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

_HUNT_TIME_FORMATS = (
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
    '%m/%d/%Y %H:%M:%S',
    '%m/%d/%Y %H:%M',
    '%Y-%m-%d',
)


@dataclass
class KillSheetRow:
    """Normalized kill-sheet candidate for one player."""
    player_id: str
    name: str
    might: float
    kills: float
    notes: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class HuntingSheetRow:
    """Normalized hunting-sheet candidate for one player."""
    player_id: str
    counters: Dict[str, float] = field(default_factory=dict)
    first_hunt_time: Optional[datetime] = None
    last_hunt_time: Optional[datetime] = None


@dataclass
class ExtractionReport:
    """Per-upload diagnostics of how many rows were accepted or skipped."""
    rows_seen: int = 0
    rows_accepted: int = 0
    skipped_rows: List[int] = field(default_factory=list)

    @property
    def rows_skipped(self) -> int:
        return len(self.skipped_rows)

    def accept(self):
        self.rows_seen += 1
        self.rows_accepted += 1

    def skip(self, row_number: int):
        self.rows_seen += 1
        self.skipped_rows.append(row_number)


def get_cell_value(row: Optional[Mapping[str, Any]], aliases: Sequence[str]) -> Any:
    """
    Find the value for a logical column across its header aliases.

    Each alias is tried as an exact key, then trimmed, then compared
    case-insensitively against every trimmed header in the row.

    Returns:
        The cell value, or None when no alias matches
    """
    if not row:
        return None

    for alias in aliases:
        if alias in row:
            return row[alias]
        trimmed = alias.strip()
        if trimmed in row:
            return row[trimmed]
        wanted = trimmed.lower()
        for actual_key in row:
            if isinstance(actual_key, str) and actual_key.strip().lower() == wanted:
                return row[actual_key]
    return None


def parse_numeric(value: Any) -> float:
    """
    Tolerant numeric parse: never raises, anything unusable becomes 0.

    Thousands separators are stripped, then the leading number of the cell
    is read and any trailing text ignored. Cells with no leading number are
    silently treated as zero, which can hide bad data in an export; use
    parse_numeric_strict where that matters.

    Examples:
        "12,345" -> 12345
        "85%" -> 85
        "" -> 0
        None -> 0
        "abc" -> 0
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER_RE.match(value.replace(',', '').strip())
        if not match:
            return 0
        parsed = float(match.group(0))
    else:
        return 0

    if not math.isfinite(parsed):
        return 0
    return int(parsed) if parsed.is_integer() else parsed


def parse_numeric_strict(value: Any) -> float:
    """
    Like parse_numeric, but the whole cell must be a number: empty cells,
    trailing text and non-finite values raise NumericParseError.
    """
    if value is None or isinstance(value, bool):
        raise NumericParseError(value)
    if isinstance(value, str):
        cleaned = value.replace(',', '').strip()
        if not _LEADING_NUMBER_RE.fullmatch(cleaned) or not math.isfinite(float(cleaned)):
            raise NumericParseError(value)
    elif isinstance(value, float) and not math.isfinite(value):
        raise NumericParseError(value)
    return parse_numeric(value)


def parse_hunt_time(value: Any) -> Optional[datetime]:
    """
    Parse a hunting-sheet timestamp.

    The game's "never" sentinel, empty cells and unparseable strings all map to
    None. Naive timestamps are taken as UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text or text == HuntingSheetHeaders.UNSET_TIME_SENTINEL:
            return None
        parsed = _parse_datetime_text(text)
        if parsed is None:
            logger.debug(f"Unparseable hunt time {text!r}, treating as unset")
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_datetime_text(text: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        pass
    for fmt in _HUNT_TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def clean_raw_row(row: Mapping[Any, Any]) -> Dict[str, Any]:
    """Copy a parsed row verbatim, dropping the overflow bucket of ragged rows."""
    return {key: value for key, value in row.items() if isinstance(key, str)}


def _text(value: Any) -> str:
    return '' if value is None else str(value).strip()


def extract_kill_row(row: Mapping[str, Any], settings: TrackerSettings) -> Optional[KillSheetRow]:
    """
    Normalize one kill-sheet row.

    Returns:
        KillSheetRow, or None when the row must be skipped (missing or
        malformed identifier, or a malformed number in strict mode)
    """
    player_id = _text(get_cell_value(row, KillSheetHeaders.ID))
    if not player_id or not settings.kill_id_pattern.match(player_id):
        return None

    parse = parse_numeric_strict if settings.strict_numeric else parse_numeric
    try:
        might = parse(get_cell_value(row, KillSheetHeaders.MIGHT))
        kills = parse(get_cell_value(row, KillSheetHeaders.KILLS))
    except NumericParseError as e:
        logger.debug(f"Strict numeric parse rejected row for player {player_id}: {e}")
        return None

    name = get_cell_value(row, KillSheetHeaders.NAME)
    notes = get_cell_value(row, KillSheetHeaders.NOTES)

    extras = {}
    for field_name, aliases in KillSheetHeaders.OPTIONAL_TEXT.items():
        value = get_cell_value(row, aliases)
        if value is not None:
            extras[field_name] = _text(value)
    for field_name, aliases in KillSheetHeaders.OPTIONAL_NUMERIC.items():
        value = get_cell_value(row, aliases)
        if value is not None:
            extras[field_name] = parse_numeric(value)

    return KillSheetRow(
        player_id=player_id,
        name=_text(name),
        might=might,
        kills=kills,
        notes=None if notes is None else _text(notes),
        extras=extras,
        raw=clean_raw_row(row),
    )


def extract_hunting_row(row: Mapping[str, Any], settings: TrackerSettings) -> Optional[HuntingSheetRow]:
    """
    Normalize one hunting-sheet row.

    Only the user identifier is required; every counter defaults to zero and
    both timestamps default to None.
    """
    player_id = _text(get_cell_value(row, HuntingSheetHeaders.ID))
    if not player_id:
        return None

    counters = {
        key: parse_numeric(get_cell_value(row, aliases))
        for key, aliases in HuntingSheetHeaders.COUNTERS.items()
    }

    return HuntingSheetRow(
        player_id=player_id,
        counters=counters,
        first_hunt_time=parse_hunt_time(get_cell_value(row, HuntingSheetHeaders.FIRST_HUNT_TIME)),
        last_hunt_time=parse_hunt_time(get_cell_value(row, HuntingSheetHeaders.LAST_HUNT_TIME)),
    )
