"""
Roster exports: a JSON array mirroring the stored documents, and an XLSX sheet
with the nested huntingStats flattened into "Hunting: <field>" columns.
"""

import copy
import io
import json
from datetime import datetime
from typing import Any, Dict, List

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from roster_bot.constants import ExportConstants, HuntingFields, PlayerFields
from roster_bot.utils.exceptions import NoPlayersError


def format_timestamp(value: Any) -> Any:
    """Render datetimes as display strings; anything else is returned unchanged."""
    if isinstance(value, datetime):
        return value.strftime(ExportConstants.TIMESTAMP_FORMAT)
    return value


def _json_ready(player: Dict[str, Any]) -> Dict[str, Any]:
    exported = copy.deepcopy(player)
    exported[PlayerFields.LAST_UPDATED] = format_timestamp(exported.get(PlayerFields.LAST_UPDATED))
    hunting = exported.get(PlayerFields.HUNTING_STATS)
    if isinstance(hunting, dict):
        for key in HuntingFields.TIMESTAMPS:
            if key in hunting:
                hunting[key] = format_timestamp(hunting[key])
    return exported


def export_players_json(players: List[Dict[str, Any]]) -> str:
    """
    Serialize the roster as a JSON array.

    Raises:
        NoPlayersError: the roster is empty
    """
    if not players:
        raise NoPlayersError('JSON')
    # default=str covers any timestamp stored outside the known fields
    return json.dumps([_json_ready(player) for player in players], indent=2, ensure_ascii=False, default=str)


def flatten_player_row(player: Dict[str, Any]) -> Dict[str, Any]:
    """One spreadsheet row: top-level fields plus prefixed huntingStats columns."""
    row = {
        key: format_timestamp(value)
        for key, value in player.items()
        if key != PlayerFields.HUNTING_STATS
    }
    row[PlayerFields.LAST_UPDATED] = format_timestamp(player.get(PlayerFields.LAST_UPDATED)) or ''

    hunting = player.get(PlayerFields.HUNTING_STATS) or {}
    for key, value in hunting.items():
        row[f"{ExportConstants.HUNTING_COLUMN_PREFIX}{key}"] = format_timestamp(value)
    return row


def _cell_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return json.dumps(value, default=str)


def build_players_workbook(players: List[Dict[str, Any]]) -> bytes:
    """
    Build the roster XLSX file.

    Columns are the union of every flattened row's keys in first-seen order.

    Raises:
        NoPlayersError: the roster is empty
    """
    if not players:
        raise NoPlayersError('XLSX')

    rows = [flatten_player_row(player) for player in players]
    headers: List[str] = []
    for row in rows:
        for key in row:
            if key not in headers:
                headers.append(key)

    wb = Workbook()
    ws = wb.active
    ws.title = ExportConstants.SHEET_NAME
    ws.append(headers)
    for row in rows:
        ws.append([_cell_value(row.get(header)) for header in headers])

    ws.freeze_panes = 'A2'
    for idx, header in enumerate(headers, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = min(max(len(str(header)) + 2, 10), 40)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
