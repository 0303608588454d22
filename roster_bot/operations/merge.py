"""
Merge step: builds the document written back for a kill-sheet or hunting row.

Kill-sheet and hunting uploads touch disjoint top-level keys of the player
document (the hunting pipeline only ever writes huntingStats), so applying them
as merge-writes in either order gives the same result.
"""

import copy
from datetime import datetime
from typing import Any, Dict, Optional

from roster_bot.constants import PlayerFields
from roster_bot.operations.reconciliation import Reconciliation
from roster_bot.operations.row_extraction import KillSheetRow


def build_player_document(
    candidate: KillSheetRow,
    prior: Optional[Dict[str, Any]],
    reconciliation: Reconciliation,
    now: datetime
) -> Dict[str, Any]:
    """
    Build the full player document for a kill-sheet row.

    Layering, lowest precedence first:
    1. prior fields, minus huntingStats and the gained metrics
    2. every raw column of the uploaded row, verbatim
    3. identifier, name, might, kills, gains, lastUpdated and typed roster fields
    4. Notes (prior, else uploaded, else empty) and the prior huntingStats
    """
    document: Dict[str, Any] = {}

    if prior:
        document.update({
            key: copy.deepcopy(value)
            for key, value in prior.items()
            if key not in PlayerFields.RECOMPUTED
        })

    document.update(candidate.raw)

    document.update(candidate.extras)
    document.update({
        PlayerFields.ID: candidate.player_id,
        PlayerFields.NAME: candidate.name,
        PlayerFields.MIGHT: candidate.might,
        PlayerFields.KILLS: candidate.kills,
        PlayerFields.MIGHT_GAINED: reconciliation.might_gained,
        PlayerFields.KILLS_GAINED: reconciliation.kills_gained,
        PlayerFields.LAST_UPDATED: now,
    })

    prior_notes = (prior or {}).get(PlayerFields.NOTES)
    document[PlayerFields.NOTES] = prior_notes or candidate.notes or ''

    prior_hunting = (prior or {}).get(PlayerFields.HUNTING_STATS)
    document[PlayerFields.HUNTING_STATS] = copy.deepcopy(prior_hunting) if prior_hunting else {}

    return document


def build_hunting_patch(hunting_stats: Dict[str, Any]) -> Dict[str, Any]:
    """Merge patch for a hunting row: only the huntingStats key is touched."""
    return {PlayerFields.HUNTING_STATS: hunting_stats}
