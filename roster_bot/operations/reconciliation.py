"""
Reconciliation

Compares a kill-sheet candidate with the stored document for the same player
and works out the gained metrics and whether the prior state must be kept as a
history entry. Hunting rows are not diffed; their stats sub-record is rebuilt
from the row every time.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from roster_bot.constants import HuntingFields, KillSheetHeaders, PlayerFields
from roster_bot.operations.row_extraction import (
    HuntingSheetRow, KillSheetRow, get_cell_value, parse_numeric
)


@dataclass(frozen=True)
class Reconciliation:
    """Outcome of comparing one candidate with its prior document."""
    might_gained: float
    kills_gained: float
    should_record_history: bool
    history_payload: Optional[Dict[str, Any]] = None


def reconcile_kill_row(
    candidate: KillSheetRow,
    prior: Optional[Dict[str, Any]],
    now: datetime
) -> Reconciliation:
    """
    Compute gained metrics for a kill-sheet candidate.

    First sighting: the gains are the absolute values and nothing is snapshotted.
    Otherwise the gains are signed differences (decreases are kept as negative
    gains) and a history payload capturing the prior document is produced when
    might, kills or name changed.

    Args:
        candidate: Normalized kill-sheet row
        prior: Stored document for candidate.player_id, or None
        now: Snapshot timestamp for the history entry

    Returns:
        Reconciliation with the gains and optional history payload
    """
    if prior is None:
        return Reconciliation(
            might_gained=candidate.might,
            kills_gained=candidate.kills,
            should_record_history=False,
        )

    prior_might = parse_numeric(get_cell_value(prior, KillSheetHeaders.MIGHT))
    prior_kills = parse_numeric(get_cell_value(prior, KillSheetHeaders.KILLS))
    prior_name = prior.get(PlayerFields.NAME) or ''

    might_gained = candidate.might - prior_might
    kills_gained = candidate.kills - prior_kills
    changed = might_gained != 0 or kills_gained != 0 or prior_name != candidate.name

    history_payload = None
    if changed:
        history_payload = {
            **prior,
            PlayerFields.SNAPSHOT_TIME: now,
            PlayerFields.MIGHT: prior_might,
            PlayerFields.KILLS: prior_kills,
            PlayerFields.MIGHT_GAINED: prior.get(PlayerFields.MIGHT_GAINED) or 0,
            PlayerFields.KILLS_GAINED: prior.get(PlayerFields.KILLS_GAINED) or 0,
        }

    return Reconciliation(
        might_gained=might_gained,
        kills_gained=kills_gained,
        should_record_history=changed,
        history_payload=history_payload,
    )


def build_hunting_stats(candidate: HuntingSheetRow, now: datetime) -> Dict[str, Any]:
    """Rebuild the complete huntingStats sub-record from a hunting row."""
    stats: Dict[str, Any] = dict(candidate.counters)
    stats[HuntingFields.FIRST_HUNT_TIME] = candidate.first_hunt_time
    stats[HuntingFields.LAST_HUNT_TIME] = candidate.last_hunt_time
    stats[HuntingFields.LAST_UPDATED] = now
    return stats
