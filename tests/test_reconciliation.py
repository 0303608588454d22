"""Reconciliation and merge: gained metrics, history decisions, field preservation."""

from datetime import datetime, timezone

from roster_bot.constants import HuntingFields, PlayerFields
from roster_bot.operations.merge import build_hunting_patch, build_player_document
from roster_bot.operations.reconciliation import build_hunting_stats, reconcile_kill_row
from roster_bot.operations.row_extraction import HuntingSheetRow, KillSheetRow

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
EARLIER = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)


def candidate(player_id='1001', name='Alice', might=150, kills=10, notes=None, raw=None, extras=None):
    return KillSheetRow(
        player_id=player_id, name=name, might=might, kills=kills, notes=notes,
        extras=extras or {},
        raw=raw if raw is not None else {'ID': player_id, 'Name': name, 'might': str(might), 'Kills': str(kills)},
    )


def prior_document(**overrides):
    document = {
        'ID': '1001', 'Name': 'Alice', 'might': 100, 'Kills': 10,
        'Might Gained': 20, 'Kills Gained': 1, 'Notes': 'veteran',
        'lastUpdated': EARLIER, 'huntingStats': {'huntCount': 7},
    }
    document.update(overrides)
    return document


def test_first_sighting_gains_equal_absolute_values():
    result = reconcile_kill_row(candidate(might=500, kills=40), None, NOW)
    assert result.might_gained == 500
    assert result.kills_gained == 40
    assert result.should_record_history is False
    assert result.history_payload is None


def test_changed_might_records_prior_state():
    result = reconcile_kill_row(candidate(might=150, kills=10), prior_document(), NOW)

    assert result.might_gained == 50
    assert result.kills_gained == 0
    assert result.should_record_history is True
    payload = result.history_payload
    assert payload['might'] == 100
    assert payload['Kills'] == 10
    assert payload['Might Gained'] == 20
    assert payload['Kills Gained'] == 1
    assert payload['snapshotTime'] == NOW
    assert payload['Notes'] == 'veteran'
    assert payload['huntingStats'] == {'huntCount': 7}


def test_unchanged_row_records_no_history():
    result = reconcile_kill_row(candidate(might=100, kills=10), prior_document(), NOW)
    assert result.might_gained == 0
    assert result.kills_gained == 0
    assert result.should_record_history is False


def test_name_change_alone_records_history():
    result = reconcile_kill_row(candidate(name='Alicia', might=100, kills=10), prior_document(), NOW)
    assert result.should_record_history is True
    assert result.history_payload['Name'] == 'Alice'


def test_decrease_is_recorded_as_negative_gain():
    result = reconcile_kill_row(candidate(might=80, kills=9), prior_document(), NOW)
    assert result.might_gained == -20
    assert result.kills_gained == -1
    assert result.should_record_history is True


def test_prior_without_gained_fields_defaults_to_zero():
    prior = prior_document()
    del prior['Might Gained']
    del prior['Kills Gained']
    result = reconcile_kill_row(candidate(might=101), prior, NOW)
    assert result.history_payload['Might Gained'] == 0
    assert result.history_payload['Kills Gained'] == 0


def test_prior_with_string_counters_is_parsed():
    prior = prior_document(might='1,000', Kills='10')
    result = reconcile_kill_row(candidate(might=1500, kills=10), prior, NOW)
    assert result.might_gained == 500
    assert result.history_payload['might'] == 1000


def test_merge_preserves_notes_when_column_missing():
    prior = prior_document()
    new = candidate(might=150)
    document = build_player_document(new, prior, reconcile_kill_row(new, prior, NOW), NOW)
    assert document['Notes'] == 'veteran'


def test_merge_keeps_prior_notes_over_uploaded_notes():
    prior = prior_document()
    new = candidate(notes='rookie')
    document = build_player_document(new, prior, reconcile_kill_row(new, prior, NOW), NOW)
    assert document['Notes'] == 'veteran'


def test_merge_uses_uploaded_notes_when_prior_has_none():
    prior = prior_document(Notes='')
    new = candidate(notes='rookie')
    document = build_player_document(new, prior, reconcile_kill_row(new, prior, NOW), NOW)
    assert document['Notes'] == 'rookie'

    first = candidate(notes=None)
    document = build_player_document(first, None, reconcile_kill_row(first, None, NOW), NOW)
    assert document['Notes'] == ''


def test_merge_overwrites_core_fields_and_gains():
    prior = prior_document(Rank='R3', Mana='high')
    new = candidate(might=150, kills=12, extras={PlayerFields.RANK: 'R4'})
    reconciliation = reconcile_kill_row(new, prior, NOW)
    document = build_player_document(new, prior, reconciliation, NOW)

    assert document['ID'] == '1001'
    assert document['might'] == 150
    assert document['Kills'] == 12
    assert document['Might Gained'] == 50
    assert document['Kills Gained'] == 2
    assert document['lastUpdated'] == NOW
    assert document['Rank'] == 'R4'
    # Not in the upload, carried forward
    assert document['Mana'] == 'high'


def test_merge_preserves_hunting_stats_verbatim():
    prior = prior_document()
    new = candidate()
    document = build_player_document(new, prior, reconcile_kill_row(new, prior, NOW), NOW)
    assert document['huntingStats'] == {'huntCount': 7}

    document = build_player_document(new, None, reconcile_kill_row(new, None, NOW), NOW)
    assert document['huntingStats'] == {}


def test_merge_passes_unknown_columns_through():
    new = candidate(raw={'ID': '1001', 'Name': 'Alice', 'Guild Role': 'Scout', 'Might': '150'})
    document = build_player_document(new, None, reconcile_kill_row(new, None, NOW), NOW)
    assert document['Guild Role'] == 'Scout'
    # Raw header kept verbatim next to the normalized field
    assert document['Might'] == '150'
    assert document['might'] == 150


def test_merge_explicit_fields_win_over_prior_alias_keys():
    prior = prior_document()
    new = candidate(might=150, raw={'ID': '1001', 'Name': 'Alice', 'Might': '150', 'kills': '10'})
    document = build_player_document(new, prior, reconcile_kill_row(new, prior, NOW), NOW)
    assert document['might'] == 150


def test_build_hunting_stats_and_patch():
    row = HuntingSheetRow(
        player_id='1001',
        counters={'huntCount': 7, 'totalHunts': 9},
        first_hunt_time=None,
        last_hunt_time=EARLIER,
    )
    stats = build_hunting_stats(row, NOW)
    assert stats['huntCount'] == 7
    assert stats[HuntingFields.FIRST_HUNT_TIME] is None
    assert stats[HuntingFields.LAST_HUNT_TIME] == EARLIER
    assert stats[HuntingFields.LAST_UPDATED] == NOW
    assert build_hunting_patch(stats) == {'huntingStats': stats}
