"""Upload pipeline against the in-memory document store."""

import asyncio
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from conftest import make_csv
from roster_bot.database.document_store import InMemoryDocumentStore, history_collection
from roster_bot.operations.upload_operations import UploadOperations, parse_csv, read_csv_lines
from roster_bot.utils.exceptions import CsvParseError, DuplicatePlayerError

KILL_HEADER = 'ID,Name,might,Kills'
HUNT_HEADER = 'User ID,Total,Hunt,Purchase,First Hunt Time,Last Hunt Time'


def run(coro):
    return asyncio.run(coro)


def stored_player(**overrides):
    document = {
        'ID': '1001', 'Name': 'Alice', 'might': 100, 'Kills': 10,
        'Might Gained': 0, 'Kills Gained': 0, 'Notes': 'veteran',
        'lastUpdated': datetime(2025, 5, 1, tzinfo=timezone.utc),
        'huntingStats': {'huntCount': 7},
    }
    document.update(overrides)
    return document


def test_parse_csv_skips_blank_lines_and_bom():
    data = '\ufeffID,Name\n1,A\n\n,\n2,B\n'.encode('utf-8')
    rows = parse_csv(data, 'Kill Sheet')
    assert [row['ID'] for row in rows] == ['1', '2']


def test_parse_csv_rejects_non_utf8():
    with pytest.raises(CsvParseError) as excinfo:
        parse_csv(b'ID,Name\n1,\xff\xfe\n', 'Kill Sheet')
    assert 'Kill Sheet' in excinfo.value.user_message


def test_parse_csv_rejects_unterminated_quote():
    with pytest.raises(CsvParseError):
        parse_csv(make_csv('ID,Name', '1,"Alice'), 'Kill Sheet')


def test_first_sighting_creates_player_without_history(settings):
    store = InMemoryDocumentStore()
    operations = UploadOperations(store, settings)

    outcome = run(operations.process_kill_sheet(make_csv(KILL_HEADER, '1001,Alice,500,40')))

    assert outcome.success
    assert outcome.message == "Successfully processed and updated 1 players from Kill Sheet."
    document = store.documents['1001']
    assert document['might'] == 500
    assert document['Might Gained'] == 500
    assert document['Kills Gained'] == 40
    assert document['Notes'] == ''
    assert document['huntingStats'] == {}
    assert store.collections == {}
    assert outcome.result.new_players == 1


def test_changed_row_records_history_and_gains(settings):
    store = InMemoryDocumentStore({'1001': stored_player()})
    operations = UploadOperations(store, settings)

    outcome = run(operations.process_kill_sheet(make_csv(KILL_HEADER, '1001,Alice,150,10')))

    assert outcome.success
    document = store.documents['1001']
    assert document['might'] == 150
    assert document['Might Gained'] == 50
    assert document['Kills Gained'] == 0
    assert document['Notes'] == 'veteran'
    assert document['huntingStats'] == {'huntCount': 7}

    history = store.collections[history_collection('1001')]
    assert len(history) == 1
    assert history[0]['might'] == 100
    assert history[0]['Kills'] == 10
    assert history[0]['snapshotTime'] == datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
    assert outcome.result.history_entries == 1


def test_unchanged_row_writes_no_history(settings):
    store = InMemoryDocumentStore({'1001': stored_player()})
    operations = UploadOperations(store, settings)

    outcome = run(operations.process_kill_sheet(make_csv(KILL_HEADER, '1001,Alice,100,10')))

    assert outcome.success
    assert store.collections == {}
    assert store.documents['1001']['Might Gained'] == 0


def test_reupload_is_idempotent_apart_from_timestamps(settings):
    store = InMemoryDocumentStore({'1001': stored_player()})
    operations = UploadOperations(store, settings)
    data = make_csv(KILL_HEADER, '1001,Alice,150,10')

    run(operations.process_kill_sheet(data))
    first = dict(store.documents['1001'])
    run(operations.process_kill_sheet(data))
    second = store.documents['1001']

    assert len(store.collections[history_collection('1001')]) == 1
    assert second['Might Gained'] == 0
    assert second['Kills Gained'] == 0
    assert second['lastUpdated'] > first['lastUpdated']
    for key in ('ID', 'Name', 'might', 'Kills', 'Notes', 'huntingStats'):
        assert second[key] == first[key]


def test_invalid_ids_are_never_queued(settings):
    store = InMemoryDocumentStore()
    operations = UploadOperations(store, settings)
    data = make_csv(KILL_HEADER, 'abc,Bad,1,1', ',Empty,1,1', '2002,Good,5,1')

    outcome = run(operations.process_kill_sheet(data))

    assert outcome.success
    assert set(store.documents) == {'2002'}
    assert store.reads == ['2002']
    # Attempted rows are reported, including the skipped ones
    assert outcome.result.rows_processed == 3
    assert outcome.result.rows_written == 1
    assert outcome.result.skipped_rows == [2, 3]
    assert outcome.message == "Successfully processed and updated 3 players from Kill Sheet."


def test_parse_failure_leaves_store_untouched(settings):
    store = InMemoryDocumentStore({'1001': stored_player()})
    operations = UploadOperations(store, settings)

    outcome = run(operations.process_kill_sheet(b'\xff\xfe\x00'))

    assert not outcome.success
    assert store.commits == 0
    assert store.reads == []
    assert store.documents['1001']['might'] == 100


def test_commit_failure_applies_nothing(settings):
    store = InMemoryDocumentStore({'1001': stored_player()})
    store.fail_next_commit = RuntimeError('quota exceeded')
    operations = UploadOperations(store, settings)

    outcome = run(operations.process_kill_sheet(make_csv(KILL_HEADER, '1001,Alice,150,10', '2002,Bob,5,1')))

    assert not outcome.success
    assert outcome.message == "Error updating players: quota exceeded"
    assert store.documents == {'1001': stored_player()}
    assert store.collections == {}
    assert store.pending_count == 0


def test_duplicate_ids_rejected_by_default(settings):
    store = InMemoryDocumentStore()
    operations = UploadOperations(store, settings)

    with pytest.raises(DuplicatePlayerError) as excinfo:
        run(operations.apply_kill_rows(parse_csv(
            make_csv(KILL_HEADER, '1001,A,1,1', '1001,A,2,1', '2002,B,1,1'), 'Kill Sheet'
        )))
    assert excinfo.value.player_ids == ['1001']
    assert store.documents == {}

    outcome = run(operations.process_kill_sheet(make_csv(KILL_HEADER, '1001,A,1,1', '1001,A,2,1')))
    assert not outcome.success
    assert '1001' in outcome.message


def test_duplicate_ids_processed_sequentially_when_allowed(settings):
    store = InMemoryDocumentStore({'1001': stored_player()})
    operations = UploadOperations(store, replace(settings, reject_duplicate_ids=False))

    outcome = run(operations.process_kill_sheet(make_csv(KILL_HEADER, '1001,Alice,150,10', '1001,Alice,200,10')))

    assert outcome.success
    # Reads do not see queued writes, so both rows reconcile against the stored 100
    history = store.collections[history_collection('1001')]
    assert [entry['might'] for entry in history] == [100, 100]
    assert store.documents['1001']['might'] == 200
    assert store.documents['1001']['Might Gained'] == 100


def test_hunting_upload_preserves_other_fields(settings):
    store = InMemoryDocumentStore({'1001': stored_player()})
    operations = UploadOperations(store, settings)
    data = make_csv(HUNT_HEADER, '1001,12,7,5,1899-12-31 00:00:00,2025-05-30 18:45:00')

    outcome = run(operations.process_hunting_sheet(data))

    assert outcome.success
    assert outcome.message == "Successfully processed and updated 1 players with Hunting data."
    document = store.documents['1001']
    assert document['Notes'] == 'veteran'
    assert document['might'] == 100
    stats = document['huntingStats']
    assert stats['totalHunts'] == 12
    assert stats['huntCount'] == 7
    assert stats['purchaseCount'] == 5
    assert stats['firstHuntTime'] is None
    assert stats['lastHuntTime'] == datetime(2025, 5, 30, 18, 45, tzinfo=timezone.utc)
    assert 'huntingLastUpdated' in stats
    assert store.collections == {}
    assert store.reads == []


def test_hunting_upload_for_unknown_player_creates_document(settings):
    store = InMemoryDocumentStore()
    operations = UploadOperations(store, settings)

    run(operations.process_hunting_sheet(make_csv(HUNT_HEADER, '3003,1,1,0,,')))

    assert set(store.documents['3003']) == {'huntingStats'}


def test_hunting_then_kill_sheet_keeps_hunting_stats(settings):
    store = InMemoryDocumentStore()
    operations = UploadOperations(store, settings)

    run(operations.process_hunting_sheet(make_csv(HUNT_HEADER, '1001,12,7,5,,')))
    run(operations.process_kill_sheet(make_csv(KILL_HEADER, '1001,Alice,500,40')))

    document = store.documents['1001']
    assert document['huntingStats']['huntCount'] == 7
    assert document['might'] == 500


def test_empty_upload_succeeds_with_zero_rows(settings):
    store = InMemoryDocumentStore()
    operations = UploadOperations(store, settings)

    outcome = run(operations.process_kill_sheet(make_csv(KILL_HEADER)))

    assert outcome.success
    assert outcome.result.rows_processed == 0
    assert store.commits == 0


def test_read_csv_lines_reports_file_lines():
    data = make_csv('ID,Name,might,Kills', '1001,"Multi', 'Line",5,1', '', '2002,Bob,1,1')
    lines = read_csv_lines(data, 'Kill Sheet')
    assert [(number, row['ID']) for number, row in lines] == [(3, '1001'), (5, '2002')]
    assert lines[0][1]['Name'] == 'Multi\nLine'


def test_skipped_lines_account_for_blank_and_multiline_rows(settings):
    store = InMemoryDocumentStore()
    operations = UploadOperations(store, settings)
    data = make_csv(KILL_HEADER, '1001,"Multi', 'Line",5,1', '', 'bad,X,1,1', ',,,', 'N/A,Y,1,1')

    outcome = run(operations.process_kill_sheet(data))

    assert outcome.success
    assert outcome.result.skipped_rows == [5, 7]
    assert outcome.result.rows_processed == 3


def test_hunting_skipped_lines_follow_file_lines(settings):
    store = InMemoryDocumentStore()
    operations = UploadOperations(store, settings)

    outcome = run(operations.process_hunting_sheet(make_csv(HUNT_HEADER, '', '1001,1,1,0,,', '', ',5,5,5,,')))

    assert outcome.result.skipped_rows == [5]
    assert set(store.documents) == {'1001'}


def test_repeated_invalid_ids_are_skipped_not_rejected(settings):
    store = InMemoryDocumentStore()
    operations = UploadOperations(store, settings)
    data = make_csv(KILL_HEADER, 'N/A,Left,1,1', 'N/A,Left2,1,1', 'Total,,9,9', 'Total,,9,9', '1001,Alice,500,40')

    outcome = run(operations.process_kill_sheet(data))

    assert outcome.success
    assert set(store.documents) == {'1001'}
    assert store.documents['1001']['might'] == 500
    assert outcome.result.skipped_rows == [2, 3, 4, 5]


def test_repeated_valid_id_still_rejected_next_to_invalid_ones(settings):
    store = InMemoryDocumentStore()
    operations = UploadOperations(store, settings)
    data = make_csv(KILL_HEADER, 'N/A,Left,1,1', 'N/A,Left2,1,1', '1001,A,1,1', ' 1001 ,A,2,1')

    outcome = run(operations.process_kill_sheet(data))

    assert not outcome.success
    assert '1001' in outcome.message
    assert 'N/A' not in outcome.message
    assert store.documents == {}
