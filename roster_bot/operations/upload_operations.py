"""
Upload Operations

Runs a kill-sheet or hunting-sheet upload end to end: CSV intake, row
extraction, reconciliation against the stored documents and one batched
commit per upload.

Processing model:
- Rows are handled one at a time. A kill-sheet row reads the stored document
  for its player before its writes are queued; reads are not part of the batch,
  so two uploads racing on the same players can both see the same prior state.
- Every queued write of an upload is committed together. A rejected commit
  fails the whole upload; there is no per-row outcome and no retry.
- process_kill_sheet / process_hunting_sheet are the error boundary: they never
  raise, they return an UploadOutcome carrying a user-facing message.
"""

import csv
import io
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple

from roster_bot.config import TrackerSettings
from roster_bot.constants import HuntingSheetHeaders, KillSheetHeaders
from roster_bot.database.document_store import DocumentStore, history_collection
from roster_bot.operations.merge import build_hunting_patch, build_player_document
from roster_bot.operations.reconciliation import build_hunting_stats, reconcile_kill_row
from roster_bot.operations.row_extraction import (
    ExtractionReport, extract_hunting_row, extract_kill_row, get_cell_value
)
from roster_bot.utils.exceptions import CsvParseError, DuplicatePlayerError, RosterException
from roster_bot.utils.logger import setup_logger

logger = setup_logger(__name__)

KILL_SHEET = 'Kill Sheet'
HUNTING_SHEET = 'Hunting'


@dataclass
class UploadResult:
    """What one committed upload did."""
    rows_processed: int
    rows_written: int
    history_entries: int = 0
    new_players: int = 0
    skipped_rows: List[int] = field(default_factory=list)

    @property
    def rows_skipped(self) -> int:
        return len(self.skipped_rows)


@dataclass
class UploadOutcome:
    """User-facing result of an upload; success is False for any failure."""
    success: bool
    message: str
    result: Optional[UploadResult] = None


def _is_blank(row: Dict[Any, Any]) -> bool:
    return not any(isinstance(value, str) and value.strip() for value in row.values())


def read_csv_lines(data: bytes, sheet: str) -> List[Tuple[int, Dict[str, Any]]]:
    """
    Parse uploaded CSV bytes into (line number, header-keyed row) pairs.

    The first row is the header; blank lines are skipped. The line number is
    the file line on which the record ends, so it stays correct across blank
    lines and quoted multi-line cells.

    Raises:
        CsvParseError: undecodable bytes or malformed CSV structure
    """
    try:
        text = data.decode('utf-8-sig')
    except UnicodeDecodeError as e:
        raise CsvParseError(sheet, f"file is not UTF-8 text ({e.reason})")

    rows = []
    reader = csv.DictReader(io.StringIO(text, newline=''), strict=True)
    try:
        for row in reader:
            if not _is_blank(row):
                rows.append((reader.line_num, row))
    except csv.Error as e:
        raise CsvParseError(sheet, f"line {reader.line_num}: {e}")
    return rows


def parse_csv(data: bytes, sheet: str) -> List[Dict[str, Any]]:
    """Header-keyed rows of an uploaded CSV, without their line numbers."""
    return [row for _, row in read_csv_lines(data, sheet)]


class UploadOperations:
    """Kill-sheet and hunting-sheet processing against a DocumentStore."""

    def __init__(self, store: DocumentStore, settings: TrackerSettings):
        self.store = store
        self.settings = settings
        self.logger = logger

    def _check_duplicates(self, rows: List[Dict[str, Any]], aliases, id_pattern: Optional[Pattern] = None) -> None:
        """Reject repeated identifiers; rows whose ID would be skipped anyway are not counted."""
        if not self.settings.reject_duplicate_ids:
            return
        player_ids = [str(get_cell_value(row, aliases) or '').strip() for row in rows]
        counts = Counter(
            player_id for player_id in player_ids
            if player_id and (id_pattern is None or id_pattern.match(player_id))
        )
        duplicates = [player_id for player_id, count in counts.items() if count > 1]
        if duplicates:
            raise DuplicatePlayerError(duplicates)

    @staticmethod
    def _line_numbers(rows: List[Dict[str, Any]], line_numbers: Optional[Sequence[int]]) -> Sequence[int]:
        # Header is line 1
        return line_numbers if line_numbers is not None else range(2, len(rows) + 2)

    async def apply_kill_rows(self, rows: List[Dict[str, Any]],
                              line_numbers: Optional[Sequence[int]] = None) -> UploadResult:
        """
        Reconcile and persist kill-sheet rows as one batch.

        line_numbers gives the file line of each row for skip reporting;
        without it rows are numbered as if the file had no blank lines.

        Raises:
            DuplicatePlayerError: same identifier on several rows (when rejected by settings)
            StoreCommitError: the batch commit was rejected
        """
        self._check_duplicates(rows, KillSheetHeaders.ID, self.settings.kill_id_pattern)

        report = ExtractionReport()
        history_entries = 0
        new_players = 0

        for row_number, row in zip(self._line_numbers(rows, line_numbers), rows):
            candidate = extract_kill_row(row, self.settings)
            if candidate is None:
                self.logger.warning(f"Kill Sheet line {row_number}: skipping row with missing or invalid ID")
                report.skip(row_number)
                continue

            prior = await self.store.get(candidate.player_id)
            now = self.settings.clock()
            reconciliation = reconcile_kill_row(candidate, prior, now)

            if reconciliation.should_record_history:
                self.store.queue_insert(
                    history_collection(candidate.player_id),
                    reconciliation.history_payload
                )
                history_entries += 1
            if prior is None:
                new_players += 1

            document = build_player_document(candidate, prior, reconciliation, now)
            self.store.queue_merge(candidate.player_id, document)
            report.accept()

            self.logger.debug(
                f"Queued player {candidate.player_id}: "
                f"might_gained={reconciliation.might_gained}, kills_gained={reconciliation.kills_gained}"
                f"{', history recorded' if reconciliation.should_record_history else ''}"
            )

        await self.store.commit()

        return UploadResult(
            rows_processed=len(rows),
            rows_written=report.rows_accepted,
            history_entries=history_entries,
            new_players=new_players,
            skipped_rows=report.skipped_rows,
        )

    async def apply_hunting_rows(self, rows: List[Dict[str, Any]],
                                 line_numbers: Optional[Sequence[int]] = None) -> UploadResult:
        """
        Persist hunting stats as one batch.

        No stored state is read and no history is written; each row replaces
        the player's huntingStats and leaves every other field alone.
        """
        self._check_duplicates(rows, HuntingSheetHeaders.ID)

        report = ExtractionReport()

        for row_number, row in zip(self._line_numbers(rows, line_numbers), rows):
            candidate = extract_hunting_row(row, self.settings)
            if candidate is None:
                self.logger.warning(f"Hunting line {row_number}: skipping row with missing User ID")
                report.skip(row_number)
                continue

            hunting_stats = build_hunting_stats(candidate, self.settings.clock())
            self.store.queue_merge(candidate.player_id, build_hunting_patch(hunting_stats))
            report.accept()

        await self.store.commit()

        return UploadResult(
            rows_processed=len(rows),
            rows_written=report.rows_accepted,
            skipped_rows=report.skipped_rows,
        )

    async def process_kill_sheet(self, data: bytes, filename: str = 'kill sheet') -> UploadOutcome:
        """Parse and apply a kill-sheet upload, converting every failure into a message."""
        self.logger.info(f"Processing {filename}...")
        try:
            lines = read_csv_lines(data, KILL_SHEET)
            result = await self.apply_kill_rows([row for _, row in lines], [number for number, _ in lines])
        except RosterException as e:
            self.logger.error(f"Kill Sheet upload {filename} failed: {e}")
            return UploadOutcome(success=False, message=e.user_message)
        except Exception as e:
            self.logger.error(f"Unexpected error processing Kill Sheet {filename}: {e}", exc_info=True)
            return UploadOutcome(success=False, message=f"Error updating players: {e}")

        self.logger.info(
            f"Kill Sheet {filename}: {result.rows_processed} rows, {result.rows_written} written, "
            f"{result.rows_skipped} skipped, {result.history_entries} history entries"
        )
        return UploadOutcome(
            success=True,
            message=f"Successfully processed and updated {result.rows_processed} players from Kill Sheet.",
            result=result,
        )

    async def process_hunting_sheet(self, data: bytes, filename: str = 'hunting sheet') -> UploadOutcome:
        """Parse and apply a hunting-sheet upload, converting every failure into a message."""
        self.logger.info(f"Processing {filename}...")
        try:
            lines = read_csv_lines(data, HUNTING_SHEET)
            result = await self.apply_hunting_rows([row for _, row in lines], [number for number, _ in lines])
        except RosterException as e:
            self.logger.error(f"Hunting upload {filename} failed: {e}")
            return UploadOutcome(success=False, message=e.user_message)
        except Exception as e:
            self.logger.error(f"Unexpected error processing Hunting sheet {filename}: {e}", exc_info=True)
            return UploadOutcome(success=False, message=f"Error updating hunting data: {e}")

        self.logger.info(
            f"Hunting {filename}: {result.rows_processed} rows, {result.rows_written} written, "
            f"{result.rows_skipped} skipped"
        )
        return UploadOutcome(
            success=True,
            message=f"Successfully processed and updated {result.rows_processed} players with Hunting data.",
            result=result,
        )
