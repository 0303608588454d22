#!/usr/bin/env python3
"""
Roster CSV Import

Standalone script for applying a Kill Sheet or Hunting CSV export to a guild's
roster without going through Discord. Uses the same upload operations as the
bot's /roster-upload-* commands, so history and gained metrics are recorded
identically.

Usage:
    python import_roster_csv.py kills "Kill Sheet.csv" --guild 123456789
    python import_roster_csv.py hunting "Hunting.csv" --guild 123456789
"""

import argparse
import asyncio
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

from roster_bot.config import Config, TrackerSettings
from roster_bot.database.database import Database
from roster_bot.services.roster_service import RosterService


def setup_logging() -> logging.Logger:
    """Setup logging for the import script"""
    log_dir = Path(Config.LOG_DIR)
    log_dir.mkdir(exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_dir / f'csv_import_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log'),
            logging.StreamHandler()
        ]
    )
    return logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Apply a roster CSV export to the database")
    parser.add_argument('sheet', choices=['kills', 'hunting'], help="Which export the file is")
    parser.add_argument('csv_path', help="Path to the CSV file")
    parser.add_argument('--guild', required=True, help="Guild (owner) ID whose roster is updated")
    parser.add_argument('--database-url', default=None, help="Override DATABASE_URL")
    return parser.parse_args(argv)


async def import_csv(sheet: str, csv_path: str, guild: str, database_url: str = None):
    """
    Apply one CSV file to a guild roster.

    Returns:
        UploadOutcome of the upload
    """
    if not os.path.exists(csv_path):
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    with open(csv_path, 'rb') as file:
        data = file.read()

    db = Database(database_url)
    await db.initialize()
    try:
        service = RosterService(db, TrackerSettings.from_config())
        operations = service.upload_operations(guild)
        filename = os.path.basename(csv_path)
        if sheet == 'hunting':
            return await operations.process_hunting_sheet(data, filename)
        return await operations.process_kill_sheet(data, filename)
    finally:
        await db.close()


async def main(argv=None):
    """Main entry point for standalone script execution"""
    args = parse_args(argv)
    logger = setup_logging()

    try:
        logger.info(f"Starting {args.sheet} import from {args.csv_path}...")
        outcome = await import_csv(args.sheet, args.csv_path, args.guild, args.database_url)
    except FileNotFoundError as e:
        logger.error(str(e))
        print(f"\nERROR: {e}")
        return 1

    print("\n" + "=" * 50)
    print(outcome.message)
    if outcome.result:
        print(f"Rows processed: {outcome.result.rows_processed}")
        print(f"Rows written:   {outcome.result.rows_written}")
        print(f"Rows skipped:   {outcome.result.rows_skipped}")
        print(f"History added:  {outcome.result.history_entries}")
    print("=" * 50)
    return 0 if outcome.success else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
