"""Run the score sheet startup self-heal and print what it did.

Usage: uv run python bin/migrate-data.py

Restores from the last backup (best effort), re-saves the current game and
the history in the current schema, then takes a fresh backup. Storage is
chosen by the PINOCHLE_* environment variables.
"""

import asyncio
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from pinochle.app import open_score_sheet
from pinochle.errors import StorageError
from pinochle.settings import ScoreSheetSettings
from shared.logging import setup_logging


async def main() -> None:
    settings = ScoreSheetSettings()
    setup_logging(settings.log_dir, name="migrate-data")

    try:
        sheet = await open_score_sheet(settings)
    except StorageError as e:
        print(f"Error: {e}")
        sys.exit(1)

    try:
        report = sheet.startup_report
        if report is not None:
            print(f"Restored from backup: {'yes' if report.restored else 'no'}")
            if report.restore_error:
                print(f"Restore skipped: {report.restore_error}")
            print(f"Current game: {'present' if report.has_current_game else 'none'}")
            print(f"Games in history: {report.history_size}")
            print(f"Backup: {'written' if report.backup.ok else f'failed ({report.backup.error})'}")

        game = sheet.service.current_game
        if game is not None:
            scores = sheet.service.scoring.all_team_scores(game)
            for team in game.teams:
                print(f"  {team.name}: {scores[team.id]}")
    finally:
        sheet.close()


if __name__ == "__main__":
    asyncio.run(main())
