# main.py
import argparse
import logging
import os
import sys
import time
from typing import Callable, Optional

from isodin.change_set import build_change_set
from isodin.console import ConsoleShell
from isodin.csv_export import export_change_set
from isodin.database_manager import FamilyDatabase, UpdateFailed
from isodin.settings import BACKENDS, DatabaseSettings, Settings, load_settings
from isodin.standard_mappings import default_table

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1


def setup_logging(level: str = "INFO", log_dir: str = "logs") -> None:
    os.makedirs(log_dir, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.FileHandler(os.path.join(log_dir, "isodin.log"), encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )


def _non_negative_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from None
    if n < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {n}")
    return n


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        description="Pair ISO family titles with their DIN equivalents (e.g. 'ISO 4017' -> 'ISO 4017/DIN 933')."
    )
    ap.add_argument("--env-file", default=None, help="Path to a .env file (default: search from the working dir)")
    ap.add_argument("--backend", choices=BACKENDS, default=None, help="Override DB_BACKEND")
    ap.add_argument("--db-path", default=None, help="Override DB_PATH (SQLite)")
    ap.add_argument("--table", default=None, help="Override FAMILY_TABLE")
    ap.add_argument("--limit", type=_non_negative_int, default=0, help="Max candidate rows to analyze (0=all)")
    ap.add_argument("--dry-run", action="store_true", help="Preview only; never write")
    ap.add_argument("--yes", action="store_true", help="Apply without asking for confirmation")
    ap.add_argument("--export-csv", default="", help="Also write the proposed changes to this CSV file")
    return ap.parse_args(argv)


def run(
    args: argparse.Namespace,
    settings: Settings,
    shell: Optional[ConsoleShell] = None,
    db_factory: Callable[[DatabaseSettings], FamilyDatabase] = FamilyDatabase,
) -> int:
    shell = shell or ConsoleShell()
    log.info("--- ISO/DIN Family Title Update Utility%s ---", " (Preview Mode)" if args.dry_run else "")

    try:
        table = default_table(settings.mappings_csv)
        with db_factory(settings.db) as db:
            started = time.perf_counter()
            log.info("Step 1: Finding and calculating potential family title updates...")
            records = db.fetch_candidates(limit=args.limit or None)
            log.info("Found %s potential families to analyze.", len(records))

            change_set = build_change_set(records, table)
            log.info("Analysis complete in %.2f seconds.", time.perf_counter() - started)
            if change_set.unresolved:
                log.warning("Skipped %s records due to missing mapping or no ISO/DIN found.", change_set.unresolved)

            if not change_set:
                log.info("No families require title updates. Database is consistent.")
                shell.show_summary(change_set)
                return EXIT_OK

            log.info("Step 2: Displaying the %s families that need updates...", change_set.changed)
            shell.show_changes(change_set)
            if args.export_csv:
                export_change_set(args.export_csv, change_set)
                log.info("Proposed changes written to %s", args.export_csv)

            if args.dry_run:
                log.info("Dry run: no changes were made to the database.")
                shell.show_summary(change_set)
                return EXIT_OK

            if not (args.yes or shell.confirm()):
                log.info("No changes were made to the database.")
                shell.show_summary(change_set)
                return EXIT_OK

            log.info("Updating changes to the database in a transaction...")
            updated = db.apply_updates(change_set.changes)
            log.info("Database update complete. %s records updated.", updated)
            shell.show_summary(change_set, updated=updated)
            return EXIT_OK
    except UpdateFailed as e:
        log.error("%s. Re-run the tool once the cause is fixed.", e)
        return EXIT_ERROR
    except Exception as e:
        log.error("AN ERROR OCCURRED: %s", e, exc_info=True)
        log.info("Please check your connection settings and ensure the database server is running.")
        return EXIT_ERROR


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(args.env_file).with_overrides(
            backend=args.backend,
            path=args.db_path,
            table=args.table,
        )
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_ERROR

    setup_logging(settings.log_level)
    return run(args, settings)


if __name__ == "__main__":
    sys.exit(main())
