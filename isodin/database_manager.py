# isodin/database_manager.py
import logging
import os
import sqlite3
import time
from typing import Any, Callable, Iterable, Optional

from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from isodin.change_set import FamilyRecord, RewriteResult
from isodin.settings import DatabaseSettings, check_identifier

log = logging.getLogger(__name__)


class UpdateFailed(RuntimeError):
    """The update batch was rolled back; nothing was written."""


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    log.warning(
        "Connect attempt %s failed: %s. Retrying in %.1fs",
        retry_state.attempt_number,
        exc,
        delay,
    )


class FamilyDatabase:
    """
    Family table access for the title normalizer.
    - connect(): opens the connection with retry + exponential backoff
    - fetch_candidates(): rows whose title mentions ISO or DIN
    - apply_updates(): all title updates in one transaction (all or nothing)
    SQLite (local copies, tests) and MySQL/MariaDB (PyMySQL) are supported.
    """

    def __init__(self, settings: DatabaseSettings, sleep: Callable[[float], None] = time.sleep):
        self.settings = settings
        self.table = check_identifier(settings.table)
        self.conn: Any = None
        self._sleep = sleep

    def __enter__(self) -> "FamilyDatabase":
        if self.conn is None:
            self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_sqlite(self) -> bool:
        return self.settings.backend == "sqlite"

    @property
    def placeholder(self) -> str:
        return "?" if self.is_sqlite else "%s"

    # ---------- connection ----------
    def _transient_errors(self) -> tuple:
        if self.is_sqlite:
            return (sqlite3.OperationalError, OSError)
        import pymysql

        return (pymysql.err.OperationalError, pymysql.err.InterfaceError, OSError)

    def _open(self) -> Any:
        if self.is_sqlite:
            os.makedirs(os.path.dirname(self.settings.path) or ".", exist_ok=True)
            # autocommit; apply_updates opens its own transaction
            conn = sqlite3.connect(self.settings.path, timeout=60, isolation_level=None)
            conn.row_factory = sqlite3.Row
            return conn

        import pymysql

        return pymysql.connect(
            host=self.settings.host,
            port=self.settings.port,
            user=self.settings.user,
            password=self.settings.password,
            database=self.settings.database,
            charset="utf8mb4",
            autocommit=True,
            connect_timeout=10,
        )

    def connect(self) -> None:
        retrying = Retrying(
            stop=stop_after_attempt(self.settings.connect_attempts),
            wait=wait_exponential(multiplier=self.settings.retry_base_sec, exp_base=2),
            retry=retry_if_exception_type(self._transient_errors()),
            before_sleep=_log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        log.info("Connecting to database (%s)...", self.settings.describe())
        self.conn = retrying(self._open)
        log.info("Connection successful.")

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def _require_conn(self) -> Any:
        if self.conn is None:
            raise RuntimeError("database is not connected")
        return self.conn

    # ---------- schema (SQLite copies only) ----------
    def ensure_table(self) -> None:
        conn = self._require_conn()
        if not self.is_sqlite:
            raise RuntimeError("ensure_table is only available for SQLite databases")
        conn.execute(f"CREATE TABLE IF NOT EXISTS {self.table} (id INTEGER PRIMARY KEY, title TEXT)")

    # ---------- read ----------
    def fetch_candidates(self, limit: Optional[int] = None) -> list[FamilyRecord]:
        conn = self._require_conn()
        sql = (
            f"SELECT id, title FROM {self.table} "
            "WHERE title LIKE '%ISO%' OR title LIKE '%DIN%' ORDER BY id"
        )
        if limit:
            sql += f" LIMIT {int(limit)}"
        cur = conn.cursor()
        try:
            cur.execute(sql)
            rows = cur.fetchall()
        finally:
            cur.close()

        records: list[FamilyRecord] = []
        for row in rows:
            record = FamilyRecord.from_row(row)
            # LIKE ignores case on most collations; the pre-filter must not
            if "ISO" in record.title or "DIN" in record.title:
                records.append(record)
        return records

    # ---------- write ----------
    def _begin(self, cur: Any) -> None:
        if self.is_sqlite:
            cur.execute("BEGIN")
        else:
            self.conn.begin()

    def apply_updates(self, results: Iterable[RewriteResult]) -> int:
        conn = self._require_conn()
        ph = self.placeholder
        sql = f"UPDATE {self.table} SET title = {ph} WHERE id = {ph}"
        written = 0
        cur = conn.cursor()
        try:
            self._begin(cur)
            for result in results:
                cur.execute(sql, (result.proposed_title, result.family_id))
                written += 1
            conn.commit()
        except Exception as e:
            conn.rollback()
            log.error("Transaction failed after %s updates. All changes rolled back.", written, exc_info=True)
            raise UpdateFailed(f"update of {self.table} rolled back: {e}") from e
        finally:
            cur.close()
        return written
