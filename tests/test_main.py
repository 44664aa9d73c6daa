import csv
import io
import sqlite3
from pathlib import Path

import pytest
from rich.console import Console

import main
from isodin.console import ConsoleShell
from isodin.settings import DatabaseSettings, Settings

ROWS = [
    (1, "ISO4017 Hex bolt"),
    (2, "ISO 4017/DIN 933"),
    (3, "DIN 125 Scheibe [A2]"),
    (4, "DIN 99999 Spezial"),
    (5, "Mutter"),
]


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "eshop.db"
    con = sqlite3.connect(path)
    con.execute("CREATE TABLE family (id INTEGER PRIMARY KEY, title TEXT)")
    con.executemany("INSERT INTO family (id, title) VALUES (?, ?)", ROWS)
    con.commit()
    con.close()
    return path


def _settings(db_path: Path) -> Settings:
    return Settings(db=DatabaseSettings(backend="sqlite", path=str(db_path), retry_base_sec=0))


def _shell(answer: str = "n"):
    out = io.StringIO()
    prompts = []

    def fake_input(prompt: str) -> str:
        prompts.append(prompt)
        return answer

    return ConsoleShell(console=Console(file=out, width=200), input_func=fake_input), out, prompts


def _titles(db_path: Path) -> dict:
    con = sqlite3.connect(db_path)
    try:
        return dict(con.execute("SELECT id, title FROM family").fetchall())
    finally:
        con.close()


def test_confirmed_run_updates_changed_rows(db_path: Path):
    shell, out, prompts = _shell("Y")
    code = main.run(main.parse_args([]), _settings(db_path), shell=shell)
    assert code == main.EXIT_OK
    assert len(prompts) == 1
    titles = _titles(db_path)
    assert titles[1] == "ISO 4017/DIN 933 Hex bolt"
    assert titles[2] == "ISO 4017/DIN 933"
    assert titles[3] == "ISO 7089/DIN 125 Scheibe [A2]"
    assert titles[4] == "DIN 99999 Spezial"
    text = out.getvalue()
    assert "Family ID: 1" in text
    assert "Proposed : ISO 7089/DIN 125 Scheibe [A2]" in text
    assert "Updated        : 2" in text


def test_declined_run_changes_nothing(db_path: Path):
    before = _titles(db_path)
    shell, out, _ = _shell("n")
    assert main.run(main.parse_args([]), _settings(db_path), shell=shell) == main.EXIT_OK
    assert _titles(db_path) == before
    assert "No changes were made to the database." in out.getvalue()


def test_dry_run_never_prompts(db_path: Path, tmp_path: Path):
    before = _titles(db_path)
    export = tmp_path / "out" / "changes.csv"
    shell, _, prompts = _shell("y")
    args = main.parse_args(["--dry-run", "--export-csv", str(export)])
    assert main.run(args, _settings(db_path), shell=shell) == main.EXIT_OK
    assert prompts == []
    assert _titles(db_path) == before
    with export.open(newline="", encoding="utf-8-sig") as f:
        rows = list(csv.DictReader(f))
    assert [r["family_id"] for r in rows] == ["1", "3"]
    assert rows[0]["proposed_title"] == "ISO 4017/DIN 933 Hex bolt"


def test_yes_flag_skips_prompt(db_path: Path):
    shell, _, prompts = _shell("n")
    assert main.run(main.parse_args(["--yes"]), _settings(db_path), shell=shell) == main.EXIT_OK
    assert prompts == []
    assert _titles(db_path)[1] == "ISO 4017/DIN 933 Hex bolt"


def test_consistent_database_reports_no_changes(db_path: Path):
    con = sqlite3.connect(db_path)
    con.execute("DELETE FROM family WHERE id IN (1, 3)")
    con.commit()
    con.close()
    shell, out, prompts = _shell("y")
    assert main.run(main.parse_args([]), _settings(db_path), shell=shell) == main.EXIT_OK
    assert prompts == []
    assert "Total analyzed : 2" in out.getvalue()


def test_missing_table_is_reported_as_error(tmp_path: Path):
    shell, _, _ = _shell("y")
    settings = _settings(tmp_path / "empty.db")
    assert main.run(main.parse_args([]), settings, shell=shell) == main.EXIT_ERROR


def test_failed_transaction_returns_error_and_keeps_data(db_path: Path):
    con = sqlite3.connect(db_path)
    con.execute(
        "CREATE TRIGGER reject_scheibe BEFORE UPDATE ON family "
        "WHEN NEW.title LIKE '%Scheibe%' BEGIN SELECT RAISE(ABORT, 'locked row'); END"
    )
    con.commit()
    con.close()
    before = _titles(db_path)
    shell, _, _ = _shell("y")
    assert main.run(main.parse_args([]), _settings(db_path), shell=shell) == main.EXIT_ERROR
    assert _titles(db_path) == before


def test_main_rejects_bad_configuration(monkeypatch, capsys):
    monkeypatch.setenv("DB_CONNECT_ATTEMPTS", "zero")
    assert main.main(["--env-file", "does-not-exist.env"]) == main.EXIT_ERROR
    assert "Configuration error" in capsys.readouterr().err


def test_confirm_treats_eof_as_no():
    def raise_eof(prompt):
        raise EOFError

    shell = ConsoleShell(console=Console(file=io.StringIO()), input_func=raise_eof)
    assert shell.confirm() is False


def test_negative_limit_is_rejected(capsys):
    with pytest.raises(SystemExit) as exc:
        main.parse_args(["--limit", "-5"])
    assert exc.value.code == 2
    assert "must be >= 0" in capsys.readouterr().err


def test_limit_zero_means_all():
    assert main.parse_args(["--limit", "0"]).limit == 0
    assert main.parse_args(["--limit", "3"]).limit == 3
