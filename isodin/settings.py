from __future__ import annotations

import os
import re
from dataclasses import dataclass, replace
from typing import Optional

from dotenv import load_dotenv

BACKENDS = ("sqlite", "mysql")
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _env_int(name: str, default: str, minimum: int = 0) -> int:
    raw = os.getenv(name, default).strip()
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_float(name: str, default: str) -> float:
    raw = os.getenv(name, default).strip()
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


def check_identifier(name: str) -> str:
    if not _IDENTIFIER_RE.match(name or ""):
        raise ValueError(f"invalid table name: {name!r}")
    return name


@dataclass(frozen=True)
class DatabaseSettings:
    backend: str = "sqlite"
    path: str = "data/eshop.db"
    host: str = "localhost"
    port: int = 3306
    user: str = ""
    password: str = ""
    database: str = "eshop"
    table: str = "family"
    connect_attempts: int = 3
    retry_base_sec: float = 2.0

    def __post_init__(self) -> None:
        if self.backend not in BACKENDS:
            raise ValueError(f"DB_BACKEND must be one of {', '.join(BACKENDS)}, got {self.backend!r}")
        check_identifier(self.table)
        if self.connect_attempts < 1:
            raise ValueError("DB_CONNECT_ATTEMPTS must be >= 1")

    def describe(self) -> str:
        if self.backend == "sqlite":
            return f"sqlite:{self.path} table={self.table}"
        return f"mysql://{self.user}@{self.host}:{self.port}/{self.database} table={self.table}"


@dataclass(frozen=True)
class Settings:
    db: DatabaseSettings
    mappings_csv: str = ""
    log_level: str = "INFO"

    def with_overrides(self, **db_overrides) -> "Settings":
        overrides = {k: v for k, v in db_overrides.items() if v is not None}
        if not overrides:
            return self
        return replace(self, db=replace(self.db, **overrides))


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    .env + environment variables -> Settings.
    Already-exported variables win over the .env file.
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    db = DatabaseSettings(
        backend=os.getenv("DB_BACKEND", "sqlite").strip().lower(),
        path=os.getenv("DB_PATH", "data/eshop.db"),
        host=os.getenv("DB_HOST", "localhost"),
        port=_env_int("DB_PORT", "3306", minimum=1),
        user=os.getenv("DB_USER", ""),
        password=os.getenv("DB_PASSWORD", ""),
        database=os.getenv("DB_NAME", "eshop"),
        table=os.getenv("FAMILY_TABLE", "family").strip(),
        connect_attempts=_env_int("DB_CONNECT_ATTEMPTS", "3", minimum=1),
        retry_base_sec=_env_float("DB_RETRY_BASE_SEC", "2"),
    )
    return Settings(
        db=db,
        mappings_csv=os.getenv("STANDARD_MAPPINGS_CSV", "").strip(),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
