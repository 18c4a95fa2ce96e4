from __future__ import annotations

import hashlib
import importlib.util
import re
import sqlite3
from datetime import datetime, timezone
from pathlib import Path


MIGRATION_RE = re.compile(r"^(\d{4})_([a-zA-Z0-9_]+)\.(sql|py)$")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _checksum_file(path: Path) -> str:
    data = path.read_bytes()
    return hashlib.sha256(data).hexdigest()


def _ensure_migration_table(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            checksum TEXT NOT NULL,
            applied_at_utc TEXT NOT NULL
        )
        """
    )
    conn.commit()


def _load_applied(conn: sqlite3.Connection) -> dict[str, tuple[str, str]]:
    cur = conn.cursor()
    cur.execute("SELECT version, name, checksum FROM schema_migrations")
    return {str(version): (str(name), str(checksum)) for version, name, checksum in cur.fetchall()}


def _run_sql(conn: sqlite3.Connection, path: Path) -> None:
    conn.executescript(path.read_text(encoding="utf-8"))


def _run_py(conn: sqlite3.Connection, path: Path) -> None:
    spec = importlib.util.spec_from_file_location(f"studylog_migration_{path.stem}", str(path))
    if spec is None or spec.loader is None:
        raise RuntimeError(f"Could not load migration module: {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    upgrade = getattr(module, "upgrade", None)
    if not callable(upgrade):
        raise RuntimeError(f"Python migration missing upgrade(conn): {path}")
    upgrade(conn)


def apply_sqlite_migrations(conn: sqlite3.Connection, migrations_dir: str | Path) -> list[str]:
    """Apply pending migrations in version order and return the applied file names."""
    _ensure_migration_table(conn)
    applied = _load_applied(conn)
    base = Path(migrations_dir)
    if not base.exists():
        raise RuntimeError(f"Migrations directory not found: {migrations_dir}")

    files: list[tuple[str, str, str, Path]] = []
    for p in sorted(base.iterdir()):
        if not p.is_file():
            continue
        m = MIGRATION_RE.match(p.name)
        if not m:
            continue
        files.append((m.group(1), m.group(2), m.group(3), p))

    seen_versions: set[str] = set()
    newly_applied: list[str] = []
    cur = conn.cursor()
    for version, name, ext, path in files:
        if version in seen_versions:
            raise RuntimeError(f"Duplicate migration version {version}: {path.name}")
        seen_versions.add(version)

        checksum = _checksum_file(path)
        existing = applied.get(version)
        if existing:
            old_name, old_checksum = existing
            if old_name != name or old_checksum != checksum:
                raise RuntimeError(
                    f"Migration version {version} already applied with different content "
                    f"(existing name={old_name}, file name={name})."
                )
            continue

        print(f"[DB] Applying migration {path.name}")
        if ext == "sql":
            _run_sql(conn, path)
        else:
            _run_py(conn, path)

        cur.execute(
            """
            INSERT INTO schema_migrations (version, name, checksum, applied_at_utc)
            VALUES (?, ?, ?, ?)
            """,
            (version, name, checksum, _utc_now_iso()),
        )
        conn.commit()
        newly_applied.append(path.name)
    return newly_applied


def default_migrations_dir() -> Path:
    return Path(__file__).resolve().parents[1] / "migrations"


def init_db(db_path: str, migrations_dir: str | Path | None = None) -> sqlite3.Connection:
    # check_same_thread=False because every query runs through asyncio.to_thread
    conn = sqlite3.connect(db_path, check_same_thread=False)
    cur = conn.cursor()
    if db_path != ":memory:":
        cur.execute("PRAGMA journal_mode=WAL;")
        cur.execute("PRAGMA synchronous=NORMAL;")
    cur.execute("PRAGMA foreign_keys=ON;")
    apply_sqlite_migrations(conn, migrations_dir or default_migrations_dir())
    conn.commit()
    return conn
