"""
SQL migrations for the credential store schema.

Files in ``tradescope/migrations`` named ``<version>_<name>.sql`` run in
version order, each in its own transaction, and are recorded in
``schema_migrations`` with a SHA-256 of their contents so edits to an
already-applied file show up as drift.

Usage:
    tradescope migrate              # apply pending
    tradescope migrate --status
    tradescope migrate --dry-run    # print SQL, no database needed
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from tradescope.db.connection import get_connection

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"

_FILENAME_RE = re.compile(r"^(\d+[a-z]?)_\w+\.sql$")

_CREATE_LEDGER = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version     TEXT PRIMARY KEY,
    filename    TEXT NOT NULL,
    applied_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    checksum    TEXT
)
"""


@dataclass(frozen=True)
class Migration:
    version: str
    path: Path

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def sql(self) -> str:
        return self.path.read_text()


@dataclass(frozen=True)
class MigrationState:
    version: str
    filename: str
    status: str  # "applied", "pending" or "DRIFT"
    applied_at: datetime | None = None


def checksum(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


def discover(migrations_dir: Path | None = None) -> list[Migration]:
    """Migration files in version order. Other files in the directory are ignored."""
    found = []
    for path in (migrations_dir or MIGRATIONS_DIR).glob("*.sql"):
        m = _FILENAME_RE.match(path.name)
        if m:
            found.append(Migration(m.group(1), path))
    return sorted(found, key=lambda mig: mig.version)


def _recorded(conn) -> dict[str, tuple[datetime | None, str | None]]:
    """version -> (applied_at, checksum) for everything in schema_migrations."""
    with conn.cursor() as cur:
        cur.execute(_CREATE_LEDGER)
        cur.execute("SELECT version, applied_at, checksum FROM schema_migrations")
        rows = cur.fetchall()
    conn.commit()
    return {version: (applied_at, digest) for version, applied_at, digest in rows}


def status(migrations_dir: Path | None = None) -> list[MigrationState]:
    migrations = discover(migrations_dir)
    with get_connection() as conn:
        recorded = _recorded(conn)

    states = []
    for mig in migrations:
        if mig.version not in recorded:
            states.append(MigrationState(mig.version, mig.filename, "pending"))
            continue
        applied_at, digest = recorded[mig.version]
        drifted = digest is not None and digest != checksum(mig.path)
        states.append(MigrationState(mig.version, mig.filename, "DRIFT" if drifted else "applied", applied_at))
    return states


def apply(dry_run: bool = False, migrations_dir: Path | None = None) -> list[str]:
    """Apply pending migrations and return their versions.

    A dry run prints every migration's SQL without connecting.
    """
    migrations = discover(migrations_dir)

    if dry_run:
        for mig in migrations:
            print(f"-- [dry-run] {mig.filename}")
            print(mig.sql)
        return [mig.version for mig in migrations]

    applied: list[str] = []
    with get_connection() as conn:
        recorded = _recorded(conn)
        pending = [mig for mig in migrations if mig.version not in recorded]
        if not pending:
            print("Schema is up to date.")
            return applied

        for mig in pending:
            try:
                with conn.cursor() as cur:
                    cur.execute(mig.sql)
                    cur.execute(
                        "INSERT INTO schema_migrations (version, filename, checksum) VALUES (%s, %s, %s)",
                        (mig.version, mig.filename, checksum(mig.path)),
                    )
                conn.commit()
            except Exception:
                conn.rollback()
                logger.error("Migration %s failed; later migrations not attempted", mig.filename)
                raise
            logger.info("Applied migration %s", mig.filename)
            print(f"Applied {mig.filename}")
            applied.append(mig.version)
    return applied
