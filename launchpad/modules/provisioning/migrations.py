"""
Template migration catalogue.

Migration files are named `<14-digit version>_<name>.sql` and applied in
version order. A tenant's `schema_version` is the version of the last file
applied to its database; `migrations_since` is the upgrade diff against it.
"""
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
import logging

from launchpad.config import settings

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(r"^(\d{14})_")

# Checked after the configured directory: monorepo layouts used in local dev
FALLBACK_DIRS = ("../../supabase/migrations", "../supabase/migrations")


@dataclass(frozen=True)
class MigrationFile:
    version: str
    filename: str
    path: Path

    def read_sql(self) -> str:
        return self.path.read_text(encoding="utf-8")


def _has_sql(directory: Path) -> bool:
    try:
        return directory.is_dir() and any(p.suffix == ".sql" for p in directory.iterdir())
    except OSError:
        return False


def resolve_migrations_dir(configured: Optional[str] = None) -> Optional[Path]:
    """First candidate directory that contains .sql files, or None."""
    candidates = [Path(configured or settings.template_migrations_dir)]
    candidates += [Path.cwd() / d for d in FALLBACK_DIRS]
    for directory in candidates:
        if _has_sql(directory):
            return directory
    return None


def extract_version(filename: str) -> Optional[str]:
    match = VERSION_PATTERN.match(filename)
    return match.group(1) if match else None


def available_migrations(directory: Optional[Path] = None) -> List[MigrationFile]:
    """All versioned migrations, sorted by filename (i.e. version order)."""
    directory = directory or resolve_migrations_dir()
    if directory is None:
        return []

    migrations = []
    for path in sorted(directory.glob("*.sql"), key=lambda p: p.name):
        version = extract_version(path.name)
        if version is None:
            logger.debug(f"Ignoring unversioned migration file {path.name}")
            continue
        migrations.append(MigrationFile(version=version, filename=path.name, path=path))
    return migrations


def migrations_since(version: Optional[str], directory: Optional[Path] = None) -> List[MigrationFile]:
    """Migrations newer than `version`; every migration when version is None."""
    all_migrations = available_migrations(directory)
    if not version:
        return all_migrations
    return [m for m in all_migrations if m.version > version]


def latest_migration_version(directory: Optional[Path] = None) -> Optional[str]:
    all_migrations = available_migrations(directory)
    return all_migrations[-1].version if all_migrations else None
