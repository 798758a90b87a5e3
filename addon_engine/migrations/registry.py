"""
Registry of migration adapters by action name.
init_migrations() is idempotent: repeated calls do not duplicate or replace adapters.
"""
from typing import Dict, Optional

from addon_engine.migrations.builtins import AddonMigration, CatalogMigration
from addon_engine.migrations.context import MigrationAdapter

MIGRATIONS: Dict[str, MigrationAdapter] = {}
_INIT_DONE = False


def register_migration(adapter: MigrationAdapter) -> None:
    if adapter.name:
        MIGRATIONS[adapter.name] = adapter


def get_migration(action: str) -> Optional[MigrationAdapter]:
    return MIGRATIONS.get(action)


def init_migrations() -> None:
    """Register built-in adapters. Idempotent: safe to call multiple times."""
    global _INIT_DONE
    if _INIT_DONE:
        return
    register_migration(CatalogMigration())
    register_migration(AddonMigration())
    _INIT_DONE = True
