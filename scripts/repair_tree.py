"""
One-shot repair: remove orphaned nodes and recompute every cached level and
depth in a tree table.

Use after an interrupted multi-step operation (bulk writes are committed per
chunk, so a failure can leave a branch half-refreshed) or after rows were
edited outside the tree manager.

Usage:
    python scripts/repair_tree.py [path/to/arborist.db] [table]
"""

import asyncio
import sys
from pathlib import Path

from arborist.db.connection import Database
from arborist.db.schema import NODE_FIELDS_SQL, tree_table_sql
from arborist.models import TreeColumns
from arborist.tree.errors import DataCorruptionError
from arborist.tree.manager import TreeManager


def get_db_path() -> Path:
    """Resolve the default database path relative to the repository root."""
    return Path(__file__).resolve().parent.parent / "arborist.db"


async def repair(db_path: Path, table: str = "nodes") -> int:
    db = await Database.connect(
        str(db_path), schema=tree_table_sql(table, extra_columns=NODE_FIELDS_SQL)
    )
    try:
        manager = TreeManager(db, table=table)
        removed = await manager.purge_orphaned(refresh=False)
        print(f"Removed {removed} orphaned node(s).")
        await manager.refresh()
        table_sql = TreeColumns.quote_identifier(manager.table)
        row = await db.fetchone(f"SELECT COUNT(*) AS cnt FROM {table_sql}")
        print(f"Refreshed level and depth of {row['cnt']} node(s).")
        return removed
    finally:
        await db.close()


if __name__ == "__main__":
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else get_db_path()
    table_name = sys.argv[2] if len(sys.argv) > 2 else "nodes"
    if not path.exists():
        print(f"Database not found: {path}")
        sys.exit(1)
    try:
        asyncio.run(repair(path, table_name))
    except DataCorruptionError as e:
        print(f"Cannot repair automatically: {e}")
        sys.exit(2)
