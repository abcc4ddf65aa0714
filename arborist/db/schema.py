"""Database schema DDL. All tables use CREATE IF NOT EXISTS for idempotency."""

from arborist.models import TreeColumns


def tree_table_sql(
    table: str = "nodes",
    columns: TreeColumns | None = None,
    extra_columns: str = "",
) -> str:
    """DDL for an adjacency-list table with cached level/depth columns.

    The parent column has no FOREIGN KEY: dangling parents are a legal
    intermediate state, reconciled by TreeManager.purge_orphaned().

    ``extra_columns`` is spliced in verbatim after the structural columns,
    for caller-defined fields.
    """
    columns = columns or TreeColumns()
    q = TreeColumns.quote_identifier
    name = q(table)
    extra = f",\n    {extra_columns.strip().rstrip(',')}" if extra_columns.strip() else ""
    return f"""
CREATE TABLE IF NOT EXISTS {name} (
    {q(columns.id)} INTEGER PRIMARY KEY AUTOINCREMENT,
    {q(columns.parent)} INTEGER,
    {q(columns.level)} INTEGER NOT NULL DEFAULT 0,
    {q(columns.depth)} INTEGER NOT NULL DEFAULT 0{extra}
);

CREATE INDEX IF NOT EXISTS "idx_{table}_{columns.parent}" ON {name}({q(columns.parent)});
CREATE INDEX IF NOT EXISTS "idx_{table}_{columns.level}" ON {name}({q(columns.level)});
"""


NODE_FIELDS_SQL = """
    title TEXT,
    position INTEGER NOT NULL DEFAULT 0,
    data TEXT NOT NULL DEFAULT '{}'
"""

SCHEMA_SQL = tree_table_sql("nodes", extra_columns=NODE_FIELDS_SQL)
