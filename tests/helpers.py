from __future__ import annotations


def table_columns(backend, table):
    """Column names of ``table`` in the current schema, in declaration order."""
    rows = backend.fetch_all(
        "SELECT column_name FROM information_schema.columns "
        f"WHERE table_schema = current_schema() AND table_name = {backend.placeholder} "
        "ORDER BY ordinal_position",
        (table,),
    )
    return [str(row[0]) for row in rows]


def keys_by_topic(workload):
    grouped = {}
    for key in workload:
        grouped.setdefault(key.topic_id, []).append(key)
    return grouped
