"""Ad-hoc database migrations for Taskline."""

from __future__ import annotations

from sqlalchemy import inspect, text


def _column_exists(conn, table: str, column: str) -> bool:
    return any(col["name"] == column for col in inspect(conn).get_columns(table))


def ensure_task_columns(conn) -> None:
    columns = {
        "grouping_id": "VARCHAR",
        "due_time": "DATETIME",
        "due_time_type": "VARCHAR",
        "overdue_position": "INTEGER",
        "completed_date": "VARCHAR",
        "completed_time": "DATETIME",
    }
    for name, ddl_type in columns.items():
        if not _column_exists(conn, "task", name):
            conn.execute(text(f"ALTER TABLE task ADD COLUMN {name} {ddl_type}"))

    # Rows written before due times existed carry no mode.
    conn.execute(
        text(
            """
            UPDATE task
            SET due_time_type = 'fixed'
            WHERE due_date IS NOT NULL AND due_time_type IS NULL
            """
        )
    )


def ensure_task_indexes(conn) -> None:
    conn.execute(
        text("CREATE INDEX IF NOT EXISTS ix_task_owner_due ON task (owner_id, due_date)")
    )
    conn.execute(
        text(
            "CREATE INDEX IF NOT EXISTS ix_task_owner_completed_time "
            "ON task (owner_id, completed_time)"
        )
    )


def ensure_bucket_state_table(conn) -> None:
    conn.execute(
        text(
            """
            CREATE TABLE IF NOT EXISTS bucketstate (
                owner_id VARCHAR NOT NULL,
                bucket_key VARCHAR NOT NULL,
                version INTEGER NOT NULL DEFAULT 0,
                updated_at DATETIME NOT NULL,
                PRIMARY KEY (owner_id, bucket_key)
            )
            """
        )
    )


def run_all(engine) -> None:
    with engine.begin() as conn:
        ensure_task_columns(conn)
        ensure_task_indexes(conn)
        # SQLModel creates bucketstate, but legacy DBs predate it
        ensure_bucket_state_table(conn)


__all__ = ["run_all"]
