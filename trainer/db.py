"""PostgreSQL key-value storage adapter for the opening repository."""

import logging
import os
from contextlib import contextmanager

import psycopg
from psycopg import sql

logger = logging.getLogger(__name__)


def get_connection_string() -> str:
    """Get database connection string from environment."""
    return os.environ.get(
        "DATABASE_URL",
        "postgresql://localhost:5432/opening_trainer?user=postgres&password=postgres",
    )


def get_table_name() -> str:
    return os.environ.get("TRAINER_KV_TABLE", "trainer_kv")


@contextmanager
def get_connection():
    """Context manager for database connections."""
    conn = psycopg.connect(get_connection_string())
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


class PostgresStorage:
    """
    get_item/set_item over a single key-value table. Each set_item commits,
    so a save is durable as soon as it returns.
    """

    def __init__(self, conn: psycopg.Connection, table: str | None = None):
        self.conn = conn
        self.table = sql.Identifier(table or get_table_name())

    def ensure_table(self) -> None:
        with self.conn.cursor() as cur:
            cur.execute(
                sql.SQL(
                    """
                    CREATE TABLE IF NOT EXISTS {} (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                    """
                ).format(self.table)
            )
        self.conn.commit()

    def get_item(self, key: str) -> str | None:
        with self.conn.cursor() as cur:
            cur.execute(
                sql.SQL("SELECT value FROM {} WHERE key = %s").format(self.table),
                (key,),
            )
            row = cur.fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        with self.conn.cursor() as cur:
            cur.execute(
                sql.SQL(
                    """
                    INSERT INTO {} (key, value) VALUES (%s, %s)
                    ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, updated_at = NOW()
                    """
                ).format(self.table),
                (key, str(value)),
            )
        self.conn.commit()
        logger.debug("Stored %d chars under %s", len(str(value)), key)

    def remove_item(self, key: str) -> None:
        with self.conn.cursor() as cur:
            cur.execute(sql.SQL("DELETE FROM {} WHERE key = %s").format(self.table), (key,))
        self.conn.commit()
