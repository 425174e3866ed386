import os

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy import text

DATABASE_URL = os.getenv("SIGNAGE_DATABASE_URL", "sqlite:///./loungetv.db")

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

Base = declarative_base()


def _column_names(conn, table: str) -> set[str]:
    rows = conn.execute(text(f"PRAGMA table_info({table})")).fetchall()
    return {row[1] for row in rows}  # (cid, name, type, notnull, dflt_value, pk)


def ensure_sqlite_schema(bind=None):
    """
    Lightweight runtime schema patching for SQLite.

    `Base.metadata.create_all()` won't add new columns to existing tables.
    This keeps local installs working without requiring Alembic.
    """
    bind = bind or engine
    if bind.dialect.name != "sqlite":
        return

    with bind.begin() as conn:
        screen_cols = _column_names(conn, "screen")
        if screen_cols:
            if "hide_overlay" not in screen_cols:
                conn.execute(text("ALTER TABLE screen ADD COLUMN hide_overlay INTEGER DEFAULT 0"))
            if "scheduling_enabled" not in screen_cols:
                conn.execute(text("ALTER TABLE screen ADD COLUMN scheduling_enabled INTEGER DEFAULT 0"))
            if "is_protected" not in screen_cols:
                conn.execute(text("ALTER TABLE screen ADD COLUMN is_protected INTEGER DEFAULT 0"))
            conn.execute(text("UPDATE screen SET hide_overlay=0 WHERE hide_overlay IS NULL"))
            conn.execute(text("UPDATE screen SET scheduling_enabled=0 WHERE scheduling_enabled IS NULL"))
            conn.execute(
                text(
                    "UPDATE screen SET duration_seconds=NULL "
                    "WHERE duration_seconds IS NOT NULL AND duration_seconds <= 0"
                )
            )

        playlist_cols = _column_names(conn, "playlist")
        if playlist_cols:
            if "time_slots" not in playlist_cols:
                conn.execute(text("ALTER TABLE playlist ADD COLUMN time_slots TEXT"))
            if "color" not in playlist_cols:
                conn.execute(text("ALTER TABLE playlist ADD COLUMN color VARCHAR DEFAULT '#C2884E'"))
            if "start_at" not in playlist_cols:
                conn.execute(text("ALTER TABLE playlist ADD COLUMN start_at DATETIME"))
            if "end_at" not in playlist_cols:
                conn.execute(text("ALTER TABLE playlist ADD COLUMN end_at DATETIME"))
            conn.execute(
                text(
                    "UPDATE playlist SET time_slots=NULL "
                    "WHERE time_slots IS NOT NULL AND trim(time_slots) IN ('', '[]', 'null')"
                )
            )

        settings_cols = _column_names(conn, "app_settings")
        if settings_cols:
            if "fallback_mode" not in settings_cols:
                conn.execute(
                    text("ALTER TABLE app_settings ADD COLUMN fallback_mode VARCHAR DEFAULT 'LOOP_DEFAULT'")
                )
            conn.execute(
                text(
                    "UPDATE app_settings SET fallback_mode='LOOP_DEFAULT' "
                    "WHERE fallback_mode IS NULL OR trim(fallback_mode)=''"
                )
            )
