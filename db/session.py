from __future__ import annotations

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from config import get_settings


def _serialize_sqlite_writes(engine: Engine) -> None:
    """Open every SQLite transaction with BEGIN IMMEDIATE.

    SQLite ignores SELECT ... FOR UPDATE, so the write lock is taken up front
    instead; a second writer waits on the busy timeout and then re-reads
    committed state.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        sqlite_engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 5},
            future=True,
        )
        _serialize_sqlite_writes(sqlite_engine)
        return sqlite_engine

    return create_engine(
        database_url,
        pool_pre_ping=True,
        future=True,
    )


def build_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(
        bind=bind,
        autoflush=False,
        autocommit=False,
        future=True,
    )


settings = get_settings()

engine = build_engine(settings.database_url)

SessionLocal = build_session_factory(engine)


def init_db(bind: Engine | None = None) -> None:
    """Bootstrap schema for environments without migrations."""
    from scheduling.models import Base

    Base.metadata.create_all(bind=bind or engine)


def validate_db_compatibility(bind: Engine | None = None) -> None:
    required_tables = {"users", "resources", "bookings", "credit_requests", "waiting_list_entries"}
    required_columns = {
        "resources": {"min_booking_minutes", "max_booking_minutes", "operating_start_minute", "operating_end_minute"},
        "bookings": {"credits_deducted"},
        "waiting_list_entries": {"slot_start_time", "created_at"},
    }

    inspector = inspect(bind or engine)
    existing_tables = set(inspector.get_table_names())
    missing_tables = sorted(required_tables - existing_tables)

    missing_column_msgs: list[str] = []
    for table_name, columns in required_columns.items():
        if table_name not in existing_tables:
            continue
        existing_columns = {col["name"] for col in inspector.get_columns(table_name)}
        missing_columns = sorted(columns - existing_columns)
        if missing_columns:
            missing_column_msgs.append(f"{table_name}: {', '.join(missing_columns)}")

    if not missing_tables and not missing_column_msgs:
        return

    details: list[str] = []
    if missing_tables:
        details.append(f"missing tables [{', '.join(missing_tables)}]")
    if missing_column_msgs:
        details.append(f"missing columns [{'; '.join(missing_column_msgs)}]")

    raise RuntimeError(
        "Database compatibility check failed: "
        + "; ".join(details)
        + ". Apply required migrations before starting the API."
    )
