from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from .config import settings


def make_engine(url: str, lock_timeout_seconds: float = settings.lock_timeout_seconds) -> Engine:
    """
    Build an engine with bounded lock waits.

    SQLite: busy timeout via the driver `timeout` argument, foreign keys on.
    PostgreSQL: `lock_timeout` set per connection.
    """
    if url.startswith("sqlite"):
        # check_same_thread=False: sessions are used from FastAPI worker threads
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": lock_timeout_seconds},
        )

        @event.listens_for(engine, "connect")
        def enable_sqlite_fk(dbapi_connection, _):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    engine = create_engine(url, pool_pre_ping=True)

    if engine.dialect.name == "postgresql":
        timeout_ms = int(lock_timeout_seconds * 1000)

        @event.listens_for(engine, "connect")
        def set_pg_lock_timeout(dbapi_connection, _):
            cursor = dbapi_connection.cursor()
            cursor.execute(f"SET lock_timeout = {timeout_ms}")
            cursor.close()
            dbapi_connection.commit()

    return engine


engine = make_engine(settings.resolved_database_url)

# SessionLocal is the default way to talk to the database
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


def init_db(bind: Engine | None = None) -> None:
    """Create all tables (development / tests; production uses alembic)."""
    from .models.tables import Base

    Base.metadata.create_all(bind=bind or engine)


# FastAPI dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
