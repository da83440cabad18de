from sqlalchemy import event
from sqlmodel import SQLModel, create_engine, Session
from .settings import settings

# Request handlers write from worker threads, so SQLite connections are
# shared across threads and wait on each other's locks instead of failing.
is_sqlite = settings.DATABASE_URL.startswith("sqlite")
connect_args = {"check_same_thread": False, "timeout": 30} if is_sqlite else {}

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)

if is_sqlite:
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_conn, _connection_record):
        cursor = dbapi_conn.cursor()
        # Readers (signal listings) do not block the writer
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=30000")
        cursor.close()

def create_db_and_tables():
    SQLModel.metadata.create_all(engine)

def get_session():
    """Session for one request; signal and user stores share the engine."""
    with Session(engine) as session:
        yield session
