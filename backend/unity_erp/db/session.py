"""
Database engine and request-scoped sessions

PostgreSQL (psycopg) in production; any SQLAlchemy URL can be supplied
through DATABASE_URL, SQLite included for local runs.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from unity_erp.core.settings import settings
from unity_erp.logging_config import get_logger

logger = get_logger(__name__)


def _engine_options(url: str) -> dict:
    if make_url(url).get_backend_name() == "sqlite":
        # Sessions are handed across FastAPI's worker threads
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_recycle": 3600}


connection_string = settings.database_url
_url = make_url(connection_string)
logger.info(
    "Database engine configured",
    extra={"backend": _url.get_backend_name(), "host": _url.host, "database": _url.database},
)

engine = create_engine(connection_string, echo=False, **_engine_options(connection_string))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    FastAPI dependency yielding one session per request.

    Services commit their own units of work; the session is closed when
    the request finishes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
