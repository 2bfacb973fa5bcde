"""SQLAlchemy engine and session setup."""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import DatabaseConfig

Base = declarative_base()


def create_db_engine(config: DatabaseConfig) -> Engine:
    """Create an engine for the configured database URL."""
    is_sqlite = config.url.startswith("sqlite")
    engine = create_engine(
        config.url,
        echo=config.echo,
        connect_args={"check_same_thread": False} if is_sqlite else {}
    )

    if is_sqlite:
        # SQLite ignores foreign keys unless asked per connection
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    # Records are handed back to callers after commit
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create the shops and payments tables if they do not exist."""
    from .models import db_models  # noqa: F401  (registers tables on Base)

    Base.metadata.create_all(bind=engine)
