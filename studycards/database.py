import logging
from datetime import datetime, timezone

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from studycards.core.config import Settings


Base = declarative_base()

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    # Stored naive; SQLite drops tzinfo on the way back.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(settings: Settings) -> Engine:
    url = settings.database_url
    options: dict = {"echo": settings.database_echo}

    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url in {"sqlite://", "sqlite:///"}:
            options["poolclass"] = StaticPool

    engine = create_engine(url, **options)

    if url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


def init_schema(engine: Engine) -> None:
    # Registers the tables on Base.metadata.
    from studycards.models import flashcard, user  # noqa: F401

    Base.metadata.create_all(bind=engine)
    ensure_user_schema(engine)
    ensure_flashcard_schema(engine)


def ensure_user_schema(engine: Engine) -> None:
    inspector = inspect(engine)

    if 'users' not in inspector.get_table_names():
        return

    existing_columns = {column['name'] for column in inspector.get_columns('users')}
    migration_steps = [
        ('token_version', 'ALTER TABLE users ADD COLUMN token_version INTEGER NOT NULL DEFAULT 0'),
        ('updated_at', 'ALTER TABLE users ADD COLUMN updated_at TIMESTAMP'),
    ]

    with engine.begin() as connection:
        for column_name, statement in migration_steps:
            if column_name not in existing_columns:
                logger.info('Adding users.%s column', column_name)
                connection.execute(text(statement))
        connection.execute(
            text('CREATE INDEX IF NOT EXISTS idx_users_role ON users(role)')
        )


def ensure_flashcard_schema(engine: Engine) -> None:
    inspector = inspect(engine)

    if 'flashcards' not in inspector.get_table_names():
        return

    existing_columns = {column['name'] for column in inspector.get_columns('flashcards')}
    migration_steps = [
        ('ease_factor', 'ALTER TABLE flashcards ADD COLUMN ease_factor FLOAT NOT NULL DEFAULT 2.5'),
        ('repetitions', 'ALTER TABLE flashcards ADD COLUMN repetitions INTEGER NOT NULL DEFAULT 0'),
        ('last_interval', 'ALTER TABLE flashcards ADD COLUMN last_interval INTEGER NOT NULL DEFAULT 0'),
        ('review_count', 'ALTER TABLE flashcards ADD COLUMN review_count INTEGER NOT NULL DEFAULT 0'),
        ('last_reviewed', 'ALTER TABLE flashcards ADD COLUMN last_reviewed TIMESTAMP'),
    ]

    with engine.begin() as connection:
        for column_name, statement in migration_steps:
            if column_name not in existing_columns:
                logger.info('Adding flashcards.%s column', column_name)
                connection.execute(text(statement))
        connection.execute(
            text('CREATE INDEX IF NOT EXISTS idx_flashcards_user_next_review ON flashcards(user_id, next_review)')
        )
