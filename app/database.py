"""
Database Configuration

Engine and session factories for the store, the FastAPI session
dependency, schema creation and JSON fixture seeding.
"""
import json
import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import models_sqlalchemy as models
import models_pydantic as schemas
from config import settings
from errors import StoreError

logger = logging.getLogger(__name__)

_IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_store_engine(url: Optional[str] = None, **kwargs):
    """
    Create the engine used as the store handle.

    SQLite gets foreign key enforcement and, when in memory, a single
    shared connection. Other databases use a sized connection pool.
    """
    url = url or settings.DATABASE_URL
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if url in _IN_MEMORY_URLS:
            options["poolclass"] = StaticPool
    else:
        options = {
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_pre_ping": True,
        }
    options.update(kwargs)
    engine = create_engine(url, echo=settings.DEBUG, **options)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


engine = create_store_engine()
SessionLocal = sessionmaker(autoflush=False, bind=engine)


def configure_logging():
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Dependency to get a DB session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _records(data):
    # fixture files are either a list of records or an object keyed by id
    if isinstance(data, dict):
        for key, rec in data.items():
            rec = dict(rec)
            rec.setdefault("id", int(key))
            yield rec
    else:
        for rec in data:
            yield dict(rec)


def _columns(model, rec):
    names = set(model.__table__.columns.keys())
    return {k: v for k, v in rec.items() if k in names}


def _sync_sequence(db: Session, table: str):
    # explicit ids leave postgres serial sequences behind
    if db.get_bind().dialect.name == "postgresql":
        db.execute(text(
            f"SELECT setval(pg_get_serial_sequence('{table}', 'id'), "
            f"COALESCE(MAX(id), 0) + 1, false) FROM {table}"
        ))


def load_fixtures(db: Session, users_path, properties_path) -> schemas.FixtureCounts:
    """
    Insert users and properties from JSON fixture files, keeping their ids.

    Users are loaded first so that property owner_id references resolve.
    """
    users = list(_records(json.loads(Path(users_path).read_text(encoding="utf-8"))))
    props = list(_records(json.loads(Path(properties_path).read_text(encoding="utf-8"))))
    try:
        db.add_all(models.User(**_columns(models.User, rec)) for rec in users)
        db.flush()
        db.add_all(models.Property(**_columns(models.Property, rec)) for rec in props)
        db.flush()
        _sync_sequence(db, "users")
        _sync_sequence(db, "properties")
        db.commit()
    except SQLAlchemyError as exc:
        logger.exception("Loading fixtures failed")
        db.rollback()
        raise StoreError("load_fixtures", str(exc)) from exc
    logger.info("Loaded %d users and %d properties from fixtures", len(users), len(props))
    return schemas.FixtureCounts(users=len(users), properties=len(props))


def init_db(bind=None, fixtures_dir: Optional[str] = None) -> Optional[schemas.FixtureCounts]:
    """Create all tables and seed an empty store from the fixtures directory, if any."""
    bind = bind or engine
    models.Base.metadata.create_all(bind=bind)
    logger.info("Database initialized: %s", bind.url.render_as_string(hide_password=True))

    fixtures_dir = fixtures_dir or settings.FIXTURES_DIR
    if not fixtures_dir:
        return None
    directory = Path(fixtures_dir)
    with Session(bind=bind) as db:
        if db.query(models.User.id).first() is not None:
            logger.info("Store already populated, skipping fixtures")
            return None
        return load_fixtures(db, directory / "users.json", directory / "properties.json")
