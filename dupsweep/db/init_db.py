from __future__ import annotations

from pathlib import Path

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from dupsweep.db.models import Base
from dupsweep.db.session import get_engine


class StorageOpenError(RuntimeError):
    pass


def initialize_database(engine: Engine | None = None) -> Engine:
    engine = engine or get_engine()
    database = engine.url.database
    try:
        if engine.url.drivername.startswith("sqlite") and database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)

        Base.metadata.create_all(bind=engine)

        if engine.url.drivername.startswith("sqlite"):
            with engine.connect() as conn:
                conn.execute(text("PRAGMA optimize;"))
                conn.commit()
    except (OSError, SQLAlchemyError) as exc:
        raise StorageOpenError(f"Cannot open index storage {engine.url.render_as_string(hide_password=True)}: {exc}") from exc
    return engine
