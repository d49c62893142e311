# pinmark/storage/db.py
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from core.settings import DB_PATH

# Ensure SQLModel metadata is populated
import models.queue_item  # noqa: F401
from storage import migrations


def create_db_engine(path: Path | str = DB_PATH) -> Engine:
    db_path = Path(path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(
        f"sqlite:///{db_path.as_posix()}",
        echo=False,
        connect_args={"check_same_thread": False, "timeout": 30},
    )


_engine: Optional[Engine] = None


def init_db(engine: Optional[Engine] = None) -> Engine:
    global _engine
    target = engine or get_engine()
    SQLModel.metadata.create_all(target)
    migrations.run_all(target)
    _engine = target
    return target


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_db_engine(DB_PATH)
    return _engine


def get_session() -> Session:
    return Session(get_engine())


def session_factory_for(engine: Engine):
    def factory() -> Session:
        return Session(engine)

    return factory
