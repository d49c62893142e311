import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Must be set before core.settings is imported anywhere.
os.environ.setdefault("PINMARK_DATA_DIR", tempfile.mkdtemp(prefix="pinmark-tests-"))

import pytest

from storage.db import create_db_engine, init_db, session_factory_for


class FakeClock:
    def __init__(self, start: int = 1_700_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture()
def engine(tmp_path):
    engine = create_db_engine(tmp_path / "queue.db")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return session_factory_for(engine)


@pytest.fixture()
def clock():
    return FakeClock()
