import os
import sys
import tempfile

# must run before scholarmatch.db / settings are imported
_TMP = tempfile.mkdtemp(prefix="scholarmatch-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ.setdefault("MAX_ITERATIONS", "300")
os.environ.setdefault("AUTO_TRAINING_ENABLED", "true")

sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scholarmatch.db import Base
from scholarmatch import models  # noqa: F401  (registers tables)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()
