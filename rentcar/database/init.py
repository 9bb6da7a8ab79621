from contextlib import contextmanager
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def create_session_factory(database_url: str, **engine_kwargs) -> sessionmaker:
    """Build the engine and session factory once per process.

    The factory is handed to the services and the HTTP layer explicitly; nothing
    in the package keeps a module-level engine.
    """
    engine = create_engine(database_url, **engine_kwargs)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(session_factory: sessionmaker):
    # Importing the models registers every table on Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=session_factory.kw["bind"])


def get_session(session_factory: sessionmaker):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session):
    """Run a block as one unit of work: commit on success, roll back on any error."""
    try:
        yield db
        db.commit()
    except Exception:
        logger.debug("Rolling back transaction", exc_info=True)
        db.rollback()
        raise
