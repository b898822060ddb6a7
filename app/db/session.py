import logging
from typing import Callable, TypeVar
from sqlalchemy.exc import OperationalError
from sqlmodel import SQLModel, create_engine, Session
from app.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# check_same_thread is needed for SQLite, remove for PostgreSQL
connect_args = {"check_same_thread": False} if "sqlite" in settings.DATABASE_URL else {}
engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)

def get_session():
    with Session(engine) as session:
        yield session

def create_db_and_tables(bind=None):
    SQLModel.metadata.create_all(bind or engine)

def run_in_transaction(session: Session, operation: Callable[[], T], retries: int = 1) -> T:
    """Run ``operation`` and commit it as one transaction.

    Any error rolls the whole unit back. Transient contention
    (``OperationalError``: lock timeouts, serialization failures) is retried
    ``retries`` times before it is surfaced.
    """
    attempt = 0
    while True:
        try:
            result = operation()
            session.commit()
            return result
        except OperationalError:
            session.rollback()
            if attempt >= retries:
                raise
            attempt += 1
            logger.warning("Transaction conflict, retrying (attempt %s)", attempt)
        except BaseException:
            session.rollback()
            raise
