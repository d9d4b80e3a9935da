"""
Database engine, session management, and base model class.

Key components:

  - engine: The database engine (connection pool for production DBs)
  - SessionLocal: Factory for creating database sessions
  - Base: Declarative base class that all ORM models inherit from
  - get_db(): FastAPI dependency that provides a session per request

Architecture note:
  Identity resolution is a synchronous, single-lookup operation, so the
  service uses plain (blocking) SQLAlchemy sessions. FastAPI runs the sync
  route handlers in its threadpool, which keeps the event loop free.

Session lifecycle:
  Each API request gets its own session via get_db(). The session commits
  on success and rolls back on exception.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from userhub.config import settings


# echo=True in debug mode logs all SQL statements
engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
)

# expire_on_commit=False keeps loaded rows usable after the request commits
SessionLocal = sessionmaker(
    engine,
    class_=Session,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Provides metadata tracking for table creation and the common
    declarative mapping features.
    """
    pass


def get_db():
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/items")
        def list_items(db: Session = Depends(get_db)):
            ...

    The session is committed on success and rolled back on any exception,
    then closed when the request completes.
    """
    with SessionLocal() as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
