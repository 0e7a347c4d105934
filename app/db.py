import os
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.config import DATABASE_URL, DB_BUSY_TIMEOUT


def engine_options(url):
    """Connection arguments for the given database URL."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False, "timeout": DB_BUSY_TIMEOUT}}
    return {"pool_pre_ping": True}


engine = create_engine(DATABASE_URL, **engine_options(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_database():
    if DATABASE_URL.startswith("sqlite:///"):
        data_dir = os.path.dirname(DATABASE_URL[len("sqlite:///"):])
        if data_dir and not os.path.exists(data_dir):
            os.makedirs(data_dir)
    # Register every model on the metadata before creating tables
    from app.models import booking, organization, room, user  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    """Provide a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
