from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool
from .settings import get_settings

settings = get_settings()

def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    # an in-memory database only lives as long as its single connection
    if ":memory:" in url or url.rstrip("/").endswith("sqlite:"):
        kwargs["poolclass"] = StaticPool
    return kwargs

# Create the SQLAlchemy engine
engine = create_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))

# Define the base class that all models should inherit from
class Base(DeclarativeBase):
    pass

# Session factory
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

def init_db() -> None:
    """Create missing tables. Safe to call more than once."""
    from . import models  # noqa: F401  # registers every model on Base.metadata
    Base.metadata.create_all(bind=engine)
