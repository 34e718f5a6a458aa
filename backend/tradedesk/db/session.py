from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tradedesk.core.config import get_settings


settings = get_settings()

# Reports hold a connection only for the duration of one request.
engine = create_engine(
    settings.database_url,
    future=True,
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_recycle=settings.db_pool_recycle_seconds,
)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
)
