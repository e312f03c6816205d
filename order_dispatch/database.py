from sqlalchemy import create_engine
from order_dispatch.config import settings
from sqlalchemy.orm import declarative_base , sessionmaker


def build_engine(url: str):
    if url.startswith("sqlite"):
        # SQLite has no server side pool, sessions are used across threadpool workers
        return create_engine(url, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        pool_pre_ping=True,                 # Auto check connection health before using
        pool_recycle=300,                   # Close and Replace connection older than 300s
        pool_size=5,                        # Number of persistant connection in pool
        max_overflow=0)                     # Extra temporary connection allowed beyond pool_size


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db

    finally:
        db.close()
