from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from askdata.settings import DATABASE_URL, POOL_SIZE, POOL_RECYCLE


def make_engine(url: str = DATABASE_URL) -> Engine:
    """
    Build the process-wide engine.
    Server databases get a small bounded pool; connections idle past
    POOL_RECYCLE seconds are replaced on next checkout.
    """
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False}, future=True)
    return create_engine(
        url,
        future=True,
        pool_size=POOL_SIZE,
        max_overflow=0,
        pool_recycle=POOL_RECYCLE,
        pool_pre_ping=True,
    )


engine = make_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def ping(db: Session) -> bool:
    """Round-trip a trivial statement; raises on connectivity problems."""
    return db.execute(text("SELECT 1 AS ok")).scalar() == 1
