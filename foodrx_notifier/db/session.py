from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session

from foodrx_notifier.config.settings import settings
from foodrx_notifier.utils.logging import get_logger

logger = get_logger()


@lru_cache
def get_engine() -> Engine:
    """
    Process-wide engine, created on first use and reused afterwards.

    The pool pings each connection on checkout and transparently replaces
    dead ones, so callers never reconnect by hand.
    """
    url = make_url(str(settings.DATABASE_URL))

    if url.get_backend_name() == "sqlite":
        engine = create_engine(
            url,
            pool_pre_ping=True,
            connect_args={"check_same_thread": False},
            echo=False,
        )
    else:
        engine = create_engine(
            url,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
            pool_recycle=settings.DB_POOL_RECYCLE,
            connect_args={"connect_timeout": settings.DB_CONNECT_TIMEOUT},
            echo=False,
        )

    logger.info(f"Database engine created for backend {url.get_backend_name()}")
    return engine


SessionLocal = sessionmaker(class_=Session, expire_on_commit=False)


def get_sync_session():
    """Dependency to get sync database session"""
    db = SessionLocal(bind=get_engine())
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
