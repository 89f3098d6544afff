# marketplace/core/db.py
import logging
from typing import Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from marketplace.core.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


# 프로세스 전체에서 하나만 쓰는 엔진/세션 팩토리
engine: Optional[Engine] = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def init_engine(url: Optional[str] = None, **kwargs) -> Engine:
    """Create the process-wide engine once and bind the session factory to it."""
    global engine
    url = url or settings.DATABASE_URL
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(url, **kwargs)
    SessionLocal.configure(bind=engine)
    logger.info("database engine ready: backend=%s", engine.url.get_backend_name())
    return engine


def get_engine() -> Engine:
    if engine is None:
        return init_engine()
    return engine


def init_db() -> None:
    # 모델 import 해야 metadata 에 테이블이 등록됨
    from marketplace.models import listing, message, offer, profile, report, saved  # noqa: F401

    eng = get_engine()
    Base.metadata.create_all(bind=eng)
    logger.info("tables: %s", sorted(Base.metadata.tables.keys()))

    backend = eng.url.get_backend_name()
    with eng.connect() as conn:
        if backend == "postgresql":
            ver = conn.execute(text("select version()")).scalar_one()
            logger.info("PostgreSQL connected: %s", ver)
        else:
            conn.execute(text("select 1"))
            logger.info("%s connected", backend)


def get_db() -> Iterator[Session]:
    get_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def reset_db() -> None:
    # 한번만 실행하는 스크립트
    from marketplace.models import listing, message, offer, profile, report, saved  # noqa: F401

    eng = get_engine()
    logger.warning("dropping and recreating all tables on %s", eng.url)
    Base.metadata.drop_all(bind=eng, checkfirst=True)
    Base.metadata.create_all(bind=eng)


if __name__ == "__main__":
    reset_db()
