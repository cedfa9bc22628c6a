from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from .config import settings


class Base(DeclarativeBase):
    pass


def make_engine(url: str) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


engine = make_engine(settings.db_url)
SessionLocal = make_session_factory(engine)


def init_db(bind: Engine | None = None) -> None:
    # таблицы регистрируются при импорте моделей
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
